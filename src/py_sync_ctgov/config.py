# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Manages the application's configuration using Pydantic."""

from datetime import timedelta
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TenantProfile(BaseModel):
    """Condition keywords that decide whether a study belongs to a tenant."""

    model_config = ConfigDict(frozen=True)

    required: tuple[str, ...]
    exclude: tuple[str, ...] = ()


DEFAULT_TENANT_PROFILES: dict[str, TenantProfile] = {
    "HS": TenantProfile(
        required=("hidradenitis suppurativa", "hidradenitis"),
        exclude=("mood", "parkinson", "glioblastoma"),
    ),
    "NF": TenantProfile(
        required=("neurofibromatosis", "nf1", "nf2", "schwannomatosis"),
    ),
    "EB": TenantProfile(required=("epidermolysis bullosa",)),
    "CF": TenantProfile(required=("cystic fibrosis",)),
}


class SyncConfig(BaseModel):
    """Immutable configuration handed to the orchestrator for a single run."""

    model_config = ConfigDict(frozen=True)

    tenant: str
    profiles: dict[str, TenantProfile] = Field(
        default_factory=lambda: dict(DEFAULT_TENANT_PROFILES),
    )
    freshness_window: timedelta = timedelta(days=7)
    page_size: int = 50
    max_studies: int = 500

    @property
    def profile(self) -> TenantProfile | None:
        """Return the keyword profile of the active tenant, if it is known."""
        return self.profiles.get(self.tenant)


def load_tenant_profiles(path: str | Path | None) -> dict[str, TenantProfile]:
    """Merge tenant profiles from a YAML file over the built-in table.

    The file maps tenant keys to ``required``/``exclude`` keyword lists::

        HS:
          required: [hidradenitis suppurativa, hidradenitis]
          exclude: [mood]
    """
    profiles = dict(DEFAULT_TENANT_PROFILES)
    if not path:
        return profiles

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    for key, value in raw.items():
        profiles[str(key).upper()] = TenantProfile(**value)
    return profiles


class Settings(BaseSettings):
    """Manages configuration for the application.

    Reads settings from environment variables with the prefix 'CTGOV_'.
    """

    model_config = SettingsConfigDict(env_prefix="CTGOV_")

    tenant: str = "HS"
    tenants_file: str | None = None

    # Database connection settings
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    # S105: Hardcoded password is used for local development.
    # In production, this should be set via environment variables.
    db_password: str = "postgres"
    db_name: str = "ctgov"
    db_schema: str = "public"
    db_table: str = "clinical_trials"

    # Generation backend
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"

    # Registry
    registry_url: str = "https://clinicaltrials.gov/api/v2/studies"
    page_size: int = 50
    max_studies: int = 500
    freshness_days: int = 7

    @computed_field
    @property
    def db_connection_string(self) -> str:
        """Construct the libpq connection string from individual settings."""
        return (
            f"host='{self.db_host}' port='{self.db_port}' "
            f"user='{self.db_user}' password='{self.db_password}' "
            f"dbname='{self.db_name}'"
        )

    def sync_config(self) -> SyncConfig:
        """Freeze the run-relevant settings into a ``SyncConfig``."""
        return SyncConfig(
            tenant=self.tenant.upper(),
            profiles=load_tenant_profiles(self.tenants_file),
            freshness_window=timedelta(days=self.freshness_days),
            page_size=self.page_size,
            max_studies=self.max_studies,
        )
