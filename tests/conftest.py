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

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import pytest

from py_sync_ctgov.loader.base import BaseStore
from py_sync_ctgov.models import ManualOverrides, TrialRecord
from py_sync_ctgov.narrative.backend import NarrativeBackend

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)

GOOD_TEXT = (
    "Participants take the study medicine every day and visit the clinic every "
    "four weeks so the team can check how their skin responds."
)


def make_study(
    nct_id: str | None = "NCT00000001",
    title: str = "A Study of Adalimumab in Hidradenitis Suppurativa",
    conditions: list[str] | None = None,
    eligibility: str = "Inclusion Criteria:\n- Adults 18 or older\nExclusion Criteria:\n- Pregnancy",
    status: str = "RECRUITING",
    study_type: str = "INTERVENTIONAL",
    interventions: list[str] | None = None,
    brief_summary: str = "This study tests whether adalimumab reduces painful skin lumps in adults.",
    detailed_description: str = "Participants receive injections every week and attend visits at weeks 4, 8 and 12.",
    sponsor: str | None = "Example Pharma",
    contacts: list[dict[str, Any]] | None = None,
    locations: list[dict[str, Any]] | None = None,
    start_date: str | None = "2024-03",
) -> dict[str, Any]:
    """Builds a raw ClinicalTrials.gov v2 study record for tests."""
    protocol: dict[str, Any] = {
        "identificationModule": {"briefTitle": title},
        "statusModule": {
            "overallStatus": status,
            "startDateStruct": {"date": start_date},
            "completionDateStruct": {"date": "2026-12-31"},
        },
        "conditionsModule": {
            "conditions": ["Hidradenitis Suppurativa"] if conditions is None else conditions,
            "keywords": ["HS"],
        },
        "designModule": {"studyType": study_type, "allocation": "RANDOMIZED"},
        "armsInterventionsModule": {
            "interventions": [
                {"name": name}
                for name in (["Adalimumab"] if interventions is None else interventions)
            ],
            "armGroups": [{"label": "Active", "description": "Adalimumab weekly"}],
        },
        "eligibilityModule": {"eligibilityCriteria": eligibility},
        "descriptionModule": {
            "briefSummary": brief_summary,
            "detailedDescription": detailed_description,
        },
        "sponsorCollaboratorsModule": {"leadSponsor": {"name": sponsor} if sponsor else {}},
        "contactsLocationsModule": {
            "centralContacts": (
                [{"name": "Jane Doe", "phone": "555-0100", "email": "jane@example.org"}]
                if contacts is None
                else contacts
            ),
            "locations": (
                [{"city": "Boston", "state": "Massachusetts", "country": "United States"}]
                if locations is None
                else locations
            ),
        },
    }
    if nct_id:
        protocol["identificationModule"]["nctId"] = nct_id
    return {"protocolSection": protocol, "hasResults": False}


class FakeBackend(NarrativeBackend):
    """Records prompts and answers with a fixed text or a callable."""

    def __init__(self, response: Any = GOOD_TEXT) -> None:
        self.response = response
        self.calls: list[dict[str, Any]] = []

    async def complete(self, prompt, *, system_prompt=None, temperature=0.3):
        self.calls.append(
            {"prompt": prompt, "system_prompt": system_prompt, "temperature": temperature},
        )
        if callable(self.response):
            return self.response(prompt)
        return self.response


class InMemoryStore(BaseStore):
    """Dict-backed store with the same override semantics as the SQL upsert."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], TrialRecord] = {}
        self.saves = 0

    async def __aenter__(self) -> "InMemoryStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    @asynccontextmanager
    async def transaction(self):
        snapshot = dict(self.rows)
        try:
            yield
        except BaseException:
            self.rows = snapshot
            raise

    async def prepare_schema(self) -> None:
        return None

    async def fetch_trial(self, tenant, nct_id, *, for_update=False):
        record = self.rows.get((tenant, nct_id))
        return record.model_copy(deep=True) if record else None

    async def save_trial(self, record: TrialRecord) -> None:
        existing = self.rows.get((record.tenant, record.nct_id))
        overrides = existing.overrides if existing else ManualOverrides()
        self.rows[(record.tenant, record.nct_id)] = record.model_copy(
            update={"overrides": overrides}, deep=True,
        )
        self.saves += 1

    def set_override(self, tenant: str, nct_id: str, field: str, value: str) -> None:
        record = self.rows[(tenant, nct_id)]
        overrides = record.overrides.model_copy(update={field: value})
        self.rows[(tenant, nct_id)] = record.model_copy(update={"overrides": overrides})


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
