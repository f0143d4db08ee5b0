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
"""Defines the Pydantic data models for the application."""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Narrative field name -> column in the trials table. Each column has a
# "<column>_manual" twin holding the human override.
FIELD_COLUMNS: dict[str, str] = {
    "short_title": "short_title",
    "summary": "ai_summary",
    "purpose": "ai_purpose",
    "treatments": "ai_treatments",
    "design": "ai_design",
    "eligibility": "ai_eligibility",
    "participation": "ai_participation",
    "leadership": "ai_leadership",
    "prior_research": "ai_prior_research",
    "locations": "ai_locations",
}

NARRATIVE_FIELDS: tuple[str, ...] = tuple(FIELD_COLUMNS)

# Overrides on these fields also pin the stored fingerprint.
PRIMARY_OVERRIDE_FIELDS: tuple[str, ...] = ("short_title", "summary", "purpose")

MUST_SUCCEED_FIELDS: tuple[str, ...] = (
    "purpose",
    "design",
    "eligibility",
    "participation",
    "leadership",
    "prior_research",
    "locations",
)

STATUS_COLUMNS: tuple[str, ...] = (
    "overall_status",
    "start_date",
    "primary_completion_date",
    "completion_date",
    "last_update_date",
    "conditions",
    "keywords",
)


def manual_column(field: str) -> str:
    """Return the override column paired with a narrative field."""
    return f"{FIELD_COLUMNS[field]}_manual"


class NarrativeFields(BaseModel):
    """The patient-facing texts generated for one study."""

    short_title: str = ""
    summary: str = ""
    purpose: str = ""
    treatments: str = ""
    design: str = ""
    eligibility: str = ""
    participation: str = ""
    leadership: str = ""
    prior_research: str = ""
    locations: str = ""

    def missing(self, fields: tuple[str, ...] = NARRATIVE_FIELDS) -> list[str]:
        """Names of the given fields that are empty or whitespace."""
        return [name for name in fields if not getattr(self, name).strip()]


class ManualOverrides(BaseModel):
    """Human-edited replacements for narrative fields; None means not overridden."""

    short_title: str | None = None
    summary: str | None = None
    purpose: str | None = None
    treatments: str | None = None
    design: str | None = None
    eligibility: str | None = None
    participation: str | None = None
    leadership: str | None = None
    prior_research: str | None = None
    locations: str | None = None

    def is_set(self, field: str) -> bool:
        return getattr(self, field) is not None


class TrialRecord(BaseModel):
    """One row of the clinical trials table, keyed by (tenant, nct_id)."""

    nct_id: str
    tenant: str
    overall_status: str | None = None
    start_date: date | None = None
    primary_completion_date: date | None = None
    completion_date: date | None = None
    last_update_date: date | None = None
    conditions: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    raw_data: dict[str, Any] = Field(default_factory=dict)
    narrative: NarrativeFields = Field(default_factory=NarrativeFields)
    overrides: ManualOverrides = Field(default_factory=ManualOverrides)
    source_hash: str | None = None
    is_active: bool = True
    ai_summary_updated_at: datetime | None = None
    last_synced_at: datetime | None = None

    def to_row(self) -> dict[str, Any]:
        """Flatten to column names; override columns are not included."""
        row = self.model_dump(exclude={"narrative", "overrides"})
        for field, column in FIELD_COLUMNS.items():
            row[column] = getattr(self.narrative, field) or None
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "TrialRecord":
        """Build a record from a database row using the table's column names."""
        narrative = {
            field: row.get(column) or "" for field, column in FIELD_COLUMNS.items()
        }
        overrides = {field: row.get(manual_column(field)) for field in FIELD_COLUMNS}
        scalar = {
            key: value
            for key, value in row.items()
            if key in cls.model_fields and value is not None
        }
        return cls(
            **scalar,
            narrative=NarrativeFields(**narrative),
            overrides=ManualOverrides(**overrides),
        )


class SyncEvent(BaseModel):
    """Base class for the events streamed to the caller during a sync run."""

    model_config = ConfigDict(populate_by_name=True)

    type: str

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict using the wire field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StatusEvent(SyncEvent):
    type: Literal["status"] = "status"
    message: str
    total: int | None = None
    tenant: str | None = None


class _Counts(SyncEvent):
    processed: int
    skipped: int
    errors: int


class _StudyCounts(_Counts):
    nct_id: str | None = Field(default=None, alias="nctId")
    current: int
    total: int
    percent: int


class ProgressEvent(_StudyCounts):
    type: Literal["progress"] = "progress"
    action: Literal["processed", "skipped"]
    reason: str | None = None


class ErrorEvent(_StudyCounts):
    type: Literal["error"] = "error"
    message: str


class CompleteEvent(_Counts):
    type: Literal["complete"] = "complete"
    message: str
    total: int
    tenant: str | None = None


class FatalEvent(SyncEvent):
    type: Literal["fatal"] = "fatal"
    message: str
