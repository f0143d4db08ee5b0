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
"""Merges a freshly generated trial record into the stored one."""

from datetime import datetime

from .models import NARRATIVE_FIELDS, PRIMARY_OVERRIDE_FIELDS, TrialRecord


def merge_trial_record(
    existing: TrialRecord | None,
    incoming: TrialRecord,
    synced_at: datetime,
) -> TrialRecord:
    """Return the record to persist after a sync pass.

    Generated fields with a manual override on the stored record keep their
    stored value, and any override on a primary field (short title, summary,
    purpose) keeps the stored fingerprint too. Registry-derived columns
    always take the incoming values and the sync timestamp is always
    refreshed.
    """
    if existing is None:
        return incoming.model_copy(
            update={"last_synced_at": synced_at, "ai_summary_updated_at": synced_at},
        )

    overrides = existing.overrides
    narrative = incoming.narrative.model_copy(
        update={
            field: getattr(existing.narrative, field)
            for field in NARRATIVE_FIELDS
            if overrides.is_set(field)
        },
    )

    pinned = any(overrides.is_set(field) for field in PRIMARY_OVERRIDE_FIELDS)
    summary_changed = narrative.summary != existing.narrative.summary

    return incoming.model_copy(
        update={
            "narrative": narrative,
            "overrides": overrides,
            "source_hash": existing.source_hash if pinned else incoming.source_hash,
            "is_active": existing.is_active,
            "last_synced_at": synced_at,
            "ai_summary_updated_at": (
                synced_at if summary_changed else existing.ai_summary_updated_at
            ),
        },
    )
