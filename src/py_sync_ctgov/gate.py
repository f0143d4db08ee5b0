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
"""Decides whether a study's stored narrative is still valid."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from .fingerprint import fingerprint
from .loader.base import BaseStore
from .models import NARRATIVE_FIELDS, TrialRecord
from .study import Study

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_complete(record: TrialRecord) -> bool:
    """True when every narrative field has a generated or manual value."""
    for field in NARRATIVE_FIELDS:
        generated = getattr(record.narrative, field)
        manual = getattr(record.overrides, field)
        if not (generated and generated.strip()) and not (manual and manual.strip()):
            return False
    return True


class FreshnessGate:
    """Skips regeneration for unchanged, recently synced, complete records."""

    def __init__(
        self,
        store: BaseStore,
        tenant: str,
        window: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.tenant = tenant
        self.window = window
        self.clock = clock

    async def should_skip(self, nct_id: str, study: Study) -> bool:
        """Return True when the stored record can be kept as is."""
        existing = await self.store.fetch_trial(self.tenant, nct_id)
        if existing is None:
            return False

        if existing.source_hash != fingerprint(study):
            logger.debug("%s changed since last sync", nct_id)
            return False

        synced = existing.last_synced_at
        if synced is None or synced <= self.clock() - self.window:
            logger.debug("%s is older than the freshness window", nct_id)
            return False

        return is_complete(existing)
