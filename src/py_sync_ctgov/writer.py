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
"""Persists generated trial records while preserving manual overrides."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from .gate import utcnow
from .loader.base import BaseStore
from .merge import merge_trial_record
from .models import NarrativeFields, TrialRecord

logger = logging.getLogger(__name__)


class UpsertWriter:
    """Writes one study's record atomically through a store."""

    def __init__(
        self, store: BaseStore, clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.clock = clock

    async def write(
        self,
        tenant: str,
        nct_id: str,
        status_fields: dict[str, Any],
        generated: NarrativeFields,
        fingerprint: str,
        raw_study: dict[str, Any] | None = None,
    ) -> TrialRecord:
        """Insert or update the record for (tenant, nct_id).

        The stored row is locked, merged with the incoming values in memory
        and written back in one transaction. Database errors propagate.
        """
        incoming = TrialRecord(
            nct_id=nct_id,
            tenant=tenant,
            raw_data=raw_study or {},
            narrative=generated,
            source_hash=fingerprint,
            **status_fields,
        )
        async with self.store.transaction():
            existing = await self.store.fetch_trial(tenant, nct_id, for_update=True)
            merged = merge_trial_record(existing, incoming, self.clock())
            await self.store.save_trial(merged)

        logger.debug("Wrote %s for tenant %s", nct_id, tenant)
        return merged
