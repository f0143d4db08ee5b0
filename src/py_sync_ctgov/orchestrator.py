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
"""Drives a full synchronization run and reports progress as events."""

import asyncio
import logging
import math
from collections.abc import AsyncIterator, Callable
from datetime import datetime
from typing import Literal

from .config import SyncConfig
from .exceptions import MissingStudyIdError, UnknownTenantError
from .extractor import CtgovExtractor
from .fingerprint import fingerprint
from .gate import FreshnessGate, utcnow
from .loader.base import BaseStore
from .matcher import matches
from .models import (
    CompleteEvent,
    ErrorEvent,
    FatalEvent,
    ProgressEvent,
    StatusEvent,
    SyncEvent,
)
from .narrative.generator import NarrativeGenerator
from .study import Study
from .utils import status_fields
from .writer import UpsertWriter

logger = logging.getLogger(__name__)

UP_TO_DATE = "Already up to date"


def percent(current: int, total: int) -> int:
    """Rounded completion percentage, halves rounding up."""
    if total <= 0:
        return 100
    return math.floor(current * 100 / total + 0.5)


class SyncOrchestrator:
    """Fetches, filters, gates, generates and writes the studies of one tenant.

    Studies are processed strictly one after another. A failure on one
    study is reported and counted; only fetch or filter failures end the
    run early.
    """

    def __init__(
        self,
        config: SyncConfig,
        extractor: CtgovExtractor,
        generator: NarrativeGenerator,
        store: BaseStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if config.profile is None:
            raise UnknownTenantError(config.tenant)
        self.config = config
        self.extractor = extractor
        self.generator = generator
        self.gate = FreshnessGate(store, config.tenant, config.freshness_window, clock)
        self.writer = UpsertWriter(store, clock)

    async def _fetch_matching(self) -> tuple[int, list[Study]]:
        tenant = self.config.tenant
        raw_studies = await self.extractor.fetch_all(tenant)
        studies = [Study(raw) for raw in raw_studies]
        matching = [s for s in studies if matches(s, tenant, self.config.profiles)]
        logger.info(
            "Fetched %d studies, %d match tenant %s", len(studies), len(matching), tenant,
        )
        return len(studies), matching

    async def process_study(self, study: Study) -> Literal["processed", "skipped"]:
        """Gate one study and, unless it is fresh, regenerate and write it."""
        nct_id = study.nct_id
        if not nct_id:
            raise MissingStudyIdError("Study has no NCT ID")

        if await self.gate.should_skip(nct_id, study):
            return "skipped"

        generated = await self.generator.generate(study)
        await self.writer.write(
            self.config.tenant,
            nct_id,
            status_fields(study),
            generated,
            fingerprint(study),
            study.data,
        )
        return "processed"

    async def run(self, cancel: asyncio.Event | None = None) -> AsyncIterator[SyncEvent]:
        """Run the sync and yield progress events in order.

        The cancel token is checked before each study; once it is set the
        run stops without a ``complete`` event. A study already in flight
        is allowed to finish.
        """
        tenant = self.config.tenant
        yield StatusEvent(
            message="Fetching studies from ClinicalTrials.gov...", tenant=tenant,
        )

        try:
            fetched, matching = await self._fetch_matching()
        except Exception as e:
            logger.error("Sync run for %s failed: %s", tenant, e, exc_info=True)
            yield FatalEvent(message=str(e))
            return

        total = len(matching)
        yield StatusEvent(
            message=f"Found {fetched} studies, {total} match {tenant}", total=total,
        )

        processed = skipped = errors = 0
        for current, study in enumerate(matching, start=1):
            if cancel is not None and cancel.is_set():
                logger.info("Sync cancelled after %d of %d studies", current - 1, total)
                return

            nct_id = study.nct_id
            try:
                action = await self.process_study(study)
            except Exception as e:
                errors += 1
                logger.error("Failed to sync %s: %s", nct_id, e, exc_info=True)
                yield ErrorEvent(
                    nct_id=nct_id,
                    message=str(e),
                    processed=processed,
                    skipped=skipped,
                    errors=errors,
                    current=current,
                    total=total,
                    percent=percent(current, total),
                )
                continue

            if action == "skipped":
                skipped += 1
            else:
                processed += 1
            yield ProgressEvent(
                nct_id=nct_id,
                action=action,
                reason=UP_TO_DATE if action == "skipped" else None,
                processed=processed,
                skipped=skipped,
                errors=errors,
                current=current,
                total=total,
                percent=percent(current, total),
            )

        logger.info(
            "Sync for %s complete: %d processed, %d skipped, %d errors",
            tenant, processed, skipped, errors,
        )
        yield CompleteEvent(
            message="Sync complete!",
            processed=processed,
            skipped=skipped,
            errors=errors,
            total=total,
            tenant=tenant,
        )
