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
"""Encodes sync events for server-sent-event and JSON-lines consumers."""

import asyncio
import json
from collections.abc import AsyncIterator, Callable

from .models import SyncEvent
from .orchestrator import SyncOrchestrator


def encode_sse(event: SyncEvent) -> str:
    """Frame one event as a ``text/event-stream`` message."""
    return f"data: {json.dumps(event.to_payload())}\n\n"


def encode_json_line(event: SyncEvent) -> str:
    return json.dumps(event.to_payload()) + "\n"


async def stream_events(
    orchestrator: SyncOrchestrator, cancel: asyncio.Event | None = None,
) -> AsyncIterator[SyncEvent]:
    """Yield a run's events, cancelling the run when the consumer stops early.

    When the consumer closes the stream (e.g. the client disconnected or the
    output pipe broke), the cancel token is set so the run stops before its
    next study.
    """
    cancel = cancel or asyncio.Event()
    events = orchestrator.run(cancel)
    try:
        async for event in events:
            yield event
    finally:
        cancel.set()
        await events.aclose()


async def stream_sse(
    orchestrator: SyncOrchestrator,
    cancel: asyncio.Event | None = None,
    encode: Callable[[SyncEvent], str] = encode_sse,
) -> AsyncIterator[str]:
    """Yield encoded frames for a run; SSE frames unless ``encode`` says otherwise."""
    events = stream_events(orchestrator, cancel)
    try:
        async for event in events:
            yield encode(event)
    finally:
        await events.aclose()
