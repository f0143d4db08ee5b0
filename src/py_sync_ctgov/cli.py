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
"""Command-line entry point for the ClinicalTrials.gov sync pipeline."""

import asyncio
import logging
import sys
from enum import Enum
from typing import TextIO

import httpx
import typer
from openai import OpenAIError

from .config import Settings
from .exceptions import UnknownTenantError
from .extractor import USER_AGENT, CtgovExtractor
from .loader.postgres import PostgresStore
from .models import FatalEvent
from .narrative.backend import OpenAIBackend
from .narrative.generator import NarrativeGenerator
from .orchestrator import SyncOrchestrator
from .sse import encode_json_line, encode_sse, stream_events

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Synchronize ClinicalTrials.gov studies into patient-facing trial records.",
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    SSE = "sse"
    JSON = "json"


def _configure_logging(verbose: bool) -> None:
    # stdout carries the event stream, so logs go to stderr.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _store_for(settings: Settings) -> PostgresStore:
    return PostgresStore(
        settings.db_connection_string,
        schema=settings.db_schema,
        table=settings.db_table,
    )


async def arun_sync(
    settings: Settings,
    output_format: OutputFormat = OutputFormat.SSE,
    out: TextIO | None = None,
    cancel: asyncio.Event | None = None,
) -> bool:
    """Run one sync and write its events to ``out`` (stdout by default).

    If ``out`` stops accepting writes (``BrokenPipeError``), the cancel token
    is set and the run stops before its next study.

    Returns:
        False if the run ended with a fatal event or was cancelled by a
        closed output, True otherwise.

    Raises:
        UnknownTenantError: before any I/O when the tenant has no profile.
    """
    config = settings.sync_config()
    if config.profile is None:
        raise UnknownTenantError(config.tenant)

    if out is None:
        out = sys.stdout
    encode = encode_sse if output_format == OutputFormat.SSE else encode_json_line

    try:
        backend = OpenAIBackend(api_key=settings.openai_api_key, model=settings.openai_model)
    except OpenAIError as e:
        logger.error("Failed to initialize the generation backend: %s", e)
        out.write(encode(FatalEvent(message=str(e))))
        out.flush()
        return False

    cancel = cancel or asyncio.Event()
    ok = True
    try:
        async with httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT}, follow_redirects=True, timeout=30.0,
        ) as client, _store_for(settings) as store:
            extractor = CtgovExtractor(config, client=client, search_url=settings.registry_url)
            orchestrator = SyncOrchestrator(config, extractor, NarrativeGenerator(backend), store)
            events = stream_events(orchestrator, cancel)
            try:
                async for event in events:
                    if isinstance(event, FatalEvent):
                        ok = False
                    out.write(encode(event))
                    out.flush()
            except BrokenPipeError:
                logger.warning("Output closed by the consumer; cancelling the sync run.")
                ok = False
            finally:
                await events.aclose()
    finally:
        await backend.aclose()
    return ok


async def arun_init_db(settings: Settings) -> None:
    async with _store_for(settings) as store:
        await store.prepare_schema()
    logger.info("Table %s.%s is ready.", settings.db_schema, settings.db_table)


@app.command()
def sync(
    tenant: str = typer.Option(None, help="Tenant key; overrides CTGOV_TENANT."),
    output_format: OutputFormat = typer.Option(
        OutputFormat.SSE, "--format", help="Event encoding: sse or json.", case_sensitive=False,
    ),
    tenants_file: str = typer.Option(None, "--config", help="YAML file of tenant profiles."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Fetch, regenerate and store the active tenant's trials, streaming progress."""
    _configure_logging(verbose)
    settings = Settings()
    overrides = {}
    if tenant:
        overrides["tenant"] = tenant
    if tenants_file:
        overrides["tenants_file"] = tenants_file
    if overrides:
        settings = settings.model_copy(update=overrides)

    try:
        ok = asyncio.run(arun_sync(settings, output_format))
    except UnknownTenantError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2) from e

    if not ok:
        raise typer.Exit(code=1)


@app.command("init-db")
def init_db(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Create the trials table if it does not exist."""
    _configure_logging(verbose)
    asyncio.run(arun_init_db(Settings()))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
