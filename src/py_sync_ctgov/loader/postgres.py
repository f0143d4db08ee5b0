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
"""Provides a PostgreSQL store for synchronized trials."""

import types
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import psycopg
from jinja2 import Environment, FileSystemLoader
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from ..models import FIELD_COLUMNS, STATUS_COLUMNS, TrialRecord
from .base import BaseStore

SQL_DIR = Path(__file__).resolve().parent.parent / "sql"

INSERT_COLUMNS: tuple[str, ...] = (
    "nct_id",
    "tenant",
    *STATUS_COLUMNS,
    "raw_data",
    *FIELD_COLUMNS.values(),
    "ai_summary_updated_at",
    "source_hash",
    "is_active",
    "last_synced_at",
)

# The conflict key and is_active are left alone on update.
UPDATE_COLUMNS: tuple[str, ...] = tuple(
    column for column in INSERT_COLUMNS if column not in ("nct_id", "tenant", "is_active")
)


class PostgresStore(BaseStore):
    """A trial store for PostgreSQL using an async psycopg connection."""

    def __init__(
        self,
        conn_string: str,
        schema: str = "public",
        table: str = "clinical_trials",
    ) -> None:
        """Initialize the store with the database connection string.

        Args:
            conn_string: A libpq connection string (e.g., "dbname=test user=postgres").
            schema: Schema holding the trials table.
            table: Name of the trials table.

        """
        self.conn_string = conn_string
        self.schema = schema
        self.table = table
        self.conn: psycopg.AsyncConnection | None = None
        self.jinja_env = Environment(
            loader=FileSystemLoader(SQL_DIR),
            autoescape=False,  # SQL is not HTML
        )

    async def __aenter__(self) -> "PostgresStore":
        """Open an autocommit connection; atomic writes use ``transaction()``."""
        self.conn = await psycopg.AsyncConnection.connect(
            self.conn_string, autocommit=True, row_factory=dict_row,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Close the database connection."""
        if self.conn:
            await self.conn.close()
            self.conn = None

    def _require_conn(self) -> psycopg.AsyncConnection:
        if not self.conn:
            msg = (
                "Connection is not available. "
                "The store must be used as an async context manager."
            )
            raise RuntimeError(msg)
        return self.conn

    def render(self, template_name: str, **kwargs: Any) -> str:
        """Render a SQL template with the store's schema and table names."""
        template = self.jinja_env.get_template(template_name)
        return template.render(schema=self.schema, table=self.table, **kwargs)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run the enclosed statements in one database transaction."""
        async with self._require_conn().transaction():
            yield

    async def execute_sql(
        self,
        sql_query: str,
        params: dict[str, Any] | None = None,
        fetch: str | None = None,
    ) -> Any:
        """Execute an arbitrary SQL command."""
        async with self._require_conn().cursor() as cur:
            await cur.execute(sql_query, params)
            if fetch == "one":
                return await cur.fetchone()
            if fetch == "all":
                return await cur.fetchall()
        return None

    async def prepare_schema(self) -> None:
        """Create the schema and trials table if they do not exist."""
        await self.execute_sql(
            self.render(
                "create_trials_table.sql",
                narrative_columns=list(FIELD_COLUMNS.values()),
            ),
        )

    async def fetch_trial(
        self, tenant: str, nct_id: str, *, for_update: bool = False,
    ) -> TrialRecord | None:
        """Fetch the stored record for (tenant, nct_id), optionally locking the row."""
        row = await self.execute_sql(
            self.render("select_trial.sql", for_update=for_update),
            {"tenant": tenant, "nct_id": nct_id},
            fetch="one",
        )
        return TrialRecord.from_row(row) if row else None

    async def save_trial(self, record: TrialRecord) -> None:
        """Upsert a record, leaving override columns and is_active untouched."""
        row = record.to_row()
        params = {column: row[column] for column in INSERT_COLUMNS}
        params["raw_data"] = Jsonb(row["raw_data"])
        await self.execute_sql(
            self.render(
                "upsert_trial.sql",
                columns=INSERT_COLUMNS,
                update_columns=UPDATE_COLUMNS,
            ),
            params,
        )
