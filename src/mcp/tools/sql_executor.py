"""
SQL Executor MCP Tool.

Read-only PostgreSQL access for ``database_query`` requirements. Queries go
through a read-only guard, get a row cap appended and run under a
server-side statement timeout.
"""

from __future__ import annotations

import logging
import re
import time
from decimal import Decimal
from typing import Any

import asyncpg

from config import PostgresConfig, config
from src.executor.errors import ToolExecutionError

logger = logging.getLogger(__name__)


READ_PREFIXES = ("SELECT", "WITH")

# Statements that may never appear, even inside a CTE
WRITE_STATEMENTS = re.compile(
    r"\b("
    r"DROP\s+(TABLE|DATABASE|SCHEMA|VIEW)"
    r"|TRUNCATE"
    r"|DELETE\s+FROM"
    r"|ALTER\s+(TABLE|DATABASE|SCHEMA)"
    r"|CREATE\s+(TABLE|DATABASE|SCHEMA|VIEW)"
    r"|INSERT"
    r"|UPDATE"
    r"|GRANT"
    r"|REVOKE"
    r")\b",
    re.IGNORECASE,
)
LIMIT_CLAUSE = re.compile(r"\bLIMIT\s+\d+", re.IGNORECASE)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, "isoformat"):  # date, datetime, time
        return value.isoformat()
    return value


class SQLExecutor:
    """
    PostgreSQL query tool.

    Input: ``query`` (or ``sql``) and optional positional ``params``.
    Output data: ``columns``, ``rows``, ``row_count`` plus the usual
    ``success``/``result`` keys used by quality scoring.
    """

    name = "postgres_sql_query"
    description = "Run a read-only SELECT query against the analytics PostgreSQL database"

    def __init__(self, settings: PostgresConfig | None = None):
        self.settings = settings or config.postgres
        self.max_rows = self.settings.max_rows
        self._pool: asyncpg.Pool | None = None

    async def get_pool(self) -> asyncpg.Pool:
        """Pool is created on first use."""
        if self._pool is None:
            logger.info(f"[SQL] Connecting to PostgreSQL at {self.settings.host}:{self.settings.port}")
            self._pool = await asyncpg.create_pool(
                dsn=self.settings.connection_string,
                min_size=1,
                max_size=10,
                server_settings={
                    "statement_timeout": str(self.settings.statement_timeout_seconds * 1000),
                    "default_transaction_read_only": "on",
                },
            )
        return self._pool

    def validate_query(self, query: str) -> tuple[bool, str | None]:
        """
        Check that a query only reads.

        Returns:
            ``(True, None)`` or ``(False, reason)``
        """
        if not query.strip().upper().startswith(READ_PREFIXES):
            return False, "Only SELECT queries are allowed"

        match = WRITE_STATEMENTS.search(query)
        if match:
            return False, f"Query contains a write statement: {match.group(1).upper()}"

        return True, None

    def _add_limit(self, query: str) -> str:
        """Cap the row count unless the query already has a LIMIT."""
        if LIMIT_CLAUSE.search(query):
            return query
        return f"{query.rstrip().rstrip(';')} LIMIT {self.max_rows}"

    async def run_query(self, query: str, params: list[Any]) -> list[Any]:
        pool = await self.get_pool()
        try:
            async with pool.acquire() as conn:
                return await conn.fetch(query, *params)
        except asyncpg.exceptions.QueryCanceledError:
            raise ToolExecutionError(
                f"Query exceeded {self.settings.statement_timeout_seconds}s statement timeout",
                details={"query": query},
            ) from None
        except asyncpg.PostgresError as e:
            logger.error(f"[SQL] Query error: {e}")
            raise ToolExecutionError(f"SQL execution error: {e}", details={"query": query}) from e

    async def execute(self, input: dict[str, Any]) -> dict[str, Any]:
        query = input.get("query") or input.get("sql") or ""
        params = list(input.get("params") or [])

        ok, reason = self.validate_query(query)
        if not ok:
            raise ToolExecutionError(reason or "Invalid query", details={"query": query})

        started = time.perf_counter()
        rows = await self.run_query(self._add_limit(query), params)
        took_ms = int((time.perf_counter() - started) * 1000)

        columns = list(rows[0].keys()) if rows else []
        records = [{key: _jsonable(value) for key, value in row.items()} for row in rows]
        truncated = len(records) >= self.max_rows

        logger.info(f"[SQL] {len(records)} rows in {took_ms}ms")

        insights = [f"Query returned {len(records)} rows across {len(columns)} columns"]
        if truncated:
            insights.append(f"Result was capped at {self.max_rows} rows")

        return {
            "data": {
                "success": True,
                "columns": columns,
                "rows": records,
                "row_count": len(records),
                "truncated": truncated,
                "result": f"{len(records)} rows returned",
            },
            "insights": insights,
        }

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
