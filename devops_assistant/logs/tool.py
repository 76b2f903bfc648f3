from __future__ import annotations

"""The log-query tool the agent calls.

Flow per call: sanitize -> backend.execute -> serialize. The backend is chosen
once (from `Settings`) when the tool is built and never changes afterwards.

Guarantees:
- Always returns exactly one JSON document (result or error envelope)
- Never raises `Exception` to the caller
- Audit logging (JSONL), best-effort
"""

import asyncio
import inspect
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field

from devops_assistant.config import BackendMode, Settings
from devops_assistant.logs._common import (
    BackendResult,
    ErrorEnvelope,
    LogBackend,
    ResultEnvelope,
    query_error,
    serialize,
)
from devops_assistant.logs.sanitizer import sanitize

logger = logging.getLogger(__name__)

TOOL_NAME = "query_system_logs"
QUERY_ARG_DESCRIPTION = "a bounded read query; must include a row limit."


class LogQueryInput(BaseModel):
    query: str = Field(description=QUERY_ARG_DESCRIPTION)


def select_backend(settings: Settings) -> LogBackend:
    """Build the backend variant for the configured mode."""
    if settings.mode is BackendMode.SYNTHETIC:
        from devops_assistant.logs.mock_backend import MockLogBackend

        return MockLogBackend()

    from devops_assistant.logs.bigquery_backend import BigQueryLogBackend

    return BigQueryLogBackend(project_id=settings.gcp_project_id, location=settings.bigquery_location)


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def _append_audit(path: Path, event: dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, sort_keys=True, default=str) + "\n")
    except Exception as e:
        # Audit is best-effort; never fail the query solely due to logging.
        logger.debug("audit write failed: %s", e)


class LogQueryTool:
    """Single capability surface exposed to the agent."""

    def __init__(
        self,
        backend: LogBackend,
        *,
        mode: BackendMode | None = None,
        audit_path: str | Path | None = None,
    ) -> None:
        self._backend = backend
        self.mode = mode or (BackendMode.SYNTHETIC if backend.name == "mock" else BackendMode.LIVE)
        self._audit_path = Path(audit_path) if audit_path else None

    @classmethod
    def from_settings(cls, settings: Settings) -> "LogQueryTool":
        return cls(
            select_backend(settings),
            mode=settings.mode,
            audit_path=settings.resolved_audit_path() if settings.audit_enabled else None,
        )

    @property
    def backend(self) -> LogBackend:
        return self._backend

    async def invoke(self, candidate_query: str) -> str:
        """Sanitize, execute and serialize one candidate query."""

        started = time.perf_counter()
        executed: str | None = None
        try:
            executed = sanitize(candidate_query)
            result: Any = self._backend.execute(executed)
            if inspect.isawaitable(result):
                result = await result
            if not isinstance(result, (ResultEnvelope, ErrorEnvelope)):
                result = query_error("Backend returned an unexpected result", details=repr(result))
        except Exception as e:
            logger.exception("Log query failed")
            result = query_error("Error querying logs", details=str(e) or e.__class__.__name__)

        try:
            out = serialize(result)
        except ValueError as e:
            logger.error("Log query result is not JSON-serializable: %s", e)
            result = query_error("Result could not be serialized", details=str(e))
            out = serialize(result)

        self._audit(candidate_query, executed, result, started)
        return out

    def invoke_sync(self, candidate_query: str) -> str:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.invoke(candidate_query))

    def as_langchain_tool(self) -> StructuredTool:
        async def query_system_logs(query: str) -> str:
            return await self.invoke(query)

        return StructuredTool.from_function(
            coroutine=query_system_logs,
            name=TOOL_NAME,
            description=(
                "Executes a read-only log query against the system log store to find errors, "
                "latency issues, or specific trace IDs. Returns JSON with rowCount and rows, "
                "or an error object with a hint."
            ),
            args_schema=LogQueryInput,
        )

    def _audit(self, query: Any, executed: str | None, result: BackendResult, started: float) -> None:
        if self._audit_path is None:
            return
        event: dict[str, Any] = {
            "ts": _now_iso(),
            "mode": self.mode.value,
            "backend": self._backend.name,
            "query": query,
            "executed_query": executed,
            "ok": not isinstance(result, ErrorEnvelope),
            "duration_ms": int((time.perf_counter() - started) * 1000),
        }
        if isinstance(result, ErrorEnvelope):
            event["error_kind"] = result.kind.value
        else:
            event["row_count"] = result.row_count
        _append_audit(self._audit_path, event)
