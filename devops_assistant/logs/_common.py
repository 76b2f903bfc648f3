from __future__ import annotations

"""Shared types and helpers for the log-query tool.

Why this module exists:
- Both backends return the same envelope shapes
- Keep serialization in one place so the agent always gets one JSON document
- Provide consistent error/time helpers
"""

import json
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Protocol, Union


NO_MATCHES_MESSAGE = "No logs found matching the query criteria."


class ErrorKind(str, Enum):
    MISSING_TABLE = "missing_table"
    PERMISSION_DENIED = "permission_denied"
    QUERY_ERROR = "query_error"


Record = dict[str, Any]


@dataclass(frozen=True)
class ResultEnvelope:
    rows: list[Record] = field(default_factory=list)
    message: str | None = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"rowCount": self.row_count, "rows": self.rows}
        if self.message:
            out["message"] = self.message
        return out


@dataclass(frozen=True)
class ErrorEnvelope:
    kind: ErrorKind
    message: str
    hint: str | None = None
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"error": True, "kind": self.kind.value, "message": self.message}
        if self.hint:
            out["hint"] = self.hint
        if self.details:
            out["details"] = self.details
        return out


BackendResult = Union[ResultEnvelope, ErrorEnvelope]


class LogBackend(Protocol):
    """Capability interface shared by the live and synthetic backends.

    `execute` may return the result directly (synthetic) or an awaitable (live).
    """

    name: str

    def execute(self, query: str) -> BackendResult | Awaitable[BackendResult]:
        ...


def serialize(result: BackendResult) -> str:
    return json.dumps(result.to_dict(), ensure_ascii=False, default=str, allow_nan=False)


def query_error(message: str, *, details: str | None = None, hint: str | None = None) -> ErrorEnvelope:
    return ErrorEnvelope(kind=ErrorKind.QUERY_ERROR, message=message, hint=hint, details=details)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_rfc3339(dt: datetime) -> str:
    dt = dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_rfc3339(ts: str) -> datetime:
    return datetime.fromisoformat(ts.replace("Z", "+00:00"))


def to_json_value(value: Any) -> Any:
    """Normalize a store value into something `json.dumps` handles."""
    if isinstance(value, float) and not math.isfinite(value):
        # NaN/Infinity are not valid JSON.
        return None
    if isinstance(value, datetime):
        return to_rfc3339(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {k: to_json_value(v) for k, v in value.items()}
    if hasattr(value, "items") and callable(value.items):
        return {k: to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    return value
