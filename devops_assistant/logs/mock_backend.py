from __future__ import annotations

"""Synthetic log backend for local development and tests.

Evaluates a best-effort keyword interpretation of the query text over a fixed
in-memory corpus. No parsing: substrings decide the filters, first match wins.

Filter order:
- severity ("error" / "warning")
- origin (first known service substring)
- recency ("30 minute" / "1 hour")
then truncate to the row cap and sort by timestamp descending.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from devops_assistant.logs._common import NO_MATCHES_MESSAGE, Record, ResultEnvelope, to_rfc3339, utc_now
from devops_assistant.logs.sanitizer import DEFAULT_LIMIT

logger = logging.getLogger(__name__)

# Bump when the keyword rules below change; prompts and fixtures are tuned to them.
MATCHING_RULES_VERSION = 1

KNOWN_SERVICES = ("payment", "checkout", "auth")

_LIMIT_RE = re.compile(r"limit\s+(\d+)")


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    severity: str
    service: str
    message: str
    error_details: str | None
    trace: str
    http_status: int | None

    def to_record(self) -> Record:
        return {
            "timestamp": to_rfc3339(self.timestamp),
            "severity": self.severity,
            "service": self.service,
            "message": self.message,
            "error_details": self.error_details,
            "trace": self.trace,
            "http_status": self.http_status,
        }


# (minutes_ago, severity, service, message, error_details, trace, http_status)
_FIXTURES: tuple[tuple[int, str, str, str, str | None, str, int | None], ...] = (
    (5, "ERROR", "payment-service", "Payment gateway timeout after 30s",
     "Connection timeout to payment-gateway.example.com", "trace-abc123", 504),
    (10, "ERROR", "checkout-service", "Failed to process checkout request",
     "Database connection pool exhausted", "trace-def456", 500),
    (15, "WARNING", "auth-service", "High latency detected on authentication endpoint",
     "Response time: 2500ms (threshold: 1000ms)", "trace-ghi789", 200),
    (20, "ERROR", "payment-service", "Payment declined by processor",
     "Insufficient funds", "trace-jkl012", 402),
    (25, "ERROR", "checkout-service", "Checkout validation failed",
     "Invalid shipping address format", "trace-mno345", 400),
    (30, "ERROR", "api-gateway", "Rate limit exceeded",
     "Client exceeded 100 requests per minute", "trace-pqr678", 429),
    (35, "WARNING", "database-proxy", "Slow query detected",
     "Query execution time: 5.2s", "trace-stu901", None),
    (40, "ERROR", "payment-service", "Payment gateway connection refused",
     "ECONNREFUSED 10.0.1.5:8443", "trace-vwx234", 503),
    (45, "INFO", "checkout-service", "Checkout completed successfully",
     None, "trace-yza567", 200),
    (50, "ERROR", "auth-service", "JWT token validation failed",
     "Token expired", "trace-bcd890", 401),
    (55, "ERROR", "inventory-service", "Stock reservation failed",
     "Deadlock detected while locking sku rows", "trace-efg123", 500),
    (60, "WARNING", "payment-service", "Payment retry queue depth above threshold",
     "Queue depth: 1200 (threshold: 1000)", "trace-hij456", None),
    (65, "ERROR", "notification-service", "Failed to deliver order confirmation email",
     "SMTP 421 service not available", "trace-klm789", None),
    (70, "INFO", "auth-service", "Signing key rotated",
     None, "trace-nop012", None),
)


def build_corpus(anchor: datetime) -> tuple[LogEntry, ...]:
    """Materialize the fixture set relative to `anchor`, newest first."""
    return tuple(
        LogEntry(
            timestamp=anchor - timedelta(minutes=minutes_ago),
            severity=severity,
            service=service,
            message=message,
            error_details=details,
            trace=trace,
            http_status=status,
        )
        for minutes_ago, severity, service, message, details, trace, status in _FIXTURES
    )


# Built once per process; never mutated.
CORPUS = build_corpus(utc_now())


def _severity_filter(q: str) -> str | None:
    if "severity = 'error'" in q or "error" in q:
        return "ERROR"
    if "severity = 'warning'" in q or "warning" in q:
        return "WARNING"
    return None


def _origin_filter(q: str) -> str | None:
    for service in KNOWN_SERVICES:
        if service in q:
            return service
    return None


def _recency_window(q: str) -> timedelta | None:
    if "30 minute" in q:
        return timedelta(minutes=30)
    if "1 hour" in q:
        return timedelta(hours=1)
    return None


def _row_cap(q: str) -> int:
    m = _LIMIT_RE.search(q)
    return int(m.group(1)) if m else DEFAULT_LIMIT


class MockLogBackend:
    """Synthetic backend over the fixed corpus. Never raises."""

    name = "mock"

    def __init__(
        self,
        *,
        corpus: tuple[LogEntry, ...] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._corpus = CORPUS if corpus is None else corpus
        self._clock = clock

    def execute(self, query: str) -> ResultEnvelope:
        logger.info("MOCK MODE: simulating log query: %s", query)
        try:
            entries = self._match(query)
        except Exception as e:
            logger.error("MOCK: error simulating query: %s", e)
            return ResultEnvelope(rows=[], message=f"Error simulating log query: {e}")

        logger.info("MOCK: returning %d log entries", len(entries))
        if not entries:
            return ResultEnvelope(rows=[], message=NO_MATCHES_MESSAGE)
        return ResultEnvelope(rows=[e.to_record() for e in entries])

    def _match(self, query: str) -> list[LogEntry]:
        q = (query or "").lower()
        entries = list(self._corpus)

        severity = _severity_filter(q)
        if severity:
            entries = [e for e in entries if e.severity == severity]

        origin = _origin_filter(q)
        if origin:
            entries = [e for e in entries if origin in e.service]

        window = _recency_window(q)
        if window is not None:
            cutoff = self._clock() - window
            entries = [e for e in entries if e.timestamp > cutoff]

        entries = entries[: _row_cap(q)]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries
