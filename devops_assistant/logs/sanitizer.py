from __future__ import annotations

"""Row-cap guardrails for candidate log queries.

Rules (applied in order, regardless of backend):
- No LIMIT clause: strip trailing terminators, append LIMIT 50
- LIMIT above 100: rewrite it down to LIMIT 50
- Otherwise the query is returned untouched
"""

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 100

_LIMIT_RE = re.compile(r"limit\s+(\d+)", re.IGNORECASE)


def _strip_terminators(query: str) -> str:
    s = query.strip()
    while s.endswith(";"):
        s = s[:-1].rstrip()
    return s


def declared_limit(query: str) -> int | None:
    m = _LIMIT_RE.search(query or "")
    return int(m.group(1)) if m else None


def sanitize(query: str) -> str:
    """Return `query` with a row cap of at most MAX_LIMIT. Never raises."""

    q = query if isinstance(query, str) else ""

    limit = declared_limit(q)
    if limit is None:
        # A bare word like "rate limit" is not a row cap.
        logger.warning("Query missing LIMIT clause, adding LIMIT %d", DEFAULT_LIMIT)
        base = _strip_terminators(q)
        return f"{base} LIMIT {DEFAULT_LIMIT}" if base else f"LIMIT {DEFAULT_LIMIT}"

    # Every clause is checked; nested subqueries may declare their own caps.
    def _clamp(m: re.Match[str]) -> str:
        n = int(m.group(1))
        if n <= MAX_LIMIT:
            return m.group(0)
        logger.warning("LIMIT %d too high, reducing to %d", n, DEFAULT_LIMIT)
        return f"LIMIT {DEFAULT_LIMIT}"

    if all(int(m.group(1)) <= MAX_LIMIT for m in _LIMIT_RE.finditer(q)):
        return q
    return _LIMIT_RE.sub(_clamp, q)
