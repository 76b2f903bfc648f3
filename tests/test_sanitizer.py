from __future__ import annotations

import re

import pytest

from devops_assistant.logs.sanitizer import DEFAULT_LIMIT, MAX_LIMIT, declared_limit, sanitize


def _limits(q: str) -> list[int]:
    return [int(n) for n in re.findall(r"limit\s+(\d+)", q, flags=re.IGNORECASE)]


@pytest.mark.parametrize(
    "query",
    [
        "SELECT * FROM logs",
        "SELECT * FROM logs;",
        "SELECT * FROM logs ;; ",
        "errors",
        "  select severity from `p.global._Default._AllLogs` where severity = 'ERROR'  ",
    ],
)
def test_sanitize_appends_default_limit_when_missing(query: str) -> None:
    out = sanitize(query)
    assert _limits(out) == [DEFAULT_LIMIT]
    assert out.endswith(f"LIMIT {DEFAULT_LIMIT}")
    assert ";" not in out


def test_sanitize_strips_terminator_before_appending() -> None:
    assert sanitize("SELECT * FROM logs;") == "SELECT * FROM logs LIMIT 50"


def test_sanitize_treats_bare_limit_word_as_missing_clause() -> None:
    out = sanitize("SELECT * FROM logs WHERE message LIKE '%rate limit%'")
    assert _limits(out) == [DEFAULT_LIMIT]


@pytest.mark.parametrize("declared", [101, 500, 100000])
def test_sanitize_caps_limit_above_ceiling(declared: int) -> None:
    out = sanitize(f"SELECT * FROM logs ORDER BY timestamp DESC limit {declared}")
    assert _limits(out) == [DEFAULT_LIMIT]


@pytest.mark.parametrize("declared", [1, 10, 50, 99, MAX_LIMIT])
def test_sanitize_keeps_limit_within_ceiling(declared: int) -> None:
    q = f"SELECT * FROM logs ORDER BY timestamp DESC LIMIT {declared};"
    assert sanitize(q) == q


def test_sanitize_caps_every_limit_clause() -> None:
    out = sanitize("SELECT * FROM (SELECT * FROM logs LIMIT 10) LIMIT 100000")
    assert _limits(out) == [10, DEFAULT_LIMIT]
    assert out == "SELECT * FROM (SELECT * FROM logs LIMIT 10) LIMIT 50"

    out = sanitize("SELECT * FROM (SELECT * FROM logs limit 500) limit 200")
    assert _limits(out) == [DEFAULT_LIMIT, DEFAULT_LIMIT]


def test_sanitize_is_total_on_bad_input() -> None:
    assert sanitize("") == "LIMIT 50"
    assert sanitize(None) == "LIMIT 50"  # type: ignore[arg-type]


def test_declared_limit() -> None:
    assert declared_limit("select 1 LIMIT 7") == 7
    assert declared_limit("select 1") is None
