from __future__ import annotations

from datetime import datetime, timedelta, timezone

from devops_assistant.logs._common import NO_MATCHES_MESSAGE, parse_rfc3339
from devops_assistant.logs.mock_backend import CORPUS, KNOWN_SERVICES, MockLogBackend, build_corpus

ANCHOR = datetime(2025, 11, 28, 12, 0, 0, tzinfo=timezone.utc)


def _backend(*, drift: timedelta = timedelta(seconds=1)) -> MockLogBackend:
    # Invocation happens shortly after the corpus was built, like in a real process.
    return MockLogBackend(corpus=build_corpus(ANCHOR), clock=lambda: ANCHOR + drift)


def _timestamps(rows: list[dict]) -> list[datetime]:
    return [parse_rfc3339(r["timestamp"]) for r in rows]


def _is_descending(rows: list[dict]) -> bool:
    ts = _timestamps(rows)
    return all(a >= b for a, b in zip(ts, ts[1:]))


def test_corpus_shape() -> None:
    assert len(CORPUS) == 14
    assert sum(1 for e in CORPUS if e.severity == "ERROR") == 9
    rec = CORPUS[0].to_record()
    for k in ("timestamp", "severity", "service", "message", "trace"):
        assert k in rec


def test_error_signal_returns_only_errors_sorted_desc() -> None:
    out = _backend().execute("SELECT * FROM logs WHERE severity = 'ERROR' LIMIT 5")
    assert out.row_count == 5
    assert {r["severity"] for r in out.rows} == {"ERROR"}
    assert _is_descending(out.rows)


def test_warning_signal_returns_only_warnings() -> None:
    out = _backend().execute("show me warnings LIMIT 50")
    assert out.row_count == 3
    assert {r["severity"] for r in out.rows} == {"WARNING"}


def test_error_takes_precedence_over_warning() -> None:
    out = _backend().execute("errors and warnings LIMIT 50")
    assert {r["severity"] for r in out.rows} == {"ERROR"}


def test_payment_origin_filter() -> None:
    out = _backend().execute("SELECT * FROM logs WHERE service = 'payment-service' LIMIT 50")
    assert out.row_count == 4
    assert all("payment" in r["service"] for r in out.rows)


def test_first_origin_match_wins() -> None:
    # "checkout" precedes "auth" in the known list, so only checkout is applied.
    assert KNOWN_SERVICES.index("checkout") < KNOWN_SERVICES.index("auth")
    out = _backend().execute("auth or checkout LIMIT 50")
    assert out.rows
    assert all("checkout" in r["service"] for r in out.rows)


def test_origin_and_30_minute_window_intersect() -> None:
    backend = _backend()
    out = backend.execute(
        "SELECT * FROM logs WHERE service LIKE '%payment%' "
        "AND timestamp > TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL 30 MINUTE) LIMIT 50"
    )
    assert [r["trace"] for r in out.rows] == ["trace-abc123", "trace-jkl012"]
    cutoff = ANCHOR + timedelta(seconds=1) - timedelta(minutes=30)
    assert all(ts > cutoff for ts in _timestamps(out.rows))


def test_recency_is_relative_to_invocation_time() -> None:
    late = _backend(drift=timedelta(minutes=12))
    out = late.execute("payment 30 minute LIMIT 50")
    assert [r["trace"] for r in out.rows] == ["trace-abc123"]


def test_one_hour_window() -> None:
    out = _backend().execute("INTERVAL 1 HOUR LIMIT 50")
    # Records at 5..55 minutes; the 60 minute one falls on the boundary.
    assert out.row_count == 11


def test_row_cap_truncates() -> None:
    out = _backend().execute("SELECT * FROM logs LIMIT 3")
    assert out.row_count == 3
    assert [r["trace"] for r in out.rows] == ["trace-abc123", "trace-def456", "trace-ghi789"]


def test_no_filters_returns_whole_corpus_sorted() -> None:
    out = _backend().execute("SELECT * FROM logs LIMIT 50")
    assert out.row_count == 14
    assert out.message is None
    assert _is_descending(out.rows)


def test_no_matches_returns_message() -> None:
    out = _backend().execute("warning auth 30 minute limit 50 checkout")
    # "checkout" is the first known service present, and no checkout record is a WARNING.
    assert out.row_count == 0
    assert out.rows == []
    assert out.message == NO_MATCHES_MESSAGE


def test_unexpected_failure_degrades_to_empty_result() -> None:
    def _boom() -> datetime:
        raise RuntimeError("clock unavailable")

    backend = MockLogBackend(corpus=build_corpus(ANCHOR), clock=_boom)
    out = backend.execute("errors in the last 30 minute LIMIT 50")
    assert out.row_count == 0
    assert "clock unavailable" in (out.message or "")


def test_rows_are_copies() -> None:
    backend = _backend()
    first = backend.execute("SELECT * FROM logs LIMIT 50")
    first.rows[0]["severity"] = "MUTATED"
    second = backend.execute("SELECT * FROM logs LIMIT 50")
    assert second.rows[0]["severity"] == "ERROR"
