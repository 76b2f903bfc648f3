from __future__ import annotations

"""Live log backend: BigQuery over Cloud Logging's Log Analytics.

One query job per call, no retries. Failures come back as classified
`ErrorEnvelope` values instead of exceptions. Cancelling the awaiting task
cancels the remote job (best-effort) and re-raises.
"""

import asyncio
import logging
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import bigquery

from devops_assistant.logs._common import (
    NO_MATCHES_MESSAGE,
    BackendResult,
    ErrorEnvelope,
    ErrorKind,
    Record,
    ResultEnvelope,
    to_json_value,
)

logger = logging.getLogger(__name__)

MISSING_TABLE_HINT = (
    "Go to Cloud Console -> Logging -> Log Storage -> Upgrade the _Default bucket to Log Analytics, "
    "then allow a few minutes for the linked dataset to populate."
)
PERMISSION_HINT = "Grant roles/bigquery.jobUser and roles/logging.viewer to the service account."


def classify_error(exc: BaseException) -> ErrorEnvelope:
    msg = str(exc) or exc.__class__.__name__

    if isinstance(exc, gcp_exceptions.NotFound) or "Not found: Table" in msg:
        return ErrorEnvelope(
            kind=ErrorKind.MISSING_TABLE,
            message="Log Analytics table not found. Please ensure Log Analytics is enabled and has data.",
            hint=MISSING_TABLE_HINT,
            details=msg,
        )

    if isinstance(exc, gcp_exceptions.Forbidden) or "permission" in msg.lower():
        return ErrorEnvelope(
            kind=ErrorKind.PERMISSION_DENIED,
            message="Permission denied. The service account needs BigQuery permissions.",
            hint=PERMISSION_HINT,
            details=msg,
        )

    return ErrorEnvelope(kind=ErrorKind.QUERY_ERROR, message="Error querying logs", details=msg)


def _row_to_record(row: Any) -> Record:
    return {k: to_json_value(v) for k, v in row.items()}


def _fetch_rows(job: Any) -> list[Record]:
    return [_row_to_record(r) for r in job.result()]


def _cancel_job(job: Any) -> None:
    try:
        job.cancel()
        logger.warning("Cancelled BigQuery job %s", getattr(job, "job_id", "?"))
    except Exception as e:
        logger.error("Failed to cancel BigQuery job %s: %s", getattr(job, "job_id", "?"), e)


class BigQueryLogBackend:
    """Executes sanitized queries as BigQuery jobs."""

    name = "bigquery"

    def __init__(self, *, project_id: str, location: str = "US", client: Any | None = None) -> None:
        self.project_id = project_id
        self.location = location
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = bigquery.Client(project=self.project_id or None)
        return self._client

    async def execute(self, query: str) -> BackendResult:
        logger.info("Executing BigQuery log query: %s", query)
        job = None
        try:
            client = self._get_client()
            job = await asyncio.to_thread(client.query, query, location=self.location)
            logger.info("BigQuery job created: %s", getattr(job, "job_id", "?"))
            rows = await asyncio.to_thread(_fetch_rows, job)
        except asyncio.CancelledError:
            if job is not None:
                _cancel_job(job)
            raise
        except Exception as e:
            logger.error("BigQuery error: %s", e)
            return classify_error(e)

        logger.info("Query completed: %d rows returned", len(rows))
        if not rows:
            return ResultEnvelope(rows=[], message=NO_MATCHES_MESSAGE)
        return ResultEnvelope(rows=rows)
