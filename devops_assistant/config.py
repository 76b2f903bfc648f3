from __future__ import annotations

"""Process configuration.

Read once at startup (`Settings.from_env()`), then passed explicitly to the
tool, agent and HTTP app. Nothing mutates it afterwards.

Env vars:
- USE_MOCK_DATA: "true" selects the synthetic backend (default: live BigQuery)
- GCP_PROJECT_ID (required in live mode), GCP_REGION, BIGQUERY_LOCATION
- HOST / PORT: HTTP server bind (default 0.0.0.0:3400)
- APP_ENV (or NODE_ENV): environment label
- LOG_LEVEL: stdlib logging level name
- LOG_QUERY_AUDIT: "false" disables the JSONL audit trail
- LOG_QUERY_AUDIT_PATH: audit file (default reports/log_query_audit.jsonl)
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv


class ConfigError(ValueError):
    pass


class BackendMode(str, Enum):
    SYNTHETIC = "mock"
    LIVE = "production"


def project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _env_flag(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return v.strip().lower() == "true"


@dataclass(frozen=True)
class Settings:
    gcp_project_id: str = ""
    gcp_region: str = "us-central1"
    bigquery_location: str = "US"
    use_mock_data: bool = False
    host: str = "0.0.0.0"
    port: int = 3400
    app_env: str = "development"
    log_level: str = "INFO"
    audit_enabled: bool = True
    audit_path: str | None = None

    @classmethod
    def from_env(cls, *, dotenv_path: str | os.PathLike[str] | None = None) -> "Settings":
        load_dotenv(dotenv_path or project_root() / ".env")
        return cls(
            gcp_project_id=os.getenv("GCP_PROJECT_ID", ""),
            gcp_region=os.getenv("GCP_REGION", "us-central1"),
            bigquery_location=os.getenv("BIGQUERY_LOCATION", "US"),
            use_mock_data=_env_flag("USE_MOCK_DATA", False),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3400")),
            app_env=os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            audit_enabled=_env_flag("LOG_QUERY_AUDIT", True),
            audit_path=os.getenv("LOG_QUERY_AUDIT_PATH"),
        )

    @property
    def mode(self) -> BackendMode:
        return BackendMode.SYNTHETIC if self.use_mock_data else BackendMode.LIVE

    @property
    def bigquery_dataset(self) -> str:
        return f"{self.gcp_project_id}.global._Default"

    @property
    def bigquery_table(self) -> str:
        return f"{self.bigquery_dataset}._AllLogs"

    def resolved_audit_path(self) -> Path:
        return Path(self.audit_path) if self.audit_path else project_root() / "reports" / "log_query_audit.jsonl"

    def validate(self) -> "Settings":
        """Raise ConfigError when live mode is selected without a GCP project."""
        if self.mode is BackendMode.LIVE and not self.gcp_project_id:
            raise ConfigError(
                "GCP_PROJECT_ID is required when USE_MOCK_DATA is not 'true'. "
                "Set USE_MOCK_DATA=true for local testing without GCP."
            )
        return self


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
