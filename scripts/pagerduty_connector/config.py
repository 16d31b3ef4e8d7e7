"""Configuration via environment variables with cloud-native secret support.

Supports:
  - Environment variables (local dev)
  - .env files
  - AWS Secrets Manager / GCP Secret Manager references for the access token
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from scripts.pagerduty_connector.secrets import resolve_access_token

DEFAULT_API_BASE_URL = "https://api.pagerduty.com"
DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class PagerDutyConfig:
    access_token: str
    api_base_url: str = DEFAULT_API_BASE_URL
    page_size: int = DEFAULT_PAGE_SIZE
    request_timeout_s: float = 30.0


@dataclass(frozen=True)
class SchedulerConfig:
    sync_interval_min: int = 60
    misfire_grace_time: int = 300
    max_retries: int = 3
    retry_backoff_s: float = 1.0


@dataclass(frozen=True)
class ConnectorConfig:
    pagerduty: PagerDutyConfig
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    call_timeout_s: Optional[float] = None  # None = no per-call deadline
    output_path: Optional[str] = None


def _optional_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, "")
    return float(raw) if raw else None


def load_config() -> ConnectorConfig:
    """Load configuration from environment variables.

    The access token may be a plain value or an ``aws-secret://`` /
    ``gcp-secret://`` reference resolved at load time.
    """
    load_dotenv()

    token = resolve_access_token()
    if not token:
        raise ValueError("PAGERDUTY_ACCESS_TOKEN environment variable is required")

    page_size = int(os.environ.get("PAGERDUTY_PAGE_SIZE", str(DEFAULT_PAGE_SIZE)))
    if page_size <= 0:
        raise ValueError(f"PAGERDUTY_PAGE_SIZE must be positive, got {page_size}")

    pagerduty = PagerDutyConfig(
        access_token=token,
        api_base_url=os.environ.get("PAGERDUTY_API_BASE_URL", DEFAULT_API_BASE_URL),
        page_size=page_size,
        request_timeout_s=float(os.environ.get("PAGERDUTY_REQUEST_TIMEOUT", "30")),
    )

    scheduler = SchedulerConfig(
        sync_interval_min=int(os.environ.get("SYNC_INTERVAL_MIN", "60")),
        max_retries=int(os.environ.get("SYNC_MAX_RETRIES", "3")),
        retry_backoff_s=float(os.environ.get("SYNC_RETRY_BACKOFF", "1.0")),
    )

    return ConnectorConfig(
        pagerduty=pagerduty,
        scheduler=scheduler,
        call_timeout_s=_optional_float("SYNC_CALL_TIMEOUT"),
        output_path=os.environ.get("SYNC_OUTPUT_PATH") or None,
    )
