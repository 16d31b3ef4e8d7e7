"""GCP Cloud Run Job entry point running one PagerDuty sync.

Usage:
  python -m scripts.pagerduty_connector.entrypoints.gcp_cloudrun
  SYNC_RESOURCE_TYPE=role python -m scripts.pagerduty_connector.entrypoints.gcp_cloudrun
"""

from __future__ import annotations

import logging
import os
import sys

from scripts.pagerduty_connector.config import load_config
from scripts.pagerduty_connector.connector import PagerDutyConnector
from scripts.pagerduty_connector.logging_config import configure_logging
from scripts.pagerduty_connector.runner import SyncRunner

logger = logging.getLogger("pagerduty.cloudrun")


def main() -> None:
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
    resource_type = os.environ.get("SYNC_RESOURCE_TYPE") or None
    logger.info("Cloud Run Job started for resource_type=%s", resource_type or "all")

    try:
        config = load_config()
        result = SyncRunner(PagerDutyConnector(config), config).run(resource_type)
        if config.output_path:
            result.write_output(config.output_path)
        logger.info("Sync complete: %s", result.counts(), extra={"run_id": result.run_id})
    except Exception as exc:
        logger.error("Sync failed: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
