"""AWS Lambda handler running one PagerDuty sync.

Event format:
  {}                           -> sync every resource type
  {"resource_type": "role"}    -> sync one resource type
"""

from __future__ import annotations

import json
import logging
import os
import sys

# Ensure the project root is on sys.path for Lambda packaging
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", ".."))

from scripts.pagerduty_connector.config import load_config
from scripts.pagerduty_connector.connector import PagerDutyConnector
from scripts.pagerduty_connector.logging_config import configure_logging
from scripts.pagerduty_connector.runner import SyncRunner

logger = logging.getLogger("pagerduty.lambda")


def handler(event: dict, context) -> dict:
    """Lambda entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    resource_type = event.get("resource_type") or None
    logger.info("Lambda invoked for resource_type=%s", resource_type or "all")

    try:
        config = load_config()
        result = SyncRunner(PagerDutyConnector(config), config).run(resource_type)
        if config.output_path:
            result.write_output(config.output_path)
    except Exception as exc:
        logger.error("Sync failed: %s", exc, exc_info=True)
        return {
            "statusCode": 500,
            "body": json.dumps({"resource_type": resource_type, "error": str(exc)}),
        }

    return {
        "statusCode": 200,
        "body": json.dumps({"run_id": result.run_id, "results": result.counts()}),
    }
