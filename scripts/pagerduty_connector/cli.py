"""CLI entry point: sync, validate, scheduler."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from scripts.pagerduty_connector.config import load_config
from scripts.pagerduty_connector.connector import SYNCER_REGISTRY, PagerDutyConnector
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.errors import ValidationError
from scripts.pagerduty_connector.logging_config import configure_logging
from scripts.pagerduty_connector.runner import SyncRunner

logger = logging.getLogger("pagerduty.cli")


def cmd_sync(args: argparse.Namespace) -> None:
    """Run one full sync pass and optionally write the result as JSON."""
    config = load_config()
    connector = PagerDutyConnector(config)
    result = SyncRunner(connector, config).run(args.resource_type)

    output = args.output or config.output_path
    if output:
        result.write_output(output)
        logger.info("Wrote sync output to %s", output)
    print(json.dumps({"run_id": result.run_id, **result.counts()}))


def cmd_validate(args: argparse.Namespace) -> None:
    """Check the configured access token."""
    config = load_config()
    connector = PagerDutyConnector(config)
    try:
        connector.validate(SyncContext.with_timeout(config.call_timeout_s))
    except ValidationError as exc:
        print(f"{exc.reason}: {exc}", file=sys.stderr)
        sys.exit(1)
    print("ok")


def cmd_scheduler(args: argparse.Namespace) -> None:
    """Start the APScheduler-based scheduling loop."""
    from scripts.pagerduty_connector.scheduler import start_scheduler

    start_scheduler(load_config())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagerduty-connector",
        description="Sync PagerDuty users, teams, schedules and roles",
    )
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Run one-shot sync")
    sync_parser.add_argument(
        "--resource-type", "-t",
        choices=sorted(SYNCER_REGISTRY),
        default=None,
        help="Only sync this resource type (default: all)",
    )
    sync_parser.add_argument(
        "--output", "-o",
        default=None,
        help="Write resources, entitlements and grants to this JSON file",
    )
    sync_parser.set_defaults(func=cmd_sync)

    validate_parser = subparsers.add_parser("validate", help="Validate the access token")
    validate_parser.set_defaults(func=cmd_validate)

    sched_parser = subparsers.add_parser("scheduler", help="Start scheduled sync loop")
    sched_parser.set_defaults(func=cmd_scheduler)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
