"""APScheduler-based interval scheduling for full syncs."""

from __future__ import annotations

import logging

from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.blocking import BlockingScheduler

from scripts.pagerduty_connector.config import ConnectorConfig
from scripts.pagerduty_connector.connector import PagerDutyConnector
from scripts.pagerduty_connector.runner import SyncRunner

logger = logging.getLogger("pagerduty.scheduler")


def _run_sync(config: ConnectorConfig) -> None:
    """One scheduled pass. Builds a fresh connector so no state leaks between passes."""
    connector = PagerDutyConnector(config)
    result = SyncRunner(connector, config).run()
    if config.output_path:
        result.write_output(config.output_path)
    logger.info("Scheduled sync finished: %s", result.counts(), extra={"run_id": result.run_id})


def _on_job_error(event) -> None:
    """Log job execution errors."""
    logger.error(
        "Job %s raised an exception: %s",
        event.job_id,
        event.exception,
    )


def build_scheduler(config: ConnectorConfig) -> BlockingScheduler:
    scheduler = BlockingScheduler()
    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    sched = config.scheduler
    scheduler.add_job(
        _run_sync,
        "interval",
        minutes=sched.sync_interval_min,
        args=[config],
        id="pagerduty_sync",
        max_instances=1,
        misfire_grace_time=sched.misfire_grace_time,
    )
    return scheduler


def start_scheduler(config: ConnectorConfig) -> None:
    """Start the blocking scheduler with the periodic sync job."""
    scheduler = build_scheduler(config)
    logger.info("Starting scheduler with jobs: %s", [j.id for j in scheduler.get_jobs()])
    scheduler.start()
