"""Host-side sync loop.

Drives every syncer to completion: list all resources, then entitlements and
grants for each resource, following continuation tokens until they come back
empty. Every call of one resource type's pass goes to the same syncer
instance. Upstream failures are retried here with exponential backoff, using
the same token, so progress already made is kept.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from scripts.pagerduty_connector.config import ConnectorConfig
from scripts.pagerduty_connector.connector import PagerDutyConnector
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.errors import UpstreamError
from scripts.pagerduty_connector.models import Entitlement, Grant, Resource
from scripts.pagerduty_connector.syncers.base import ResourceSyncer

logger = logging.getLogger("pagerduty.runner")

T = TypeVar("T")

MAX_BACKOFF_S = 60.0


@dataclass
class SyncResult:
    run_id: str
    resources: list[Resource] = field(default_factory=list)
    entitlements: list[Entitlement] = field(default_factory=list)
    grants: list[Grant] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "resources": len(self.resources),
            "entitlements": len(self.entitlements),
            "grants": len(self.grants),
        }

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "resources": [r.to_dict() for r in self.resources],
            "entitlements": [e.to_dict() for e in self.entitlements],
            "grants": [g.to_dict() for g in self.grants],
        }

    def write_output(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(self.to_dict(), fh, indent=2)


class SyncRunner:
    def __init__(
        self,
        connector: PagerDutyConnector,
        config: ConnectorConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.connector = connector
        self.max_retries = config.scheduler.max_retries
        self.backoff_s = config.scheduler.retry_backoff_s
        self.call_timeout_s = config.call_timeout_s
        self._sleep = sleep

    def run(self, resource_type: Optional[str] = None) -> SyncResult:
        """Run one full pass. Returns everything that was synced."""
        result = SyncResult(run_id=str(uuid.uuid4()))
        started = time.monotonic()
        logger.info("Sync started", extra={"run_id": result.run_id, "resource_type": resource_type})

        try:
            for syncer in self.connector.resource_syncers(resource_type):
                self._sync_type(syncer, result)
        except Exception as exc:
            logger.error(
                "Sync failed: %s", exc,
                extra={"run_id": result.run_id, "duration_s": round(time.monotonic() - started, 3)},
            )
            raise

        logger.info(
            "Sync complete",
            extra={
                "run_id": result.run_id,
                "records": sum(result.counts().values()),
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return result

    def _sync_type(self, syncer: ResourceSyncer, result: SyncResult) -> None:
        type_id = syncer.resource_type.id
        resources = self._drain(lambda ctx, tok: syncer.list(ctx, None, tok))
        result.resources.extend(resources)

        for resource in resources:
            result.entitlements.extend(
                self._drain(lambda ctx, tok: syncer.entitlements(ctx, resource, tok))
            )
            result.grants.extend(
                self._drain(lambda ctx, tok: syncer.grants(ctx, resource, tok))
            )

        logger.info(
            "Synced %d %s resources", len(resources), type_id,
            extra={"run_id": result.run_id, "resource_type": type_id, "records": len(resources)},
        )

    def _drain(self, call: Callable[[SyncContext, str], tuple[list[T], str]]) -> list[T]:
        """Follow continuation tokens until the listing reports completion."""
        items: list[T] = []
        token = ""
        while True:
            page, token = self._with_retry(call, token)
            items.extend(page)
            if not token:
                return items

    def _with_retry(
        self, call: Callable[[SyncContext, str], tuple[list[T], str]], token: str
    ) -> tuple[list[T], str]:
        attempt = 0
        while True:
            ctx = SyncContext.with_timeout(self.call_timeout_s)
            try:
                return call(ctx, token)
            except UpstreamError as exc:
                if attempt >= self.max_retries:
                    raise
                delay = min(self.backoff_s * (2 ** attempt), MAX_BACKOFF_S)
                logger.warning(
                    "Upstream call failed (attempt %d/%d), retrying in %.1fs: %s",
                    attempt + 1, self.max_retries, delay, exc,
                    extra={"operation": exc.operation, "page_token": token or None},
                )
                self._sleep(delay)
                attempt += 1
