"""Abstract base class for all resource syncers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from scripts.pagerduty_connector.client import PagerDutyClient, Page
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.models import (
    Entitlement,
    Grant,
    Resource,
    ResourceId,
    ResourceType,
)
from scripts.pagerduty_connector.pagination import next_page_token, parse_page_token

logger = logging.getLogger("pagerduty.syncer")

RESOURCE_TYPE_USER = ResourceType("user", "User", ("user",))
RESOURCE_TYPE_TEAM = ResourceType("team", "Team", ("group",))
RESOURCE_TYPE_ROLE = ResourceType("role", "Role", ("role",))
RESOURCE_TYPE_SCHEDULE = ResourceType("schedule", "Schedule", ("group",))


class ResourceSyncer(ABC):
    """One syncer per resource type.

    Every operation returns ``(items, next_token)``; an empty ``next_token``
    means the listing is complete.
    """

    RESOURCE_TYPE: ResourceType

    def __init__(self, client: PagerDutyClient, page_size: int) -> None:
        self.client = client
        self.page_size = page_size

    @property
    def resource_type(self) -> ResourceType:
        return self.RESOURCE_TYPE

    @abstractmethod
    def list(
        self, ctx: SyncContext, parent_id: Optional[ResourceId], token: str
    ) -> tuple[list[Resource], str]:
        """List one page of resources of this type."""

    def entitlements(self, ctx: SyncContext, resource: Resource, token: str) -> tuple[list[Entitlement], str]:
        return [], ""

    def grants(self, ctx: SyncContext, resource: Resource, token: str) -> tuple[list[Grant], str]:
        return [], ""

    # ------------------------------------------------------------------
    # Single-phase pagination helper
    # ------------------------------------------------------------------

    def _list_page(
        self,
        token: str,
        fetch: Callable[[int, int], Page],
        build: Callable[[dict], Resource],
        resource_id: str = "",
    ) -> tuple[list[Resource], str]:
        """Decode ``token``, fetch one page at its offset and map each record."""
        bag, offset = parse_page_token(token, self.RESOURCE_TYPE.id, resource_id)
        page = fetch(offset, self.page_size)
        resources = [build(item) for item in page.items]
        logger.debug(
            "Listed %d %s resources at offset %d", len(resources), self.RESOURCE_TYPE.id, offset,
            extra={"resource_type": self.RESOURCE_TYPE.id, "records": len(resources)},
        )
        if page.more:
            return resources, next_page_token(bag, offset + self.page_size)
        return resources, ""
