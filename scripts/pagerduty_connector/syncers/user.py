"""User syncer: paginated listing of PagerDuty users."""

from __future__ import annotations

from typing import Optional

from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.models import Resource, ResourceId, new_user_resource
from scripts.pagerduty_connector.syncers.base import RESOURCE_TYPE_USER, ResourceSyncer


def user_resource(user: dict) -> Resource:
    """Build the principal resource for a PagerDuty user record."""
    name = user.get("name") or ""
    first_name, _, last_name = name.partition(" ")
    profile = {
        "first_name": first_name,
        "last_name": last_name,
        "login": user.get("email", ""),
        "user_id": user["id"],
    }
    return new_user_resource(
        name,
        RESOURCE_TYPE_USER,
        user["id"],
        email=user.get("email"),
        profile=profile,
    )


class UserSyncer(ResourceSyncer):
    RESOURCE_TYPE = RESOURCE_TYPE_USER

    def list(
        self, ctx: SyncContext, parent_id: Optional[ResourceId], token: str
    ) -> tuple[list[Resource], str]:
        return self._list_page(
            token,
            lambda offset, limit: self.client.list_users(ctx, offset, limit),
            user_resource,
        )
