"""Schedule syncer: schedules as group resources with member and on-call grants."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from scripts.pagerduty_connector.client import PagerDutyClient
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.models import (
    Entitlement,
    Grant,
    Resource,
    ResourceId,
    entitlement_id,
    new_assignment_entitlement,
    new_grant,
    new_group_resource,
)
from scripts.pagerduty_connector.syncers.base import (
    RESOURCE_TYPE_SCHEDULE,
    RESOURCE_TYPE_TEAM,
    RESOURCE_TYPE_USER,
    ResourceSyncer,
)
from scripts.pagerduty_connector.syncers.team import TEAM_ROLE_MEMBER

SCHEDULE_MEMBER = "member"
SCHEDULE_ON_CALL = "on-call"

ON_CALL_WINDOW = timedelta(hours=1)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _rfc3339(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _ref_ids(refs: Optional[list]) -> list[str]:
    return [ref["id"] for ref in refs or [] if ref.get("id")]


def team_member_entitlement_id(team_id: str) -> str:
    """Entitlement id that schedule team grants expand through."""
    team = new_group_resource("", RESOURCE_TYPE_TEAM, team_id)
    return entitlement_id(team, TEAM_ROLE_MEMBER)


def schedule_resource(schedule: dict) -> Resource:
    display_name = schedule.get("name") or schedule["id"]
    profile = {
        "schedule_id": schedule["id"],
        "schedule_name": display_name,
        "schedule_users": _ref_ids(schedule.get("users")),
        "schedule_teams": _ref_ids(schedule.get("teams")),
    }
    return new_group_resource(display_name, RESOURCE_TYPE_SCHEDULE, schedule["id"], profile=profile)


class ScheduleSyncer(ResourceSyncer):
    RESOURCE_TYPE = RESOURCE_TYPE_SCHEDULE

    def __init__(
        self,
        client: PagerDutyClient,
        page_size: int,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        super().__init__(client, page_size)
        self._clock = clock

    def list(
        self, ctx: SyncContext, parent_id: Optional[ResourceId], token: str
    ) -> tuple[list[Resource], str]:
        return self._list_page(
            token,
            lambda offset, limit: self.client.list_schedules(ctx, offset, limit),
            schedule_resource,
        )

    def entitlements(self, ctx: SyncContext, resource: Resource, token: str) -> tuple[list[Entitlement], str]:
        member = new_assignment_entitlement(
            resource,
            SCHEDULE_MEMBER,
            display_name=f"{resource.display_name} schedule {SCHEDULE_MEMBER}",
            description=f"{resource.display_name} PagerDuty schedule {SCHEDULE_MEMBER}",
            grantable_to=(RESOURCE_TYPE_USER, RESOURCE_TYPE_TEAM),
        )
        on_call = new_assignment_entitlement(
            resource,
            SCHEDULE_ON_CALL,
            display_name=f"{resource.display_name} schedule {SCHEDULE_ON_CALL}",
            description=f"{resource.display_name} PagerDuty schedule {SCHEDULE_ON_CALL}",
            grantable_to=(RESOURCE_TYPE_USER,),
        )
        return [member, on_call], ""

    def grants(self, ctx: SyncContext, resource: Resource, token: str) -> tuple[list[Grant], str]:
        """Member grants from the stored profile, on-call grants from the live window.

        Not paginated: both code paths complete in this call.
        """
        users = resource.profile_str_list("schedule_users")
        if users is None:
            raise ValueError("pagerduty-connector: failed to get schedule users")
        teams = resource.profile_str_list("schedule_teams")
        if teams is None:
            raise ValueError("pagerduty-connector: failed to get schedule teams")

        rv: list[Grant] = []
        for user_id in users:
            rv.append(new_grant(resource, SCHEDULE_MEMBER, ResourceId(RESOURCE_TYPE_USER.id, user_id)))

        for team_id in teams:
            rv.append(new_grant(
                resource,
                SCHEDULE_MEMBER,
                ResourceId(RESOURCE_TYPE_TEAM.id, team_id),
                expandable=[team_member_entitlement_id(team_id)],
            ))

        rv.extend(self._on_call_grants(ctx, resource))
        return rv, ""

    def _on_call_grants(self, ctx: SyncContext, resource: Resource) -> list[Grant]:
        # PagerDuty only accepts UTC here
        now = self._clock().astimezone(timezone.utc)
        until = now + ON_CALL_WINDOW
        users = self.client.list_on_call_users(
            ctx, resource.id.resource, _rfc3339(now), _rfc3339(until)
        )

        seen: set[str] = set()
        rv: list[Grant] = []
        for user in users:
            if user["id"] in seen:
                continue
            seen.add(user["id"])
            rv.append(new_grant(
                resource, SCHEDULE_ON_CALL, ResourceId(RESOURCE_TYPE_USER.id, user["id"])
            ))
        return rv
