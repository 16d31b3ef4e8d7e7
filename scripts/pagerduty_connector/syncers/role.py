"""Role syncer: static role resources, grants computed by the phase driver.

Role grants need the whole account: team memberships give "group-<role>"
holders, user records give "account-<role>" holders. The first ``grants()``
calls of a pass page through all three listings (see ``phases.py``); once
the accumulators are complete every role resource is answered from memory.
The same syncer instance must receive every call of the pass.
"""

from __future__ import annotations

import logging
from typing import Optional

from scripts.pagerduty_connector.aggregator import (
    ACCOUNT_ACCESS_ROLES,
    ACCOUNT_ROLE_PREFIX,
    GROUP_ACCESS_ROLES,
    GROUP_ROLE_PREFIX,
    GrantsProgress,
)
from scripts.pagerduty_connector.client import PagerDutyClient
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.errors import UpstreamError
from scripts.pagerduty_connector.models import (
    Entitlement,
    Grant,
    Resource,
    ResourceId,
    new_assignment_entitlement,
    new_grant,
    new_role_resource,
)
from scripts.pagerduty_connector.phases import PhaseDriver
from scripts.pagerduty_connector.syncers.base import (
    RESOURCE_TYPE_ROLE,
    RESOURCE_TYPE_USER,
    ResourceSyncer,
)
from scripts.pagerduty_connector.syncers.user import user_resource

logger = logging.getLogger("pagerduty.role")

ROLE_MEMBER = "member"


def role_resource(role_id: str, role_name: str, prefix: str) -> Resource:
    display_name = f"{prefix}-{role_name}".title()
    profile = {
        "role_id": role_id,
        "role_name": display_name,
    }
    return new_role_resource(display_name, RESOURCE_TYPE_ROLE, role_id, profile=profile)


class RoleSyncer(ResourceSyncer):
    RESOURCE_TYPE = RESOURCE_TYPE_ROLE

    def __init__(
        self,
        client: PagerDutyClient,
        page_size: int,
        progress: Optional[GrantsProgress] = None,
    ) -> None:
        super().__init__(client, page_size)
        self.progress = progress if progress is not None else GrantsProgress()
        self.driver = PhaseDriver(client, self.progress, page_size, RESOURCE_TYPE_ROLE.id)

    def list(
        self, ctx: SyncContext, parent_id: Optional[ResourceId], token: str
    ) -> tuple[list[Resource], str]:
        rv = [
            role_resource(role_id, role_name, ACCOUNT_ROLE_PREFIX)
            for role_name, role_id in ACCOUNT_ACCESS_ROLES.items()
        ]
        rv.extend(
            role_resource(role_id, role_name, GROUP_ROLE_PREFIX)
            for role_name, role_id in GROUP_ACCESS_ROLES.items()
        )
        return rv, ""

    def entitlements(self, ctx: SyncContext, resource: Resource, token: str) -> tuple[list[Entitlement], str]:
        ent = new_assignment_entitlement(
            resource,
            ROLE_MEMBER,
            display_name=f"{resource.display_name} role",
            description=f"{resource.display_name} PagerDuty role",
            grantable_to=(RESOURCE_TYPE_USER,),
        )
        return [ent], ""

    def grants(self, ctx: SyncContext, resource: Resource, token: str) -> tuple[list[Grant], str]:
        next_token = self.driver.step(ctx, token)
        if next_token is not None:
            return [], next_token

        role_id = resource.profile_str("role_id")
        if role_id is None:
            raise ValueError("error fetching role id from role profile")

        rv: list[Grant] = []
        for member_id in self.progress.members_for_role(role_id):
            user = self.client.get_user(ctx, member_id)
            if not user:
                raise UpstreamError("get user", f"empty user record for {member_id}")
            rv.append(new_grant(resource, ROLE_MEMBER, user_resource(user).id))

        logger.debug(
            "Computed %d grants for role %s", len(rv), role_id,
            extra={"resource_type": RESOURCE_TYPE_ROLE.id, "records": len(rv)},
        )
        return rv, ""
