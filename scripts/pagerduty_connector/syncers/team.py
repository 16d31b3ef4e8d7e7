"""Team syncer: teams as group resources, team roles as entitlements."""

from __future__ import annotations

import logging
from typing import Optional

from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.errors import (
    UnsupportedPrincipalError,
    UnsupportedRoleError,
)
from scripts.pagerduty_connector.models import (
    Entitlement,
    Grant,
    Resource,
    ResourceId,
    extract_resource_ids,
    new_assignment_entitlement,
    new_grant,
    new_group_resource,
    new_permission_entitlement,
)
from scripts.pagerduty_connector.pagination import next_page_token, parse_page_token
from scripts.pagerduty_connector.syncers.base import (
    RESOURCE_TYPE_TEAM,
    RESOURCE_TYPE_USER,
    ResourceSyncer,
)
from scripts.pagerduty_connector.syncers.user import user_resource

logger = logging.getLogger("pagerduty.team")

TEAM_ROLE_MEMBER = "member"
TEAM_ROLE_OBSERVER = "observer"
TEAM_ROLE_RESPONDER = "responder"
TEAM_ROLE_MANAGER = "manager"

TEAM_ACCESS_ROLES = (
    TEAM_ROLE_MEMBER,
    TEAM_ROLE_OBSERVER,
    TEAM_ROLE_RESPONDER,
    TEAM_ROLE_MANAGER,
)

# Plain membership has no upstream role of its own.
_DEFAULT_UPSTREAM_ROLE = TEAM_ROLE_RESPONDER


def team_resource(team: dict) -> Resource:
    profile = {
        "team_id": team["id"],
        "team_name": team.get("name", ""),
    }
    return new_group_resource(team.get("name", ""), RESOURCE_TYPE_TEAM, team["id"], profile=profile)


def _team_id(resource: Resource) -> str:
    team_id = resource.profile_str("team_id")
    if not team_id:
        raise ValueError("error fetching team id from team profile")
    return team_id


class TeamSyncer(ResourceSyncer):
    RESOURCE_TYPE = RESOURCE_TYPE_TEAM

    def list(
        self, ctx: SyncContext, parent_id: Optional[ResourceId], token: str
    ) -> tuple[list[Resource], str]:
        return self._list_page(
            token,
            lambda offset, limit: self.client.list_teams(ctx, offset, limit),
            team_resource,
        )

    def entitlements(self, ctx: SyncContext, resource: Resource, token: str) -> tuple[list[Entitlement], str]:
        rv: list[Entitlement] = []
        for role in TEAM_ACCESS_ROLES:
            build = new_assignment_entitlement if role == TEAM_ROLE_MEMBER else new_permission_entitlement
            rv.append(build(
                resource,
                role,
                display_name=f"{resource.display_name} Team {role.title()}",
                description=f"Team {resource.display_name} role in PagerDuty",
                grantable_to=(RESOURCE_TYPE_USER,),
            ))
        return rv, ""

    def grants(self, ctx: SyncContext, resource: Resource, token: str) -> tuple[list[Grant], str]:
        """One page of team members; each yields a role grant and a member grant."""
        team_id = _team_id(resource)
        bag, offset = parse_page_token(token, resource.id.resource_type, resource.id.resource)
        page = self.client.list_team_members(ctx, team_id, offset, self.page_size)

        rv: list[Grant] = []
        for member in page.items:
            role = member.get("role", "")
            if role not in TEAM_ACCESS_ROLES:
                raise UnsupportedRoleError(f"pagerduty-connector: unsupported user role: {role}")

            user = self.client.get_user(ctx, member["user"]["id"])
            principal = user_resource(user).id
            rv.append(new_grant(resource, role, principal))
            rv.append(new_grant(resource, TEAM_ROLE_MEMBER, principal))

        if page.more:
            return rv, next_page_token(bag, offset + self.page_size)
        return rv, ""

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def grant(self, ctx: SyncContext, principal: Resource, entitlement: Entitlement) -> list[Grant]:
        """Add ``principal`` to the team with the entitlement's role."""
        if principal.id.resource_type != RESOURCE_TYPE_USER.id:
            raise UnsupportedPrincipalError(
                f"pagerduty-connector: only users can be granted team entitlements, "
                f"got {principal.id.resource_type}"
            )
        team_id, slug = extract_resource_ids(entitlement.id)
        if slug not in TEAM_ACCESS_ROLES:
            raise UnsupportedRoleError(f"pagerduty-connector: unsupported team role: {slug}")

        upstream_role = _DEFAULT_UPSTREAM_ROLE if slug == TEAM_ROLE_MEMBER else slug
        self.client.add_user_to_team(ctx, team_id, principal.id.resource, upstream_role)
        logger.info(
            "Granted %s on team %s to user %s", slug, team_id, principal.id.resource,
            extra={"resource_type": RESOURCE_TYPE_TEAM.id, "operation": "grant"},
        )
        return [new_grant(entitlement.resource, slug, principal.id)]

    def revoke(self, ctx: SyncContext, grant: Grant) -> None:
        """Remove the grant's principal from the team."""
        if grant.principal.resource_type != RESOURCE_TYPE_USER.id:
            raise UnsupportedPrincipalError(
                f"pagerduty-connector: only users can be revoked from teams, "
                f"got {grant.principal.resource_type}"
            )
        team_id, _ = extract_resource_ids(grant.entitlement.id)
        self.client.remove_user_from_team(ctx, team_id, grant.principal.resource)
        logger.info(
            "Removed user %s from team %s", grant.principal.resource, team_id,
            extra={"resource_type": RESOURCE_TYPE_TEAM.id, "operation": "revoke"},
        )
