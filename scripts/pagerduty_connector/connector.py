"""PagerDuty connector: syncer registry, metadata, validation, provisioning."""

from __future__ import annotations

import logging
from typing import Optional

from scripts.pagerduty_connector.client import PagerDutyClient
from scripts.pagerduty_connector.config import ConnectorConfig
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.errors import (
    UnsupportedPrincipalError,
    UnsupportedRoleError,
    UpstreamError,
    ValidationError,
)
from scripts.pagerduty_connector.models import Entitlement, Grant, Resource
from scripts.pagerduty_connector.syncers.base import RESOURCE_TYPE_USER, ResourceSyncer
from scripts.pagerduty_connector.syncers.role import RoleSyncer
from scripts.pagerduty_connector.syncers.schedule import ScheduleSyncer
from scripts.pagerduty_connector.syncers.team import TeamSyncer
from scripts.pagerduty_connector.syncers.user import UserSyncer

logger = logging.getLogger("pagerduty.connector")

SYNCER_REGISTRY: dict[str, type[ResourceSyncer]] = {
    "team": TeamSyncer,
    "user": UserSyncer,
    "role": RoleSyncer,
    "schedule": ScheduleSyncer,
}

RESTRICTED_ROLE = "restricted_access"


class PagerDutyConnector:
    def __init__(self, config: ConnectorConfig, client: Optional[PagerDutyClient] = None) -> None:
        self.config = config
        self.client = client or PagerDutyClient(config.pagerduty)
        self.page_size = config.pagerduty.page_size
        self._team = TeamSyncer(self.client, self.page_size)

    def resource_syncers(self, only: Optional[str] = None) -> list[ResourceSyncer]:
        """Fresh syncers for one pass. Each must serve every call of its pass."""
        names = [only] if only else list(SYNCER_REGISTRY)
        syncers = []
        for name in names:
            cls = SYNCER_REGISTRY.get(name)
            if cls is None:
                raise ValueError(f"unknown resource type: {name}")
            syncers.append(cls(self.client, self.page_size))
        return syncers

    def metadata(self) -> dict[str, str]:
        return {
            "display_name": "PagerDuty",
            "description": "Connector syncing PagerDuty users, teams, schedules and their roles",
        }

    def validate(self, ctx: SyncContext) -> None:
        """Check that the access token works and is not a restricted user token."""
        try:
            self.client.list_users(ctx, 0, 1)
        except UpstreamError as exc:
            raise ValidationError("unauthenticated", "Provided Access Token is invalid") from exc

        # Account-level API tokens have no current user
        try:
            user = self.client.get_current_user(ctx)
        except UpstreamError:
            logger.debug("No current user for token, assuming account-level token")
            return
        if user.get("role") == RESTRICTED_ROLE:
            raise ValidationError("permission_denied", "Provided Access Token must be an admin token")

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def grant(self, ctx: SyncContext, principal: Resource, entitlement: Entitlement) -> list[Grant]:
        if principal.id.resource_type != RESOURCE_TYPE_USER.id:
            raise UnsupportedPrincipalError(
                f"pagerduty-connector: unsupported principal type {principal.id.resource_type}"
            )
        resource_type = entitlement.resource.id.resource_type
        if resource_type != self._team.resource_type.id:
            raise UnsupportedRoleError(
                f"pagerduty-connector: {resource_type} entitlements cannot be provisioned"
            )
        return self._team.grant(ctx, principal, entitlement)

    def revoke(self, ctx: SyncContext, grant: Grant) -> None:
        if grant.principal.resource_type != RESOURCE_TYPE_USER.id:
            raise UnsupportedPrincipalError(
                f"pagerduty-connector: unsupported principal type {grant.principal.resource_type}"
            )
        resource_type = grant.entitlement.resource.id.resource_type
        if resource_type != self._team.resource_type.id:
            raise UnsupportedRoleError(
                f"pagerduty-connector: {resource_type} entitlements cannot be revoked"
            )
        self._team.revoke(ctx, grant)
