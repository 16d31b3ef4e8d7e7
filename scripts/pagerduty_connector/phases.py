"""Resumable multi-phase driver for the role grant pass.

Each call to ``step()`` fetches at most one upstream page for the current
phase and then either suspends (returns a continuation token) or, after the
last user page, reports that the accumulators are complete (returns None).

Phases, strictly in order:
  1. enumerate teams        -> collect team ids
  2. enumerate team members -> "group-<role>" accumulator, one team at a time
  3. enumerate users        -> "account-<role>" accumulator
  4. computed

Finishing the team listing or any single team's members also suspends with
an offset-0 token, so one call never costs more than one page fetch.
"""

from __future__ import annotations

import logging
from typing import Optional

from scripts.pagerduty_connector.aggregator import (
    ACCOUNT_ROLE_PREFIX,
    GROUP_ROLE_PREFIX,
    GrantsProgress,
    Phase,
    role_key,
)
from scripts.pagerduty_connector.client import PagerDutyClient
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.pagination import Bag, next_page_token, parse_page_token

logger = logging.getLogger("pagerduty.phases")


class PhaseDriver:
    def __init__(
        self,
        client: PagerDutyClient,
        progress: GrantsProgress,
        page_size: int,
        resource_type_id: str = "role",
    ) -> None:
        self.client = client
        self.progress = progress
        self.page_size = page_size
        self.resource_type_id = resource_type_id

    def step(self, ctx: SyncContext, token: str) -> Optional[str]:
        """Advance the pass by one page.

        Returns the continuation token to hand back to the caller, or None
        once every phase has completed.
        """
        bag, offset = parse_page_token(token, self.resource_type_id)
        p = self.progress

        if token and token != p.last_token:
            logger.warning(
                "Continuation token was not issued by this pass, restarting role grant pass",
                extra={"resource_type": self.resource_type_id, "page_token": token},
            )
            p.reset()
            bag, offset = parse_page_token("", self.resource_type_id)
        elif not token and p.started and not p.complete:
            logger.warning(
                "Empty continuation token mid-pass, restarting role grant pass",
                extra={"resource_type": self.resource_type_id, "phase": p.phase.value},
            )
            p.reset()

        phase = p.phase
        if phase is Phase.ENUMERATE_GROUPS:
            return self._enumerate_groups(ctx, bag, offset)
        if phase is Phase.ENUMERATE_MEMBERSHIPS:
            return self._enumerate_memberships(ctx, bag, offset)
        if phase is Phase.ENUMERATE_ACCOUNTS:
            return self._enumerate_accounts(ctx, bag, offset)
        return None

    def _suspend(self, bag: Bag, offset: int) -> str:
        token = next_page_token(bag, offset)
        self.progress.last_token = token
        return token

    def _enumerate_groups(self, ctx: SyncContext, bag: Bag, offset: int) -> str:
        p = self.progress
        page = self.client.list_teams(ctx, offset, self.page_size)
        p.group_ids.extend(team["id"] for team in page.items)

        if page.more:
            return self._suspend(bag, offset + self.page_size)

        p.mark_groups_enumerated()
        logger.info(
            "Enumerated %d teams", len(p.group_ids),
            extra={"phase": Phase.ENUMERATE_GROUPS.value, "records": len(p.group_ids)},
        )
        return self._suspend(bag, 0)

    def _enumerate_memberships(self, ctx: SyncContext, bag: Bag, offset: int) -> str:
        p = self.progress
        team_id = p.current_group_id()
        page = self.client.list_team_members(ctx, team_id, offset, self.page_size)

        for member in page.items:
            p.group_roles.add(role_key(GROUP_ROLE_PREFIX, member["role"]), member["user"]["id"])

        if page.more:
            return self._suspend(bag, offset + self.page_size)

        p.group_index += 1
        if p.group_index < len(p.group_ids):
            return self._suspend(bag, 0)

        p.mark_memberships_enumerated()
        logger.info(
            "Enumerated members of %d teams", len(p.group_ids),
            extra={"phase": Phase.ENUMERATE_MEMBERSHIPS.value, "records": len(p.group_roles)},
        )
        return self._suspend(bag, 0)

    def _enumerate_accounts(self, ctx: SyncContext, bag: Bag, offset: int) -> Optional[str]:
        p = self.progress
        page = self.client.list_users(ctx, offset, self.page_size)

        for user in page.items:
            p.account_roles.add(role_key(ACCOUNT_ROLE_PREFIX, user["role"]), user["id"])

        if page.more:
            return self._suspend(bag, offset + self.page_size)

        p.mark_accounts_enumerated()
        logger.info(
            "Role accumulators complete",
            extra={"phase": Phase.COMPUTED.value, "records": len(p.account_roles) + len(p.group_roles)},
        )
        return None
