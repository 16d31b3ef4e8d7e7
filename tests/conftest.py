"""Shared fixtures: an in-memory PagerDuty upstream that records every call."""

from datetime import datetime, timezone
from typing import Optional

import pytest

from scripts.pagerduty_connector.client import Page
from scripts.pagerduty_connector.config import ConnectorConfig, PagerDutyConfig, SchedulerConfig
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.errors import UpstreamError


def _parse_rfc3339(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)


def make_user(user_id: str, role: str = "user", name: Optional[str] = None) -> dict:
    return {
        "id": user_id,
        "name": name or f"User {user_id}",
        "email": f"{user_id.lower()}@example.com",
        "role": role,
    }


def make_member(user_id: str, role: str) -> dict:
    return {"user": {"id": user_id, "type": "user_reference"}, "role": role}


class FakePagerDutyClient:
    """Offset/limit pages over fixture lists.

    ``fail_next`` maps an operation name to how many upcoming calls of it
    should raise ``UpstreamError``.
    """

    def __init__(
        self,
        teams=None,
        members=None,
        users=None,
        schedules=None,
        on_call=None,
        current_user=None,
    ):
        self.teams = teams or []
        self.members = members or {}
        self.users = users or []
        self.schedules = schedules or []
        self.on_call = on_call or {}
        self.current_user = current_user
        self.calls: list[tuple] = []
        self.mutations: list[tuple] = []
        self.fail_next: dict[str, int] = {}

    def _maybe_fail(self, operation: str) -> None:
        if self.fail_next.get(operation, 0) > 0:
            self.fail_next[operation] -= 1
            raise UpstreamError(operation, "injected failure", status_code=503)

    def _page(self, operation, items, offset, limit, *extra) -> Page:
        self._maybe_fail(operation)
        self.calls.append((operation, *extra, offset))
        return Page(items=list(items[offset:offset + limit]), more=offset + limit < len(items))

    def fetch_count(self) -> int:
        return len(self.calls)

    def list_teams(self, ctx, offset, limit):
        return self._page("list teams", self.teams, offset, limit)

    def list_team_members(self, ctx, team_id, offset, limit):
        return self._page("list team members", self.members.get(team_id, []), offset, limit, team_id)

    def list_users(self, ctx, offset, limit):
        return self._page("list users", self.users, offset, limit)

    def list_schedules(self, ctx, offset, limit):
        return self._page("list schedules", self.schedules, offset, limit)

    def get_user(self, ctx, user_id):
        self._maybe_fail("get user")
        self.calls.append(("get user", user_id))
        for user in self.users:
            if user["id"] == user_id:
                return dict(user)
        raise UpstreamError("get user", "not found", status_code=404)

    def get_current_user(self, ctx):
        self._maybe_fail("get current user")
        if self.current_user is None:
            raise UpstreamError("get current user", "not a user token", status_code=400)
        return self.current_user

    def list_on_call_users(self, ctx, schedule_id, since, until):
        self._maybe_fail("list on-call users")
        self.calls.append(("list on-call users", schedule_id, since, until))
        start, end = _parse_rfc3339(since), _parse_rfc3339(until)
        return [
            {"id": shift["user_id"]}
            for shift in self.on_call.get(schedule_id, [])
            if shift["start"] < end and shift["end"] > start
        ]

    def add_user_to_team(self, ctx, team_id, user_id, role):
        self.mutations.append(("add", team_id, user_id, role))

    def remove_user_from_team(self, ctx, team_id, user_id):
        self.mutations.append(("remove", team_id, user_id))


@pytest.fixture
def ctx():
    return SyncContext()


@pytest.fixture
def fake_client():
    return FakePagerDutyClient()


@pytest.fixture
def connector_config():
    return ConnectorConfig(
        pagerduty=PagerDutyConfig(access_token="test-token", page_size=2),
        scheduler=SchedulerConfig(max_retries=2, retry_backoff_s=0.5),
    )
