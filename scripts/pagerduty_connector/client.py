"""PagerDuty REST API client.

Thin wrapper over a ``requests.Session``: offset/limit paging, one HTTP round
trip per call, every failure surfaced as ``UpstreamError``. No retries here;
the host sync loop decides whether to try again.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple, Optional

import requests

from scripts.pagerduty_connector.config import PagerDutyConfig
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.errors import UpstreamError

logger = logging.getLogger("pagerduty.client")


class Page(NamedTuple):
    items: list[dict]
    more: bool


class PagerDutyClient:
    def __init__(self, config: PagerDutyConfig, session: Optional[requests.Session] = None) -> None:
        self._base = config.api_base_url.rstrip("/")
        self._timeout = config.request_timeout_s
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Token token={config.access_token}",
            "Accept": "application/vnd.pagerduty+json;version=2",
            "Content-Type": "application/json",
        })

    def _call_timeout(self, ctx: SyncContext, operation: str) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self._timeout
        if remaining <= 0:
            raise UpstreamError(operation, "deadline exceeded")
        return min(self._timeout, remaining)

    def _request(
        self,
        ctx: SyncContext,
        operation: str,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> dict:
        timeout = self._call_timeout(ctx, operation)
        url = f"{self._base}{path}"
        try:
            resp = self._session.request(method, url, params=params, json=body, timeout=timeout)
        except requests.RequestException as exc:
            raise UpstreamError(operation, str(exc)) from exc

        if resp.status_code >= 400:
            detail = resp.text[:500]
            logger.debug(
                "%s %s returned %d", method, path, resp.status_code,
                extra={"operation": operation},
            )
            raise UpstreamError(operation, detail, status_code=resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(operation, "invalid JSON response") from exc

    def _list(
        self,
        ctx: SyncContext,
        operation: str,
        path: str,
        key: str,
        offset: int,
        limit: int,
    ) -> Page:
        data = self._request(ctx, operation, "GET", path, params={"offset": offset, "limit": limit})
        return Page(items=list(data.get(key) or []), more=bool(data.get("more", False)))

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_teams(self, ctx: SyncContext, offset: int, limit: int) -> Page:
        return self._list(ctx, "list teams", "/teams", "teams", offset, limit)

    def list_team_members(self, ctx: SyncContext, team_id: str, offset: int, limit: int) -> Page:
        return self._list(
            ctx, "list team members", f"/teams/{team_id}/members", "members", offset, limit
        )

    def list_users(self, ctx: SyncContext, offset: int, limit: int) -> Page:
        return self._list(ctx, "list users", "/users", "users", offset, limit)

    def list_schedules(self, ctx: SyncContext, offset: int, limit: int) -> Page:
        return self._list(ctx, "list schedules", "/schedules", "schedules", offset, limit)

    def list_on_call_users(self, ctx: SyncContext, schedule_id: str, since: str, until: str) -> list[dict]:
        """Users on call for ``schedule_id`` between two RFC 3339 timestamps."""
        data = self._request(
            ctx, "list on-call users", "GET", f"/schedules/{schedule_id}/users",
            params={"since": since, "until": until},
        )
        return list(data.get("users") or [])

    # ------------------------------------------------------------------
    # Single records
    # ------------------------------------------------------------------

    def get_user(self, ctx: SyncContext, user_id: str) -> dict:
        return self._request(ctx, "get user", "GET", f"/users/{user_id}").get("user", {})

    def get_current_user(self, ctx: SyncContext) -> dict:
        return self._request(ctx, "get current user", "GET", "/users/me").get("user", {})

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_user_to_team(self, ctx: SyncContext, team_id: str, user_id: str, role: str) -> None:
        self._request(
            ctx, "add user to team", "PUT", f"/teams/{team_id}/users/{user_id}",
            body={"role": role},
        )

    def remove_user_from_team(self, ctx: SyncContext, team_id: str, user_id: str) -> None:
        self._request(ctx, "remove user from team", "DELETE", f"/teams/{team_id}/users/{user_id}")
