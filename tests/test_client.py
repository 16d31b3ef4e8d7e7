"""Tests for the PagerDuty REST client against a mocked requests.Session."""

import time
from unittest.mock import MagicMock

import pytest
import requests

from scripts.pagerduty_connector.client import Page, PagerDutyClient
from scripts.pagerduty_connector.config import PagerDutyConfig
from scripts.pagerduty_connector.context import SyncContext
from scripts.pagerduty_connector.errors import UpstreamError


def _response(status_code=200, body=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = b"{}" if body is not None else b""
    resp.json.return_value = body if body is not None else {}
    resp.text = text
    return resp


@pytest.fixture
def session():
    s = MagicMock(spec=requests.Session)
    s.headers = {}
    return s


@pytest.fixture
def client(session):
    config = PagerDutyConfig(
        access_token="secret",
        api_base_url="https://pd.example.com/",
        request_timeout_s=15.0,
    )
    return PagerDutyClient(config, session=session)


class TestRequests:
    def test_auth_headers(self, client, session):
        assert session.headers["Authorization"] == "Token token=secret"
        assert session.headers["Accept"] == "application/vnd.pagerduty+json;version=2"

    def test_list_teams(self, client, session, ctx):
        session.request.return_value = _response(body={"teams": [{"id": "T1"}], "more": True})

        page = client.list_teams(ctx, 50, 25)

        assert page == Page(items=[{"id": "T1"}], more=True)
        session.request.assert_called_once_with(
            "GET", "https://pd.example.com/teams",
            params={"offset": 50, "limit": 25}, json=None, timeout=15.0,
        )

    def test_missing_more_flag_means_last_page(self, client, session, ctx):
        session.request.return_value = _response(body={"members": []})
        page = client.list_team_members(ctx, "T1", 0, 25)
        assert page == Page(items=[], more=False)
        assert session.request.call_args.args[1] == "https://pd.example.com/teams/T1/members"

    def test_on_call_users(self, client, session, ctx):
        session.request.return_value = _response(body={"users": [{"id": "U1"}]})
        users = client.list_on_call_users(ctx, "S1", "2024-03-01T12:00:00Z", "2024-03-01T13:00:00Z")
        assert users == [{"id": "U1"}]
        assert session.request.call_args.kwargs["params"] == {
            "since": "2024-03-01T12:00:00Z",
            "until": "2024-03-01T13:00:00Z",
        }

    def test_get_user(self, client, session, ctx):
        session.request.return_value = _response(body={"user": {"id": "U1", "role": "admin"}})
        assert client.get_user(ctx, "U1") == {"id": "U1", "role": "admin"}

    def test_add_user_to_team(self, client, session, ctx):
        session.request.return_value = _response(status_code=204)
        client.add_user_to_team(ctx, "T1", "U1", "manager")
        session.request.assert_called_once_with(
            "PUT", "https://pd.example.com/teams/T1/users/U1",
            params=None, json={"role": "manager"}, timeout=15.0,
        )


class TestErrors:
    def test_http_error_carries_operation(self, client, session, ctx):
        session.request.return_value = _response(status_code=429, text="rate limited")

        with pytest.raises(UpstreamError) as excinfo:
            client.list_users(ctx, 0, 25)

        assert excinfo.value.operation == "list users"
        assert excinfo.value.status_code == 429
        assert "failed to list users" in str(excinfo.value)

    def test_transport_error(self, client, session, ctx):
        session.request.side_effect = requests.ConnectionError("boom")
        with pytest.raises(UpstreamError) as excinfo:
            client.list_schedules(ctx, 0, 25)
        assert excinfo.value.operation == "list schedules"
        assert isinstance(excinfo.value.__cause__, requests.ConnectionError)

    def test_invalid_json(self, client, session, ctx):
        resp = _response(body={})
        resp.json.side_effect = ValueError("nope")
        session.request.return_value = resp
        with pytest.raises(UpstreamError):
            client.list_teams(ctx, 0, 25)


class TestDeadline:
    def test_expired_deadline_skips_network(self, client, session):
        ctx = SyncContext(deadline=time.monotonic() - 1)
        with pytest.raises(UpstreamError, match="deadline exceeded"):
            client.list_teams(ctx, 0, 25)
        session.request.assert_not_called()

    def test_deadline_caps_timeout(self, client, session):
        session.request.return_value = _response(body={"users": []})
        client.list_users(SyncContext.with_timeout(2.0), 0, 25)
        timeout = session.request.call_args.kwargs["timeout"]
        assert 0 < timeout <= 2.0
