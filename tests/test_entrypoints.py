"""Tests for the AWS Lambda and Cloud Run entry points."""

import json
from unittest.mock import MagicMock, patch

import pytest

from scripts.pagerduty_connector.entrypoints import aws_lambda, gcp_cloudrun
from scripts.pagerduty_connector.runner import SyncResult


@pytest.fixture
def runner_cls():
    runner = MagicMock()
    runner.run.return_value = SyncResult(run_id="run-1")
    return MagicMock(return_value=runner)


def test_lambda_success(connector_config, runner_cls):
    with patch.object(aws_lambda, "load_config", return_value=connector_config), \
            patch.object(aws_lambda, "PagerDutyConnector"), \
            patch.object(aws_lambda, "SyncRunner", runner_cls), \
            patch.object(aws_lambda, "configure_logging"):
        resp = aws_lambda.handler({"resource_type": "role"}, None)

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body == {"run_id": "run-1", "results": {"resources": 0, "entitlements": 0, "grants": 0}}
    runner_cls.return_value.run.assert_called_once_with("role")


def test_lambda_failure(connector_config):
    with patch.object(aws_lambda, "load_config", side_effect=ValueError("no token")), \
            patch.object(aws_lambda, "configure_logging"):
        resp = aws_lambda.handler({}, None)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"])["error"] == "no token"


def test_cloudrun_exits_non_zero_on_failure(monkeypatch):
    monkeypatch.delenv("SYNC_RESOURCE_TYPE", raising=False)
    with patch.object(gcp_cloudrun, "load_config", side_effect=ValueError("no token")), \
            patch.object(gcp_cloudrun, "configure_logging"):
        with pytest.raises(SystemExit) as excinfo:
            gcp_cloudrun.main()
    assert excinfo.value.code == 1


def test_cloudrun_runs_requested_type(monkeypatch, connector_config, runner_cls):
    monkeypatch.setenv("SYNC_RESOURCE_TYPE", "schedule")
    with patch.object(gcp_cloudrun, "load_config", return_value=connector_config), \
            patch.object(gcp_cloudrun, "PagerDutyConnector"), \
            patch.object(gcp_cloudrun, "SyncRunner", runner_cls), \
            patch.object(gcp_cloudrun, "configure_logging"):
        gcp_cloudrun.main()
    runner_cls.return_value.run.assert_called_once_with("schedule")
