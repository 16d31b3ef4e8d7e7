"""Tests for configuration loading, secret resolution and logging setup."""

import json
import logging
from unittest.mock import patch

import pytest

from scripts.pagerduty_connector import secrets
from scripts.pagerduty_connector.config import DEFAULT_API_BASE_URL, load_config
from scripts.pagerduty_connector.logging_config import JsonFormatter


@pytest.fixture(autouse=True)
def no_dotenv():
    with patch("scripts.pagerduty_connector.config.load_dotenv"):
        yield


@pytest.fixture
def env(monkeypatch):
    for name in (
        "PAGERDUTY_ACCESS_TOKEN", "PAGERDUTY_API_BASE_URL", "PAGERDUTY_PAGE_SIZE",
        "PAGERDUTY_REQUEST_TIMEOUT", "SYNC_INTERVAL_MIN", "SYNC_MAX_RETRIES",
        "SYNC_RETRY_BACKOFF", "SYNC_CALL_TIMEOUT", "SYNC_OUTPUT_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadConfig:
    def test_defaults(self, env):
        env.setenv("PAGERDUTY_ACCESS_TOKEN", "tok")
        config = load_config()
        assert config.pagerduty.access_token == "tok"
        assert config.pagerduty.api_base_url == DEFAULT_API_BASE_URL
        assert config.pagerduty.page_size == 50
        assert config.scheduler.max_retries == 3
        assert config.call_timeout_s is None
        assert config.output_path is None

    def test_overrides(self, env):
        env.setenv("PAGERDUTY_ACCESS_TOKEN", "tok")
        env.setenv("PAGERDUTY_PAGE_SIZE", "25")
        env.setenv("SYNC_CALL_TIMEOUT", "12.5")
        env.setenv("SYNC_MAX_RETRIES", "5")
        env.setenv("SYNC_OUTPUT_PATH", "/tmp/out.json")
        config = load_config()
        assert config.pagerduty.page_size == 25
        assert config.call_timeout_s == 12.5
        assert config.scheduler.max_retries == 5
        assert config.output_path == "/tmp/out.json"

    def test_missing_token(self, env):
        with pytest.raises(ValueError, match="PAGERDUTY_ACCESS_TOKEN"):
            load_config()

    def test_non_positive_page_size(self, env):
        env.setenv("PAGERDUTY_ACCESS_TOKEN", "tok")
        env.setenv("PAGERDUTY_PAGE_SIZE", "0")
        with pytest.raises(ValueError, match="PAGERDUTY_PAGE_SIZE"):
            load_config()

    def test_secret_reference_is_resolved(self, env):
        env.setenv("PAGERDUTY_ACCESS_TOKEN", "aws-secret://pd#token")
        with patch.object(secrets, "_resolve_aws_secret", return_value="resolved") as resolve:
            config = load_config()
        resolve.assert_called_once_with("pd#token")
        assert config.pagerduty.access_token == "resolved"


class TestResolveSecret:
    def test_literal(self):
        assert secrets.resolve_secret("plain") == "plain"

    def test_gcp_reference(self):
        with patch.object(secrets, "_resolve_gcp_secret", return_value="g") as resolve:
            assert secrets.resolve_secret("gcp-secret://pd-token") == "g"
        resolve.assert_called_once_with("pd-token")


class TestJsonFormatter:
    def test_extra_fields(self):
        record = logging.LogRecord("pagerduty.phases", logging.INFO, __file__, 1, "hello %s", ("x",), None)
        record.phase = "enumerate_groups"
        record.records = 3
        out = json.loads(JsonFormatter().format(record))
        assert out["message"] == "hello x"
        assert out["phase"] == "enumerate_groups"
        assert out["records"] == 3
        assert "run_id" not in out
