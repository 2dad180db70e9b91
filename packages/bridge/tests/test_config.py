"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from gh_slack_bridge.config import LoggingSettings, Settings

REQUIRED_ENV = {
    "GITHUB_APP_ID": "1",
    "GITHUB_APP_PRIVATE_KEY": "-----BEGIN KEY-----\\nabc\\n-----END KEY-----",
    "GITHUB_OAUTH_CLIENT_ID": "client",
    "GITHUB_OAUTH_CLIENT_SECRET": "secret",
    "GITHUB_WEBHOOK_SECRET": "hook",
    "SLACK_APP_ID": "A1",
    "SLACK_CLIENT_ID": "c",
    "SLACK_CLIENT_SECRET": "s",
    "SLACK_SIGNING_SECRET": "sig",
}


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)  # no stray .env
    for name in list(REQUIRED_ENV) + ["SLACK_COMMAND", "BLOB_BACKEND", "DEPLOY_URL"]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_load_settings_from_env(clean_env):
    for name, value in REQUIRED_ENV.items():
        clean_env.setenv(name, value)
    clean_env.setenv("SLACK_COMMAND", "/hello-github")
    clean_env.setenv("DEPLOY_URL", "https://bridge.example.com/")

    cfg = Settings()
    assert cfg.github_app_id == "1"
    assert cfg.slack_command == "/hello-github"
    assert cfg.github_app_private_key == "-----BEGIN KEY-----\nabc\n-----END KEY-----"
    assert cfg.oauth_redirect_uri == "https://bridge.example.com/api/slack/oauth_redirect"


def test_settings_defaults(clean_env):
    for name, value in REQUIRED_ENV.items():
        clean_env.setenv(name, value)

    cfg = Settings()
    assert cfg.slack_command == "/hello-github-local"
    assert cfg.blob_backend == "sqlite"
    assert cfg.response_timeout_seconds == 9.0
    assert "commands" in cfg.slack_scopes


def test_missing_credentials_fail_validation(clean_env):
    with pytest.raises(ValidationError):
        Settings()


def test_logging_settings_need_no_environment(clean_env):
    clean_env.delenv("LOG_LEVEL", raising=False)
    clean_env.delenv("LOG_FORMAT", raising=False)
    cfg = LoggingSettings()
    assert cfg.level == "info"
    assert cfg.format == "json"
