"""
Configuration loaded from environment variables.

Secrets (App private key, client secrets, signing secrets) are only ever read
from the environment or a local ``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Bridge configuration. Field names map to unprefixed environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # GitHub App credentials
    github_app_id: str
    github_app_private_key: str
    github_oauth_client_id: str
    github_oauth_client_secret: str
    github_webhook_secret: str
    github_api_url: str = "https://api.github.com"
    github_user_agent: str = "gh-slack-bridge"

    # Slack App credentials
    slack_app_id: str
    slack_client_id: str
    slack_client_secret: str
    slack_signing_secret: str

    # App settings
    slack_command: str = "/hello-github-local"
    slack_scopes: list[str] = ["chat:write", "chat:write.public", "commands"]
    deploy_url: str = "http://localhost:8000"
    response_timeout_seconds: float = 9.0

    # Blob storage
    blob_backend: Literal["redis", "sqlite"] = "sqlite"
    redis_url: str = "redis://localhost:6379/0"
    sqlite_path: str = "./data/blobs.db"

    @field_validator("github_app_private_key")
    @classmethod
    def _unescape_newlines(cls, value: str) -> str:
        # Keys pasted into single-line env vars carry literal "\n" sequences
        return value.replace("\\n", "\n")

    @property
    def oauth_redirect_uri(self) -> str:
        return f"{self.deploy_url.rstrip('/')}/api/slack/oauth_redirect"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = "info"
    format: Literal["json", "text"] = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
