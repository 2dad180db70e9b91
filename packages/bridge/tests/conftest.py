"""
Shared fixtures: test key pair, settings, SQLite-backed stores, mock GitHub.
"""

import hashlib
import hmac
from unittest.mock import AsyncMock

import httpx
import pytest
import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from gh_slack_bridge.blobs import SqliteBlobStore
from gh_slack_bridge.config import Settings
from gh_slack_bridge.github import GitHubAppClient
from gh_slack_bridge.installations import BlobInstallationStore
from gh_slack_bridge.subscriptions import SubscriptionStore

from .mock_servers import create_github_app

GITHUB_APP_ID = "4242"
SLACK_APP_ID = "A0HELLO"
WEBHOOK_SECRET = "webhook-secret"


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


@pytest.fixture(autouse=True)
def reset_structlog():
    # create_app() configures level filtering; keep it from leaking across tests
    yield
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def rsa_key():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def settings(rsa_key, tmp_path):
    private_pem, _ = rsa_key
    return Settings(
        github_app_id=GITHUB_APP_ID,
        github_app_private_key=private_pem,
        github_oauth_client_id="Iv1.client",
        github_oauth_client_secret="client-secret",
        github_webhook_secret=WEBHOOK_SECRET,
        slack_app_id=SLACK_APP_ID,
        slack_client_id="1111.2222",
        slack_client_secret="slack-secret",
        slack_signing_secret="signing-secret",
        slack_command="/hello-github",
        blob_backend="sqlite",
        sqlite_path=str(tmp_path / "blobs.db"),
        response_timeout_seconds=2.0,
    )


@pytest.fixture
async def subscription_blobs(tmp_path):
    store = SqliteBlobStore(str(tmp_path / "blobs.db"), "repository-subscriptions")
    yield store
    await store.close()


@pytest.fixture
async def installation_blobs(tmp_path):
    store = SqliteBlobStore(str(tmp_path / "blobs.db"), "slack-installations")
    yield store
    await store.close()


@pytest.fixture
def subscriptions(subscription_blobs):
    return SubscriptionStore(subscription_blobs)


@pytest.fixture
def installations(installation_blobs):
    return BlobInstallationStore(installation_blobs)


@pytest.fixture
def github_api(rsa_key):
    _, public_pem = rsa_key
    return create_github_app(
        app_id=GITHUB_APP_ID,
        public_key=public_pem,
        installations={"monalisa/smile": 1, "octocat/hello-world": 12},
    )


@pytest.fixture
async def github(rsa_key, github_api):
    private_pem, _ = rsa_key
    client = GitHubAppClient(
        app_id=GITHUB_APP_ID,
        private_key=private_pem,
        transport=httpx.ASGITransport(app=github_api),
    )
    yield client
    await client.close()


@pytest.fixture
def slack_client():
    client = AsyncMock()
    client.chat_postMessage.return_value = {"ok": True}
    return client
