"""Tests for the GitHub App client, against the mock GitHub API."""

import jwt
import pytest
from structlog.testing import capture_logs

from gh_slack_bridge.github import GitHubApiError, GitHubAppClient

from .conftest import GITHUB_APP_ID
from .mock_servers import APP_HTML_URL


async def test_installed_repository(github: GitHubAppClient):
    assert await github.get_repository_installation_id("monalisa", "smile") == 1
    assert await github.get_repository_installation_id("octocat", "hello-world") == 12


async def test_not_installed_is_none(github: GitHubAppClient):
    with capture_logs() as logs:
        assert await github.get_repository_installation_id("monalisa", "nope") is None
    assert logs[0]["event"] == "github.not_installed"


async def test_server_error_raises(github: GitHubAppClient):
    with pytest.raises(GitHubApiError) as exc_info:
        await github.get_repository_installation_id("server-error", "smile")
    assert exc_info.value.status_code == 500


async def test_get_app(github: GitHubAppClient):
    app_info = await github.get_app()
    assert app_info["html_url"] == APP_HTML_URL


async def test_requests_are_app_authenticated(github: GitHubAppClient, github_api):
    await github.get_repository_installation_id("monalisa", "smile")
    # the mock answers 401 unless the JWT verifies and names this App
    assert github_api.state.calls == ["GET /repos/monalisa/smile/installation"]


async def test_app_jwt_claims(github: GitHubAppClient, rsa_key):
    _, public_pem = rsa_key
    token = github.app_jwt(now=1_700_000_000)
    claims = jwt.decode(
        token, public_pem, algorithms=["RS256"], options={"verify_exp": False}
    )
    assert claims["iss"] == GITHUB_APP_ID
    assert claims["iat"] == 1_700_000_000 - 60
    assert claims["exp"] - 1_700_000_000 <= 600
