"""
GitHub REST client authenticated as the GitHub App.

Handles:
- App JWT minting (RS256, short-lived)
- Repository installation lookup
- Public App info (used to build install links)
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import jwt
import structlog

log = structlog.get_logger()

API_VERSION = "2022-11-28"
JWT_BACKDATE_SECONDS = 60
JWT_LIFETIME_SECONDS = 540


class GitHubApiError(Exception):
    """Unexpected response from the GitHub REST API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class GitHubAppClient:
    """Talks to the GitHub REST API as the App itself (not as an installation)."""

    def __init__(
        self,
        app_id: str,
        private_key: str,
        api_url: str = "https://api.github.com",
        user_agent: str = "gh-slack-bridge",
        request_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._app_id = app_id
        self._private_key = private_key
        self._api_url = api_url.rstrip("/")
        self._user_agent = user_agent
        self._request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                timeout=httpx.Timeout(self._request_timeout),
                headers={
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": API_VERSION,
                    "User-Agent": self._user_agent,
                },
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def app_jwt(self, now: float | None = None) -> str:
        issued_at = int(now if now is not None else time.time()) - JWT_BACKDATE_SECONDS
        payload = {
            "iat": issued_at,
            "exp": issued_at + JWT_BACKDATE_SECONDS + JWT_LIFETIME_SECONDS,
            "iss": str(self._app_id),
        }
        return jwt.encode(payload, self._private_key, algorithm="RS256")

    async def _get(self, path: str) -> httpx.Response:
        await self.open()
        assert self._client
        return await self._client.get(
            path, headers={"Authorization": f"Bearer {self.app_jwt()}"}
        )

    async def get_repository_installation_id(self, owner: str, repo: str) -> int | None:
        """Installation id of this App on ``owner/repo``; None when not installed."""
        resp = await self._get(f"/repos/{owner}/{repo}/installation")
        if resp.status_code == 404:
            log.info("github.not_installed", owner=owner, repo=repo)
            return None
        _raise_for_status(resp)
        return int(resp.json()["id"])

    async def get_app(self) -> dict[str, Any]:
        """Public information about the App (``slug``, ``html_url``, ...)."""
        resp = await self._get("/app")
        _raise_for_status(resp)
        return resp.json()


def _raise_for_status(resp: httpx.Response) -> None:
    if resp.is_success:
        return
    try:
        message = resp.json().get("message", resp.text)
    except ValueError:
        message = resp.text
    log.error(
        "github.api_error",
        status=resp.status_code,
        url=str(resp.request.url),
        message=message,
    )
    raise GitHubApiError(resp.status_code, message)
