"""
Slack workspace installations and OAuth state, persisted in blob stores.

Installations are written by Bolt's OAuth flow (install / reinstall) and read
on every fan-out notification to obtain the workspace's bot token. They are
keyed by Slack team id; enterprise-wide installs are not supported yet.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Optional
from uuid import uuid4

import structlog
from slack_sdk.oauth.installation_store import Bot, Installation
from slack_sdk.oauth.installation_store.async_installation_store import (
    AsyncInstallationStore,
)
from slack_sdk.oauth.state_store.async_state_store import AsyncOAuthStateStore

from .blobs import BlobStore

logger = logging.getLogger(__name__)
log = structlog.get_logger()

INSTALLATIONS_STORE_NAME = "slack-installations"
OAUTH_STATES_STORE_NAME = "slack-oauth-states"


class BlobInstallationStore(AsyncInstallationStore):
    """Bolt installation store with one blob per Slack team."""

    def __init__(self, blobs: BlobStore) -> None:
        self._blobs = blobs

    @property
    def logger(self) -> logging.Logger:
        return logger

    # --- Slack SDK interface ---

    async def async_save(self, installation: Installation) -> None:
        await self.store_installation(installation)

    async def async_find_installation(
        self,
        *,
        enterprise_id: Optional[str],
        team_id: Optional[str],
        user_id: Optional[str] = None,
        is_enterprise_install: Optional[bool] = False,
    ) -> Optional[Installation]:
        return await self.fetch_installation(
            team_id=team_id, is_enterprise_install=bool(is_enterprise_install)
        )

    async def async_find_bot(
        self,
        *,
        enterprise_id: Optional[str],
        team_id: Optional[str],
        is_enterprise_install: Optional[bool] = False,
    ) -> Optional[Bot]:
        installation = await self.fetch_installation(
            team_id=team_id, is_enterprise_install=bool(is_enterprise_install)
        )
        if installation is None or installation.bot_token is None:
            return None
        return installation.to_bot()

    async def async_delete_installation(
        self,
        *,
        enterprise_id: Optional[str],
        team_id: Optional[str],
        user_id: Optional[str] = None,
    ) -> None:
        await self.delete_installation(team_id=team_id)

    async def async_delete_bot(
        self,
        *,
        enterprise_id: Optional[str],
        team_id: Optional[str],
    ) -> None:
        await self.delete_installation(team_id=team_id)

    # --- Store operations ---

    async def store_installation(self, installation: Installation) -> None:
        if not installation.team_id:
            raise ValueError("Failed to save installation data to installationStore")
        await self._blobs.set_json(installation.team_id, installation.__dict__)
        log.info("installations.stored", team_id=installation.team_id)

    async def fetch_installation(
        self, *, team_id: Optional[str], is_enterprise_install: bool = False
    ) -> Optional[Installation]:
        if not team_id:
            raise ValueError("Failed to fetch installation")
        raw = await self._blobs.get(team_id)
        if raw is None:
            return None
        return Installation(**json.loads(raw))

    async def delete_installation(self, *, team_id: Optional[str]) -> None:
        if not team_id:
            raise ValueError("Failed to delete installation")
        await self._blobs.delete(team_id)
        log.info("installations.deleted", team_id=team_id)


class BlobOAuthStateStore(AsyncOAuthStateStore):
    """Single-use OAuth ``state`` values with an expiry."""

    def __init__(self, blobs: BlobStore, expiration_seconds: int = 600) -> None:
        self._blobs = blobs
        self.expiration_seconds = expiration_seconds

    @property
    def logger(self) -> logging.Logger:
        return logger

    async def async_issue(self, *args, **kwargs) -> str:
        state = uuid4().hex
        await self._blobs.set_json(state, {"issued_at": time.time()})
        return state

    async def async_consume(self, state: str) -> bool:
        raw = await self._blobs.get(state)
        if raw is None:
            log.warning("oauth_state.not_found", state=state)
            return False
        await self._blobs.delete(state)
        issued_at = json.loads(raw)["issued_at"]
        return time.time() - issued_at <= self.expiration_seconds
