"""
Composition root.

Builds every collaborator from Settings on first use. A serverless host may
or may not keep the process (and so this context) alive between invocations;
nothing here is needed for correctness across invocations.
"""

from __future__ import annotations

from functools import cached_property

import structlog
from slack_bolt.async_app import AsyncApp
from slack_sdk.web.async_client import AsyncWebClient

from .blobs import BlobStore, open_blob_store
from .commands import SubscriptionCommandHandler
from .config import Settings, get_settings
from .github import GitHubAppClient
from .installations import (
    INSTALLATIONS_STORE_NAME,
    OAUTH_STATES_STORE_NAME,
    BlobInstallationStore,
    BlobOAuthStateStore,
)
from .metrics import MetricsCollector
from .notifications import IssueFanoutHandler
from .router import WebhookRouter
from .slack import create_slack_app
from .subscriptions import STORE_NAME as SUBSCRIPTIONS_STORE_NAME
from .subscriptions import SubscriptionStore

log = structlog.get_logger()


class AppContext:
    """Lazily-initialised collaborators for one process."""

    def __init__(self, settings: Settings, metrics: MetricsCollector | None = None):
        self.settings = settings
        self.metrics = metrics or MetricsCollector()
        self._blob_stores: list[BlobStore] = []

    def _blobs(self, name: str) -> BlobStore:
        store = open_blob_store(self.settings, name)
        self._blob_stores.append(store)
        return store

    @cached_property
    def subscriptions(self) -> SubscriptionStore:
        return SubscriptionStore(self._blobs(SUBSCRIPTIONS_STORE_NAME))

    @cached_property
    def installations(self) -> BlobInstallationStore:
        return BlobInstallationStore(self._blobs(INSTALLATIONS_STORE_NAME))

    @cached_property
    def oauth_states(self) -> BlobOAuthStateStore:
        return BlobOAuthStateStore(self._blobs(OAUTH_STATES_STORE_NAME))

    @cached_property
    def github(self) -> GitHubAppClient:
        return GitHubAppClient(
            app_id=self.settings.github_app_id,
            private_key=self.settings.github_app_private_key,
            api_url=self.settings.github_api_url,
            user_agent=self.settings.github_user_agent,
        )

    @cached_property
    def slack_client(self) -> AsyncWebClient:
        return AsyncWebClient()

    @cached_property
    def commands(self) -> SubscriptionCommandHandler:
        return SubscriptionCommandHandler(
            command=self.settings.slack_command,
            slack_app_id=self.settings.slack_app_id,
            store=self.subscriptions,
            github=self.github,
            metrics=self.metrics,
        )

    @cached_property
    def fanout(self) -> IssueFanoutHandler:
        return IssueFanoutHandler(
            slack_app_id=self.settings.slack_app_id,
            subscriptions=self.subscriptions,
            installations=self.installations,
            slack_client=self.slack_client,
            metrics=self.metrics,
        )

    @cached_property
    def webhooks(self) -> WebhookRouter:
        router = WebhookRouter(self.settings.github_webhook_secret)
        router.add_handler("issues.opened", self.fanout)
        return router

    @cached_property
    def slack_app(self) -> AsyncApp:
        return create_slack_app(
            self.settings,
            installation_store=self.installations,
            state_store=self.oauth_states,
            commands=self.commands,
        )

    async def aclose(self) -> None:
        if "github" in self.__dict__:
            await self.github.close()
        for store in self._blob_stores:
            await store.close()
        self._blob_stores.clear()


_context: AppContext | None = None


def get_context() -> AppContext:
    """Return the process-wide context, creating it on demand.

    Settings validation errors propagate and nothing is cached, so the next
    call tries again.
    """
    global _context
    if _context is None:
        _context = AppContext(get_settings())
        log.info("context.initialised")
    return _context


async def reset_context() -> None:
    """Close and forget the process-wide context."""
    global _context
    if _context is not None:
        await _context.aclose()
        _context = None
