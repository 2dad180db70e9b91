"""
Issue event fan-out: one GitHub event → one Slack message per subscription.

Pipeline per delivery:
1. Resolve subscription keys for (repository, installation, Slack App)
2. Resolve each subscribing team's bot token (once per run of same-team keys)
3. Post one message per subscribed channel

A team without an installation, or a failed post, only skips the affected
destinations; the rest of the fan-out continues.
"""

from __future__ import annotations

import asyncio
from itertools import groupby
from typing import Any

import aiohttp
import structlog
from slack_sdk.errors import SlackClientError
from slack_sdk.web.async_client import AsyncWebClient

from .installations import BlobInstallationStore
from .keys import InvalidKeyError, RepositoryKey, SubscriptionKey, decode_key
from .metrics import MetricsCollector
from .router import WebhookEvent
from .subscriptions import SubscriptionStore

log = structlog.get_logger()


def issue_opened_message(issue_url: str) -> str:
    return f"New issue opened: {issue_url}"


class IssueFanoutHandler:
    def __init__(
        self,
        *,
        slack_app_id: str,
        subscriptions: SubscriptionStore,
        installations: BlobInstallationStore,
        slack_client: AsyncWebClient,
        metrics: MetricsCollector | None = None,
    ):
        self._slack_app_id = slack_app_id
        self._subscriptions = subscriptions
        self._installations = installations
        self._slack = slack_client
        self._metrics = metrics

    async def __call__(self, event: WebhookEvent) -> None:
        await self.handle_issue_opened(event.payload)

    async def handle_issue_opened(self, payload: dict[str, Any]) -> int:
        """Notify every subscribed channel. Returns the number of messages posted."""
        owner = payload["repository"]["owner"]["login"]
        repo = payload["repository"]["name"]
        issue_url = payload["issue"]["html_url"]
        installation_id = (payload.get("installation") or {}).get("id")

        event_log = log.bind(owner=owner, repo=repo, installation_id=installation_id)
        event_log.info("fanout.issue_opened", issue=issue_url)

        if not installation_id:
            event_log.info("fanout.no_installation")
            return 0

        repository = RepositoryKey(owner, repo, self._slack_app_id, int(installation_id))
        keys = await self._subscriptions.get_subscription_keys_for_repository(repository)
        if not keys:
            event_log.info("fanout.no_subscriptions")
            return 0

        destinations = []
        for raw in keys:
            try:
                destinations.append(decode_key(raw))
            except InvalidKeyError:
                event_log.warning("fanout.malformed_key", key=raw)

        text = issue_opened_message(issue_url)
        posted = 0
        # Groups consecutive keys only; a store that interleaves teams just
        # costs extra installation lookups.
        for team_id, group in groupby(destinations, key=lambda k: k.team_id):
            team_log = event_log.bind(team_id=team_id)
            installation = await self._installations.fetch_installation(
                team_id=team_id, is_enterprise_install=False
            )
            if installation is None or not installation.bot_token:
                team_log.warning("fanout.installation_not_found")
                continue

            for key in group:
                if await self._post(key, installation.bot_token, text, team_log):
                    posted += 1

        return posted

    async def _post(
        self,
        key: SubscriptionKey,
        token: str,
        text: str,
        team_log: structlog.typing.FilteringBoundLogger,
    ) -> bool:
        try:
            await self._slack.chat_postMessage(token=token, channel=key.channel_id, text=text)
        except (SlackClientError, aiohttp.ClientError, asyncio.TimeoutError) as exc:
            team_log.error("fanout.post_failed", channel_id=key.channel_id, error=str(exc))
            if self._metrics:
                self._metrics.inc("notifications_failed_total")
            return False

        team_log.info("fanout.notified", channel_id=key.channel_id)
        if self._metrics:
            self._metrics.inc("notifications_sent_total")
        return True
