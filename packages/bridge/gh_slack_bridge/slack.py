"""
Slack Bolt application: OAuth install flow, slash command and Home tab.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog
from slack_bolt.async_app import AsyncApp
from slack_bolt.oauth.async_oauth_settings import AsyncOAuthSettings
from slack_sdk.oauth.state_store.async_state_store import AsyncOAuthStateStore
from slack_sdk.web.async_client import AsyncWebClient

from .commands import SubscriptionCommandHandler
from .config import Settings
from .installations import BlobInstallationStore

log = structlog.get_logger()

INSTALL_PATH = "/api/slack/install"
REDIRECT_URI_PATH = "/api/slack/oauth_redirect"


def home_view(usage: str) -> dict[str, Any]:
    return {
        "type": "home",
        "callback_id": "home_view",
        "blocks": [
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": "*Hello, GitHub!* :tada:"},
            },
            {"type": "divider"},
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "Get notified about new issues by subscribing a channel "
                    "to a repository.\n\n" + usage,
                },
            },
        ],
    }


async def publish_home(client: AsyncWebClient, user_id: str, usage: str) -> None:
    await client.views_publish(user_id=user_id, view=home_view(usage))


def register_handlers(
    app: AsyncApp, command_name: str, commands: SubscriptionCommandHandler
) -> None:
    @app.command(command_name)
    async def handle_command(ack, command, respond):
        await ack()
        await commands.handle(command, respond)

    @app.event("app_home_opened")
    async def handle_app_home_opened(event, client, context):
        log.info(
            "slack.app_home_opened",
            user_id=context.get("user_id"),
            team_id=context.get("team_id"),
            enterprise_id=context.get("enterprise_id"),
            is_enterprise_install=context.get("is_enterprise_install"),
        )
        await publish_home(client, event["user"], commands.usage)


def create_slack_app(
    settings: Settings,
    *,
    installation_store: BlobInstallationStore,
    state_store: AsyncOAuthStateStore,
    commands: SubscriptionCommandHandler,
) -> AsyncApp:
    oauth_settings = AsyncOAuthSettings(
        client_id=settings.slack_client_id,
        client_secret=settings.slack_client_secret,
        scopes=settings.slack_scopes,
        redirect_uri=settings.oauth_redirect_uri,
        install_path=INSTALL_PATH,
        redirect_uri_path=REDIRECT_URI_PATH,
        install_page_rendering_enabled=False,
        installation_store=installation_store,
        state_store=state_store,
    )
    app = AsyncApp(
        logger=logging.getLogger("gh_slack_bridge.slack"),
        signing_secret=settings.slack_signing_secret,
        oauth_settings=oauth_settings,
        process_before_response=True,
    )
    register_handlers(app, settings.slack_command, commands)
    return app
