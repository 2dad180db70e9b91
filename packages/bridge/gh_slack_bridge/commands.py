"""
Slash command handling: ``/<command> help|subscribe|unsubscribe <owner>/<repo>``.

User mistakes (unknown subcommand, malformed repository, App not installed)
are answered in Slack and never raised. Store failures propagate.
"""

from __future__ import annotations

import re
from typing import Any, Awaitable, Callable

import structlog

from .github import GitHubAppClient
from .keys import SubscriptionKey
from .metrics import MetricsCollector
from .subscriptions import SubscriptionRecord, SubscriptionStore

log = structlog.get_logger()

Respond = Callable[[str], Awaitable[Any]]

# Slack may deliver spaces in command text as "+"
_WORD_SEPARATOR = re.compile(r"[+ ]+")


def usage(command: str) -> str:
    return (
        f"Usage: `{command} subscribe [repository]`\n"
        f"Example: `{command} subscribe monalisa/smile`\n"
        f"Stop notifications with `{command} unsubscribe [repository]`"
    )


def parse_command_text(text: str) -> tuple[str, str | None]:
    """Split command text into ``(subcommand, argument)``."""
    words = [w for w in _WORD_SEPARATOR.split(text.strip()) if w]
    if not words:
        return "", None
    return words[0], words[1] if len(words) > 1 else None


def split_repository(repository: str | None) -> tuple[str, str] | None:
    """``owner/repo`` → ``(owner, repo)``; None unless exactly two non-empty parts."""
    if not repository:
        return None
    parts = repository.split("/")
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


class SubscriptionCommandHandler:
    """Interprets slash commands and maintains the subscription store."""

    def __init__(
        self,
        *,
        command: str,
        slack_app_id: str,
        store: SubscriptionStore,
        github: GitHubAppClient,
        metrics: MetricsCollector | None = None,
    ):
        self._command = command
        self._slack_app_id = slack_app_id
        self._store = store
        self._github = github
        self._metrics = metrics

    @property
    def usage(self) -> str:
        return usage(self._command)

    async def handle(self, command: dict[str, Any], respond: Respond) -> None:
        subcommand, repository = parse_command_text(command.get("text") or "")
        cmd_log = log.bind(
            team_id=command.get("team_id"),
            channel_id=command.get("channel_id"),
            subcommand=subcommand,
        )

        if subcommand == "help":
            cmd_log.info("command.help")
            await respond(self.usage)
            return

        if subcommand in ("subscribe", "unsubscribe"):
            await self._handle_subscription(subcommand, repository, command, respond, cmd_log)
            return

        cmd_log.info("command.unknown_subcommand")
        await respond(f"Unknown subcommand: `{subcommand}`\n\n{self.usage}")

    async def _handle_subscription(
        self,
        subcommand: str,
        repository: str | None,
        command: dict[str, Any],
        respond: Respond,
        cmd_log: structlog.typing.FilteringBoundLogger,
    ) -> None:
        owner_repo = split_repository(repository)
        if owner_repo is None:
            cmd_log.info("command.invalid_repository", repository=repository)
            await respond(f"Invalid repository: `{repository or ''}`\n\n{self.usage}")
            return

        owner, repo = owner_repo
        cmd_log = cmd_log.bind(owner=owner, repo=repo)

        installation_id = await self._github.get_repository_installation_id(owner, repo)
        if installation_id is None:
            cmd_log.warning("command.app_not_installed")
            app_info = await self._github.get_app()
            await respond(
                f"GitHub App is not installed on `{repository}`. "
                f"Install at {app_info['html_url']}/installations/new"
            )
            return

        key = SubscriptionKey(
            owner,
            repo,
            self._slack_app_id,
            installation_id,
            command["team_id"],
            command["channel_id"],
        )
        cmd_log = cmd_log.bind(installation_id=installation_id)
        link = f"<https://github.com/{repository}|{repository}>"

        if subcommand == "unsubscribe":
            await self._store.delete(key)
            cmd_log.info("subscriptions.removed")
            if self._metrics:
                self._metrics.inc("subscriptions_deleted_total")
            await respond(f"unsubscribed from {link}")
            return

        existing = await self._store.get(key)
        if existing is not None:
            cmd_log.info("subscriptions.found")
        else:
            record = SubscriptionRecord(
                slack_enterprise_id=bool(command.get("enterprise_id"))
            )
            await self._store.set(key, record)
            cmd_log.info("subscriptions.created")
            if self._metrics:
                self._metrics.inc("subscriptions_created_total")

        await respond(f"subscribed to {link}")
