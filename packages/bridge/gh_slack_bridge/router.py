"""
GitHub webhook verification and event routing.

Deliveries are verified against the App's webhook secret, parsed, and
dispatched to handlers registered for ``<event>`` or ``<event>.<action>``
(e.g. ``issues`` or ``issues.opened``).
"""

from __future__ import annotations

import hashlib
import hmac
import json
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import structlog

log = structlog.get_logger()


class WebhookError(Exception):
    status_code = 500


class SignatureVerificationError(WebhookError):
    status_code = 400


class WebhookPayloadError(WebhookError):
    status_code = 400


class WebhookDispatchError(WebhookError):
    """One or more handlers failed. Carries every underlying error."""

    def __init__(self, errors: list[BaseException]):
        super().__init__(f"{len(errors)} webhook handler(s) failed")
        self.errors = errors
        first = errors[0]
        self.status_code = getattr(first, "status_code", WebhookError.status_code)


@dataclass
class WebhookEvent:
    id: str
    name: str
    payload: dict[str, Any]

    @property
    def action(self) -> str | None:
        return self.payload.get("action")


Handler = Callable[[WebhookEvent], Awaitable[None]]


def verify_signature(*, secret: str, body: bytes, signature: str | None) -> bool:
    """True when ``signature`` is ``sha256=<hex HMAC of body>`` under ``secret``."""
    if not secret or not signature:
        return False
    algorithm, _, digest = signature.partition("=")
    if algorithm != "sha256" or not digest:
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, digest)


class WebhookRouter:
    def __init__(self, secret: str):
        self._secret = secret
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def add_handler(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def on(self, event: str) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`add_handler`."""

        def register(handler: Handler) -> Handler:
            self.add_handler(event, handler)
            return handler

        return register

    async def receive(self, event: WebhookEvent) -> None:
        """Run every matching handler; raise WebhookDispatchError if any failed."""
        names = [event.name]
        if event.action:
            names.append(f"{event.name}.{event.action}")

        handlers = [h for name in names for h in self._handlers.get(name, [])]
        if not handlers:
            log.debug(
                "webhook.unhandled", github_event=event.name, action=event.action, id=event.id
            )
            return

        errors: list[BaseException] = []
        for handler in handlers:
            try:
                await handler(event)
            except Exception as exc:
                log.error(
                    "webhook.handler_failed",
                    github_event=event.name,
                    action=event.action,
                    id=event.id,
                    error=str(exc),
                    exc_info=exc,
                )
                errors.append(exc)

        if errors:
            raise WebhookDispatchError(errors)

    async def verify_and_receive(
        self,
        *,
        id: str,
        name: str | None,
        signature: str | None,
        body: bytes,
    ) -> None:
        if not verify_signature(secret=self._secret, body=body, signature=signature):
            raise SignatureVerificationError(
                "signature does not match event payload and secret"
            )
        if not name:
            raise WebhookPayloadError("missing x-github-event header")
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise WebhookPayloadError("payload is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise WebhookPayloadError("payload must be a JSON object")

        await self.receive(WebhookEvent(id=id, name=name, payload=payload))
