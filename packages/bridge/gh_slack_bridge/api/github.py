"""
GitHub App webhook endpoint.

- POST /webhooks — verify and process a delivery
- any other method — 405

Processing races a soft deadline (``RESPONSE_TIMEOUT_SECONDS``). When the
deadline wins, GitHub gets a 202 and processing carries on in the background;
nothing is cancelled.
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from gh_slack_bridge.context import AppContext, get_context
from gh_slack_bridge.router import WebhookDispatchError, WebhookError

router = APIRouter()
log = structlog.get_logger()

UNEXPECTED_ERROR = "Error: An unexpected error occurred"

# Strong references to deliveries still running after their response was sent
_background: set[asyncio.Task] = set()


def _error_response(exc: BaseException) -> Response:
    if not isinstance(exc, WebhookError):
        return PlainTextResponse(UNEXPECTED_ERROR, status_code=500)

    cause = exc.errors[0] if isinstance(exc, WebhookDispatchError) else exc
    message = f"{type(cause).__name__}: {cause}" if str(cause) else UNEXPECTED_ERROR
    return PlainTextResponse(message, status_code=exc.status_code)


def _finish_background(task: asyncio.Task) -> None:
    _background.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("webhook.background_failed", error=str(exc), exc_info=exc)


@router.post("/webhooks")
async def receive_webhook(request: Request, ctx: AppContext = Depends(get_context)) -> Response:
    name = request.headers.get("x-github-event")
    delivery_id = request.headers.get("x-github-delivery", "")
    signature = request.headers.get("x-hub-signature-256")
    body = await request.body()

    ctx.metrics.inc("webhooks_received_total", github_event=name or "")
    log.info("webhook.received", github_event=name, id=delivery_id, signature=signature)

    task = asyncio.create_task(
        ctx.webhooks.verify_and_receive(
            id=delivery_id, name=name, signature=signature, body=body
        )
    )
    done, _ = await asyncio.wait({task}, timeout=ctx.settings.response_timeout_seconds)

    if not done:
        _background.add(task)
        task.add_done_callback(_finish_background)
        log.warning("webhook.still_processing", github_event=name, id=delivery_id)
        return JSONResponse({"ok": True, "processing": True}, status_code=202)

    exc = task.exception()
    if exc is None:
        return PlainTextResponse("OK", status_code=200)

    ctx.metrics.inc("webhooks_failed_total")
    log.error(
        "webhook.failed", github_event=name, id=delivery_id, error=str(exc), exc_info=exc
    )
    return _error_response(exc)


@router.api_route(
    "/webhooks", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"]
)
async def webhook_method_not_allowed(request: Request) -> Response:
    log.info("webhook.method_not_allowed", method=request.method)
    return JSONResponse({"error": "Method not allowed"}, status_code=405)
