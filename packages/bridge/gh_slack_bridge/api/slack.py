"""
Slack endpoints, delegated to Bolt's FastAPI adapter.

- POST /events — events API and slash commands (request signature checked by Bolt)
- GET /install — starts the OAuth install flow
- GET /oauth_redirect — OAuth callback; stores the workspace installation
"""

from fastapi import APIRouter, Depends, Request
from slack_bolt.adapter.fastapi.async_handler import AsyncSlackRequestHandler

from gh_slack_bridge.context import AppContext, get_context

router = APIRouter()


async def _dispatch(request: Request, ctx: AppContext):
    return await AsyncSlackRequestHandler(ctx.slack_app).handle(request)


@router.post("/events")
async def slack_events(request: Request, ctx: AppContext = Depends(get_context)):
    return await _dispatch(request, ctx)


@router.get("/install")
async def slack_install(request: Request, ctx: AppContext = Depends(get_context)):
    return await _dispatch(request, ctx)


@router.get("/oauth_redirect")
async def slack_oauth_redirect(request: Request, ctx: AppContext = Depends(get_context)):
    return await _dispatch(request, ctx)
