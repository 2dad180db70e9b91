"""
HTTP API Router

- /api/github/webhooks — GitHub App webhook deliveries
- /api/slack/* — Slack events, commands and OAuth install flow
- /api/health, /api/metrics — system endpoints
"""

from fastapi import APIRouter

from . import github, slack, system

router = APIRouter()

router.include_router(github.router, prefix="/github", tags=["GitHub"])
router.include_router(slack.router, prefix="/slack", tags=["Slack"])
router.include_router(system.router, tags=["System"])
