"""
System endpoints.

- GET /health — liveness check
- GET /metrics — Prometheus-compatible counters for this process
"""

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from gh_slack_bridge.context import AppContext, get_context

router = APIRouter()
log = structlog.get_logger()


@router.get("/health")
async def health_check():
    log.info("health.check")
    return {"ok": True}


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics(ctx: AppContext = Depends(get_context)):
    return ctx.metrics.to_prometheus()
