"""
Bridge entry point.

Configures logging and exposes the ASGI application. ``run()`` serves it with
uvicorn for local development; deployed functions wrap it with Mangum (see
``lambda_handler``).
"""

from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from . import __version__
from .api import router as api_router
from .config import LoggingSettings
from .context import reset_context


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog with the specified level and format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )
    # Bolt and the Slack SDK log through the standard library
    logging.basicConfig(level=level.upper(), format="%(levelname)s %(name)s %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await reset_context()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    log_settings = LoggingSettings()
    configure_logging(log_settings.level, log_settings.format)

    app = FastAPI(
        title="GitHub Slack Bridge",
        description="Relays GitHub App events to subscribed Slack channels.",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


def run() -> None:
    """CLI entry point: serve the app locally."""
    parser = argparse.ArgumentParser(description="GitHub ↔ Slack subscriptions bridge (dev server)")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    args = parser.parse_args()

    structlog.get_logger().info("bridge.dev_server", host=args.host, port=args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    run()
