"""AWS Lambda entry point for the bridge's HTTP API."""

from mangum import Mangum

from .main import app

# Settings are validated on the first request, not at cold start
handler = Mangum(app, lifespan="off")
