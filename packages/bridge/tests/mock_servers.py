"""
Mock GitHub REST API for tests.

Serves the App-authenticated endpoints the bridge calls and checks the App
JWT against the test key pair. Mounted in-process through httpx's
ASGITransport, so no sockets are opened.
"""

from typing import Optional

import jwt
from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse

APP_HTML_URL = "https://github.com/apps/hello-github"
SERVER_ERROR_OWNER = "server-error"


def create_github_app(
    *,
    app_id: str,
    public_key: str,
    installations: dict[str, int],
) -> FastAPI:
    """Create a mock GitHub API.

    ``installations`` maps ``owner/repo`` to the App installation id; any other
    repository answers 404 like GitHub does when the App is not installed.
    """
    app = FastAPI(title="Mock GitHub")
    app.state.calls = []

    def _authenticate(authorization: Optional[str]) -> Optional[JSONResponse]:
        if not authorization or not authorization.startswith("Bearer "):
            return JSONResponse({"message": "Requires authentication"}, status_code=401)
        try:
            claims = jwt.decode(authorization[7:], public_key, algorithms=["RS256"])
        except jwt.PyJWTError:
            return JSONResponse(
                {"message": "A JSON web token could not be decoded"}, status_code=401
            )
        if claims.get("iss") != app_id:
            return JSONResponse({"message": "Integration not found"}, status_code=401)
        return None

    @app.get("/repos/{owner}/{repo}/installation")
    async def get_repo_installation(
        owner: str, repo: str, authorization: Optional[str] = Header(None)
    ):
        app.state.calls.append(f"GET /repos/{owner}/{repo}/installation")
        if denied := _authenticate(authorization):
            return denied
        if owner == SERVER_ERROR_OWNER:
            return JSONResponse({"message": "Server Error"}, status_code=500)
        installation_id = installations.get(f"{owner}/{repo}")
        if installation_id is None:
            return JSONResponse({"message": "Not Found"}, status_code=404)
        return {"id": installation_id, "account": {"login": owner}, "app_id": int(app_id)}

    @app.get("/app")
    async def get_app(authorization: Optional[str] = Header(None)):
        app.state.calls.append("GET /app")
        if denied := _authenticate(authorization):
            return denied
        return {"id": int(app_id), "slug": "hello-github", "html_url": APP_HTML_URL}

    return app
