"""
Middleware for workflow context resolution.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)

async def workflow_context_middleware(request: Request, call_next):
    """
    Resolve the caller's workflow identity for protected routes.

    This middleware:
    1. Requires a bearer token on protected routes
    2. Requires x-team-id and x-user-id on document routes
    3. Sets request.state with the token and identity

    The token is forwarded to the edge functions, which validate it.
    """

    # Define protected routes that need a workflow context
    protected_prefixes = ["/api/documents", "/functions"]
    identity_prefixes = ["/api/documents"]

    path = request.url.path
    is_protected = request.method != "OPTIONS" and any(path.startswith(prefix) for prefix in protected_prefixes)

    if is_protected:
        auth_header = request.headers.get("authorization", "")
        if not auth_header.lower().startswith("bearer ") or not auth_header[7:].strip():
            return JSONResponse(status_code=401, content={"detail": "Missing authorization header"})

        request.state.access_token = auth_header[7:].strip()

        if any(path.startswith(prefix) for prefix in identity_prefixes):
            team_id = request.headers.get("x-team-id")
            user_id = request.headers.get("x-user-id")
            if not team_id or not user_id:
                return JSONResponse(status_code=400, content={"detail": "Missing x-team-id or x-user-id header"})

            request.state.team_id = team_id
            request.state.user_id = user_id
            logger.debug(f"Workflow context resolved: team={team_id}, user={user_id}")

    response = await call_next(request)
    return response
