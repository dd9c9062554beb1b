"""Bearer token authentication and caller identity.

The host web app authenticates users; it calls this API with the shared
token and forwards the user's id and role in X-User-Id / X-User-Role.
"""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

security = HTTPBearer()


@dataclass
class Caller:
    user_id: str
    role: str


async def verify_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> str:
    """Validate the Bearer token against the configured admin_token."""
    if credentials.credentials != request.app.state.services.settings.admin_token:
        raise HTTPException(status_code=401, detail="Invalid token")
    return credentials.credentials


async def get_caller(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default="employee"),
) -> Caller:
    return Caller(user_id=x_user_id, role=x_user_role)
