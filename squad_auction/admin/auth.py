"""HTTP Basic guard for privileged auction commands."""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from ..config import AdminConfig

logger = logging.getLogger(__name__)

_basic = HTTPBasic(auto_error=False)


def _get_admin_config(request: Request) -> AdminConfig:
    return request.app.state.server_config.admin


def credentials_match(credentials: HTTPBasicCredentials, admin: AdminConfig) -> bool:
    username_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"), admin.username.encode("utf-8")
    )
    password_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"), (admin.password or "").encode("utf-8")
    )
    return username_ok and password_ok


async def require_admin(
    credentials: HTTPBasicCredentials | None = Depends(_basic),
    admin: AdminConfig = Depends(_get_admin_config),
) -> str:
    if not admin.password:
        logger.error("admin password is not configured")
        raise HTTPException(status_code=500, detail="server configuration error")
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="authentication required",
            headers={"WWW-Authenticate": "Basic"},
        )
    if not credentials_match(credentials, admin):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username
