"""Request dependencies: state accessors, the auth gate and the sync scheduler."""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from panelgen.core.config import Settings, settings
from panelgen.core.errors import ForbiddenError, UnauthorizedError
from panelgen.runtime.raw import object_id_filter
from panelgen.runtime.sanitize import normalize_document
from panelgen.tasks.schema_sync import schedule_schema_sync

USERS_COLLECTION = "users"
ADMIN_ROLE = "SUPERADMIN"

bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", settings)


def get_database(request: Request):
    return request.app.state.database


async def protect(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Dict[str, Any]:
    """Resolve the bearer token to a user document or fail with 401."""
    if credentials is None:
        raise UnauthorizedError("Not authorized, no token")

    cfg = get_settings(request)
    try:
        claims = jwt.decode(credentials.credentials, cfg.jwt_secret, algorithms=[cfg.jwt_algorithm])
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Not authorized, token failed")

    id_filter = object_id_filter(claims.get("userId"))
    if id_filter is None:
        raise UnauthorizedError("Not authorized, token failed")

    result = await get_database(request).command({"find": USERS_COLLECTION, "filter": id_filter, "limit": 1})
    batch = (result.get("cursor") or {}).get("firstBatch") or []
    if not batch:
        raise UnauthorizedError("Not authorized, user not found")

    user = normalize_document(batch[0])
    user.pop("password", None)
    request.state.user = user
    return user


async def require_admin(user: Dict[str, Any] = Depends(protect)) -> Dict[str, Any]:
    if user.get("role") != ADMIN_ROLE:
        raise ForbiddenError("Not authorized as an admin")
    return user


def get_sync_scheduler() -> Callable[[], None]:
    return schedule_schema_sync
