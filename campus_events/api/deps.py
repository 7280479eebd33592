from __future__ import annotations

import uuid
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request

from campus_events.core.config import settings
from campus_events.gateway.base import DataGateway
from campus_events.models import User


def get_gateway(request: Request) -> DataGateway:
    return request.app.state.gateway


Gateway = Annotated[DataGateway, Depends(get_gateway)]


def _unauthorized(detail: str = "unauthorized") -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(request: Request, gateway: Gateway) -> User:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise _unauthorized("missing bearer token")

    token = auth.removeprefix("Bearer ").strip()

    # Sessions belong to the external auth provider; only dev tokens resolve here
    if settings.auth_mode == "dev" and settings.env == "local":
        prefix = settings.dev_auth_prefix
        if not token.startswith(prefix):
            raise _unauthorized(f"invalid dev token (expected prefix {prefix})")

        try:
            user_id = uuid.UUID(token.removeprefix(prefix).strip())
        except ValueError:
            raise _unauthorized("invalid user id in token") from None

        user = await gateway.get_user(user_id)
        if user is None:
            raise _unauthorized("unknown user")

        structlog.contextvars.bind_contextvars(user_id=str(user.id))
        return user

    raise _unauthorized("auth not configured")


CurrentUser = Annotated[User, Depends(get_current_user)]
