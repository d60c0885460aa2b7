"""
Request authentication.

Every task endpoint depends on ``get_request_context``, which runs the
gate before any cache or handler logic. The gate classifies failures
with typed errors; translating them to HTTP responses happens in the
application's exception handlers.
"""

import logging
from typing import Protocol

from fastapi import BackgroundTasks, Depends, Header, Request

from tasktracker.auth.tokens import TokenError, TokenService, get_token_service
from tasktracker.cache.layer import CacheLayer, get_cache_layer
from tasktracker.core.context import RequestContext
from tasktracker.core.errors import (
    AccountDeactivationError,
    AuthenticationError,
    ExpiredTokenError,
    InvalidTokenError,
    UserNotFoundError,
)
from tasktracker.dependencies import get_auth_service
from tasktracker.models import User

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class UserLookup(Protocol):
    async def find_user_by_id(self, user_id: str) -> User | None: ...


async def authenticate(
    authorization: str | None, tokens: TokenService, users: UserLookup
) -> User:
    """
    Resolve an Authorization header to an active user.

    Raises:
        AuthenticationError: header missing or not a bearer credential
        ExpiredTokenError / InvalidTokenError: token rejected
        UserNotFoundError: token valid but its subject does not exist
        AccountDeactivationError: subject exists but is deactivated
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("Could not validate token")

    verification = tokens.verify(authorization[len(BEARER_PREFIX):])
    if not verification.valid:
        if verification.error is TokenError.EXPIRED:
            raise ExpiredTokenError()
        raise InvalidTokenError()

    user = await users.find_user_by_id(verification.payload.user_id)
    if user is None:
        logger.warning(f"Token subject {verification.payload.user_id} not found")
        raise UserNotFoundError("User not found")
    if not user.is_active:
        raise AccountDeactivationError("Account has been deactivated")
    return user


async def get_current_user(
    authorization: str | None = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
    users: UserLookup = Depends(get_auth_service),
) -> User:
    """Dependency that requires authentication."""
    return await authenticate(authorization, tokens, users)


def request_path(request: Request) -> str:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return path


async def get_request_context(
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    cache: CacheLayer = Depends(get_cache_layer),
) -> RequestContext:
    return RequestContext(
        path=request_path(request),
        cache=cache,
        user=user,
        background=background_tasks,
    )
