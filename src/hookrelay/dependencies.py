"""FastAPI dependency injection providers."""

import hmac
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Header, Request

from hookrelay.config import settings
from hookrelay.errors.exceptions import AuthenticationError, AuthorizationError
from hookrelay.logging_config import bind_request_context


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_session_factory(request: Request):
    return request.app.state.db_session_factory


def get_http_client(request: Request):
    """Return the shared outbound HTTP client, or None before startup."""
    return getattr(request.app.state, "http_client", None)


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


async def get_current_user(
    request: Request,
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Return the caller id forwarded by the upstream gateway, or raise 401."""
    if not x_user_id:
        raise AuthenticationError("X-User-Id header required")
    bind_request_context(
        get_trace_id(request),
        user_id=x_user_id,
        workspace_id=request.path_params.get("workspace_id"),
    )
    return x_user_id


async def require_worker_token(
    x_worker_token: Annotated[str | None, Header()] = None,
) -> None:
    """Guard the on-demand queue endpoint with the shared worker token."""
    if not settings.worker_token:
        raise AuthorizationError("Queue processing endpoint is disabled")
    if not x_worker_token:
        raise AuthenticationError("X-Worker-Token header required")
    if not hmac.compare_digest(x_worker_token.encode("utf-8"), settings.worker_token.encode("utf-8")):
        raise AuthorizationError("Invalid worker token")

