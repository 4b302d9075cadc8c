"""Request-scoped middleware for API requests."""

from typing import Callable
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from utils.user_context import Actor, set_current_actor, clear_current_actor


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, keeping one supplied by an upstream proxy."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ActorMiddleware(BaseHTTPMiddleware):
    """Sets the actor context for each request.

    Authentication itself happens upstream; `resolve_actor` turns the
    authenticated request into an Actor, or None when unauthenticated.
    The context is always cleared after the request completes.
    """

    PUBLIC_PATHS = ["/health", "/docs", "/openapi.json"]

    def __init__(self, app, resolve_actor: Callable[[Request], Actor | None]):
        super().__init__(app)
        self._resolve_actor = resolve_actor

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.PUBLIC_PATHS:
            return await call_next(request)

        actor = self._resolve_actor(request)
        if actor is None:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                    request_id=getattr(request.state, "request_id", None),
                ).model_dump(mode="json"),
            )

        request.state.actor = actor
        set_current_actor(actor)
        try:
            return await call_next(request)
        finally:
            clear_current_actor()
