"""
Session Middleware

Loads the user's session from the configured backend using the session
cookie, exposes it as request.state.session, and writes it back after the
response when it changed.
"""

import structlog
from benefitflow.core.config import settings
from benefitflow.infrastructure.session_store import SessionBackend, load_session, save_session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class SessionMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, backend: SessionBackend):
        super().__init__(app)
        self.backend = backend

    async def dispatch(self, request: Request, call_next) -> Response:
        cookie_id = request.cookies.get(settings.session_cookie_name)
        session = await load_session(self.backend, cookie_id)
        request.state.session = session
        structlog.contextvars.bind_contextvars(session_id=session.id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("session_id")

        if session.modified:
            await save_session(self.backend, session, expire=settings.session_ttl_seconds)
        if session.id != cookie_id:
            response.set_cookie(
                settings.session_cookie_name,
                session.id,
                max_age=settings.session_ttl_seconds,
                httponly=True,
                samesite="lax",
                secure=settings.environment == "production",
            )
        return response
