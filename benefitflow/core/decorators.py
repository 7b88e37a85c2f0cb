"""
API route decorators for cross-cutting concerns.
"""

from functools import wraps
from typing import Callable

import structlog
from benefitflow.core.exceptions import CsrfTokenError
from benefitflow.core.security import CSRF_FORM_FIELD, is_valid_csrf_token
from fastapi import HTTPException, Request, status

logger = structlog.get_logger()


def require_csrf_token(func: Callable) -> Callable:
    """
    Reject state-changing form posts whose `_csrf` field does not match the
    session's CSRF token. Nothing is saved when the check fails.

    Usage:
        @router.post("/{lang}/{flow_kind}/{flow_id}/{step}")
        @require_csrf_token
        async def submit_step(request: Request, ...):
            ...
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request: Request = kwargs.get("request")
        if not request:
            for arg in args:
                if isinstance(arg, Request):
                    request = arg
                    break

        if not request:
            logger.error("require_csrf_token_no_request", func=func.__name__)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal error: Request object not found",
            )

        session = request.state.session
        form = await request.form()
        if not is_valid_csrf_token(session, form.get(CSRF_FORM_FIELD)):
            logger.warning(
                "csrf_token_mismatch",
                path=request.url.path,
                session_id=session.id,
                func=func.__name__,
            )
            raise CsrfTokenError("Invalid CSRF token", details={"path": request.url.path})

        return await func(*args, **kwargs)

    return wrapper
