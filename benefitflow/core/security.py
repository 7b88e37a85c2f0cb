"""
CSRF tokens bound to the user's session.

One token per session, issued on first use and compared in constant time.
"""

import hmac
import secrets
from typing import Optional

from benefitflow.infrastructure.session_store import Session

CSRF_SESSION_KEY = "csrfToken"
CSRF_FORM_FIELD = "_csrf"


def get_or_create_csrf_token(session: Session) -> str:
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session.set(CSRF_SESSION_KEY, token)
    return token


def is_valid_csrf_token(session: Session, submitted: Optional[str]) -> bool:
    expected = session.get(CSRF_SESSION_KEY)
    if not expected or not submitted:
        return False
    return hmac.compare_digest(str(expected), str(submitted))
