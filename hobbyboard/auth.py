"""
Session-based login: the request guard, the per-request auth claim and the
credential check.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from hobbyboard.db import RecordStore, UserRecord
from hobbyboard.dependencies import templates
from hobbyboard.errors import AuthError

import logging

logger = logging.getLogger(__name__)

PUBLIC_PATHS = frozenset({"/", "/login", "/logout"})
LOGIN_REQUIRED_MESSAGE = "Please log in to access this page"
INVALID_LOGIN_MESSAGE = "Invalid login"

SESSION_LOGGED_IN_KEY = "isLoggedIn"
SESSION_USERNAME_KEY = "username"


@dataclass(frozen=True)
class AuthClaim:
    """What the session says about the caller, resolved once per request."""

    is_logged_in: bool = False
    username: Optional[str] = None

    @classmethod
    def from_session(cls, session: Optional[dict]) -> "AuthClaim":
        if not session or not session.get(SESSION_LOGGED_IN_KEY):
            return cls()
        return cls(is_logged_in=True, username=session.get(SESSION_USERNAME_KEY))


ANONYMOUS = AuthClaim()


def _session_of(request: Request) -> Optional[dict]:
    if "session" not in request.scope:
        return None
    return request.session


def resolve_auth_claim(request: Request) -> AuthClaim:
    claim = getattr(request.state, "auth", None)
    if claim is None:
        claim = AuthClaim.from_session(_session_of(request))
        request.state.auth = claim
    return claim


def get_auth_claim(request: Request) -> AuthClaim:
    """FastAPI dependency returning the caller's claim."""
    return resolve_auth_claim(request)


async def session_guard(request: Request, call_next):
    """
    Let public paths through, render the login page for everything else
    unless the session is logged in.
    """
    claim = resolve_auth_claim(request)
    if request.url.path in PUBLIC_PATHS or claim.is_logged_in:
        return await call_next(request)
    return templates.TemplateResponse(
        request, "login.html", {"error_message": LOGIN_REQUIRED_MESSAGE}
    )


def authenticate(store: RecordStore, username: str, password: str) -> UserRecord:
    """
    Return the user whose username and password both match exactly.

    Passwords are compared as stored plain text.
    """
    user = store.find_user_by_credentials(username or "", password or "")
    if user is None:
        raise AuthError(INVALID_LOGIN_MESSAGE)
    return user


def log_in(request: Request, username: str) -> None:
    request.session[SESSION_LOGGED_IN_KEY] = True
    request.session[SESSION_USERNAME_KEY] = username
    request.state.auth = AuthClaim(is_logged_in=True, username=username)


def log_out(request: Request) -> None:
    try:
        request.session.clear()
    except Exception:
        logger.exception("Failed to destroy session")
    request.state.auth = ANONYMOUS
