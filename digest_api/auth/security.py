"""Authentication: session JWTs and the static token allow-set."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, Request

from digest_api.config import Settings, get_settings
from digest_api.errors import AuthError

logger = logging.getLogger(__name__)

SESSION_ALGORITHM = "HS256"


@dataclass
class Principal:
    """Who a request was admitted as."""

    kind: str  # "session" or "token"
    subject: str
    email: Optional[str] = None


def create_session_token(
    secret: str,
    subject: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    picture: Optional[str] = None,
    provider: str = "google",
    ttl_days: int = 30,
) -> str:
    """Issue a signed session JWT."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "email": email,
        "name": name,
        "picture": picture,
        "provider": provider,
        "iat": now,
        "exp": now + timedelta(days=ttl_days),
    }
    return jwt.encode(payload, secret, algorithm=SESSION_ALGORITHM)


def decode_session_token(token: str, secret: str) -> dict[str, Any]:
    """
    Verify and decode a session JWT.

    Raises:
        jwt.InvalidTokenError: If the token is invalid or expired
    """
    return jwt.decode(token, secret, algorithms=[SESSION_ALGORITHM])


def token_allowed(token: str, allowed: set[str]) -> bool:
    """An empty allow-set admits any non-empty token."""
    if not token:
        return False
    if not allowed:
        return True
    return any(secrets.compare_digest(token, candidate) for candidate in allowed)


class SessionOrTokenAuth:
    """
    Dependency that admits a request by session cookie or static token.

    Order: a valid signed session cookie first, then a bearer token or the
    token cookie checked against the configured allow-set.
    """

    async def __call__(
        self,
        request: Request,
        authorization: Optional[str] = Header(None),
        settings: Settings = Depends(get_settings),
    ) -> Principal:
        principal = self._from_session(request, settings) or self._from_token(
            request, authorization, settings
        )
        if principal is None:
            raise AuthError()

        # Store in request state for the rate limiter
        request.state.principal = principal
        return principal

    def _from_session(self, request: Request, settings: Settings) -> Optional[Principal]:
        session_jwt = request.cookies.get(settings.session_cookie_name)
        if not settings.session_secret or not session_jwt:
            return None
        try:
            claims = decode_session_token(session_jwt, settings.session_secret)
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected session cookie: {e}")
            return None
        return Principal(kind="session", subject=str(claims.get("sub")), email=claims.get("email"))

    def _from_token(
        self,
        request: Request,
        authorization: Optional[str],
        settings: Settings,
    ) -> Optional[Principal]:
        token = None
        if authorization and authorization.lower().startswith("bearer "):
            token = authorization[7:].strip()
        if not token:
            token = request.cookies.get(settings.token_cookie_name)

        if not token or not token_allowed(token, settings.allowed_tokens):
            return None
        # Only a short prefix of the token is kept
        return Principal(kind="token", subject=f"token:{token[:6]}")


require_auth = SessionOrTokenAuth()
