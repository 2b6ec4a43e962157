"""Sign-in routes: Google OAuth and session management."""

import logging
import secrets
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from digest_api.api.deps import get_google_client
from digest_api.auth.security import create_session_token, decode_session_token
from digest_api.config import Settings, get_settings
from digest_api.errors import AuthError
from digest_api.schemas.schemas import UserInfo
from digest_api.services.google_oauth import GoogleOAuthClient, GoogleOAuthError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

STATE_COOKIE = "oauth-state"


def require_google(client: Optional[GoogleOAuthClient] = Depends(get_google_client)) -> GoogleOAuthClient:
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google OAuth not configured",
        )
    return client


@router.get("/google", summary="Start Google sign-in")
async def google_login(
    redirect: str = Query("/", description="Where to send the user after sign-in"),
    client: GoogleOAuthClient = Depends(require_google),
    settings: Settings = Depends(get_settings),
):
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(client.authorization_url(state))
    response.set_cookie(
        STATE_COOKIE,
        f"{state}|{redirect}",
        httponly=True,
        samesite="lax",
        secure=settings.app_env == "production",
        max_age=600,
    )
    return response


@router.get("/google/callback", summary="Google sign-in callback")
async def google_callback(
    request: Request,
    code: str = Query(...),
    state: str = Query(...),
    client: GoogleOAuthClient = Depends(require_google),
    settings: Settings = Depends(get_settings),
):
    if not settings.session_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="SERVER_MISCONFIGURED: missing SESSION_SECRET",
        )

    expected_state, _, redirect_to = request.cookies.get(STATE_COOKIE, "").partition("|")
    if not expected_state or not secrets.compare_digest(expected_state, state):
        raise AuthError("Invalid OAuth state")

    try:
        profile = await client.fetch_profile(code)
    except GoogleOAuthError as e:
        raise AuthError(str(e)) from e

    session_jwt = create_session_token(
        settings.session_secret,
        subject=profile["sub"],
        email=profile.get("email"),
        name=profile.get("name"),
        picture=profile.get("picture"),
        ttl_days=settings.session_ttl_days,
    )
    logger.info(f"Signed in {profile.get('email') or profile['sub']} via Google")

    # Only same-site relative redirects
    if not redirect_to.startswith("/") or redirect_to.startswith("//"):
        redirect_to = "/"

    response = RedirectResponse(redirect_to)
    response.set_cookie(
        settings.session_cookie_name,
        session_jwt,
        httponly=True,
        samesite="lax",
        secure=settings.app_env == "production",
        path="/",
        max_age=60 * 60 * 24 * settings.session_ttl_days,
    )
    response.delete_cookie(STATE_COOKIE)
    return response


@router.get("/me", response_model=UserInfo, summary="Current user")
async def me(request: Request, settings: Settings = Depends(get_settings)):
    session_jwt = request.cookies.get(settings.session_cookie_name)
    if not settings.session_secret or not session_jwt:
        raise AuthError("Not authenticated")

    try:
        claims = decode_session_token(session_jwt, settings.session_secret)
    except jwt.InvalidTokenError:
        raise AuthError("Invalid or expired session")

    return UserInfo(
        id=str(claims["sub"]),
        email=claims.get("email"),
        name=claims.get("name"),
        picture=claims.get("picture"),
        provider=claims.get("provider", "google"),
    )


@router.post("/logout", summary="Sign out")
async def logout(settings: Settings = Depends(get_settings)):
    response = JSONResponse({"ok": True})
    response.delete_cookie(settings.session_cookie_name, path="/")
    return response
