"""
Authentication service.

This module orchestrates the OAuth flow and guards the API:
1. Generate OAuth URL → google_auth
2. Handle callback → exchange code → create session
3. Authorize bearer tokens on every /api request
4. Refresh delegated access tokens when they are about to expire
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from fastapi import Request

from mailpdf.config import Settings
from mailpdf.integrations.google_auth import (
    exchange_code_for_tokens,
    get_oauth_url as _get_oauth_url,
    refresh_access_token,
)
from mailpdf.models.session import OAuthTokens
from mailpdf.services.session_service import SESSION_TOKEN_LENGTH, SessionStore
from mailpdf.utils.errors import AuthError, ConfigurationError, SessionInvalidError
from mailpdf.utils.logger import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token of a 'Bearer <token>' header, or '' if absent."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return ""
    return authorization[len(BEARER_PREFIX):].strip()


class AuthorizationGateway:
    """
    Validates bearer tokens against the session store.

    Fails closed. The length check runs before the store lookup, and the
    error never says which check rejected the token.
    """

    def __init__(self, store: SessionStore):
        self.store = store

    def authorize(self, authorization: Optional[str]) -> Tuple[str, OAuthTokens]:
        """
        Resolve an Authorization header to delegated credentials.

        Returns:
            (session_token, credentials)

        Raises:
            AuthError: Header missing or not in Bearer form
            SessionInvalidError: Wrong length, unknown or expired token
        """
        token = extract_bearer_token(authorization)
        if not token:
            raise AuthError()

        if len(token) != SESSION_TOKEN_LENGTH:
            raise SessionInvalidError()

        credentials = self.store.resolve(token)
        if credentials is None:
            raise SessionInvalidError()

        return token, credentials


class AuthService:
    """
    Authentication service handling the OAuth flow.

    Usage:
        auth_service = AuthService(settings, store)
        url = auth_service.get_oauth_url()
        token = await auth_service.handle_oauth_callback(code)
    """

    def __init__(self, settings: Settings, store: SessionStore):
        self.settings = settings
        self.store = store

    def get_oauth_url(self) -> str:
        """
        Get the Google OAuth authorization URL.

        Frontend should redirect user to this URL.
        """
        return _get_oauth_url(self.settings)

    async def handle_oauth_callback(self, code: str) -> str:
        """
        Handle OAuth callback after user grants permission.

        Flow:
        1. Exchange authorization code for tokens
        2. Store tokens under a new opaque session token

        Returns:
            Session token delivered to the frontend once via redirect
        """
        tokens = await exchange_code_for_tokens(code, self.settings)
        return self.store.create(tokens)

    def logout(self, session_token: str) -> None:
        if session_token:
            self.store.invalidate(session_token)
            logger.info("User logged out")

    async def ensure_fresh_credentials(self, credentials: OAuthTokens) -> OAuthTokens:
        """
        Return credentials with a usable access token.

        The refreshed copy is used for the current request only; the stored
        bundle keeps its refresh token and is refreshed again when needed.

        Raises:
            ReconnectRequiredError: If Google revoked the refresh token
        """
        if not credentials.is_expired() or not credentials.refresh_token:
            return credentials

        access_token, expires_in = await refresh_access_token(
            credentials.refresh_token, self.settings
        )
        logger.info("Refreshed access token for request")

        return credentials.model_copy(update={
            "access_token": access_token,
            "expires_at": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        })


# Dependencies for protected routes

def require_api_config(request: Request) -> None:
    """
    FastAPI dependency rejecting API calls while deployment config is missing.

    Raises:
        ConfigurationError: Lists the missing settings
    """
    missing = request.app.state.settings.missing_config()
    if missing:
        raise ConfigurationError(missing)


def get_current_credentials(request: Request) -> OAuthTokens:
    """
    FastAPI dependency to get the delegated credentials of the caller.

    Use this as a dependency in protected routes:

        @router.get("/protected")
        async def protected_route(credentials: OAuthTokens = Depends(get_current_credentials)):
            pass

    Raises:
        AuthError / SessionInvalidError (401)
    """
    gateway = AuthorizationGateway(request.app.state.session_store)
    token, credentials = gateway.authorize(request.headers.get("authorization"))

    request.state.session_token = token
    request.state.credentials = credentials
    return credentials
