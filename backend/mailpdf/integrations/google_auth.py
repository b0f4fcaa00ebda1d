"""
Google OAuth client integration.

This module handles:
1. Generating OAuth authorization URLs
2. Exchanging authorization codes for tokens
3. Refreshing expired access tokens
"""
from datetime import datetime, timedelta, timezone
from typing import Tuple
from urllib.parse import urlencode

import httpx

from mailpdf.config import Settings
from mailpdf.models.session import OAuthTokens
from mailpdf.utils.errors import (
    OAuthExchangeError,
    ProviderErrorKind,
    ProviderUnavailableError,
    UpstreamProviderError,
    provider_error,
)
from mailpdf.utils.logger import get_logger

logger = get_logger(__name__)

# Google OAuth endpoints
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


def _oauth_error_text(response: httpx.Response) -> str:
    """Flatten Google's OAuth error body into one searchable string."""
    try:
        error_data = response.json()
    except ValueError:
        return response.text

    if not isinstance(error_data, dict):
        return str(error_data)

    error = error_data.get("error", "")
    if isinstance(error, dict):
        error = error.get("message", "")
    return " ".join(filter(None, [str(error), error_data.get("error_description", "")]))


def get_oauth_url(settings: Settings) -> str:
    """
    Generate Google OAuth authorization URL.

    The user will be redirected to this URL to grant permissions.
    After granting, Google redirects back to our callback with a code.

    Returns:
        OAuth authorization URL string
    """
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": " ".join(settings.google_scopes),
        "access_type": "offline",  # Request refresh token
        "prompt": "consent",  # Force consent to get refresh token
        "include_granted_scopes": "true",
    }

    url = f"{GOOGLE_AUTH_URL}?{urlencode(params)}"
    logger.info("Generated OAuth URL")
    return url


async def exchange_code_for_tokens(code: str, settings: Settings) -> OAuthTokens:
    """
    Exchange authorization code for access and refresh tokens.

    Args:
        code: Authorization code from Google callback

    Returns:
        OAuthTokens for the signed-in user

    Raises:
        UpstreamProviderError: Recognized setup problem (e.g. redirect URI)
        OAuthExchangeError: Any other exchange failure
    """
    data = {
        "client_id": settings.google_client_id,
        "client_secret": settings.google_client_secret,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": settings.google_redirect_uri,
    }

    async with httpx.AsyncClient() as client:
        try:
            response = await client.post(GOOGLE_TOKEN_URL, data=data, timeout=30.0)
        except httpx.RequestError as e:
            logger.error(f"Token exchange request failed: {e}")
            raise ProviderUnavailableError("Failed to connect to Google for authentication.")

    if response.status_code != 200:
        error_text = _oauth_error_text(response)
        logger.error(f"Token exchange failed: {response.status_code} - {error_text}")
        error = UpstreamProviderError(response.status_code, error_text)
        if error.kind == ProviderErrorKind.UNKNOWN:
            raise OAuthExchangeError()
        raise error

    tokens = response.json()
    logger.info("Successfully exchanged code for tokens")

    expires_in = tokens.get("expires_in", 3600)
    return OAuthTokens(
        access_token=tokens["access_token"],
        refresh_token=tokens.get("refresh_token"),  # May not be present on re-auth
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        scope=tokens.get("scope"),
        token_type=tokens.get("token_type", "Bearer"),
    )


async def refresh_access_token(refresh_token: str, settings: Settings) -> Tuple[str, int]:
    """
    Refresh an expired access token using the refresh token.

    Access tokens expire after ~1 hour. We use the refresh token
    to get a new access token without requiring user interaction.

    Returns:
        Tuple of (new_access_token, expires_in_seconds)

    Raises:
        ReconnectRequiredError: If refresh token is invalid/revoked
        UpstreamProviderError: For other refresh failures
    """
    data = {
        "client_id": settings.google_client_id,
        "client_secret": settings.google_client_secret,
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }

    async with httpx.AsyncClient() as client:
        try:
            response = await client.post(GOOGLE_TOKEN_URL, data=data, timeout=30.0)
        except httpx.RequestError as e:
            logger.error(f"Token refresh request failed: {e}")
            raise ProviderUnavailableError("Failed to connect to Google for token refresh.")

    if response.status_code != 200:
        error_text = _oauth_error_text(response)
        logger.warning(f"Token refresh failed: {response.status_code} - {error_text}")
        raise provider_error(response.status_code, error_text)

    tokens = response.json()
    logger.info("Successfully refreshed access token")

    return tokens["access_token"], tokens.get("expires_in", 3600)
