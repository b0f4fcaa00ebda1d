"""
Authentication routes for Google OAuth.

OAuth Flow:
1. Frontend sends the user to GET /auth/google
2. Backend redirects to Google's consent screen
3. User grants gmail.readonly on Google
4. Google redirects to GET /auth/google/callback with code
5. Backend exchanges code for tokens, creates session
6. Backend redirects to the frontend with ?token=<session token>

Security:
- The session token is opaque; Google tokens never leave the server
- Frontend stores the token and sends it as Authorization: Bearer
"""
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

from mailpdf.services.auth_service import AuthService, extract_bearer_token, require_api_config
from mailpdf.utils.errors import InvalidRequestError
from mailpdf.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _auth_service(request: Request) -> AuthService:
    return AuthService(request.app.state.settings, request.app.state.session_store)


@router.get("/google")
async def login(request: Request):
    """
    Redirect the user to Google's OAuth consent screen.
    """
    settings = request.app.state.settings

    logger.info(
        f"Auth env check: has_client_id={bool(settings.google_client_id)}, "
        f"has_client_secret={bool(settings.google_client_secret)}, "
        f"redirect_uri={settings.google_redirect_uri!r}, "
        f"frontend_origin={settings.frontend_origin!r}"
    )
    require_api_config(request)

    auth_url = _auth_service(request).get_oauth_url()
    return RedirectResponse(url=auth_url)


@router.get("/google/callback")
async def oauth_callback(request: Request, code: Optional[str] = None):
    """
    Handle Google OAuth callback.

    On success the session token is delivered once, as a query parameter
    on the redirect to the frontend.

    Query params:
        code: Authorization code from Google
    """
    require_api_config(request)

    if not code:
        logger.warning("OAuth callback missing code")
        raise InvalidRequestError("OAuth code is missing.")

    session_token = await _auth_service(request).handle_oauth_callback(code)
    logger.info("OAuth callback successful, session created")

    settings = request.app.state.settings
    return RedirectResponse(
        url=f"{settings.normalized_frontend_origin}{settings.frontend_path}?token={session_token}",
        status_code=302,
    )


@router.post("/logout")
async def logout(request: Request):
    """
    Logout by dropping the bearer session, if any.

    Returns:
        { ok: true }
    """
    token = extract_bearer_token(request.headers.get("authorization"))
    _auth_service(request).logout(token)
    return {"ok": True}
