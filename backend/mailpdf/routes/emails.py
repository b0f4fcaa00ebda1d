"""
Protected Gmail endpoints: profile, inbox listing and PDF export.

Every route here runs behind require_api_config and the bearer-token
gateway (see main.py).
"""
from fastapi import APIRouter, Depends, Query, Request, Response

from mailpdf.integrations.gmail_client import DEFAULT_LIST_SIZE, GmailClient, clamp_list_size
from mailpdf.models.email import EmailListResponse, GeneratePdfRequest
from mailpdf.models.session import OAuthTokens
from mailpdf.models.user import ProfileResponse
from mailpdf.services.auth_service import AuthService, get_current_credentials
from mailpdf.services.mime_resolver import extract_body_html, parse_headers
from mailpdf.utils.filenames import pdf_content_disposition
from mailpdf.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


async def get_gmail_client(
    request: Request,
    credentials: OAuthTokens = Depends(get_current_credentials),
) -> GmailClient:
    """Gmail client for the caller, refreshing the access token if needed."""
    auth_service = AuthService(request.app.state.settings, request.app.state.session_store)
    fresh = await auth_service.ensure_fresh_credentials(credentials)
    return GmailClient(fresh.access_token)


@router.get("/me", response_model=ProfileResponse)
async def get_me(gmail: GmailClient = Depends(get_gmail_client)):
    """
    Get the Gmail address of the signed-in account.
    """
    profile = await gmail.get_profile()
    return ProfileResponse(email_address=profile.get("emailAddress") or "")


@router.get("/emails", response_model=EmailListResponse)
async def list_emails(
    max_results: str = Query(str(DEFAULT_LIST_SIZE), alias="max"),
    gmail: GmailClient = Depends(get_gmail_client),
):
    """
    List recent messages.

    Query params:
        max: Number of messages (1-50, default 10)
    """
    emails = await gmail.list_emails(clamp_list_size(max_results))
    return EmailListResponse(emails=emails)


@router.post("/generate-pdf")
async def generate_pdf(
    body: GeneratePdfRequest,
    request: Request,
    gmail: GmailClient = Depends(get_gmail_client),
):
    """
    Export one message as a PDF attachment.

    Request: { "messageId": "...", "filename": "optional name" }
    """
    message = await gmail.get_message_full(body.message_id)
    payload = message.get("payload") or {}

    headers = parse_headers(payload)
    body_html = extract_body_html(payload)

    pdf_bytes = await request.app.state.renderer.render(headers, body_html)

    filename = body.filename or headers.subject or f"email-{body.message_id}"
    logger.info(f"Generated PDF for message {body.message_id} ({len(pdf_bytes)} bytes)")

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": pdf_content_disposition(filename)},
    )
