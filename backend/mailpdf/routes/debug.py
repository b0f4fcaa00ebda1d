"""
Development-only diagnostics.

Mounted by main.py only when ENVIRONMENT=development. Lets a developer see
missing configuration and check that headless Chromium works on this host
without going through Gmail.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response

from mailpdf.models.email import MessageHeaders
from mailpdf.utils.filenames import pdf_content_disposition
from mailpdf.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/env")
async def debug_env(request: Request):
    """
    Report configuration problems without failing the app.

    Returns:
        { ok, missing: [...], values: {...} }
    """
    settings = request.app.state.settings
    missing = settings.missing_config()

    return {
        "ok": not missing,
        "missing": missing,
        "values": {
            "GOOGLE_REDIRECT_URI": settings.google_redirect_uri,
            "FRONTEND_ORIGIN": settings.frontend_origin,
            "ENVIRONMENT": settings.environment,
        },
    }


@router.get("/pdf")
async def debug_pdf(request: Request):
    """Render a sample PDF to check the browser setup."""
    headers = MessageHeaders(
        subject="Debug PDF",
        sender="debug@example.com",
        to="user@example.com",
        date=datetime.now(timezone.utc).isoformat(),
    )
    body_html = "<p>If this PDF opened, headless Chromium works in this environment.</p>"

    pdf_bytes = await request.app.state.renderer.render(headers, body_html)
    logger.info(f"Debug PDF rendered ({len(pdf_bytes)} bytes)")

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": pdf_content_disposition("debug-pdf")},
    )
