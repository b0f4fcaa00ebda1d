"""
MIME part resolution for Gmail message payloads.

Gmail returns a message as a tree of parts:
- Simple emails: payload.body.data
- Multipart: payload.parts[*] (parts may nest further)

This module turns that tree into display headers and a single HTML body
for the PDF renderer. Malformed structures are tolerated: missing fields
are treated as absent, never as errors.
"""
import base64
import binascii
import html
import re
from typing import Optional, Tuple

from mailpdf.models.email import MessageHeaders, NO_SUBJECT
from mailpdf.utils.logger import get_logger

logger = get_logger(__name__)

NO_CONTENT_HTML = "<p>(No displayable content for this email)</p>"

_LINE_BREAK = re.compile(r"\r?\n")

BodyPair = Tuple[Optional[str], Optional[str]]


def parse_headers(payload: dict) -> MessageHeaders:
    """
    Extract subject/from/to/date from a message payload.

    Header names are matched case-insensitively and the last occurrence
    of a name wins.
    """
    raw_headers = payload.get("headers") if isinstance(payload, dict) else None
    if not isinstance(raw_headers, list):
        raw_headers = []

    normalized = {}
    for header in raw_headers:
        if not isinstance(header, dict) or not header.get("name"):
            continue
        normalized[str(header["name"]).lower()] = header.get("value") or ""

    return MessageHeaders(
        subject=normalized.get("subject") or NO_SUBJECT,
        sender=normalized.get("from", ""),
        to=normalized.get("to", ""),
        date=normalized.get("date", ""),
    )


def decode_base64url(data: str) -> str:
    """
    Decode base64url-encoded body data.

    Gmail uses URL-safe base64 without padding.
    """
    if not data:
        return ""

    data = data.replace("-", "+").replace("_", "/")
    data += "=" * ((4 - len(data) % 4) % 4)
    try:
        return base64.b64decode(data).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Failed to decode body: {e}")
        return ""


def collect_bodies(part: dict, found: BodyPair = (None, None)) -> BodyPair:
    """
    Walk a part tree in pre-order and return the first (html, text) bodies.

    Args:
        part: MIME part dict (mimeType, body.data, parts)
        found: (html, text) accumulated so far

    Returns:
        Updated (html, text) pair; None where no body was seen
    """
    html_body, text_body = found
    if not isinstance(part, dict):
        return html_body, text_body

    mime_type = str(part.get("mimeType") or "").lower()
    body = part.get("body")
    data = body.get("data") if isinstance(body, dict) else None

    if data:
        if not html_body and mime_type == "text/html":
            html_body = decode_base64url(data)
        elif not text_body and mime_type == "text/plain":
            text_body = decode_base64url(data)

    children = part.get("parts")
    if isinstance(children, list):
        for child in children:
            html_body, text_body = collect_bodies(child, (html_body, text_body))

    return html_body, text_body


def text_to_html(text: str) -> str:
    """Escape plain text and turn line breaks into <br>."""
    return _LINE_BREAK.sub("<br>", html.escape(text))


def extract_body_html(payload: dict) -> str:
    """
    Resolve the HTML to render for a message.

    HTML is preferred and returned verbatim (sanitizing is the renderer's
    job). Plain text is escaped as a fallback.
    """
    html_body, text_body = collect_bodies(payload)

    if html_body:
        return html_body

    if text_body:
        return text_to_html(text_body)

    return NO_CONTENT_HTML
