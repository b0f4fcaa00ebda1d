"""
Download filename helpers.
"""
import re
from urllib.parse import quote

MAX_FILENAME_LENGTH = 120
DEFAULT_FILENAME = "email"

_UNSAFE_CHARS = re.compile(r'[/\\:*?"<>|]')
_WHITESPACE = re.compile(r"\s+")


def sanitize_filename(filename: str) -> str:
    """
    Make a name safe for use as a download filename (without extension).

    Filesystem-unsafe characters become spaces, whitespace is collapsed
    and the result is cut to 120 characters.
    """
    sanitized = _UNSAFE_CHARS.sub(" ", str(filename or DEFAULT_FILENAME))
    sanitized = _WHITESPACE.sub(" ", sanitized).strip()

    if not sanitized:
        return DEFAULT_FILENAME

    return sanitized[:MAX_FILENAME_LENGTH]


def pdf_content_disposition(filename: str) -> str:
    """
    Content-Disposition value for a PDF attachment.

    Non-ASCII names get an RFC 5987 filename* parameter since HTTP headers
    must stay latin-1 encodable.
    """
    name = sanitize_filename(filename)
    download_name = f"{name}.pdf"

    if download_name.isascii():
        return f'attachment; filename="{download_name}"'

    ascii_name = _WHITESPACE.sub(" ", name.encode("ascii", "ignore").decode("ascii")).strip()
    fallback = f"{ascii_name or DEFAULT_FILENAME}.pdf"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(download_name)}"
