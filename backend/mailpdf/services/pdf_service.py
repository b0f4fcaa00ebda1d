"""
PDF rendering service.

Turns message headers + body HTML into an A4 PDF with headless Chromium
(Playwright). Each render launches and closes its own browser.

Sanitizing is limited: only <script> blocks are removed from the body.
Event-handler attributes and other active content are left in place.
"""
import asyncio
import html
import re
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from mailpdf.config import Settings
from mailpdf.models.email import MessageHeaders, NO_SUBJECT, RenderRequest
from mailpdf.utils.errors import RenderError
from mailpdf.utils.logger import get_logger

logger = get_logger(__name__)

CONTAINER_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]

NO_CONTENT_HTML = "<p>(No content)</p>"

_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.DOTALL | re.IGNORECASE)

DOCUMENT_STYLE = """
  body {
    margin: 0;
    font-family: "Segoe UI", Tahoma, sans-serif;
    color: #1d2a38;
    background: #f3f6fa;
  }
  .page {
    max-width: 820px;
    margin: 0 auto;
    background: #ffffff;
    padding: 24px 28px 30px;
    border: 1px solid #d7deea;
  }
  .title {
    margin: 0;
    font-size: 24px;
    color: #0f2d59;
    line-height: 1.3;
    word-break: break-word;
  }
  .meta {
    margin-top: 14px;
    display: grid;
    gap: 6px;
    font-size: 13px;
    color: #364a63;
  }
  .meta strong {
    color: #112d4e;
  }
  hr {
    border: 0;
    border-top: 1px solid #d7deea;
    margin: 18px 0 20px;
  }
  .content {
    font-size: 14px;
    line-height: 1.55;
    word-wrap: break-word;
  }
  .content img {
    max-width: 100%;
  }
  .footer {
    margin-top: 24px;
    font-size: 12px;
    color: #596c84;
  }
"""


def strip_script_tags(body_html: str) -> str:
    """Remove <script>...</script> blocks (case-insensitive, multi-line)."""
    return _SCRIPT_BLOCK.sub("", body_html or "")


def build_render_request(headers: MessageHeaders, body_html: str) -> RenderRequest:
    return RenderRequest(
        subject=headers.subject or NO_SUBJECT,
        sender=headers.sender,
        to=headers.to,
        date=headers.date,
        body_html=strip_script_tags(body_html),
    )


def compose_document(request: RenderRequest, generated_at: Optional[datetime] = None) -> str:
    """
    Build the printable HTML page for a message.

    Header fields are escaped; the body is embedded as (sanitized) HTML.
    """
    generated_at = generated_at or datetime.now()
    timestamp = generated_at.strftime("%Y-%m-%d %H:%M:%S")
    esc = html.escape

    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="UTF-8">
    <title>{esc(request.subject)}</title>
    <style>{DOCUMENT_STYLE}</style>
  </head>
  <body>
    <div class="page">
      <h1 class="title">{esc(request.subject)}</h1>
      <div class="meta">
        <div><strong>From:</strong> {esc(request.sender)}</div>
        <div><strong>To:</strong> {esc(request.to)}</div>
        <div><strong>Date:</strong> {esc(request.date)}</div>
      </div>
      <hr>
      <div class="content">{request.body_html or NO_CONTENT_HTML}</div>
      <div class="footer">Generated on {esc(timestamp)}</div>
    </div>
  </body>
</html>
"""


class PdfRenderer:
    """
    Renders messages to PDF bytes with a fresh browser per call.

    Usage:
        renderer = PdfRenderer(settings)
        pdf_bytes = await renderer.render(headers, body_html)
    """

    def __init__(self, settings: Settings, settle_delay: Optional[float] = None):
        self.settings = settings
        self.load_timeout_ms = settings.pdf_load_timeout_seconds * 1000
        self.settle_delay = (
            settings.pdf_settle_delay_seconds if settle_delay is None else settle_delay
        )

    def launch_options(self) -> dict:
        """Chromium launch options for the current host."""
        options = {
            "headless": True,
            "args": list(CONTAINER_BROWSER_ARGS) if self.settings.use_container_browser_flags else [],
        }
        if self.settings.browser_executable_path:
            options["executable_path"] = self.settings.browser_executable_path
        return options

    @asynccontextmanager
    async def _browser(self):
        """Launch a browser and close it on every exit path."""
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(**self.launch_options())
            try:
                yield browser
            finally:
                await browser.close()
                logger.debug("Browser closed")

    async def _load_content(self, page, document: str) -> None:
        """
        Load the document and wait for it to settle.

        Some runtimes never reach network idle; on that timeout only, the
        load is retried waiting for DOMContentLoaded instead.
        """
        try:
            await page.set_content(document, wait_until="networkidle", timeout=self.load_timeout_ms)
        except PlaywrightTimeoutError:
            logger.warning("Network idle wait timed out, retrying with domcontentloaded")
            await page.set_content(document, wait_until="domcontentloaded", timeout=self.load_timeout_ms)

    async def render(self, headers: MessageHeaders, body_html: str) -> bytes:
        """
        Render one message to PDF.

        Args:
            headers: Display headers of the message
            body_html: Body HTML (scripts are stripped here)

        Returns:
            PDF bytes (A4, backgrounds printed)

        Raises:
            RenderError: Browser failure other than the handled load timeout
        """
        document = compose_document(build_render_request(headers, body_html))
        logger.info(f"Rendering PDF ({len(document)} characters of HTML)")

        try:
            async with self._browser() as browser:
                page = await browser.new_page()
                await self._load_content(page, document)
                await page.evaluate("async () => { await document.fonts.ready; return true; }")
                await asyncio.sleep(self.settle_delay)
                pdf_bytes = await page.pdf(format="A4", print_background=True)
        except PlaywrightError as e:
            logger.error(f"PDF rendering failed: {e}")
            raise RenderError(f"PDF rendering failed: {e}") from e

        logger.info(f"Rendered PDF ({len(pdf_bytes)} bytes)")
        return bytes(pdf_bytes)
