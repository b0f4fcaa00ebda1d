"""
Pytest fixtures for the Gmail PDF export backend tests.
"""
import base64
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from mailpdf.config import Settings
from mailpdf.models.session import OAuthTokens

PDF_BYTES = b"%PDF-1.4\n% mock pdf\n%%EOF\n"


def b64url(text: str) -> str:
    """Encode text the way Gmail does (URL-safe, no padding)."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


class FakeClock:
    """Manually advanced clock for session expiry tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Fully configured development settings."""
    return Settings(
        google_client_id="test-client-id",
        google_client_secret="test-client-secret",
        google_redirect_uri="http://localhost:3000/auth/google/callback",
        frontend_origin="http://localhost:5500/",
        environment="development",
        browser_sandbox_flags=False,
        pdf_settle_delay_seconds=0,
    )


@pytest.fixture
def mock_credentials():
    """Unexpired delegated Google credentials."""
    return OAuthTokens(
        access_token="mock-access-token",
        refresh_token="mock-refresh-token",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        scope="https://www.googleapis.com/auth/gmail.readonly",
    )


@pytest.fixture
def mock_gmail_message():
    """Create a mock Gmail API message response."""
    return {
        "id": "msg-abc123",
        "threadId": "thread-xyz789",
        "labelIds": ["INBOX", "UNREAD"],
        "snippet": "This is the email snippet...",
        "payload": {
            "headers": [
                {"name": "From", "value": "John Doe <john@example.com>"},
                {"name": "To", "value": "me@example.com"},
                {"name": "Subject", "value": "Test Subject"},
                {"name": "Date", "value": "Wed, 5 Feb 2025 10:30:00 +0000"},
            ],
            "mimeType": "text/plain",
            "body": {
                "data": "VGhpcyBpcyB0aGUgZW1haWwgYm9keQ=="  # Base64 "This is the email body"
            },
        },
    }


@pytest.fixture
def mock_gmail_multipart_message():
    """Create a mock Gmail API multipart message."""
    return {
        "id": "msg-multi123",
        "threadId": "thread-multi789",
        "labelIds": ["INBOX"],
        "snippet": "Multipart email snippet...",
        "payload": {
            "headers": [
                {"name": "From", "value": "Jane Smith <jane@example.com>"},
                {"name": "Subject", "value": "Multipart Email"},
                {"name": "Date", "value": "Wed, 5 Feb 2025 11:00:00 +0000"},
            ],
            "mimeType": "multipart/alternative",
            "parts": [
                {
                    "mimeType": "text/plain",
                    "body": {
                        "data": "UGxhaW4gdGV4dCBib2R5"  # "Plain text body"
                    },
                },
                {
                    "mimeType": "text/html",
                    "body": {
                        "data": "PHA+SFRNTCBib2R5PC9wPg=="  # "<p>HTML body</p>"
                    },
                },
            ],
        },
    }


@pytest.fixture
def mock_page():
    """Playwright page double that 'prints' a small PDF."""
    page = MagicMock()
    page.set_content = AsyncMock()
    page.evaluate = AsyncMock(return_value=True)
    page.pdf = AsyncMock(return_value=PDF_BYTES)
    return page


@pytest.fixture
def mock_browser(mock_page):
    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=mock_page)
    browser.close = AsyncMock()
    return browser


@pytest.fixture
def mock_playwright(mock_browser):
    """
    Replacement for async_playwright() returning the mock browser.

    Patch with:
        patch("mailpdf.services.pdf_service.async_playwright", mock_playwright)
    """
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=mock_browser)

    context_manager = MagicMock()
    context_manager.__aenter__ = AsyncMock(return_value=playwright)
    context_manager.__aexit__ = AsyncMock(return_value=False)

    factory = MagicMock(return_value=context_manager)
    factory.playwright = playwright
    return factory
