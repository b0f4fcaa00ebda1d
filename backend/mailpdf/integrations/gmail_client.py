"""
Gmail API client integration.

This module handles direct communication with Gmail API:
1. Fetch the account profile
2. List inbox messages with selected headers
3. Fetch a full message (payload tree) for PDF export

Gmail API Reference: https://developers.google.com/gmail/api/reference/rest
"""
import asyncio
from typing import List, Optional

import httpx

from mailpdf.models.email import EmailSummary
from mailpdf.services.mime_resolver import parse_headers
from mailpdf.utils.errors import (
    EmailNotFoundError,
    ProviderUnavailableError,
    RateLimitError,
    provider_error,
)
from mailpdf.utils.logger import get_logger

logger = get_logger(__name__)

# Gmail API base URL
GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1/users/me"

DEFAULT_LIST_SIZE = 10
MAX_LIST_SIZE = 50
LIST_METADATA_HEADERS = ["Subject", "From", "Date"]


def clamp_list_size(value) -> int:
    """Coerce a requested page size into 1..50; missing, zero or non-numeric means 10."""
    try:
        size = int(value)
    except (TypeError, ValueError):
        size = 0
    if size == 0:
        size = DEFAULT_LIST_SIZE
    return max(1, min(MAX_LIST_SIZE, size))


def _error_text(response: httpx.Response) -> str:
    """Flatten a Gmail error body into one searchable string."""
    if not response.content:
        return ""
    try:
        error_data = response.json()
    except ValueError:
        return response.text

    if not isinstance(error_data, dict):
        return str(error_data)

    error = error_data.get("error", "")
    if isinstance(error, dict):
        parts = [error.get("message", ""), error.get("status", "")]
        parts += [d.get("reason", "") for d in error.get("errors", []) if isinstance(d, dict)]
        return " ".join(p for p in parts if p)
    return " ".join(filter(None, [str(error), error_data.get("error_description", "")]))


class GmailClient:
    """
    Gmail API client for read-only email operations.

    Usage:
        client = GmailClient(access_token)
        emails = await client.list_emails(max_results=10)
        message = await client.get_message_full(message_id)
    """

    def __init__(self, access_token: str):
        """
        Initialize Gmail client with access token.

        Args:
            access_token: Valid Google OAuth access token with gmail.readonly
        """
        self.access_token = access_token
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict = None,
        json_data: dict = None,
        retries: int = 3,
    ) -> Optional[dict]:
        """
        Make an authenticated request to Gmail API.

        Handles common error cases:
        - 404: returns None
        - 429 / 5xx: retried with exponential backoff
        - anything else: classified provider error

        Returns:
            Response JSON dict, or None for 404

        Raises:
            ReconnectRequiredError: Credentials rejected
            UpstreamProviderError: Other API errors
            RateLimitError: Still rate limited after retries
            ProviderUnavailableError: Connection failures after retries
        """
        url = f"{GMAIL_API_BASE}{endpoint}"

        for attempt in range(retries + 1):
            async with httpx.AsyncClient() as client:
                try:
                    response = await client.request(
                        method=method,
                        url=url,
                        headers=self.headers,
                        json=json_data,
                        params=params,
                        timeout=30.0,
                    )
                except (httpx.TimeoutException, httpx.ConnectError) as e:
                    if attempt < retries:
                        wait_time = 2 ** attempt
                        logger.warning(f"Gmail API connection error, retrying in {wait_time}s...")
                        await asyncio.sleep(wait_time)
                        continue

                    logger.error(f"Gmail API: Request failed after {retries} retries - {e}")
                    raise ProviderUnavailableError("Gmail service unavailable. Please try again later.")

            # Handle success (including 204)
            if 200 <= response.status_code < 300:
                if response.status_code == 204 or not response.content:
                    return {}
                return response.json()

            # Handle transient errors (Rate limit, Server error)
            if response.status_code == 429 or response.status_code >= 500:
                if attempt < retries:
                    wait_time = 2 ** attempt  # Exponential backoff
                    logger.warning(f"Gmail API transient error {response.status_code}, retrying in {wait_time}s...")
                    await asyncio.sleep(wait_time)
                    continue
                if response.status_code == 429:
                    raise RateLimitError()

            if response.status_code == 404:
                return None

            error_text = _error_text(response)
            logger.error(f"Gmail API error: {response.status_code} - {error_text}")
            raise provider_error(response.status_code, error_text)

    async def get_profile(self) -> dict:
        """
        Fetch the Gmail profile of the authenticated account.

        Returns:
            Profile dict (emailAddress, messagesTotal, ...)
        """
        return await self._make_request("GET", "/profile") or {}

    async def list_emails(self, max_results: int = DEFAULT_LIST_SIZE) -> List[EmailSummary]:
        """
        List the most recent messages with subject/from/date.

        Gmail API flow:
        1. List message IDs (lightweight)
        2. Get metadata for every ID concurrently

        Args:
            max_results: Number of messages, clamped to 1..50

        Returns:
            List of EmailSummary objects in Gmail's order
        """
        max_results = clamp_list_size(max_results)
        logger.info(f"Listing {max_results} emails")

        list_response = await self._make_request(
            "GET",
            "/messages",
            params={"maxResults": max_results},
        ) or {}

        messages = list_response.get("messages") or []
        if not messages:
            logger.info("No emails found")
            return []

        summaries = await asyncio.gather(
            *(self._get_summary(msg["id"]) for msg in messages)
        )
        emails = [summary for summary in summaries if summary is not None]

        logger.info(f"Listed {len(emails)} emails successfully")
        return emails

    async def _get_summary(self, message_id: str) -> Optional[EmailSummary]:
        """Fetch metadata headers for one message."""
        response = await self._make_request(
            "GET",
            f"/messages/{message_id}",
            params={"format": "metadata", "metadataHeaders": LIST_METADATA_HEADERS},
        )

        if not response:
            return None

        headers = parse_headers(response.get("payload") or {})
        return EmailSummary(
            id=response.get("id", message_id),
            thread_id=response.get("threadId", ""),
            subject=headers.subject,
            sender=headers.sender,
            date=headers.date,
            snippet=response.get("snippet", ""),
        )

    async def get_message_full(self, message_id: str) -> dict:
        """
        Get a message with its full payload tree.

        Raises:
            EmailNotFoundError: If the message does not exist
        """
        logger.info(f"Fetching full message: {message_id}")

        response = await self._make_request(
            "GET",
            f"/messages/{message_id}",
            params={"format": "full"},
        )

        if response is None:
            raise EmailNotFoundError(message_id)

        return response
