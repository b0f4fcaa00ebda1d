"""
Email-related Pydantic models.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

NO_SUBJECT = "(No Subject)"


class MessageHeaders(BaseModel):
    """Display headers extracted from a message payload."""
    model_config = ConfigDict(populate_by_name=True)

    subject: str = NO_SUBJECT
    sender: str = Field("", alias="from")
    to: str = ""
    date: str = ""


class EmailSummary(BaseModel):
    """Inbox row shown in the message list."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    thread_id: str = Field("", alias="threadId")
    subject: str = NO_SUBJECT
    sender: str = Field("", alias="from")
    date: str = ""
    snippet: str = ""


class EmailListResponse(BaseModel):
    emails: list[EmailSummary]


class GeneratePdfRequest(BaseModel):
    """Request to export one message as PDF."""
    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(..., alias="messageId", min_length=1)
    filename: Optional[str] = None


class RenderRequest(BaseModel):
    """Flattened, sanitized input for a single PDF render."""
    subject: str
    sender: str
    to: str
    date: str
    body_html: str
