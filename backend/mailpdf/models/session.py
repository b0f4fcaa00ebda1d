"""
Session-related Pydantic models.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel

# Refresh a little before Google's actual expiry
TOKEN_EXPIRY_BUFFER = timedelta(minutes=5)


class OAuthTokens(BaseModel):
    """Delegated Google credentials obtained on behalf of the user."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scope: Optional[str] = None
    token_type: str = "Bearer"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True if the access token expires within the refresh buffer."""
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now + TOKEN_EXPIRY_BUFFER > self.expires_at


class Session(BaseModel):
    """Server-side session keyed by an opaque bearer token."""
    token: str
    credentials: OAuthTokens
    created_at: float
