"""
Custom error classes for the application.

Google does not expose stable machine-readable codes for the setup and
permission failures users hit most, so provider errors are classified by
matching their human-readable text in `classify_provider_error`. Those
rules are fragile to upstream wording changes; keep them in one place.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        status_code: int = 500,
        details: Optional[dict] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.hint = hint
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for response."""
        data = {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }
        if self.hint:
            data["hint"] = self.hint
        return data


class ConfigurationError(AppError):
    """Required deployment settings are absent."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            "Server configuration is missing.",
            "CONFIG_MISSING",
            status_code=500,
            details={"missing": self.missing},
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["missing"] = self.missing
        return data


class AuthError(AppError):
    """Authentication related errors."""

    def __init__(self, message: str = "Not authenticated.", code: str = "AUTH_REQUIRED", hint: Optional[str] = None):
        super().__init__(message, code, status_code=401, hint=hint)


class SessionInvalidError(AuthError):
    """Bearer token is malformed, unknown or expired."""

    def __init__(self):
        super().__init__("Invalid session. Please sign in again.", "SESSION_INVALID")


class ReconnectRequiredError(AuthError):
    """Google credentials were revoked or can no longer be used."""

    def __init__(self, message: str = "Gmail access is no longer valid. Please reconnect."):
        super().__init__(
            message,
            "RECONNECT_REQUIRED",
            hint="Sign in with Google again to grant access to Gmail.",
        )


class InvalidRequestError(AppError):
    """Invalid request format."""

    def __init__(self, message: str = "Invalid request format."):
        super().__init__(message, "INVALID_REQUEST", status_code=400)


class EmailNotFoundError(AppError):
    """Email not found."""

    def __init__(self, reference: str = ""):
        message = f"Couldn't find email '{reference}'." if reference else "Email not found."
        super().__init__(message, "EMAIL_NOT_FOUND", status_code=404)


class RateLimitError(AppError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Too many requests to Gmail. Please wait a moment."):
        super().__init__(message, "RATE_LIMITED", status_code=429)


class ProviderUnavailableError(AppError):
    """Google could not be reached."""

    def __init__(self, message: str = "Couldn't reach Gmail. Please try again."):
        super().__init__(message, "PROVIDER_UNAVAILABLE", status_code=503)


class OAuthExchangeError(AppError):
    """Authorization code could not be exchanged for tokens."""

    def __init__(self):
        super().__init__(
            "OAuth sign-in failed.",
            "OAUTH_FAILED",
            status_code=500,
            hint="Check the redirect URI, the OAuth test users and that the Gmail API is enabled.",
        )


class RenderError(AppError):
    """Headless browser failed to produce the PDF."""

    def __init__(self, message: str = "PDF rendering failed."):
        super().__init__(message, "RENDER_FAILED", status_code=500)


# ---------------------------------------------------------------------------
# Provider error classification
# ---------------------------------------------------------------------------

class ProviderErrorKind(str, Enum):
    API_NOT_ENABLED = "API_NOT_ENABLED"
    INSUFFICIENT_PERMISSION = "INSUFFICIENT_PERMISSION"
    REDIRECT_URI_MISMATCH = "REDIRECT_URI_MISMATCH"
    RECONNECT_REQUIRED = "RECONNECT_REQUIRED"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ProviderDiagnosis:
    """Classified provider failure with its user-facing message and hint."""
    kind: ProviderErrorKind
    status_code: int
    message: str
    hint: Optional[str] = None


_API_NOT_ENABLED = re.compile(r"api has not been used|access_not_configured|gmail api")
_INSUFFICIENT_PERMISSION = re.compile(
    r"access_denied|insufficient permissions|insufficient authentication scopes|forbidden"
)
_REDIRECT_URI_MISMATCH = re.compile(r"redirect_uri_mismatch")
_RECONNECT = re.compile(
    r"invalid_grant|invalid credentials|token has been expired|login required|unauthorized"
)


def _error_status(status_code: Optional[int], default: int) -> int:
    if status_code is not None and 400 <= status_code < 600:
        return status_code
    return default


def classify_provider_error(status_code: Optional[int], text: str) -> ProviderDiagnosis:
    """
    Classify a Google API / OAuth failure.

    Setup problems are checked before credential problems, so a 403 that
    names a disabled API is reported as such rather than as reconnect.

    Args:
        status_code: HTTP status returned by Google, if any
        text: Provider error text (message, error code, description)

    Returns:
        ProviderDiagnosis tagged with a ProviderErrorKind
    """
    combined = (text or "").lower()

    if _API_NOT_ENABLED.search(combined):
        return ProviderDiagnosis(
            ProviderErrorKind.API_NOT_ENABLED,
            403,
            "Gmail API is not enabled in the Google project.",
            "Enable the Gmail API under APIs & Services > Library and wait for it to propagate.",
        )

    if _INSUFFICIENT_PERMISSION.search(combined):
        return ProviderDiagnosis(
            ProviderErrorKind.INSUFFICIENT_PERMISSION,
            _error_status(status_code, 403),
            "Insufficient permission to access Gmail.",
            "Check the OAuth test users, the consent screen and the gmail.readonly scope.",
        )

    if _REDIRECT_URI_MISMATCH.search(combined):
        return ProviderDiagnosis(
            ProviderErrorKind.REDIRECT_URI_MISMATCH,
            400,
            "Invalid OAuth redirect URI.",
            "In Google Cloud, use exactly the callback URI configured on the backend.",
        )

    if status_code == 401 or _RECONNECT.search(combined):
        return ProviderDiagnosis(
            ProviderErrorKind.RECONNECT_REQUIRED,
            401,
            "Gmail access is no longer valid. Please reconnect.",
            "Sign in with Google again to grant access to Gmail.",
        )

    status = _error_status(status_code, 500)
    return ProviderDiagnosis(
        ProviderErrorKind.UNKNOWN,
        status,
        (text or "").strip() or f"Gmail request failed ({status_code or 'no status'}).",
        "Check the backend logs for the stack trace." if status == 500 else None,
    )


class UpstreamProviderError(AppError):
    """Google rejected a request; carries the classified diagnosis."""

    def __init__(self, status_code: Optional[int], provider_message: str = ""):
        self.provider_status = status_code
        self.provider_message = provider_message
        self.diagnosis = classify_provider_error(status_code, provider_message)
        super().__init__(
            self.diagnosis.message,
            f"PROVIDER_{self.diagnosis.kind.value}",
            status_code=self.diagnosis.status_code,
            details={"provider_status": status_code, "provider_message": provider_message},
            hint=self.diagnosis.hint,
        )

    @property
    def kind(self) -> ProviderErrorKind:
        return self.diagnosis.kind

    @property
    def is_unclassified_failure(self) -> bool:
        """Unrecognized provider failure surfaced as a 500."""
        return self.kind == ProviderErrorKind.UNKNOWN and self.status_code == 500


def provider_error(status_code: Optional[int], provider_message: str = "") -> AppError:
    """
    Build the error to raise for a provider failure.

    Credential failures become ReconnectRequiredError so the client clears
    its token and restarts OAuth instead of retrying.
    """
    error = UpstreamProviderError(status_code, provider_message)
    if error.kind == ProviderErrorKind.RECONNECT_REQUIRED:
        return ReconnectRequiredError()
    return error
