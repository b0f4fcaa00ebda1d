"""
Application configuration loaded from environment variables.
"""
import sys
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_SESSION_TTL_SECONDS = 24 * 60 * 60
DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS = 30 * 60
# Floors keep the sweeper from spinning in a tight loop
MIN_SESSION_TTL_SECONDS = 60
MIN_SESSION_SWEEP_INTERVAL_SECONDS = 60

REQUIRED_SETTINGS = {
    "GOOGLE_CLIENT_ID": "google_client_id",
    "GOOGLE_CLIENT_SECRET": "google_client_secret",
    "GOOGLE_REDIRECT_URI": "google_redirect_uri",
    "FRONTEND_ORIGIN": "frontend_origin",
}


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = ""

    # Frontend that receives the session token after OAuth
    frontend_origin: str = ""
    frontend_path: str = "/Gmail-PDF-tool/"

    # development | production
    environment: str = "development"
    log_level: str = "INFO"

    # Session
    session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    session_sweep_interval_seconds: int = DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS

    # PDF rendering (headless Chromium)
    browser_executable_path: Optional[str] = None
    browser_sandbox_flags: Optional[bool] = None
    pdf_load_timeout_seconds: float = 120.0
    pdf_settle_delay_seconds: float = 0.5

    @field_validator("session_ttl_seconds")
    @classmethod
    def _floor_session_ttl(cls, value: int) -> int:
        if value <= 0:
            value = DEFAULT_SESSION_TTL_SECONDS
        return max(MIN_SESSION_TTL_SECONDS, value)

    @field_validator("session_sweep_interval_seconds")
    @classmethod
    def _floor_sweep_interval(cls, value: int) -> int:
        if value <= 0:
            value = DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS
        return max(MIN_SESSION_SWEEP_INTERVAL_SECONDS, value)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def normalized_frontend_origin(self) -> str:
        return self.frontend_origin.strip().rstrip("/")

    @property
    def has_valid_frontend_origin(self) -> bool:
        origin = self.normalized_frontend_origin.lower()
        return origin.startswith("http://") or origin.startswith("https://")

    @property
    def use_container_browser_flags(self) -> bool:
        """Sandbox-disabling Chromium flags; auto-enabled on Linux hosts."""
        if self.browser_sandbox_flags is not None:
            return self.browser_sandbox_flags
        return sys.platform.startswith("linux")

    # Google OAuth scopes
    @property
    def google_scopes(self) -> list[str]:
        return [
            "https://www.googleapis.com/auth/gmail.readonly",
        ]

    def missing_config(self) -> list[str]:
        """
        List deployment settings that are absent or unusable.

        Returns:
            Environment variable names, with a note for a malformed
            FRONTEND_ORIGIN
        """
        missing = [
            env_name
            for env_name, field_name in REQUIRED_SETTINGS.items()
            if not str(getattr(self, field_name) or "").strip()
        ]

        if "FRONTEND_ORIGIN" not in missing and not self.has_valid_frontend_origin:
            missing.append("FRONTEND_ORIGIN (must start with http:// or https://)")

        return missing

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
