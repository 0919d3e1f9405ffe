"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("nozule_admin.config")

CALENDAR_VIEWS = ("week", "2week", "month")


class Settings(BaseSettings):
    # REST backend
    site_url: str = "http://localhost"
    api_base: str = "/wp-json/nozule/v1"
    nonce: str = ""
    request_timeout: float = 15.0

    # Screens
    per_page: int = 20
    search_debounce_ms: int = 300
    toast_ttl_seconds: float = 10.0
    calendar_view: str = "2week"
    inventory_days_ahead: int = 14
    current_user_id: int = 0
    session_idle_minutes: float = 60.0

    # Server
    host: str = "127.0.0.1"
    port: int = 8090
    debug: bool = False
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def api_url(self) -> str:
        return self.site_url.rstrip("/") + "/" + self.api_base.strip("/")

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if not self.site_url.startswith(("http://", "https://")):
            raise ValueError(
                f"SITE_URL must be an http(s) URL, got {self.site_url!r}."
            )
        if self.per_page < 1:
            raise ValueError("PER_PAGE must be at least 1.")
        if self.calendar_view not in CALENDAR_VIEWS:
            raise ValueError(
                f"CALENDAR_VIEW must be one of {', '.join(CALENDAR_VIEWS)}."
            )

        # The backend rejects mutating calls without a nonce
        if not self.nonce:
            warnings.append(
                "NONCE not set. Read-only calls may work, but the REST API "
                "will reject confirm/cancel/save requests."
            )

        if self.search_debounce_ms <= 0:
            warnings.append(
                "SEARCH_DEBOUNCE_MS <= 0: every keystroke triggers a reload."
            )

        if self.session_idle_minutes < 0:
            raise ValueError("SESSION_IDLE_MINUTES must be 0 (never expire) or more.")

        if not self.current_user_id:
            warnings.append(
                "CURRENT_USER_ID not set; self-edit detection on the "
                "employees screen is disabled."
            )

        return warnings


settings = Settings()
