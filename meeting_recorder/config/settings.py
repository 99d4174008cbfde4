"""
Configuration settings for the Meeting Recorder.
Browser, session timing, credentials, backend webhook and server settings.
"""

from typing import Optional, List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dateutil import tz

from meeting_recorder.core.exceptions import ConfigurationError


# Real Chrome User Agent (Windows)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class BrowserSettings(BaseSettings):
    """Browser execution context configuration."""
    model_config = SettingsConfigDict(env_prefix="BROWSER_")

    headless: bool = Field(default=True, description="Run Chromium headless")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User agent for every context")
    viewport_width: int = Field(default=1280, description="Viewport width")
    viewport_height: int = Field(default=720, description="Viewport height")
    locale: str = Field(default="en-US", description="Browser locale")
    navigation_timeout_ms: int = Field(default=30000, description="Navigation timeout (ms)")
    launch_args: List[str] = Field(
        default=[
            "--use-fake-ui-for-media-stream",  # Auto-accept permissions
            "--disable-blink-features=AutomationControlled",
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-infobars",
        ],
        description="Extra Chromium arguments",
    )


class SessionSettings(BaseSettings):
    """Per-meeting lifecycle timing."""
    model_config = SettingsConfigDict(env_prefix="SESSION_")

    poll_interval_seconds: float = Field(default=30.0, description="Detector/Watchdog cadence")
    expiry_minutes: float = Field(default=30.0, description="Give up this long after scheduled start")
    max_duration_minutes: float = Field(default=120.0, description="Hard cap on time in the meeting")
    settle_delay_seconds: float = Field(default=3.0, description="Wait after each UI interaction")
    admission_timeout_seconds: float = Field(default=600.0, description="Max lobby wait (seconds)")
    admission_check_seconds: float = Field(default=2.0, description="Lobby re-check interval")
    liveness_recheck_seconds: float = Field(default=5.0, description="Recheck before declaring the meeting over")
    join_before_start_minutes: float = Field(default=1.0, description="Launch this long before start")
    bot_name: str = Field(default="Recording Bot", description="Guest display name")


class AuthSettings(BaseSettings):
    """Authentication material applied to every browser context."""
    model_config = SettingsConfigDict(env_prefix="AUTH_")

    cookies_file: str = Field(default="cookies.json", description="Exported session cookies (JSON)")
    required: bool = Field(default=False, description="Fail sessions when no cookies are available")


class BackendSettings(BaseSettings):
    """Optional status webhook."""
    model_config = SettingsConfigDict(env_prefix="BACKEND_")

    webhook_url: Optional[str] = Field(default=None, description="POST phase changes here")
    api_key: Optional[str] = Field(default=None, description="Sent as X-API-Key")
    timeout_seconds: float = Field(default=10.0, description="Webhook request timeout")


class ServerSettings(BaseSettings):
    """HTTP server configuration."""
    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=3000, description="Bind port")


class Settings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore"
    )

    # Nested settings
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    # Application settings
    project_name: str = Field(default="Meeting Recorder", description="API title")
    version: str = Field(default="1.0.0", description="API version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_to_file: bool = Field(default=True, description="Write rotating log files under logs/")
    timezone: str = Field(default="auto", description="Timezone for naive start times (or 'auto')")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @property
    def tz_info(self):
        """Get timezone info (auto-detected if 'auto')."""
        if self.timezone.lower() == "auto":
            return tz.tzlocal()
        zone = tz.gettz(self.timezone)
        if zone is None:
            raise ConfigurationError(f"Unknown timezone: {self.timezone}")
        return zone


# Global settings instance
settings = Settings()
