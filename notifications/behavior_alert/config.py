"""
Behavior Alert Configuration

Settings specific to the notify pass and the response check.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AlertConfig(BaseSettings):
    """
    Behavior alert configuration.

    These settings extend the base system settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="ALERT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Timing
    live_window_minutes: int = Field(
        default=60,
        ge=1,
        description="Events older than this are not alerted, and awaited responses time out",
    )
    escalation_delay_seconds: int = Field(
        default=300,
        ge=1,
        description="Wait before the response check runs",
    )
    reference_timezone: str = Field(
        default="America/Los_Angeles",
        description="Timezone defining the calendar day of a tracked event",
    )

    # Message text
    push_title: str = Field(default="mytaptrack - alert")
    email_subject_prefix: str = Field(default="A mytaptrack® event")
    sms_footer: str = Field(default="\n\nReply STOP to unsubscribe.")
    default_sms_text: str = Field(
        default=(
            "mytaptrack alert:\n"
            "There's a notification about {FirstName}\n"
            "Login for more information\n"
            "{PortalUrl}"
        ),
        description="SMS text when a subscription has no text or default template",
    )
    pattern_email_subject: str = Field(default="A mytaptrack® pattern change occurred")

    # Fan-out
    max_dispatch_workers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Thread pool size for channel and subscription fan-out",
    )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.reference_timezone)


@lru_cache
def get_alert_config() -> AlertConfig:
    """Get cached behavior alert configuration."""
    return AlertConfig()
