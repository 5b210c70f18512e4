"""
Configuration Management

Pydantic-settings based configuration for the behavior notification engine.
All settings can be overridden via environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are prefixed with TRACKER_ and are case-insensitive.
    Example: TRACKER_DYNAMODB_TABLE_NAME=MyTable
    """

    model_config = SettingsConfigDict(
        env_prefix="TRACKER_",
        env_file=[".env.local", ".env"],  # Try .env.local first
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # DynamoDB Configuration
    dynamodb_table_name: str = Field(
        default="BehaviorTracking",
        description="DynamoDB table name for student, user and notification data",
    )
    dynamodb_endpoint_url: str | None = Field(
        default=None,
        description="DynamoDB endpoint URL (for local development)",
    )

    # SES Configuration
    ses_from_address: str = Field(
        default="alerts@mytaptrack.com",
        description="From address for alert emails",
    )
    ses_configuration_set: str | None = Field(
        default=None,
        description="SES configuration set for tracking",
    )
    ses_endpoint_url: str | None = Field(
        default=None,
        description="SES endpoint URL (use 'mock' for local)",
    )
    no_email: bool = Field(
        default=False,
        description="Suppress all outbound email (non-production stages)",
    )

    # SNS Configuration (mobile push and SMS)
    sns_endpoint_url: str | None = Field(
        default=None,
        description="SNS endpoint URL (for local development)",
    )
    sms_sender_id: str = Field(
        default="mytaptrack",
        description="Sender ID attached to outbound SMS",
    )

    # S3 Configuration
    template_bucket_name: str = Field(
        default="behavior-tracking-templates",
        description="S3 bucket holding email templates",
    )
    template_key: str = Field(
        default="templates/behavior-alert.html",
        description="Key of the fallback behavior alert email template",
    )
    s3_endpoint_url: str | None = Field(
        default=None,
        description="S3 endpoint URL (for local development)",
    )

    # Step Functions Configuration
    ensure_response_state_machine_arn: str | None = Field(
        default=None,
        description="State machine that waits and runs the response check",
    )
    stepfunctions_endpoint_url: str | None = Field(
        default=None,
        description="Step Functions endpoint URL (for local development)",
    )

    # AppSync Configuration
    appsync_url: str | None = Field(
        default=None,
        description="AppSync GraphQL endpoint used for app device lookups",
    )
    appsync_timeout_seconds: float = Field(
        default=5.0,
        description="HTTP timeout for AppSync queries",
    )

    # AWS Configuration
    aws_region: str = Field(
        default="us-west-2",
        description="AWS region",
    )

    # Application Configuration
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    portal_url: str = Field(
        default="https://portal.mytaptrack.com",
        description="Portal link included in default text alerts",
    )

    def _client_config(self, endpoint_url: str | None) -> dict:
        config = {"region_name": self.aws_region}
        if endpoint_url and endpoint_url != "mock":
            config["endpoint_url"] = endpoint_url
        return config

    @property
    def dynamodb_config(self) -> dict:
        """DynamoDB client configuration."""
        return self._client_config(self.dynamodb_endpoint_url)

    @property
    def s3_config(self) -> dict:
        """S3 client configuration."""
        return self._client_config(self.s3_endpoint_url)

    @property
    def ses_config(self) -> dict:
        """SES client configuration."""
        return self._client_config(self.ses_endpoint_url)

    @property
    def sns_config(self) -> dict:
        """SNS client configuration."""
        return self._client_config(self.sns_endpoint_url)

    @property
    def stepfunctions_config(self) -> dict:
        """Step Functions client configuration."""
        return self._client_config(self.stepfunctions_endpoint_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are loaded only once.
    Call get_settings.cache_clear() in tests after changing the environment.
    """
    return Settings()
