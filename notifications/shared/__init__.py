# Shared Infrastructure for the Notification Engine
"""
Shared infrastructure components for the notify pass and the response check.

This package provides:
- Pydantic models for events and DynamoDB items
- Tool implementations for DynamoDB, SES, SNS, S3, Step Functions, AppSync
- Configuration management
- Custom exceptions
"""

from notifications.shared.exceptions import (
    NotificationError,
    StudentNotFoundError,
    DynamoDBError,
    SESError,
    S3Error,
    TemplateFetchError,
    PushDeliveryError,
    SchedulingError,
    SourceLookupError,
    AppSyncError,
)
from notifications.shared.config import Settings, get_settings

__all__ = [
    # Exceptions
    "NotificationError",
    "StudentNotFoundError",
    "DynamoDBError",
    "SESError",
    "S3Error",
    "TemplateFetchError",
    "PushDeliveryError",
    "SchedulingError",
    "SourceLookupError",
    "AppSyncError",
    # Config
    "Settings",
    "get_settings",
]
