"""
Custom Exceptions for the Behavior Notification Engine

All exceptions follow the pattern of specific, actionable errors
with context needed for debugging and logging.
"""

from dataclasses import dataclass
from typing import Any


class NotificationError(Exception):
    """Base exception for the behavior notification engine."""

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


@dataclass
class StudentNotFoundError(NotificationError):
    """Student configuration record not found in DynamoDB."""

    student_id: str

    def __init__(self, student_id: str) -> None:
        self.student_id = student_id
        super().__init__(
            f"Student '{student_id}' not found",
            student_id=student_id,
        )


@dataclass
class DynamoDBError(NotificationError):
    """DynamoDB operation failed."""

    operation: str  # "get", "put", "update", "query"
    table_name: str

    def __init__(
        self,
        operation: str,
        table_name: str,
        error_message: str | None = None,
    ) -> None:
        self.operation = operation
        self.table_name = table_name
        super().__init__(
            f"DynamoDB {operation} failed on table '{table_name}': {error_message or 'Unknown error'}",
            operation=operation,
            table_name=table_name,
            error_message=error_message,
        )


@dataclass
class SESError(NotificationError):
    """SES email operation failed."""

    operation: str  # "send"
    recipient: str | None = None

    def __init__(
        self,
        operation: str,
        recipient: str | None = None,
        error_message: str | None = None,
    ) -> None:
        self.operation = operation
        self.recipient = recipient
        super().__init__(
            f"SES {operation} failed{f' for {recipient}' if recipient else ''}: "
            f"{error_message or 'Unknown error'}",
            operation=operation,
            recipient=recipient,
            error_message=error_message,
        )


@dataclass
class S3Error(NotificationError):
    """S3 operation failed."""

    operation: str  # "download"
    bucket: str
    key: str | None = None

    def __init__(
        self,
        operation: str,
        bucket: str,
        key: str | None = None,
        error_message: str | None = None,
    ) -> None:
        self.operation = operation
        self.bucket = bucket
        self.key = key
        super().__init__(
            f"S3 {operation} failed for s3://{bucket}/{key or '*'}: "
            f"{error_message or 'Unknown error'}",
            operation=operation,
            bucket=bucket,
            key=key,
            error_message=error_message,
        )


@dataclass
class TemplateFetchError(S3Error):
    """Email template could not be loaded from the template store."""

    def __init__(
        self,
        bucket: str,
        key: str,
        error_message: str | None = None,
    ) -> None:
        super().__init__(
            operation="template_fetch",
            bucket=bucket,
            key=key,
            error_message=error_message,
        )


@dataclass
class PushDeliveryError(NotificationError):
    """SNS publish to a mobile push endpoint failed."""

    endpoint_arn: str

    def __init__(self, endpoint_arn: str, error_message: str | None = None) -> None:
        self.endpoint_arn = endpoint_arn
        super().__init__(
            f"Push delivery failed for '{endpoint_arn}': {error_message or 'Unknown error'}",
            endpoint_arn=endpoint_arn,
            error_message=error_message,
        )


@dataclass
class SchedulingError(NotificationError):
    """Failed to start the delayed response check."""

    student_id: str
    behavior_id: str

    def __init__(
        self,
        student_id: str,
        behavior_id: str,
        error_message: str | None = None,
    ) -> None:
        self.student_id = student_id
        self.behavior_id = behavior_id
        super().__init__(
            f"Could not schedule response check for behavior '{behavior_id}': "
            f"{error_message or 'Unknown error'}",
            student_id=student_id,
            behavior_id=behavior_id,
            error_message=error_message,
        )


@dataclass
class SourceLookupError(NotificationError):
    """Looking up the display name of whoever tracked an event failed."""

    device_kind: str
    rater_id: str

    def __init__(
        self,
        device_kind: str,
        rater_id: str,
        error_message: str | None = None,
    ) -> None:
        self.device_kind = device_kind
        self.rater_id = rater_id
        super().__init__(
            f"Source lookup failed for {device_kind} '{rater_id}': "
            f"{error_message or 'Unknown error'}",
            device_kind=device_kind,
            rater_id=rater_id,
            error_message=error_message,
        )


@dataclass
class AppSyncError(NotificationError):
    """AppSync GraphQL query failed or returned errors."""

    operation: str

    def __init__(self, operation: str, error_message: str | None = None) -> None:
        self.operation = operation
        super().__init__(
            f"AppSync {operation} failed: {error_message or 'Unknown error'}",
            operation=operation,
            error_message=error_message,
        )
