# Shared Models
"""
Pydantic models for events and DynamoDB items.
"""

from notifications.shared.models.events import (
    EventSource,
    BehaviorEvent,
    NotificationRequest,
    EscalationState,
    PatternChangedEvent,
    parse_event,
    to_epoch_ms,
)
from notifications.shared.models.dynamo import (
    AccessLevel,
    AccessRestrictions,
    BehaviorOccurrence,
    MessageTemplates,
    NotificationDetails,
    NotificationType,
    PushEndpoint,
    PushPlatform,
    Student,
    StudentBehavior,
    StudentDetails,
    StudentSubscriptions,
    SubscriptionGroup,
    TeamMember,
    UserStudentNotification,
    UserStudentSummary,
)

__all__ = [
    # Events
    "EventSource",
    "BehaviorEvent",
    "NotificationRequest",
    "EscalationState",
    "PatternChangedEvent",
    "parse_event",
    "to_epoch_ms",
    # DynamoDB
    "AccessLevel",
    "AccessRestrictions",
    "BehaviorOccurrence",
    "MessageTemplates",
    "NotificationDetails",
    "NotificationType",
    "PushEndpoint",
    "PushPlatform",
    "Student",
    "StudentBehavior",
    "StudentDetails",
    "StudentSubscriptions",
    "SubscriptionGroup",
    "TeamMember",
    "UserStudentNotification",
    "UserStudentSummary",
]
