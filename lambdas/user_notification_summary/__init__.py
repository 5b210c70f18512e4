"""
UserNotificationSummary Lambda

Maintains the per-student notification counters shown to each user.

Components:
- handler: Lambda entry point for 'user-notification' change events
- counter: summary entry arithmetic
"""

from lambdas.user_notification_summary.counter import (
    SummaryAction,
    SummaryChange,
    compute_change,
)
from lambdas.user_notification_summary.handler import lambda_handler

__all__ = [
    "lambda_handler",
    "SummaryAction",
    "SummaryChange",
    "compute_change",
]
