"""
Response Check

Runs after the escalation delay for alerts that await a response.
Decides whether the response arrived, re-alerts the subscriptions still
waiting on one and keeps each user's outstanding alert flag current.
"""

from notifications.response_check.agent import (
    ResponseResolutionEngine,
    handle_escalation_check,
)
from notifications.response_check.models import (
    Resolution,
    ResolutionOverride,
    SubscriptionStatus,
)
from notifications.response_check.resolution import (
    build_user_status,
    classify_subscriptions,
    resolve_state,
)

__all__ = [
    # Agent
    "ResponseResolutionEngine",
    "handle_escalation_check",
    # Models
    "Resolution",
    "ResolutionOverride",
    "SubscriptionStatus",
    # Resolution
    "build_user_status",
    "classify_subscriptions",
    "resolve_state",
]
