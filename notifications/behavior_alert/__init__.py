"""
Behavior Alert

Handles tracked behavior events and alerts interested subscriptions.

This package:
1. Matches subscriptions on the tracked behavior
2. Evaluates whether a duration behavior started or stopped
3. Composes per-channel messages from subscription templates
4. Dispatches push, email, SMS and in-app notifications
5. Schedules the delayed response check when a response is awaited
"""

from notifications.behavior_alert.agent import (
    BehaviorAlertError,
    Notifier,
    handle_behavior_tracked,
)
from notifications.behavior_alert.composer import compose_messages
from notifications.behavior_alert.config import AlertConfig, get_alert_config
from notifications.behavior_alert.dispatcher import ChannelDispatcher
from notifications.behavior_alert.duration import evaluate_started
from notifications.behavior_alert.matcher import match_subscriptions
from notifications.behavior_alert.models import (
    Channel,
    ComposedMessages,
    DispatchResult,
    MatchedSubscription,
    NotifyResult,
)
from notifications.behavior_alert.pattern import handle_pattern_changed
from notifications.behavior_alert.scheduler import schedule_escalation
from notifications.behavior_alert.source_names import (
    AppSourceNameResolver,
    LegacyDeviceSourceNameResolver,
    SourceNameResolver,
    WebSourceNameResolver,
    resolve_source_name,
)

__all__ = [
    # Agent
    "Notifier",
    "handle_behavior_tracked",
    "handle_pattern_changed",
    "BehaviorAlertError",
    # Config
    "AlertConfig",
    "get_alert_config",
    # Models
    "Channel",
    "ComposedMessages",
    "DispatchResult",
    "MatchedSubscription",
    "NotifyResult",
    # Components
    "match_subscriptions",
    "evaluate_started",
    "compose_messages",
    "ChannelDispatcher",
    "schedule_escalation",
    # Source names
    "SourceNameResolver",
    "AppSourceNameResolver",
    "LegacyDeviceSourceNameResolver",
    "WebSourceNameResolver",
    "resolve_source_name",
]
