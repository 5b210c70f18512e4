# Shared Tools
"""
Thin AWS tool modules used by the notification engine.

Each module builds its boto3 client from get_settings() and wraps
ClientError in a NotificationError subclass.
"""

from notifications.shared.tools.dynamodb import (
    get_student,
    get_subscriptions,
    get_day_report,
    get_team,
    set_outstanding_alert,
    record_user_notification,
    get_push_endpoint,
)
from notifications.shared.tools.email import send_html_email
from notifications.shared.tools.sms import send_text_messages
from notifications.shared.tools.push import send_push
from notifications.shared.tools.s3 import fetch_template
from notifications.shared.tools.stepfunctions import schedule_delayed_invocation

__all__ = [
    # DynamoDB tools
    "get_student",
    "get_subscriptions",
    "get_day_report",
    "get_team",
    "set_outstanding_alert",
    "record_user_notification",
    "get_push_endpoint",
    # Delivery tools
    "send_html_email",
    "send_text_messages",
    "send_push",
    # Template store
    "fetch_template",
    # Scheduling
    "schedule_delayed_invocation",
]
