"""
Pattern Change Alert

Event handler for behavior pattern changes ('behavior-change') reported by
the pattern analysis pipeline. Alerts the first subscription that watches
the behavior with an in-app record per user, a default SMS and the
fallback alert email.
"""

from dataclasses import dataclass
from typing import Any

import structlog

from notifications.behavior_alert.agent import BehaviorAlertError
from notifications.behavior_alert.config import AlertConfig, get_alert_config
from notifications.behavior_alert.dispatcher import (
    STUDENT_NAME_PLACEHOLDER,
    ChannelDispatcher,
    dedupe,
)
from notifications.shared.exceptions import StudentNotFoundError
from notifications.shared.models.dynamo import (
    NotificationDetails,
    NotificationType,
    UserStudentNotification,
)
from notifications.shared.models.events import PatternChangedEvent, parse_event
from notifications.shared.tools import dynamodb, email, s3, sms

log = structlog.get_logger()


@dataclass
class PatternAlertResult:
    """Outcome of a pattern change alert."""

    student_id: str
    behavior_id: str
    subscription_key: str | None = None
    notifications_recorded: int = 0
    texts_sent: int = 0
    emails_sent: int = 0

    @property
    def matched(self) -> bool:
        return self.subscription_key is not None


def notify_pattern_change(
    event: PatternChangedEvent,
    config: AlertConfig | None = None,
) -> PatternAlertResult:
    """
    Alert the first subscription watching the changed behavior.

    Raises:
        StudentNotFoundError: If the student has no configuration
        DynamoDBError: On DynamoDB operation failure
        TemplateFetchError: If the email template cannot be loaded
        SESError: If an email send fails
    """
    config = config or get_alert_config()
    result = PatternAlertResult(student_id=event.student_id, behavior_id=event.behavior_id)

    subscriptions = dynamodb.get_subscriptions(event.student_id)
    subscription = next((s for s in subscriptions if s.watches(event.behavior_id)), None)
    if subscription is None:
        log.info(
            "pattern_change_no_subscription",
            student_id=event.student_id,
            behavior_id=event.behavior_id,
        )
        return result

    result.subscription_key = subscription.key

    for user_id in dedupe(subscription.user_ids):
        dynamodb.record_user_notification(
            UserStudentNotification(
                user_id=user_id,
                student_id=event.student_id,
                date=event.date_epoch,
                details=NotificationDetails(type=NotificationType.BEHAVIOR_CHANGE),
            )
        )
        result.notifications_recorded += 1

    student = dynamodb.get_student(event.student_id)
    if student is None:
        raise StudentNotFoundError(event.student_id)

    mobiles = dedupe(subscription.mobiles)
    if mobiles:
        text = ChannelDispatcher(config).build_text(student, None, None)
        result.texts_sent = sms.send_text_messages(mobiles, text)

    emails = dedupe(subscription.emails)
    if emails:
        template = s3.fetch_template()
        body = template.replace(STUDENT_NAME_PLACEHOLDER, student.full_name)
        result.emails_sent = len(
            email.send_html_email(emails, config.pattern_email_subject, body)
        )

    log.info(
        "pattern_change_alerted",
        student_id=event.student_id,
        behavior_id=event.behavior_id,
        subscription=result.subscription_key,
        notifications_recorded=result.notifications_recorded,
        texts_sent=result.texts_sent,
        emails_sent=result.emails_sent,
    )

    return result


def handle_pattern_changed(detail_type: str, detail: dict[str, Any]) -> PatternAlertResult:
    """
    Handle a 'behavior-change' event.

    Raises:
        BehaviorAlertError: If the event is not a pattern change
        ValidationError: If event payload is invalid
    """
    log.info("pattern_alert_invoked", detail_type=detail_type)

    event = parse_event(detail_type, detail)
    if not isinstance(event, PatternChangedEvent):
        raise BehaviorAlertError(
            f"Unexpected event type: {detail_type}",
            student_id=detail.get("studentId", "unknown"),
        )

    return notify_pattern_change(event)
