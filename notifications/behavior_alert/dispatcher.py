"""
Channel Dispatcher

Fans one subscription's composed messages out to its recipients:
mobile push per app install, email, SMS and in-app notification records.

Branches run concurrently and fail independently. Push and SMS are best
effort; email and in-app failures are reported in the DispatchResult.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import structlog

from notifications.behavior_alert.composer import render
from notifications.behavior_alert.config import AlertConfig, get_alert_config
from notifications.behavior_alert.models import Channel, ComposedMessages, DispatchResult
from notifications.shared.config import get_settings
from notifications.shared.models.dynamo import (
    NotificationDetails,
    NotificationType,
    PushPlatform,
    Student,
    SubscriptionGroup,
    UserStudentNotification,
)
from notifications.shared.models.events import NotificationRequest
from notifications.shared.tools import dynamodb, email, push, s3, sms

log = structlog.get_logger()

STUDENT_NAME_PLACEHOLDER = "${student.name}"


def dedupe(values: list[str]) -> list[str]:
    """Drop repeated values, keeping first-seen order."""
    return list(dict.fromkeys(v for v in values if v))


def started_suffix(started: bool | None) -> str:
    if started is None:
        return ""
    return " has started" if started else " has stopped"


# =====================================================
# Push payloads
# =====================================================


def build_push_body(
    app_message: str | None,
    student: Student,
    behavior_id: str,
    started: bool | None,
) -> str:
    """
    Notification body for an app install.

    A custom message is used as-is; otherwise a response reads
    "<response> for <first name>" and anything else "Alert about <first name>".
    Students without any responses configured get the bare first name.
    """
    if app_message:
        body = app_message
    elif not student.responses:
        body = student.details.first_name
    else:
        response = student.find_response(behavior_id)
        if response is not None:
            body = f"{response.name} for {student.details.first_name}"
        else:
            body = f"Alert about {student.details.first_name}"
    return body + started_suffix(started)


def build_push_message(
    platform: PushPlatform,
    body: str,
    request: NotificationRequest,
    title: str,
) -> str:
    """SNS MessageStructure=json document for the endpoint's platform."""
    date = request.event_time.isoformat()

    if platform == PushPlatform.IOS:
        apns = json.dumps({
            "PRIORITY": 5,
            "default": body,
            "aps": {
                "alert": {"title": title, "body": body},
                "sound": "default",
            },
            "studentId": request.student_id,
            "behaviorId": request.behavior_id,
            "date": date,
        })
        return json.dumps({"default": body, "APNS": apns, "APNS_SANDBOX": apns})

    gcm = json.dumps({
        "notification": {"title": title, "body": body},
        "android": {"priority": "high"},
        "data": {"date": date},
        "priority": 10,
    })
    return json.dumps({"default": body, "GCM": gcm})


# =====================================================
# Dispatcher
# =====================================================


class ChannelDispatcher:
    """Delivers one subscription's messages over every channel it names."""

    def __init__(self, config: AlertConfig | None = None) -> None:
        self.config = config or get_alert_config()

    def dispatch(
        self,
        subscription: SubscriptionGroup,
        student: Student,
        request: NotificationRequest,
        messages: ComposedMessages,
        started: bool | None,
    ) -> DispatchResult:
        """
        Run the push, email, SMS and in-app branches concurrently.

        Returns:
            DispatchResult with per-branch counts and the failed branches
        """
        device_ids = dedupe(subscription.device_ids)
        emails = dedupe(subscription.emails)
        mobiles = dedupe(subscription.mobiles)
        user_ids = dedupe(subscription.user_ids)

        log.info(
            "dispatching_subscription",
            subscription=subscription.key,
            student_id=request.student_id,
            behavior_id=request.behavior_id,
            devices=len(device_ids),
            emails=len(emails),
            mobiles=len(mobiles),
            users=len(user_ids),
            started=started,
        )

        branches: dict[Channel, Callable[[], int]] = {
            Channel.APP: lambda: self.send_app_notifications(
                device_ids, messages.app, student, request, started
            ),
            Channel.EMAIL: lambda: self.send_emails(emails, student, messages.email, started),
            Channel.SMS: lambda: self.send_texts(mobiles, student, messages.text, started),
            Channel.IN_APP: lambda: self.record_notifications(user_ids, request, started),
        }

        result = DispatchResult(subscription_key=subscription.key)
        counts = {
            Channel.APP: "push_sent",
            Channel.EMAIL: "emails_sent",
            Channel.SMS: "texts_sent",
            Channel.IN_APP: "notifications_recorded",
        }

        with ThreadPoolExecutor(max_workers=min(len(branches), self.config.max_dispatch_workers)) as pool:
            futures = {pool.submit(fn): channel for channel, fn in branches.items()}
            for future, channel in futures.items():
                try:
                    setattr(result, counts[channel], future.result())
                except Exception as e:
                    log.error(
                        "dispatch_branch_failed",
                        channel=channel.value,
                        subscription=subscription.key,
                        student_id=request.student_id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    result.errors[channel] = str(e)

        return result

    def send_app_notifications(
        self,
        device_ids: list[str],
        app_message: str | None,
        student: Student,
        request: NotificationRequest,
        started: bool | None,
    ) -> int:
        sent = 0
        body = build_push_body(app_message, student, request.behavior_id, started)

        for device_id in device_ids:
            try:
                endpoint = dynamodb.get_push_endpoint(device_id)
                if endpoint is None or not endpoint.endpoint_arn:
                    log.debug("no_push_endpoint", device_id=device_id)
                    continue

                message = build_push_message(endpoint.os, body, request, self.config.push_title)
                push.send_push(endpoint.endpoint_arn, message)
                sent += 1
            except Exception as e:
                log.warning(
                    "push_notification_failed",
                    device_id=device_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        return sent

    def send_emails(
        self,
        emails: list[str],
        student: Student,
        email_message: str | None,
        started: bool | None,
    ) -> int:
        """
        Raises:
            TemplateFetchError: If the fallback template cannot be loaded
            SESError: If a send fails
        """
        if not emails:
            return 0

        body = email_message
        if not body:
            template = s3.fetch_template()
            body = template.replace(STUDENT_NAME_PLACEHOLDER, student.full_name)

        if started is None:
            kind = "occurred"
        else:
            kind = "started" if started else "stopped"
        subject = f"{self.config.email_subject_prefix} {kind}"

        return len(email.send_html_email(emails, subject, body))

    def send_texts(
        self,
        mobiles: list[str],
        student: Student,
        text_message: str | None,
        started: bool | None,
    ) -> int:
        if not mobiles:
            return 0
        return sms.send_text_messages(
            mobiles,
            self.build_text(student, text_message, started),
        )

    def build_text(self, student: Student, text_message: str | None, started: bool | None) -> str:
        text = text_message or render(
            self.config.default_sms_text,
            {
                "FirstName": student.details.first_name,
                "PortalUrl": get_settings().portal_url,
            },
        )
        if started is not None:
            text += "\nstarted" if started else "\nstopped"
        return text + self.config.sms_footer

    def record_notifications(
        self,
        user_ids: list[str],
        request: NotificationRequest,
        started: bool | None,
    ) -> int:
        """
        Raises:
            DynamoDBError: If a record cannot be written
        """
        if request.skip_add_behavior_notification:
            log.debug("in_app_notification_skipped", reason="re_notification")
            return 0
        if started is False:
            log.debug("in_app_notification_skipped", reason="duration_stopped")
            return 0

        for user_id in user_ids:
            dynamodb.record_user_notification(
                UserStudentNotification(
                    user_id=user_id,
                    student_id=request.student_id,
                    date=request.event_epoch_ms,
                    details=NotificationDetails(
                        type=NotificationType.BEHAVIOR,
                        behavior_id=request.behavior_id,
                        student_id=request.student_id,
                    ),
                )
            )
        return len(user_ids)
