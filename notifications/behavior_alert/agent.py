"""
Behavior Alert

Event handler for tracked behavior events ('track-event').
Alerts every subscription interested in the behavior.

This pass:
1. Skips events older than the live window
2. Loads the student's subscriptions and configuration
3. Matches subscriptions on the tracked behavior
4. Per subscription: evaluates duration state, composes messages and
   dispatches them over push, email, SMS and in-app records
5. Schedules the delayed response check when a match awaits a response
6. Exits immediately
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import structlog

from notifications.behavior_alert.composer import compose_messages
from notifications.behavior_alert.config import AlertConfig, get_alert_config
from notifications.behavior_alert.dispatcher import ChannelDispatcher
from notifications.behavior_alert.duration import evaluate_started
from notifications.behavior_alert.matcher import match_subscriptions
from notifications.behavior_alert.models import DispatchResult, NotifyResult
from notifications.behavior_alert.scheduler import schedule_escalation
from notifications.behavior_alert.source_names import resolve_source_name
from notifications.shared.exceptions import NotificationError
from notifications.shared.models.dynamo import Student, SubscriptionGroup
from notifications.shared.models.events import (
    BehaviorEvent,
    NotificationRequest,
    parse_event,
)
from notifications.shared.tools import dynamodb

log = structlog.get_logger()


class BehaviorAlertError(NotificationError):
    """Error during a notify pass."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message, **context)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_notification_request(event: BehaviorEvent) -> NotificationRequest:
    if isinstance(event, NotificationRequest):
        return event
    return NotificationRequest(
        student_id=event.student_id,
        behavior_id=event.behavior_id,
        event_time=event.event_time,
        source=event.source,
        day_parity=event.day_parity,
        week_parity=event.week_parity,
        is_duration=event.is_duration,
    )


class Notifier:
    """
    Sends the alerts for one tracked occurrence.

    The response check reuses process_subscription to re-alert
    subscriptions that are still waiting on a response.
    """

    def __init__(
        self,
        dispatcher: ChannelDispatcher | None = None,
        config: AlertConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config or get_alert_config()
        self.dispatcher = dispatcher or ChannelDispatcher(self.config)
        self.clock = clock

    def notify(self, event: BehaviorEvent) -> NotifyResult:
        """
        Run the notify pass for a behavior event.

        Returns:
            NotifyResult with one DispatchResult per matched subscription

        Raises:
            DynamoDBError: If the student or subscriptions cannot be loaded
        """
        result = NotifyResult(student_id=event.student_id, behavior_id=event.behavior_id)

        age = self.clock() - event.event_time
        if age >= timedelta(minutes=self.config.live_window_minutes):
            log.info(
                "alert_skipped_stale_event",
                student_id=event.student_id,
                behavior_id=event.behavior_id,
                event_time=event.event_time.isoformat(),
                age_minutes=int(age.total_seconds() // 60),
            )
            result.skipped_reason = "stale_event"
            return result

        with ThreadPoolExecutor(max_workers=2) as pool:
            subscriptions_future = pool.submit(dynamodb.get_subscriptions, event.student_id)
            student_future = pool.submit(dynamodb.get_student, event.student_id)
            subscriptions = subscriptions_future.result()
            student = student_future.result()

        if student is None:
            log.warning("alert_skipped_unknown_student", student_id=event.student_id)
            result.skipped_reason = "student_not_found"
            return result

        matches = match_subscriptions(event.behavior_id, subscriptions)
        log.info(
            "subscriptions_matched",
            student_id=event.student_id,
            behavior_id=event.behavior_id,
            matched=len(matches),
            total=len(subscriptions),
        )

        request = to_notification_request(event)

        if matches:
            workers = min(len(matches), self.config.max_dispatch_workers)
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {
                    pool.submit(self.process_subscription, m.subscription, student, request): m
                    for m in matches
                }
                for future, match in futures.items():
                    try:
                        dispatch = future.result()
                    except Exception as e:
                        log.error(
                            "subscription_alert_failed",
                            student_id=event.student_id,
                            behavior_id=event.behavior_id,
                            subscription=match.subscription.key,
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                        dispatch = DispatchResult(subscription_key=match.subscription.key, error=str(e))
                    result.dispatches.append(dispatch)

        result.escalation_scheduled = schedule_escalation(event, student, matches, self.config)

        log.info(
            "notify_pass_completed",
            student_id=event.student_id,
            behavior_id=event.behavior_id,
            matched=result.matched,
            failed=sum(1 for d in result.dispatches if not d.succeeded),
            escalation_scheduled=result.escalation_scheduled,
        )

        return result

    def process_subscription(
        self,
        subscription: SubscriptionGroup,
        student: Student,
        request: NotificationRequest,
    ) -> DispatchResult:
        """Compose and dispatch the alert of one subscription."""
        behavior = student.find_behavior(request.behavior_id)
        started = evaluate_started(behavior, request.day_parity, request.week_parity)

        messages = compose_messages(
            subscription.messages,
            student,
            behavior.name if behavior else None,
            lambda: resolve_source_name(request.source),
        )

        return self.dispatcher.dispatch(subscription, student, request, messages, started)


def handle_behavior_tracked(
    detail_type: str,
    detail: dict[str, Any],
    notifier: Notifier | None = None,
) -> NotifyResult:
    """
    Handle a 'track-event' event.

    This is the main entry point for behavior alerts.

    Args:
        detail_type: EventBridge detail-type (should be "track-event")
        detail: Event detail payload
        notifier: Notifier to use (default: a new one)

    Returns:
        NotifyResult with summary of actions taken

    Raises:
        BehaviorAlertError: If the event is not a behavior event
        ValidationError: If event payload is invalid
    """
    log.info("behavior_alert_invoked", detail_type=detail_type)

    event = parse_event(detail_type, detail)
    if type(event) is not BehaviorEvent:
        raise BehaviorAlertError(
            f"Unexpected event type: {detail_type}",
            student_id=detail.get("studentId", "unknown"),
        )

    return (notifier or Notifier()).notify(event)
