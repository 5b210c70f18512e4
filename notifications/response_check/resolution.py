"""
Response Resolution

Pure evaluation of an escalation state against a student's tracked data:
which subscriptions got their response, which users still have an
outstanding alert, and whether the check timed out.
"""

from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from notifications.response_check.models import (
    Resolution,
    ResolutionOverride,
    SubscriptionStatus,
)
from notifications.shared.models.dynamo import BehaviorOccurrence, SubscriptionGroup
from notifications.shared.models.events import EscalationState


def day_window(event_time: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """First and last instant of the calendar day containing event_time in tz."""
    day = event_time.astimezone(tz).date()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz) - timedelta(milliseconds=1)
    return start, end


def find_trigger(
    report: list[BehaviorOccurrence],
    epoch_ms: int,
    behavior_id: str,
) -> BehaviorOccurrence | None:
    return next(
        (o for o in report if o.date_epoch == epoch_ms and o.behavior == behavior_id),
        None,
    )


def earliest_response(
    report: list[BehaviorOccurrence],
    after_ms: int,
    response_ids: list[str],
) -> BehaviorOccurrence | None:
    """Earliest live occurrence strictly after after_ms whose behavior is a response."""
    candidates = [
        o for o in report
        if o.date_epoch > after_ms and o.behavior in response_ids and not o.deleted
    ]
    return min(candidates, key=lambda o: o.date_epoch, default=None)


def classify_subscriptions(
    subscriptions: list[SubscriptionGroup],
    behavior_id: str,
    report: list[BehaviorOccurrence],
    trigger_ms: int,
) -> list[SubscriptionStatus]:
    return [
        SubscriptionStatus(
            subscription=s,
            response=earliest_response(report, trigger_ms, s.response_ids),
        )
        for s in subscriptions
        if s.watches(behavior_id)
    ]


def build_user_status(statuses: list[SubscriptionStatus]) -> dict[str, bool]:
    """
    Outstanding alert flag per user across subscriptions.

    A user on any unresolved subscription is flagged; a resolved
    subscription never clears a flag set by another one.
    """
    user_status: dict[str, bool] = {}
    for status in statuses:
        for user_id in status.subscription.user_ids:
            if not status.resolved:
                user_status[user_id] = True
            else:
                user_status.setdefault(user_id, False)
    return user_status


def has_timed_out(event_time: datetime, now: datetime, window: timedelta) -> bool:
    return now - event_time >= window


def same_day_count(
    report: list[BehaviorOccurrence],
    behavior_id: str,
    event_time: datetime,
    tz: ZoneInfo,
) -> int:
    """Live occurrences of a behavior on the event's calendar day in tz."""
    day = event_time.astimezone(tz).date()
    return sum(
        1 for o in report
        if o.behavior == behavior_id
        and not o.deleted
        and datetime.fromtimestamp(o.date_epoch / 1000, tz).date() == day
    )


def resolve_state(
    state: EscalationState,
    subscriptions: list[SubscriptionGroup],
    report: list[BehaviorOccurrence],
    now: datetime,
    window: timedelta,
    tz: ZoneInfo,
) -> Resolution:
    """
    Evaluate an escalation state.

    Overrides, first match wins:
    1. The trigger occurrence is gone or deleted.
    2. A duration behavior has an even number of occurrences that day,
       so it has stopped.
    Either one resolves every subscription. Otherwise a response is still
    needed while some subscription is unresolved and the window is open.
    """
    trigger_ms = state.event_epoch_ms
    statuses = classify_subscriptions(subscriptions, state.behavior_id, report, trigger_ms)
    has_response = all(s.resolved for s in statuses)
    has_timeout = False if state.skip_timeout else has_timed_out(state.event_time, now, window)

    override = None
    trigger = find_trigger(report, trigger_ms, state.behavior_id)
    if trigger is None or trigger.deleted:
        override = ResolutionOverride.TRIGGER_REMOVED
    elif state.is_duration and same_day_count(report, state.behavior_id, state.event_time, tz) % 2 == 0:
        override = ResolutionOverride.DURATION_STOPPED

    if override is not None:
        statuses = [s.model_copy(update={"forced": True}) for s in statuses]
        has_response = True
        needs_response = False
    else:
        needs_response = not has_response and not has_timeout

    return Resolution(
        has_response=has_response,
        has_timeout=has_timeout,
        needs_response=needs_response,
        override=override,
        statuses=statuses,
        user_status=build_user_status(statuses),
    )
