"""
Escalation Scheduler

Starts the delayed response check for occurrences that a subscription
expects a response to.
"""

import structlog

from notifications.behavior_alert.config import AlertConfig, get_alert_config
from notifications.behavior_alert.matcher import any_escalation_eligible
from notifications.behavior_alert.models import MatchedSubscription
from notifications.shared.exceptions import SchedulingError
from notifications.shared.models.dynamo import Student
from notifications.shared.models.events import BehaviorEvent, EscalationState
from notifications.shared.tools import stepfunctions

log = structlog.get_logger()


def build_escalation_state(event: BehaviorEvent, is_duration: bool) -> EscalationState:
    return EscalationState(
        student_id=event.student_id,
        behavior_id=event.behavior_id,
        event_time=event.event_time,
        source=event.source,
        day_parity=event.day_parity,
        week_parity=event.week_parity,
        is_duration=is_duration,
    )


def schedule_escalation(
    event: BehaviorEvent,
    student: Student,
    matches: list[MatchedSubscription],
    config: AlertConfig | None = None,
) -> bool:
    """
    Schedule one response check for the event when any match awaits a response.

    Only behaviors (not responses) defined on the student are escalated.
    Scheduling failures are logged and never fail the notify pass.

    Returns:
        True if a new check was started
    """
    config = config or get_alert_config()

    if not any_escalation_eligible(matches):
        return False

    behavior = next((b for b in student.behaviors if b.id == event.behavior_id), None)
    if behavior is None:
        log.info(
            "escalation_skipped_unknown_behavior",
            student_id=event.student_id,
            behavior_id=event.behavior_id,
        )
        return False

    state = build_escalation_state(event, behavior.is_duration)

    try:
        execution_arn = stepfunctions.schedule_delayed_invocation(
            state, config.escalation_delay_seconds
        )
    except SchedulingError as e:
        log.error("escalation_scheduling_failed", error=str(e), **e.context)
        return False

    return execution_arn is not None
