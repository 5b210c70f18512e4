"""
Response Check

Delayed re-check of an alert that awaits a response ('ensure-response').

This pass:
1. Loads the student's tracked data for the trigger's day and the subscriptions
2. Classifies each matched subscription as resolved or not
3. Applies the timeout and override rules
4. Re-alerts unresolved subscriptions (without new in-app records)
5. Sets the outstanding alert flag of each eligible team member
6. Returns the escalation state with has_response/has_timeout/needs_response
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import structlog

from notifications.behavior_alert.agent import Notifier
from notifications.behavior_alert.config import AlertConfig, get_alert_config
from notifications.response_check.models import Resolution
from notifications.response_check.resolution import day_window, resolve_state
from notifications.shared.models.dynamo import TeamMember
from notifications.shared.models.events import EscalationState
from notifications.shared.tools import dynamodb

log = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def flag_eligible(member: TeamMember | None, user_id: str, behavior_id: str) -> bool:
    """Whether a user may carry an outstanding alert flag for the behavior."""
    if member is None:
        return False
    if "@" in user_id:
        return False
    return member.restrictions.allows_behavior(behavior_id)


class ResponseResolutionEngine:
    """
    Resolves escalation states and re-alerts what is still unanswered.

    The Notifier is injected so tests and callers control re-alerting.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        config: AlertConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config or get_alert_config()
        self.notifier = notifier or Notifier(config=self.config)
        self.clock = clock

    def resolve(self, state: EscalationState) -> EscalationState:
        """
        Run the response check for one escalation state.

        Returns:
            The state with has_response, has_timeout and needs_response set

        Raises:
            DynamoDBError: If the report or subscriptions cannot be loaded
        """
        tz = self.config.tz
        day_start, day_end = day_window(state.event_time, tz)

        log.info(
            "response_check_started",
            student_id=state.student_id,
            behavior_id=state.behavior_id,
            event_time=state.event_time.isoformat(),
        )

        with ThreadPoolExecutor(max_workers=2) as pool:
            report_future = pool.submit(
                dynamodb.get_day_report, state.student_id, day_start, day_end
            )
            subscriptions_future = pool.submit(dynamodb.get_subscriptions, state.student_id)
            report = report_future.result()
            subscriptions = subscriptions_future.result()

        resolution = resolve_state(
            state,
            subscriptions,
            report,
            now=self.clock(),
            window=timedelta(minutes=self.config.live_window_minutes),
            tz=tz,
        )

        log.info(
            "response_check_resolved",
            student_id=state.student_id,
            behavior_id=state.behavior_id,
            has_response=resolution.has_response,
            has_timeout=resolution.has_timeout,
            needs_response=resolution.needs_response,
            override=resolution.override.value if resolution.override else None,
            unresolved=[s.subscription.key for s in resolution.unresolved],
        )

        self.renotify(state, resolution)
        self.update_flags(state, resolution)

        return state.model_copy(
            update={
                "has_response": resolution.has_response,
                "has_timeout": resolution.has_timeout,
                "needs_response": resolution.needs_response,
            }
        )

    def renotify(self, state: EscalationState, resolution: Resolution) -> None:
        unresolved = resolution.unresolved
        if not unresolved:
            return

        student = dynamodb.get_student(state.student_id)
        if student is None:
            log.warning("renotify_skipped_unknown_student", student_id=state.student_id)
            return

        request = state.to_notification_request()
        workers = min(len(unresolved), self.config.max_dispatch_workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(self.notifier.process_subscription, s.subscription, student, request): s
                for s in unresolved
            }
            for future, status in futures.items():
                try:
                    dispatch = future.result()
                except Exception as e:
                    log.error(
                        "renotify_failed",
                        student_id=state.student_id,
                        subscription=status.subscription.key,
                        error=str(e),
                    )
                    continue
                log.info(
                    "subscription_renotified",
                    student_id=state.student_id,
                    subscription=status.subscription.key,
                    succeeded=dispatch.succeeded,
                )

    def update_flags(self, state: EscalationState, resolution: Resolution) -> None:
        """Persist the outstanding alert flag for each eligible team member, once per user."""
        user_ids = list(dict.fromkeys(
            user_id
            for status in resolution.statuses
            if status.subscription.escalation_eligible
            for user_id in status.subscription.user_ids
        ))
        if not user_ids:
            return

        team = {m.user_id: m for m in dynamodb.get_team(state.student_id)}

        def update(user_id: str) -> None:
            if not flag_eligible(team.get(user_id), user_id, state.behavior_id):
                log.debug("flag_skipped_no_access", user_id=user_id, student_id=state.student_id)
                return
            flag = resolution.user_status.get(user_id, False)
            try:
                dynamodb.set_outstanding_alert(user_id, state.student_id, flag)
            except Exception as e:
                log.error(
                    "flag_update_failed",
                    user_id=user_id,
                    student_id=state.student_id,
                    error=str(e),
                )

        workers = min(len(user_ids), self.config.max_dispatch_workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            list(pool.map(update, user_ids))


def handle_escalation_check(
    payload: dict[str, Any],
    engine: ResponseResolutionEngine | None = None,
) -> dict[str, Any]:
    """
    Handle a response check invocation from the state machine.

    This is the main entry point for the response check.

    Args:
        payload: Escalation state (camelCase wire names); extra keys
            such as delaySeconds are ignored
        engine: Engine to use (default: a new one)

    Returns:
        The resolved state as a camelCase dict, for the state machine
        to branch on

    Raises:
        ValidationError: If the payload is invalid
    """
    log.info("response_check_invoked")

    state = EscalationState.model_validate(payload)
    resolved = (engine or ResponseResolutionEngine()).resolve(state)
    return resolved.to_eventbridge_detail()
