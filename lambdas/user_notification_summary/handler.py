"""
UserNotificationSummary Lambda Handler

Keeps each user's per-student notification count in step with the
user's in-app notification records.

Trigger: EventBridge 'user-notification' change event
         (detail.data.new / detail.data.old record images)
Output: USER#<user_id> / SUMMARY item update

Flow:
1. Take the user and student from the new image, else the old one
2. Load the user's summary list
3. Increment, decrement (floored at 0), append or remove the entry
4. Return summary of the change
"""

import time
from typing import Any

import structlog

from lambdas.user_notification_summary.counter import (
    SummaryAction,
    compute_change,
)
from notifications.shared.tools.dynamodb import (
    get_user_summary,
    update_user_summary_entry,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

log = structlog.get_logger()


def _response(status_code: int, message: str, **fields: Any) -> dict[str, Any]:
    return {"statusCode": status_code, "body": {"message": message, **fields}}


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Apply one notification record change to the user's summary.

    Args:
        event: EventBridge event with detail.data.new / detail.data.old
        context: Lambda context

    Returns:
        Processing result summary
    """
    start_time = time.time()

    data = (event.get("detail") or {}).get("data") or {}
    new_record = data.get("new") or {}
    old_record = data.get("old") or {}
    record = new_record or old_record

    user_id = record.get("userId")
    student_id = record.get("studentId")
    if not user_id or not student_id:
        log.info("summary_skipped_no_user")
        return _response(200, "No user on record")

    log.info("summary_update_started", user_id=user_id, student_id=student_id)

    try:
        summary = get_user_summary(user_id)
        if summary is None:
            log.info("summary_skipped_unknown_user", user_id=user_id)
            return _response(200, "No summary for user")

        change = compute_change(
            summary,
            student_id,
            inserted=bool(new_record.get("userId")),
            had_previous=bool(old_record.get("userId")),
        )

        if change.action == SummaryAction.REMOVE:
            update_user_summary_entry(user_id, None, change.index)
        elif change.action != SummaryAction.NONE:
            update_user_summary_entry(user_id, change.entry, change.index)

    except Exception as e:
        log.exception("summary_update_failed", user_id=user_id, error=str(e))
        return _response(500, "Summary update failed", error=str(e))

    log.info(
        "summary_update_completed",
        user_id=user_id,
        student_id=student_id,
        action=change.action.value,
        count=change.entry.count if change.entry else 0,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )

    return _response(200, "Summary updated", action=change.action.value)
