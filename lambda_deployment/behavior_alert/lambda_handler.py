"""
Lambda Handler Wrapper for Behavior Alerts

This module provides the AWS Lambda entry point for the notify pass.
It wraps the behavior alert event handlers for Lambda execution.
"""

import json
from typing import Any

import structlog

from notifications.behavior_alert.agent import handle_behavior_tracked
from notifications.behavior_alert.pattern import handle_pattern_changed

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


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    AWS Lambda handler for behavior alerts.

    Handles EventBridge events:
    - track-event: a tracked behavior occurrence
    - behavior-change: a behavior pattern change

    Failures are reported in the response, never raised, so the event is
    not retried.

    Args:
        event: EventBridge event (or direct invocation payload)
        context: Lambda context

    Returns:
        Dict with statusCode and body
    """
    detail_type = event.get("detail-type", "track-event")

    log.info(
        "behavior_alert_lambda_invoked",
        event_source=event.get("source"),
        detail_type=detail_type,
    )

    try:
        detail = event.get("detail", event)

        if detail_type == "behavior-change":
            pattern = handle_pattern_changed(detail_type, detail)
            body = {
                "success": True,
                "student_id": pattern.student_id,
                "behavior_id": pattern.behavior_id,
                "matched": pattern.matched,
            }
        else:
            result = handle_behavior_tracked(detail_type, detail)
            body = {
                "success": result.succeeded,
                "student_id": result.student_id,
                "behavior_id": result.behavior_id,
                "skipped_reason": result.skipped_reason,
                "matched": result.matched,
                "escalation_scheduled": result.escalation_scheduled,
                "errors": {
                    d.subscription_key: d.error or {c.value: msg for c, msg in d.errors.items()}
                    for d in result.dispatches
                    if not d.succeeded
                } or None,
            }

        log.info("behavior_alert_lambda_success", **{k: v for k, v in body.items() if k != "errors"})

        return {"statusCode": 200, "body": json.dumps(body)}

    except Exception as e:
        log.error(
            "behavior_alert_lambda_error",
            error=str(e),
            error_type=type(e).__name__,
        )

        return {
            "statusCode": 500,
            "body": json.dumps({
                "success": False,
                "error": str(e),
                "error_type": type(e).__name__,
            }),
        }
