"""
Lambda Handler Wrapper for the Response Check

AWS Lambda entry point invoked by the ensure-response state machine after
its wait. The resolved state is returned in the body so the state machine
can branch on needsResponse.
"""

from typing import Any

import structlog

from notifications.response_check.agent import handle_escalation_check

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
    AWS Lambda handler for the response check.

    Args:
        event: Escalation state (state machine input)
        context: Lambda context

    Returns:
        Dict with statusCode and the resolved state as body. On failure
        the input is echoed back with needsResponse false, ending the loop.
    """
    log.info(
        "response_check_lambda_invoked",
        student_id=event.get("studentId"),
        behavior_id=event.get("behaviorId"),
    )

    try:
        state = handle_escalation_check(event)

        log.info(
            "response_check_lambda_success",
            student_id=state.get("studentId"),
            behavior_id=state.get("behaviorId"),
            has_response=state.get("hasResponse"),
            has_timeout=state.get("hasTimeout"),
            needs_response=state.get("needsResponse"),
        )

        return {"statusCode": 200, "body": state}

    except Exception as e:
        log.error(
            "response_check_lambda_error",
            error=str(e),
            error_type=type(e).__name__,
        )

        return {
            "statusCode": 500,
            "body": {
                **event,
                "needsResponse": False,
                "error": str(e),
                "errorType": type(e).__name__,
            },
        }
