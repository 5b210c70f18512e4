"""
Step Functions Tools

Durable delayed invocation of the response check. The state machine waits
`delay_seconds` and then runs the response check with the escalation state.
"""

import hashlib
import json

import boto3
from botocore.exceptions import ClientError
import structlog

from notifications.shared.config import get_settings
from notifications.shared.exceptions import SchedulingError
from notifications.shared.models.events import EscalationState

log = structlog.get_logger()


def _get_client():
    """Get Step Functions client."""
    settings = get_settings()
    return boto3.client("stepfunctions", **settings.stepfunctions_config)


def execution_name(state: EscalationState) -> str:
    """
    Deterministic execution name for one tracked occurrence.

    Step Functions rejects a second execution with the same name, which
    keeps a redelivered event from scheduling two checks.
    """
    digest = hashlib.sha256(
        f"{state.student_id}|{state.behavior_id}".encode("utf-8")
    ).hexdigest()
    return f"ensure-response-{state.event_epoch_ms}-{digest[:32]}"


def schedule_delayed_invocation(state: EscalationState, delay_seconds: int) -> str | None:
    """
    Start the response-check state machine for an escalation state.

    Args:
        state: Escalation state handed to the response check
        delay_seconds: Wait before the check runs

    Returns:
        Execution ARN, or None when this occurrence was already scheduled

    Raises:
        SchedulingError: If no state machine is configured or the start fails
    """
    settings = get_settings()
    state_machine_arn = settings.ensure_response_state_machine_arn

    if not state_machine_arn:
        raise SchedulingError(
            student_id=state.student_id,
            behavior_id=state.behavior_id,
            error_message="no state machine configured",
        )

    client = _get_client()
    name = execution_name(state)
    payload = {**state.to_eventbridge_detail(), "delaySeconds": delay_seconds}

    log.info(
        "scheduling_response_check",
        student_id=state.student_id,
        behavior_id=state.behavior_id,
        execution_name=name,
        delay_seconds=delay_seconds,
    )

    try:
        response = client.start_execution(
            stateMachineArn=state_machine_arn,
            name=name,
            input=json.dumps(payload),
        )
    except ClientError as e:
        error_code = e.response["Error"]["Code"]

        if error_code == "ExecutionAlreadyExists":
            log.info(
                "response_check_already_scheduled",
                student_id=state.student_id,
                behavior_id=state.behavior_id,
                execution_name=name,
            )
            return None

        raise SchedulingError(
            student_id=state.student_id,
            behavior_id=state.behavior_id,
            error_message=f"{error_code}: {e.response['Error']['Message']}",
        ) from e

    execution_arn = response["executionArn"]
    log.info("response_check_scheduled", execution_arn=execution_arn)
    return execution_arn
