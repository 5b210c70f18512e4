"""
DynamoDB Tools

Data-access functions the notification engine uses against the
BehaviorTracking table. Key layout is documented in
notifications/shared/models/dynamo.py.
"""

from datetime import datetime
from typing import Any

import boto3
from botocore.exceptions import ClientError
import structlog

from notifications.shared.config import get_settings
from notifications.shared.exceptions import DynamoDBError
from notifications.shared.models.dynamo import (
    BehaviorOccurrence,
    PushEndpoint,
    Student,
    StudentSubscriptions,
    SubscriptionGroup,
    TeamMember,
    UserStudentNotification,
    UserStudentSummary,
    data_sk,
    student_pk,
    user_pk,
)
from notifications.shared.models.events import to_epoch_ms

log = structlog.get_logger()


def _get_table():
    """Get DynamoDB table resource."""
    settings = get_settings()
    dynamodb = boto3.resource("dynamodb", **settings.dynamodb_config)
    return dynamodb.Table(settings.dynamodb_table_name)


def _get_item(key: dict[str, str], *, operation_context: dict[str, Any]) -> dict[str, Any] | None:
    settings = get_settings()
    table = _get_table()

    try:
        response = table.get_item(Key=key)
    except ClientError as e:
        log.error("dynamodb_get_failed", error=str(e), **operation_context)
        raise DynamoDBError(
            operation="get",
            table_name=settings.dynamodb_table_name,
            error_message=str(e),
        ) from e

    return response.get("Item")


def _query_all(query_params: dict[str, Any], *, operation_context: dict[str, Any]) -> list[dict[str, Any]]:
    settings = get_settings()
    table = _get_table()

    try:
        response = table.query(**query_params)
        items = response.get("Items", [])

        while "LastEvaluatedKey" in response:
            query_params["ExclusiveStartKey"] = response["LastEvaluatedKey"]
            response = table.query(**query_params)
            items.extend(response.get("Items", []))

        return items

    except ClientError as e:
        log.error("dynamodb_query_failed", error=str(e), **operation_context)
        raise DynamoDBError(
            operation="query",
            table_name=settings.dynamodb_table_name,
            error_message=str(e),
        ) from e


# =====================================================
# Student configuration
# =====================================================


def get_student(student_id: str) -> Student | None:
    """
    Load a student's configuration.

    Args:
        student_id: Student identifier

    Returns:
        Student if found, None otherwise

    Raises:
        DynamoDBError: On DynamoDB operation failure
    """
    log.debug("loading_student", student_id=student_id)

    item = _get_item(
        {"PK": student_pk(student_id), "SK": "CONFIG"},
        operation_context={"student_id": student_id},
    )
    if not item:
        log.debug("student_not_found", student_id=student_id)
        return None

    return Student.from_dynamodb(item)


def get_subscriptions(student_id: str) -> list[SubscriptionGroup]:
    """
    Load a student's notification subscription groups.

    A student without a subscription record has no subscriptions.

    Raises:
        DynamoDBError: On DynamoDB operation failure
    """
    item = _get_item(
        {"PK": student_pk(student_id), "SK": "SUBSCRIPTIONS"},
        operation_context={"student_id": student_id},
    )
    if not item:
        log.debug("no_subscriptions", student_id=student_id)
        return []

    subscriptions = StudentSubscriptions.from_dynamodb(item)
    return list(subscriptions.notifications)


def get_day_report(
    student_id: str,
    day_start: datetime,
    day_end: datetime,
) -> list[BehaviorOccurrence]:
    """
    Load every tracked occurrence for a student between two instants.

    Both bounds are inclusive. Results are ordered by timestamp.

    Args:
        student_id: Student identifier
        day_start: Window start (timezone-aware)
        day_end: Window end (timezone-aware)

    Returns:
        Occurrences in the window, deleted ones included

    Raises:
        DynamoDBError: On DynamoDB operation failure
    """
    start_ms = to_epoch_ms(day_start)
    end_ms = to_epoch_ms(day_end)

    log.debug(
        "loading_day_report",
        student_id=student_id,
        start=start_ms,
        end=end_ms,
    )

    items = _query_all(
        {
            "KeyConditionExpression": "PK = :pk AND SK BETWEEN :start AND :end",
            "ExpressionAttributeValues": {
                ":pk": student_pk(student_id),
                ":start": data_sk(start_ms),
                # Bare bound for end+1 sorts before every "DATA#<end+1>#..." key
                ":end": data_sk(end_ms + 1),
            },
            "ScanIndexForward": True,
        },
        operation_context={"student_id": student_id},
    )

    return [BehaviorOccurrence.from_dynamodb(item) for item in items]


def get_team(student_id: str) -> list[TeamMember]:
    """
    Load the team members of a student with their access restrictions.

    Raises:
        DynamoDBError: On DynamoDB operation failure
    """
    items = _query_all(
        {
            "KeyConditionExpression": "PK = :pk AND begins_with(SK, :prefix)",
            "ExpressionAttributeValues": {
                ":pk": student_pk(student_id),
                ":prefix": "TEAM#",
            },
        },
        operation_context={"student_id": student_id},
    )

    return [TeamMember.from_dynamodb(item) for item in items]


# =====================================================
# User records
# =====================================================


def get_user_summary(user_id: str) -> list[UserStudentSummary] | None:
    """
    Load a user's per-student summary list.

    Returns:
        Summary entries, or None when the user has no summary record
    """
    item = _get_item(
        {"PK": user_pk(user_id), "SK": "SUMMARY"},
        operation_context={"user_id": user_id},
    )
    if item is None:
        return None
    return [UserStudentSummary.model_validate(e) for e in item.get("events", [])]


def _update_summary(
    user_id: str,
    update_expression: str,
    expr_names: dict[str, str],
    expr_values: dict[str, Any] | None = None,
    *,
    condition: str | None = None,
) -> None:
    settings = get_settings()
    table = _get_table()

    params: dict[str, Any] = {
        "Key": {"PK": user_pk(user_id), "SK": "SUMMARY"},
        "UpdateExpression": update_expression,
        "ExpressionAttributeNames": expr_names,
    }
    if expr_values:
        params["ExpressionAttributeValues"] = expr_values
    if condition:
        params["ConditionExpression"] = condition

    try:
        table.update_item(**params)
    except ClientError as e:
        log.error("dynamodb_update_failed", user_id=user_id, error=str(e))
        raise DynamoDBError(
            operation="update",
            table_name=settings.dynamodb_table_name,
            error_message=str(e),
        ) from e


def set_outstanding_alert(user_id: str, student_id: str, flag: bool) -> None:
    """
    Set the outstanding alert flag of a user for a student.

    Creates the summary entry when the user has none for the student.

    Raises:
        DynamoDBError: On DynamoDB operation failure
    """
    summary = get_user_summary(user_id) or []
    index = next(
        (i for i, entry in enumerate(summary) if entry.student_id == student_id),
        None,
    )

    log.info(
        "setting_outstanding_alert",
        user_id=user_id,
        student_id=student_id,
        flag=flag,
        existing_entry=index is not None,
    )

    if index is None:
        entry = UserStudentSummary(student_id=student_id, count=0, awaiting_response=flag)
        _update_summary(
            user_id,
            "SET #events = list_append(if_not_exists(#events, :empty), :val)",
            {"#events": "events"},
            {":val": [entry.to_dynamodb()], ":empty": []},
        )
    else:
        _update_summary(
            user_id,
            f"SET #events[{index}].#awaiting = :val",
            {"#events": "events", "#awaiting": "awaitingResponse"},
            {":val": flag},
        )


def update_user_summary_entry(
    user_id: str,
    entry: UserStudentSummary | None,
    index: int | None,
) -> None:
    """
    Write one entry of a user's summary list.

    entry=None removes the entry at index; index=None appends entry.
    """
    if entry is None:
        if index is None:
            raise ValueError("index is required to remove a summary entry")
        _update_summary(user_id, f"REMOVE #events[{index}]", {"#events": "events"})
    elif index is None:
        _update_summary(
            user_id,
            "SET #events = list_append(if_not_exists(#events, :empty), :val)",
            {"#events": "events"},
            {":val": [entry.to_dynamodb()], ":empty": []},
        )
    else:
        _update_summary(
            user_id,
            f"SET #events[{index}] = :val",
            {"#events": "events"},
            {":val": entry.to_dynamodb()},
        )


def record_user_notification(notification: UserStudentNotification) -> None:
    """
    Persist an in-app notification record.

    Writes are keyed by user, student, type and date, so repeating the
    same notification overwrites the same item.

    Raises:
        DynamoDBError: On DynamoDB operation failure
    """
    settings = get_settings()
    table = _get_table()

    log.info(
        "recording_user_notification",
        user_id=notification.user_id,
        student_id=notification.student_id,
        type=notification.details.type.value,
    )

    try:
        table.put_item(Item=notification.to_dynamodb())
    except ClientError as e:
        log.error(
            "dynamodb_put_failed",
            user_id=notification.user_id,
            student_id=notification.student_id,
            error=str(e),
        )
        raise DynamoDBError(
            operation="put",
            table_name=settings.dynamodb_table_name,
            error_message=str(e),
        ) from e


def get_user_display_name(user_id: str) -> str | None:
    """Display name from a web user's PII record."""
    item = _get_item(
        {"PK": user_pk(user_id), "SK": "PII"},
        operation_context={"user_id": user_id},
    )
    if not item:
        return None
    return item.get("details", {}).get("name")


# =====================================================
# Devices
# =====================================================


def get_push_endpoint(device_id: str) -> PushEndpoint | None:
    """
    Load the SNS push endpoint registered for an app install.

    Returns:
        PushEndpoint if one is on file, None otherwise
    """
    item = _get_item(
        {"PK": f"APP#{device_id}", "SK": "PUSH"},
        operation_context={"device_id": device_id},
    )
    if not item:
        return None
    return PushEndpoint.model_validate({"deviceId": device_id, **item})


def get_device_name(device_id: str) -> str | None:
    """Configured name of a physical tracking device."""
    item = _get_item(
        {"PK": f"DEVICE#{device_id}", "SK": "CONFIG"},
        operation_context={"device_id": device_id},
    )
    if not item:
        return None
    return item.get("deviceName")
