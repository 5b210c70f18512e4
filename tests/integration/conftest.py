"""
Integration test fixtures and configuration.

Integration tests run the notify pass and the response check against
moto-mocked DynamoDB, S3, SES, SNS and Step Functions.
"""

import json
from typing import Any, Dict, List

import pytest

from notifications.behavior_alert.config import AlertConfig
from notifications.shared.models.dynamo import BehaviorOccurrence


@pytest.fixture
def alert_config() -> AlertConfig:
    return AlertConfig()


@pytest.fixture
def seeded_table(
    mock_aws_all,
    student_item: Dict[str, Any],
    subscriptions_item: Dict[str, Any],
    student_id: str,
    behavior_id: str,
    trigger_epoch_ms: int,
):
    """
    Table holding a student, its subscriptions, a team member and the
    tracked trigger occurrence.
    """
    table = mock_aws_all["table"]
    table.put_item(Item=student_item)
    table.put_item(Item=subscriptions_item)
    table.put_item(Item={"PK": f"STUDENT#{student_id}", "SK": "TEAM#u1", "userId": "u1"})
    table.put_item(
        Item=BehaviorOccurrence(date_epoch=trigger_epoch_ms, behavior=behavior_id).to_dynamodb(student_id)
    )
    yield table


@pytest.fixture
def track(seeded_table, student_id: str):
    """Write an occurrence to the student's tracked data."""

    def _track(epoch_ms: int, behavior: str, deleted: bool = False) -> None:
        occurrence = BehaviorOccurrence(date_epoch=epoch_ms, behavior=behavior, deleted=deleted)
        seeded_table.put_item(Item=occurrence.to_dynamodb(student_id))

    return _track


@pytest.fixture
def executions(mock_aws_all):
    """Started response-check executions with their parsed input."""

    def _executions() -> List[Dict[str, Any]]:
        sfn = mock_aws_all["stepfunctions"]
        machine_arn = sfn.list_state_machines()["stateMachines"][0]["stateMachineArn"]
        result = []
        for execution in sfn.list_executions(stateMachineArn=machine_arn)["executions"]:
            described = sfn.describe_execution(executionArn=execution["executionArn"])
            result.append({"name": execution["name"], "input": json.loads(described["input"])})
        return result

    return _executions


@pytest.fixture
def emails_sent(mock_aws_all):
    """Number of emails SES accepted so far."""

    def _emails_sent() -> int:
        return int(mock_aws_all["ses"].get_send_quota()["SentLast24Hours"])

    return _emails_sent
