"""
Pytest Configuration and Shared Fixtures

Provides moto AWS mocking, sample students, subscriptions and events.
"""

import os
from datetime import datetime, timezone
from typing import Any

import boto3
from botocore.exceptions import ClientError
import pytest
from moto import mock_aws

# Set test environment before importing application modules
os.environ["TRACKER_DYNAMODB_TABLE_NAME"] = "TestBehaviorTracking"
os.environ["TRACKER_TEMPLATE_BUCKET_NAME"] = "test-behavior-templates"
os.environ["TRACKER_TEMPLATE_KEY"] = "templates/behavior-alert.html"
os.environ["TRACKER_SES_FROM_ADDRESS"] = "alerts@example.com"
os.environ["TRACKER_ENSURE_RESPONSE_STATE_MACHINE_ARN"] = (
    "arn:aws:states:us-west-2:123456789012:stateMachine:test-ensure-response"
)
os.environ["TRACKER_AWS_REGION"] = "us-west-2"
os.environ["AWS_DEFAULT_REGION"] = "us-west-2"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

TABLE_NAME = "TestBehaviorTracking"
TEMPLATE_BUCKET = "test-behavior-templates"
TEMPLATE_KEY = "templates/behavior-alert.html"
TEMPLATE_BODY = "<html><body><p>New alert for ${student.name}</p></body></html>"


# --- Time Fixtures ---


@pytest.fixture
def trigger_time() -> datetime:
    """Fixed trigger time: 2020-01-01 17:15:00 in America/Los_Angeles."""
    return datetime(2020, 1, 2, 1, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def trigger_epoch_ms(trigger_time: datetime) -> int:
    return int(trigger_time.timestamp() * 1000)


# --- AWS Mocking Fixtures ---


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    return {
        "aws_access_key_id": "testing",
        "aws_secret_access_key": "testing",
        "region_name": "us-west-2",
    }


def _create_table(dynamodb):
    try:
        table = dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        table.meta.client.get_waiter("table_exists").wait(TableName=TABLE_NAME)
    except ClientError as exc:
        if exc.response.get("Error", {}).get("Code") != "ResourceInUseException":
            raise
        table = dynamodb.Table(TABLE_NAME)
    return table


@pytest.fixture
def mock_dynamodb(aws_credentials):
    """Create a mocked BehaviorTracking table."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", **aws_credentials)
        _create_table(dynamodb)
        yield dynamodb


@pytest.fixture
def table(mock_dynamodb):
    return mock_dynamodb.Table(TABLE_NAME)


@pytest.fixture
def mock_s3(aws_credentials):
    """Create a mocked template bucket holding the alert template."""
    with mock_aws():
        s3 = boto3.client("s3", **aws_credentials)
        s3.create_bucket(
            Bucket=TEMPLATE_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": "us-west-2"},
        )
        s3.put_object(Bucket=TEMPLATE_BUCKET, Key=TEMPLATE_KEY, Body=TEMPLATE_BODY.encode("utf-8"))
        yield s3


@pytest.fixture
def mock_ses(aws_credentials):
    """Create a mocked SES client with verified identity."""
    with mock_aws():
        ses = boto3.client("ses", **aws_credentials)
        ses.verify_email_identity(EmailAddress="alerts@example.com")
        yield ses


@pytest.fixture
def mock_aws_all(aws_credentials):
    """
    Mock all AWS services used by the application.

    Provides a complete mocked AWS environment.
    """
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", **aws_credentials)
        _create_table(dynamodb)

        s3 = boto3.client("s3", **aws_credentials)
        s3.create_bucket(
            Bucket=TEMPLATE_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": "us-west-2"},
        )
        s3.put_object(Bucket=TEMPLATE_BUCKET, Key=TEMPLATE_KEY, Body=TEMPLATE_BODY.encode("utf-8"))

        ses = boto3.client("ses", **aws_credentials)
        ses.verify_email_identity(EmailAddress="alerts@example.com")

        sns = boto3.client("sns", **aws_credentials)

        iam = boto3.client("iam", **aws_credentials)
        role = iam.create_role(
            RoleName="test-ensure-response-role",
            AssumeRolePolicyDocument="{}",
        )
        stepfunctions = boto3.client("stepfunctions", **aws_credentials)
        stepfunctions.create_state_machine(
            name="test-ensure-response",
            definition='{"StartAt": "Wait", "States": {"Wait": {"Type": "Pass", "End": true}}}',
            roleArn=role["Role"]["Arn"],
        )

        yield {
            "dynamodb": dynamodb,
            "table": dynamodb.Table(TABLE_NAME),
            "s3": s3,
            "ses": ses,
            "sns": sns,
            "stepfunctions": stepfunctions,
        }


# --- ID Fixtures ---


@pytest.fixture
def student_id() -> str:
    """Sample student ID."""
    return "stu-001"


@pytest.fixture
def behavior_id() -> str:
    """Trigger behavior ID."""
    return "234"


@pytest.fixture
def response_id() -> str:
    """Response behavior ID."""
    return "456"


# --- Record Fixtures ---


@pytest.fixture
def student_item(student_id: str, behavior_id: str, response_id: str) -> dict[str, Any]:
    """Student CONFIG item as stored in DynamoDB."""
    return {
        "PK": f"STUDENT#{student_id}",
        "SK": "CONFIG",
        "studentId": student_id,
        "details": {"firstName": "Jamie", "lastName": "Rivera", "nickname": "JJ"},
        "behaviors": [
            {"id": behavior_id, "name": "Elopement", "isDuration": False},
            {"id": "dur-1", "name": "Tantrum", "isDuration": True, "daytime": True},
        ],
        "responses": [
            {"id": response_id, "name": "Redirected"},
        ],
    }


@pytest.fixture
def subscription(behavior_id: str, response_id: str) -> dict[str, Any]:
    """Escalation-eligible subscription group."""
    return {
        "subscriptionId": "sub-1",
        "name": "Notifications",
        "behaviorIds": [behavior_id],
        "responseIds": [response_id],
        "notifyUntilResponse": True,
        "emails": ["teacher@example.com"],
        "mobiles": ["(555) 123-4567"],
        "userIds": ["u1"],
        "deviceIds": [],
        "messages": {"default": "{FirstName} needs help with {Behavior}"},
    }


@pytest.fixture
def subscriptions_item(student_id: str, subscription: dict[str, Any]) -> dict[str, Any]:
    """Student SUBSCRIPTIONS item as stored in DynamoDB."""
    return {
        "PK": f"STUDENT#{student_id}",
        "SK": "SUBSCRIPTIONS",
        "studentId": student_id,
        "notifications": [subscription],
    }


@pytest.fixture
def behavior_event(student_id: str, behavior_id: str, trigger_time: datetime) -> dict[str, Any]:
    """Sample 'track-event' detail."""
    return {
        "studentId": student_id,
        "behaviorId": behavior_id,
        "eventTime": trigger_time.isoformat(),
        "source": {"device": "website", "rater": "u1"},
        "dayMod2": 1,
        "weekMod2": 1,
    }
