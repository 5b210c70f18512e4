"""
Unit tests for shared tools.

Tests cover:
- DynamoDB tools: student/subscription loads, day report bounds,
  outstanding alert flag, summary entries, notification records, devices
- Email tools: validate_email_address, send_html_email
- SMS tools: normalize_phone, send_text_messages
- Push tools: send_push
- S3 tools: fetch_template
- Step Functions tools: execution_name, schedule_delayed_invocation
- AppSync tools: query
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest
from botocore.exceptions import ClientError

from notifications.shared.models.dynamo import (
    NotificationDetails,
    NotificationType,
    UserStudentNotification,
    UserStudentSummary,
)
from notifications.shared.models.events import EscalationState

TABLE_NAME = "TestBehaviorTracking"
TEMPLATE_BUCKET = "test-behavior-templates"
TEMPLATE_KEY = "templates/behavior-alert.html"


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def mock_settings():
    """Provide mock settings for all tests."""
    with patch("notifications.shared.tools.dynamodb.get_settings") as dynamo_mock, \
         patch("notifications.shared.tools.email.get_settings") as email_mock, \
         patch("notifications.shared.tools.sms.get_settings") as sms_mock, \
         patch("notifications.shared.tools.push.get_settings") as push_mock, \
         patch("notifications.shared.tools.s3.get_settings") as s3_mock, \
         patch("notifications.shared.tools.stepfunctions.get_settings") as sfn_mock, \
         patch("notifications.shared.tools.appsync.get_settings") as appsync_mock:
        settings = MagicMock()
        settings.aws_region = "us-west-2"
        settings.dynamodb_table_name = TABLE_NAME
        settings.dynamodb_config = {"region_name": "us-west-2"}
        settings.s3_config = {"region_name": "us-west-2"}
        settings.ses_config = {"region_name": "us-west-2"}
        settings.sns_config = {"region_name": "us-west-2"}
        settings.stepfunctions_config = {"region_name": "us-west-2"}
        settings.template_bucket_name = TEMPLATE_BUCKET
        settings.template_key = TEMPLATE_KEY
        settings.ses_from_address = "alerts@example.com"
        settings.ses_configuration_set = None
        settings.no_email = False
        settings.sms_sender_id = "mytaptrack"
        settings.ensure_response_state_machine_arn = (
            "arn:aws:states:us-west-2:123456789012:stateMachine:test-ensure-response"
        )
        settings.appsync_url = "https://appsync.example.com/graphql"
        settings.appsync_timeout_seconds = 5.0
        for mock in (dynamo_mock, email_mock, sms_mock, push_mock, s3_mock, sfn_mock, appsync_mock):
            mock.return_value = settings
        yield settings


def client_error(code: str, message: str = "error") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, "Operation")


# ============================================================================
# DynamoDB Tools Tests
# ============================================================================

class TestStudentLoads:
    """Tests for get_student and get_subscriptions."""

    def test_get_student(self, table, student_item):
        from notifications.shared.tools.dynamodb import get_student

        table.put_item(Item=student_item)

        student = get_student("stu-001")

        assert student.details.first_name == "Jamie"
        assert student.find_behavior("234").name == "Elopement"

    def test_get_student_missing(self, table):
        from notifications.shared.tools.dynamodb import get_student

        assert get_student("nobody") is None

    def test_get_subscriptions(self, table, subscriptions_item):
        from notifications.shared.tools.dynamodb import get_subscriptions

        table.put_item(Item=subscriptions_item)

        subscriptions = get_subscriptions("stu-001")

        assert [s.key for s in subscriptions] == ["sub-1"]
        assert subscriptions[0].escalation_eligible

    def test_get_subscriptions_missing(self, table):
        from notifications.shared.tools.dynamodb import get_subscriptions

        assert get_subscriptions("stu-001") == []

    def test_get_failure_wrapped(self):
        from notifications.shared.exceptions import DynamoDBError
        from notifications.shared.tools.dynamodb import get_student

        with patch("notifications.shared.tools.dynamodb._get_table") as get_table:
            get_table.return_value.get_item.side_effect = client_error("ProvisionedThroughputExceededException")
            with pytest.raises(DynamoDBError) as exc_info:
                get_student("stu-001")

        assert exc_info.value.operation == "get"
        assert isinstance(exc_info.value.__cause__, ClientError)


class TestGetDayReport:
    """Tests for get_day_report."""

    def test_inclusive_millisecond_bounds(self, table):
        from notifications.shared.models.dynamo import BehaviorOccurrence
        from notifications.shared.tools.dynamodb import get_day_report

        start = datetime(2020, 1, 1, 8, 0, tzinfo=timezone.utc)
        end = start + timedelta(days=1) - timedelta(milliseconds=1)
        start_ms = int(start.timestamp() * 1000)
        end_ms = int(end.timestamp() * 1000)

        for epoch, behavior in [
            (start_ms - 1, "before"),
            (start_ms, "first"),
            (start_ms + 3_600_000, "middle"),
            (end_ms, "last"),
            (end_ms + 1, "after"),
        ]:
            table.put_item(Item=BehaviorOccurrence(date_epoch=epoch, behavior=behavior).to_dynamodb("stu-001"))
        table.put_item(Item={"PK": "STUDENT#stu-001", "SK": "CONFIG", "studentId": "stu-001"})

        report = get_day_report("stu-001", start, end)

        assert [o.behavior for o in report] == ["first", "middle", "last"]
        assert report[0].date_epoch == start_ms

    def test_keeps_deleted_occurrences(self, table, trigger_time, trigger_epoch_ms):
        from notifications.shared.tools.dynamodb import get_day_report

        table.put_item(Item={
            "PK": "STUDENT#stu-001",
            "SK": f"DATA#{trigger_epoch_ms:015d}#234",
            "dateEpoc": trigger_epoch_ms,
            "behavior": "234",
            "deleted": True,
        })

        report = get_day_report(
            "stu-001", trigger_time - timedelta(hours=1), trigger_time + timedelta(hours=1)
        )

        assert len(report) == 1
        assert report[0].deleted is True


class TestGetTeam:
    """Tests for get_team."""

    def test_get_team(self, table):
        from notifications.shared.models.dynamo import AccessLevel
        from notifications.shared.tools.dynamodb import get_team

        table.put_item(Item={"PK": "STUDENT#stu-001", "SK": "TEAM#u1", "userId": "u1"})
        table.put_item(Item={
            "PK": "STUDENT#stu-001",
            "SK": "TEAM#u2",
            "userId": "u2",
            "restrictions": {"behavior": "none"},
        })
        table.put_item(Item={"PK": "STUDENT#stu-001", "SK": "CONFIG", "studentId": "stu-001"})

        team = {m.user_id: m for m in get_team("stu-001")}

        assert set(team) == {"u1", "u2"}
        assert team["u1"].restrictions.allows_behavior("234")
        assert team["u2"].restrictions.behavior == AccessLevel.NONE


class TestOutstandingAlert:
    """Tests for set_outstanding_alert and summary entries."""

    def test_creates_summary_for_new_user(self, table):
        from notifications.shared.tools.dynamodb import get_user_summary, set_outstanding_alert

        set_outstanding_alert("u1", "stu-001", True)

        assert get_user_summary("u1") == [
            UserStudentSummary(student_id="stu-001", count=0, awaiting_response=True)
        ]

    def test_appends_entry_for_new_student(self, table):
        from notifications.shared.tools.dynamodb import get_user_summary, set_outstanding_alert

        table.put_item(Item={
            "PK": "USER#u1",
            "SK": "SUMMARY",
            "events": [{"studentId": "stu-000", "count": 3, "awaitingResponse": False}],
        })

        set_outstanding_alert("u1", "stu-001", True)

        summary = get_user_summary("u1")
        assert [e.student_id for e in summary] == ["stu-000", "stu-001"]
        assert summary[1].awaiting_response is True

    def test_updates_existing_entry(self, table):
        from notifications.shared.tools.dynamodb import get_user_summary, set_outstanding_alert

        table.put_item(Item={
            "PK": "USER#u1",
            "SK": "SUMMARY",
            "events": [
                {"studentId": "stu-000", "count": 1, "awaitingResponse": False},
                {"studentId": "stu-001", "count": 2, "awaitingResponse": True},
            ],
        })

        set_outstanding_alert("u1", "stu-001", False)
        set_outstanding_alert("u1", "stu-001", False)

        summary = get_user_summary("u1")
        assert summary[1] == UserStudentSummary(student_id="stu-001", count=2, awaiting_response=False)
        assert len(summary) == 2

    def test_get_user_summary_missing(self, table):
        from notifications.shared.tools.dynamodb import get_user_summary

        assert get_user_summary("nobody") is None

    def test_update_summary_entry(self, table):
        from notifications.shared.tools.dynamodb import get_user_summary, update_user_summary_entry

        table.put_item(Item={
            "PK": "USER#u1",
            "SK": "SUMMARY",
            "events": [
                {"studentId": "stu-000", "count": 1, "awaitingResponse": False},
                {"studentId": "stu-001", "count": 2, "awaitingResponse": False},
            ],
        })

        update_user_summary_entry("u1", UserStudentSummary(student_id="stu-001", count=5), 1)
        assert get_user_summary("u1")[1].count == 5

        update_user_summary_entry("u1", None, 0)
        assert [e.student_id for e in get_user_summary("u1")] == ["stu-001"]

        update_user_summary_entry("u1", UserStudentSummary(student_id="stu-002", count=1), None)
        assert [e.student_id for e in get_user_summary("u1")] == ["stu-001", "stu-002"]

    def test_remove_requires_index(self):
        from notifications.shared.tools.dynamodb import update_user_summary_entry

        with pytest.raises(ValueError):
            update_user_summary_entry("u1", None, None)


class TestRecordUserNotification:
    """Tests for record_user_notification."""

    def test_writes_keyed_record(self, table):
        from notifications.shared.tools.dynamodb import record_user_notification

        notification = UserStudentNotification(
            user_id="u1",
            student_id="stu-001",
            date=1577927700000,
            details=NotificationDetails(
                type=NotificationType.BEHAVIOR, behavior_id="234", student_id="stu-001"
            ),
        )

        record_user_notification(notification)
        record_user_notification(notification)

        items = table.scan()["Items"]
        assert len(items) == 1
        assert items[0]["PK"] == "USN#u1"
        assert items[0]["SK"] == "S#stu-001#T#behavior#D#1577927700000"


class TestDeviceLookups:
    """Tests for push endpoint, device name and display name lookups."""

    def test_get_push_endpoint(self, table):
        from notifications.shared.models.dynamo import PushPlatform
        from notifications.shared.tools.dynamodb import get_push_endpoint

        table.put_item(Item={
            "PK": "APP#app-1",
            "SK": "PUSH",
            "os": "android",
            "endpointArn": "arn:aws:sns:us-west-2:123456789012:endpoint/GCM/app/1",
        })

        endpoint = get_push_endpoint("app-1")

        assert endpoint.device_id == "app-1"
        assert endpoint.os == PushPlatform.ANDROID
        assert endpoint.endpoint_arn.endswith("/1")
        assert get_push_endpoint("app-2") is None

    def test_get_device_name(self, table):
        from notifications.shared.tools.dynamodb import get_device_name

        table.put_item(Item={"PK": "DEVICE#dev-1", "SK": "CONFIG", "deviceName": "Room 4 button"})

        assert get_device_name("dev-1") == "Room 4 button"
        assert get_device_name("dev-2") is None

    def test_get_user_display_name(self, table):
        from notifications.shared.tools.dynamodb import get_user_display_name

        table.put_item(Item={"PK": "USER#u1", "SK": "PII", "details": {"name": "Ms. Lee"}})

        assert get_user_display_name("u1") == "Ms. Lee"
        assert get_user_display_name("u2") is None


# ============================================================================
# Email Tools Tests
# ============================================================================

class TestValidateEmailAddress:
    """Tests for validate_email_address."""

    @pytest.mark.parametrize("address", ["teacher@example.com", "first.last+tag@school.org"])
    def test_valid(self, address):
        from notifications.shared.tools.email import validate_email_address

        assert validate_email_address(address) is True

    @pytest.mark.parametrize("address", ["not-an-email", "a@", "@example.com", ""])
    def test_invalid(self, address):
        from notifications.shared.tools.email import validate_email_address

        assert validate_email_address(address) is False


class TestSendHtmlEmail:
    """Tests for send_html_email."""

    def test_one_message_per_valid_address(self, mock_ses):
        from notifications.shared.tools.email import send_html_email

        message_ids = send_html_email(
            ["teacher@example.com", "bogus", "parent@example.com"],
            "A mytaptrack® event occurred",
            "<p>Hi</p>",
        )

        assert len(message_ids) == 2
        assert mock_ses.get_send_quota()["SentLast24Hours"] == 2

    def test_suppressed(self, mock_settings):
        from notifications.shared.tools.email import send_html_email

        mock_settings.no_email = True
        with patch("notifications.shared.tools.email.send_ses_email") as send:
            assert send_html_email(["teacher@example.com"], "s", "<p/>") == []

        send.assert_not_called()

    def test_send_failure(self):
        from notifications.shared.exceptions import SESError
        from notifications.shared.tools.email import send_ses_email

        with patch("notifications.shared.tools.email._get_client") as get_client:
            get_client.return_value.send_email.side_effect = client_error(
                "MessageRejected", "Email address is not verified."
            )
            with pytest.raises(SESError) as exc_info:
                send_ses_email("teacher@example.com", "s", "<p/>")

        assert exc_info.value.recipient == "teacher@example.com"
        assert "MessageRejected" in str(exc_info.value)

    def test_configuration_set(self, mock_settings):
        from notifications.shared.tools.email import send_ses_email

        mock_settings.ses_configuration_set = "alerts"
        with patch("notifications.shared.tools.email._get_client") as get_client:
            get_client.return_value.send_email.return_value = {"MessageId": "m-1"}
            assert send_ses_email("teacher@example.com", "s", "<p/>") == "m-1"

        params = get_client.return_value.send_email.call_args.kwargs
        assert params["ConfigurationSetName"] == "alerts"
        assert params["Source"] == "alerts@example.com"


# ============================================================================
# SMS / Push Tools Tests
# ============================================================================

class TestNormalizePhone:
    """Tests for normalize_phone."""

    @pytest.mark.parametrize(
        "mobile,expected",
        [
            ("(555) 123-4567", "+15551234567"),
            ("555.123.4567", "+15551234567"),
            ("1-555-123-4567", "+15551234567"),
            ("+44 20 7946 0958", "+442079460958"),
            ("123", "123"),
        ],
    )
    def test_normalize(self, mobile, expected):
        from notifications.shared.tools.sms import normalize_phone

        assert normalize_phone(mobile) == expected


class TestSendTextMessages:
    """Tests for send_text_messages."""

    def test_sends_each_number(self):
        from notifications.shared.tools.sms import send_text_messages

        with patch("notifications.shared.tools.sms._get_client") as get_client:
            get_client.return_value.publish.return_value = {"MessageId": "m-1"}
            sent = send_text_messages(["(555) 123-4567", "555-987-6543"], "Alert")

        assert sent == 2
        call = get_client.return_value.publish.call_args_list[0].kwargs
        assert call["PhoneNumber"] == "+15551234567"
        assert call["Message"] == "Alert"
        assert call["MessageAttributes"]["AWS.SNS.SMS.SMSType"]["StringValue"] == "Transactional"

    def test_failure_swallowed(self):
        from notifications.shared.tools.sms import send_text_messages

        with patch("notifications.shared.tools.sms._get_client") as get_client:
            get_client.return_value.publish.side_effect = [
                client_error("InvalidParameter", "bad number"),
                {"MessageId": "m-2"},
            ]
            assert send_text_messages(["bad", "(555) 123-4567"], "Alert") == 1

    def test_empty(self):
        from notifications.shared.tools.sms import send_text_messages

        assert send_text_messages([], "Alert") == 0

    def test_moto_publish(self, aws_credentials):
        from moto import mock_aws

        from notifications.shared.tools.sms import send_text_message

        with mock_aws():
            assert send_text_message("(555) 123-4567", "Alert")


class TestSendPush:
    """Tests for send_push."""

    def test_publishes_json_structure(self):
        from notifications.shared.tools.push import send_push

        with patch("notifications.shared.tools.push._get_client") as get_client:
            get_client.return_value.publish.return_value = {"MessageId": "m-1"}
            assert send_push("arn:endpoint", '{"default": "x"}') == "m-1"

        get_client.return_value.publish.assert_called_once_with(
            TargetArn="arn:endpoint",
            MessageStructure="json",
            Message='{"default": "x"}',
        )

    def test_failure_raises(self):
        from notifications.shared.exceptions import PushDeliveryError
        from notifications.shared.tools.push import send_push

        with patch("notifications.shared.tools.push._get_client") as get_client:
            get_client.return_value.publish.side_effect = client_error("EndpointDisabled")
            with pytest.raises(PushDeliveryError) as exc_info:
                send_push("arn:endpoint", "{}")

        assert exc_info.value.endpoint_arn == "arn:endpoint"


# ============================================================================
# S3 Tools Tests
# ============================================================================

class TestFetchTemplate:
    """Tests for fetch_template."""

    def test_fetch_default_template(self, mock_s3):
        from notifications.shared.tools.s3 import fetch_template

        assert "${student.name}" in fetch_template()

    def test_missing_key(self, mock_s3):
        from notifications.shared.exceptions import TemplateFetchError
        from notifications.shared.tools.s3 import fetch_template

        with pytest.raises(TemplateFetchError) as exc_info:
            fetch_template("templates/missing.html")

        assert exc_info.value.key == "templates/missing.html"
        assert exc_info.value.bucket == TEMPLATE_BUCKET

    def test_missing_bucket(self, mock_s3):
        from notifications.shared.exceptions import S3Error
        from notifications.shared.tools.s3 import fetch_template

        with pytest.raises(S3Error):
            fetch_template(bucket="no-such-bucket")


# ============================================================================
# Step Functions Tools Tests
# ============================================================================

@pytest.fixture
def escalation_state(behavior_event) -> EscalationState:
    return EscalationState.model_validate({**behavior_event, "isDuration": True})


class TestScheduleDelayedInvocation:
    """Tests for schedule_delayed_invocation."""

    def test_execution_name_is_stable(self, escalation_state, behavior_event):
        from notifications.shared.tools.stepfunctions import execution_name

        name = execution_name(escalation_state)
        again = execution_name(EscalationState.model_validate(behavior_event))
        other = execution_name(
            EscalationState.model_validate({**behavior_event, "behaviorId": "999"})
        )

        assert name == again
        assert name != other
        assert name.startswith(f"ensure-response-{escalation_state.event_epoch_ms}-")
        assert len(name) <= 80

    def test_starts_execution(self, mock_aws_all, escalation_state):
        from notifications.shared.tools.stepfunctions import schedule_delayed_invocation

        arn = schedule_delayed_invocation(escalation_state, 300)

        assert arn is not None
        execution = mock_aws_all["stepfunctions"].describe_execution(executionArn=arn)
        payload = json.loads(execution["input"])
        assert payload["studentId"] == "stu-001"
        assert payload["isDuration"] is True
        assert payload["delaySeconds"] == 300

    def test_duplicate_is_noop(self, escalation_state):
        from notifications.shared.tools.stepfunctions import schedule_delayed_invocation

        with patch("notifications.shared.tools.stepfunctions._get_client") as get_client:
            get_client.return_value.start_execution.side_effect = client_error("ExecutionAlreadyExists")
            assert schedule_delayed_invocation(escalation_state, 300) is None

    def test_other_failure_raises(self, escalation_state):
        from notifications.shared.exceptions import SchedulingError
        from notifications.shared.tools.stepfunctions import schedule_delayed_invocation

        with patch("notifications.shared.tools.stepfunctions._get_client") as get_client:
            get_client.return_value.start_execution.side_effect = client_error("AccessDeniedException")
            with pytest.raises(SchedulingError):
                schedule_delayed_invocation(escalation_state, 300)

    def test_no_state_machine(self, mock_settings, escalation_state):
        from notifications.shared.exceptions import SchedulingError
        from notifications.shared.tools.stepfunctions import schedule_delayed_invocation

        mock_settings.ensure_response_state_machine_arn = None
        with pytest.raises(SchedulingError, match="no state machine configured"):
            schedule_delayed_invocation(escalation_state, 300)


# ============================================================================
# AppSync Tools Tests
# ============================================================================

class TestAppSyncQuery:
    """Tests for appsync.query."""

    @pytest.fixture(autouse=True)
    def signed(self):
        with patch("notifications.shared.tools.appsync._signed_headers", return_value={"Authorization": "sig"}):
            yield

    def response(self, status_code: int, payload: dict) -> httpx.Response:
        return httpx.Response(
            status_code,
            json=payload,
            request=httpx.Request("POST", "https://appsync.example.com/graphql"),
        )

    def test_returns_field(self):
        from notifications.shared.tools.appsync import query

        with patch("notifications.shared.tools.appsync.httpx.post") as post:
            post.return_value = self.response(200, {"data": {"getAppsForDevice": [{"name": "iPad"}]}})
            result = query("query {}", {"deviceId": "app-1"}, "getAppsForDevice")

        assert result == [{"name": "iPad"}]
        body = json.loads(post.call_args.kwargs["content"])
        assert body["variables"] == {"deviceId": "app-1"}
        assert post.call_args.kwargs["headers"] == {"Authorization": "sig"}

    def test_graphql_errors(self):
        from notifications.shared.exceptions import AppSyncError
        from notifications.shared.tools.appsync import query

        with patch("notifications.shared.tools.appsync.httpx.post") as post:
            post.return_value = self.response(200, {"errors": [{"message": "Unauthorized"}]})
            with pytest.raises(AppSyncError, match="Unauthorized"):
                query("query {}", {}, "getAppsForDevice")

    def test_non_json_reply(self):
        from notifications.shared.exceptions import AppSyncError
        from notifications.shared.tools.appsync import query

        with patch("notifications.shared.tools.appsync.httpx.post") as post:
            post.return_value = httpx.Response(
                200,
                text="<html>gateway</html>",
                request=httpx.Request("POST", "https://appsync.example.com/graphql"),
            )
            with pytest.raises(AppSyncError, match="invalid JSON"):
                query("query {}", {}, "getAppsForDevice")

    def test_retries_server_errors(self):
        from notifications.shared.tools.appsync import query

        with patch("notifications.shared.tools.appsync.httpx.post") as post, \
             patch("time.sleep"):
            post.side_effect = [
                self.response(503, {}),
                httpx.ConnectError("reset"),
                self.response(200, {"data": {"getAppsForDevice": []}}),
            ]
            assert query("query {}", {}, "getAppsForDevice") == []

        assert post.call_count == 3

    def test_gives_up_after_retries(self):
        from notifications.shared.exceptions import AppSyncError
        from notifications.shared.tools.appsync import query

        with patch("notifications.shared.tools.appsync.httpx.post") as post, \
             patch("time.sleep"):
            post.return_value = self.response(502, {})
            with pytest.raises(AppSyncError, match="HTTP 502"):
                query("query {}", {}, "getAppsForDevice")

        assert post.call_count == 3

    def test_client_error_not_retried(self):
        from notifications.shared.exceptions import AppSyncError
        from notifications.shared.tools.appsync import query

        with patch("notifications.shared.tools.appsync.httpx.post") as post:
            post.return_value = self.response(403, {"message": "forbidden"})
            with pytest.raises(AppSyncError, match="HTTP 403"):
                query("query {}", {}, "getAppsForDevice")

        assert post.call_count == 1

    def test_no_url(self, mock_settings):
        from notifications.shared.exceptions import AppSyncError
        from notifications.shared.tools.appsync import query

        mock_settings.appsync_url = None
        with pytest.raises(AppSyncError, match="no AppSync URL"):
            query("query {}", {}, "getAppsForDevice")
