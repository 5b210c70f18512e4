"""
SMS Tools

Text message delivery through SNS direct publish.
"""

import re

import boto3
from botocore.exceptions import ClientError
import structlog

from notifications.shared.config import get_settings

log = structlog.get_logger()

_NON_DIGITS = re.compile(r"\D")


def _get_client():
    """Get SNS client."""
    settings = get_settings()
    return boto3.client("sns", **settings.sns_config)


def normalize_phone(mobile: str) -> str:
    """
    Normalize a phone number to E.164 where the shape is recognizable.

    Punctuation is stripped; 10 digits are taken as a US number (+1),
    11 digits as already carrying a country code. Anything else is
    returned as bare digits.
    """
    digits = _NON_DIGITS.sub("", mobile)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11:
        return f"+{digits}"
    return digits


def send_text_message(mobile: str, body: str) -> str | None:
    """
    Send one SMS.

    Failures are logged and swallowed; a bad number must not stop the
    rest of the alert.

    Returns:
        SNS message ID, or None when the publish failed
    """
    settings = get_settings()
    client = _get_client()
    phone_number = normalize_phone(mobile)

    try:
        response = client.publish(
            PhoneNumber=phone_number,
            Message=body,
            MessageAttributes={
                "AWS.SNS.SMS.SenderID": {
                    "DataType": "String",
                    "StringValue": settings.sms_sender_id,
                },
                "AWS.SNS.SMS.SMSType": {
                    "DataType": "String",
                    "StringValue": "Transactional",
                },
            },
        )
    except ClientError as e:
        log.warning(
            "sms_send_failed",
            phone_number=phone_number,
            error_code=e.response["Error"]["Code"],
            error_message=e.response["Error"]["Message"],
        )
        return None

    message_id = response["MessageId"]
    log.info("sms_sent", phone_number=phone_number, message_id=message_id)
    return message_id


def send_text_messages(numbers: list[str], body: str) -> int:
    """
    Send the same SMS to every number.

    Returns:
        Number of messages accepted by SNS
    """
    if not numbers:
        return 0

    log.info("sending_text_messages", count=len(numbers))
    sent = sum(1 for number in numbers if send_text_message(number, body))
    log.info("text_messages_sent", sent=sent, failed=len(numbers) - sent)
    return sent
