"""
Email Tools

SES delivery for behavior alert emails.
"""

import boto3
from botocore.exceptions import ClientError
from email_validator import EmailNotValidError, validate_email
import structlog

from notifications.shared.config import get_settings
from notifications.shared.exceptions import SESError

log = structlog.get_logger()


def _get_client():
    """Get SES client."""
    settings = get_settings()
    return boto3.client("ses", **settings.ses_config)


def validate_email_address(email: str) -> bool:
    """
    Check an email address format.

    Uses email-validator for RFC compliance; deliverability is not checked.
    """
    try:
        validate_email(email, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False


def send_ses_email(
    to_address: str,
    subject: str,
    body_html: str,
    *,
    from_address: str | None = None,
    configuration_set: str | None = None,
) -> str:
    """
    Send a single HTML email via SES.

    Returns:
        SES message ID

    Raises:
        SESError: If send fails
    """
    settings = get_settings()
    client = _get_client()

    send_params = {
        "Source": from_address or settings.ses_from_address,
        "Destination": {"ToAddresses": [to_address]},
        "Message": {
            "Subject": {"Data": subject, "Charset": "UTF-8"},
            "Body": {"Html": {"Data": body_html, "Charset": "UTF-8"}},
        },
    }

    config_set = configuration_set or settings.ses_configuration_set
    if config_set:
        send_params["ConfigurationSetName"] = config_set

    log.info("sending_ses_email", to=to_address, subject=subject[:50])

    try:
        response = client.send_email(**send_params)
        message_id = response["MessageId"]

        log.info("ses_email_sent", message_id=message_id, to=to_address)

        return message_id

    except ClientError as e:
        error_code = e.response["Error"]["Code"]
        error_message = e.response["Error"]["Message"]

        log.error(
            "ses_send_failed",
            to=to_address,
            error_code=error_code,
            error_message=error_message,
        )

        raise SESError(
            operation="send",
            recipient=to_address,
            error_message=f"{error_code}: {error_message}",
        ) from e


def send_html_email(addresses: list[str], subject: str, html: str) -> list[str]:
    """
    Send the same HTML email to each recipient, one message per address.

    Malformed addresses are skipped. Nothing is sent while outbound email
    is switched off (TRACKER_NO_EMAIL).

    Args:
        addresses: Recipient email addresses
        subject: Email subject
        html: HTML body

    Returns:
        SES message IDs of the messages sent

    Raises:
        SESError: On the first failed send
    """
    settings = get_settings()

    recipients = []
    for address in addresses:
        if validate_email_address(address):
            recipients.append(address)
        else:
            log.warning("invalid_email_address_skipped", address=address)

    if settings.no_email:
        log.info("email_suppressed", recipients=len(recipients), subject=subject[:50])
        return []

    return [send_ses_email(address, subject, html) for address in recipients]
