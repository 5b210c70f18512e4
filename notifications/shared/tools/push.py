"""
Push Tools

Mobile push delivery through SNS platform endpoints.
"""

import boto3
from botocore.exceptions import ClientError
import structlog

from notifications.shared.config import get_settings
from notifications.shared.exceptions import PushDeliveryError

log = structlog.get_logger()


def _get_client():
    """Get SNS client."""
    settings = get_settings()
    return boto3.client("sns", **settings.sns_config)


def send_push(endpoint_arn: str, message: str) -> str:
    """
    Publish a platform-specific push payload to an endpoint.

    Args:
        endpoint_arn: SNS platform endpoint ARN
        message: JSON document keyed by platform (APNS, GCM, ...)

    Returns:
        SNS message ID

    Raises:
        PushDeliveryError: If publish fails
    """
    client = _get_client()

    log.debug("sending_push", endpoint_arn=endpoint_arn)

    try:
        response = client.publish(
            TargetArn=endpoint_arn,
            MessageStructure="json",
            Message=message,
        )
    except ClientError as e:
        error_code = e.response["Error"]["Code"]
        error_message = e.response["Error"]["Message"]

        log.error(
            "push_send_failed",
            endpoint_arn=endpoint_arn,
            error_code=error_code,
            error_message=error_message,
        )

        raise PushDeliveryError(
            endpoint_arn=endpoint_arn,
            error_message=f"{error_code}: {error_message}",
        ) from e

    message_id = response["MessageId"]
    log.info("push_sent", endpoint_arn=endpoint_arn, message_id=message_id)
    return message_id
