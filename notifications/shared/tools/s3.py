"""
S3 Tools

Template store access for alert emails.
"""

import boto3
from botocore.exceptions import ClientError
import structlog

from notifications.shared.config import get_settings
from notifications.shared.exceptions import TemplateFetchError

log = structlog.get_logger()


def _get_client():
    """Get S3 client."""
    settings = get_settings()
    return boto3.client("s3", **settings.s3_config)


def fetch_template(key: str | None = None, *, bucket: str | None = None) -> str:
    """
    Download a text template from the template bucket.

    Args:
        key: Object key (default: the behavior alert template)
        bucket: Override bucket name

    Returns:
        Template body decoded as UTF-8

    Raises:
        TemplateFetchError: If the object cannot be read
    """
    settings = get_settings()
    client = _get_client()

    bucket = bucket or settings.template_bucket_name
    key = key or settings.template_key

    log.debug("fetching_template", bucket=bucket, key=key)

    try:
        response = client.get_object(Bucket=bucket, Key=key)
        content = response["Body"].read().decode("utf-8")
    except ClientError as e:
        error_code = e.response["Error"]["Code"]

        if error_code == "NoSuchKey":
            log.warning("template_not_found", bucket=bucket, key=key)
        else:
            log.error("template_fetch_failed", bucket=bucket, key=key, error=str(e))

        raise TemplateFetchError(
            bucket=bucket,
            key=key,
            error_message=str(e),
        ) from e

    log.debug("template_fetched", bucket=bucket, key=key, size_bytes=len(content))
    return content
