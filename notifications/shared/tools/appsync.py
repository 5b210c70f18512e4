"""
AppSync Tools

IAM-signed GraphQL queries against the platform's AppSync API.
"""

import json
from typing import Any

import boto3
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from notifications.shared.config import get_settings
from notifications.shared.exceptions import AppSyncError

log = structlog.get_logger()


class _TransientAppSyncError(Exception):
    """Retryable failure (transport error or 5xx)."""


def _signed_headers(url: str, body: str, region: str) -> dict[str, str]:
    credentials = boto3.Session().get_credentials()
    if credentials is None:
        raise AppSyncError(operation="sign", error_message="no AWS credentials available")

    request = AWSRequest(
        method="POST",
        url=url,
        data=body,
        headers={"Content-Type": "application/json"},
    )
    SigV4Auth(credentials.get_frozen_credentials(), "appsync", region).add_auth(request)
    return dict(request.headers.items())


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    retry=retry_if_exception_type(_TransientAppSyncError),
    reraise=True,
)
def _post(url: str, body: str, headers: dict[str, str], timeout: float) -> httpx.Response:
    try:
        response = httpx.post(url, content=body, headers=headers, timeout=timeout)
    except httpx.TransportError as e:
        log.warning("appsync_transport_error", error=str(e))
        raise _TransientAppSyncError(str(e)) from e

    if response.status_code >= 500:
        log.warning("appsync_server_error", status_code=response.status_code)
        raise _TransientAppSyncError(f"HTTP {response.status_code}")

    return response


def query(document: str, variables: dict[str, Any], field: str) -> Any:
    """
    Run a GraphQL query and return one field of its data.

    Transport errors and 5xx responses are retried with exponential backoff.

    Args:
        document: GraphQL query document
        variables: Query variables
        field: Top-level field to return from `data`

    Returns:
        The field's value (None when absent)

    Raises:
        AppSyncError: If no endpoint is configured, the request fails,
            or the response carries GraphQL errors
    """
    settings = get_settings()
    if not settings.appsync_url:
        raise AppSyncError(operation=field, error_message="no AppSync URL configured")

    body = json.dumps({"query": document, "variables": variables})
    headers = _signed_headers(settings.appsync_url, body, settings.aws_region)

    log.debug("appsync_query", field=field)

    try:
        response = _post(settings.appsync_url, body, headers, settings.appsync_timeout_seconds)
    except _TransientAppSyncError as e:
        raise AppSyncError(operation=field, error_message=str(e)) from e

    if response.status_code >= 400:
        raise AppSyncError(
            operation=field,
            error_message=f"HTTP {response.status_code}: {response.text[:200]}",
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise AppSyncError(
            operation=field,
            error_message=f"invalid JSON response: {response.text[:200]}",
        ) from e

    if payload.get("errors"):
        raise AppSyncError(operation=field, error_message=json.dumps(payload["errors"])[:500])

    return (payload.get("data") or {}).get(field)
