"""
Source Name Resolution

Looks up the display name of whoever tracked an event, for the
{WhoTracked} placeholder. The lookup depends on the kind of device the
event came from.
"""

from abc import ABC, abstractmethod

import structlog

from notifications.shared.exceptions import (
    AppSyncError,
    DynamoDBError,
    SourceLookupError,
)
from notifications.shared.models.events import EventSource
from notifications.shared.tools import appsync, dynamodb

log = structlog.get_logger()

GET_APPS_FOR_DEVICE = """
query getAppsForDevice($deviceId: String!, $auth: String!, $apps: [AppClaimInput]) {
    getAppsForDevice(deviceId: $deviceId, auth: $auth, apps: $apps) {
        name
    }
}
"""


class SourceNameResolver(ABC):
    """Resolves a rater id to a display name for one device kind."""

    device_kind: str

    @abstractmethod
    def resolve(self, rater_id: str) -> str | None:
        """
        Raises:
            SourceLookupError: If the backing lookup fails
        """


class AppSourceNameResolver(SourceNameResolver):
    """Mobile app installs, named through the AppSync API."""

    device_kind = "App"

    def resolve(self, rater_id: str) -> str | None:
        try:
            result = appsync.query(
                GET_APPS_FOR_DEVICE,
                {"deviceId": rater_id, "auth": ""},
                "getAppsForDevice",
            )
        except AppSyncError as e:
            raise SourceLookupError(self.device_kind, rater_id, str(e)) from e

        if isinstance(result, list):
            result = result[0] if result else None
        return (result or {}).get("name")


class LegacyDeviceSourceNameResolver(SourceNameResolver):
    """Physical tracking buttons, named in their device record."""

    device_kind = "Track 2.0"

    def resolve(self, rater_id: str) -> str | None:
        try:
            return dynamodb.get_device_name(rater_id)
        except DynamoDBError as e:
            raise SourceLookupError(self.device_kind, rater_id, str(e)) from e


class WebSourceNameResolver(SourceNameResolver):
    """Website users, named in their PII record."""

    device_kind = "website"

    def resolve(self, rater_id: str) -> str | None:
        try:
            return dynamodb.get_user_display_name(rater_id)
        except DynamoDBError as e:
            raise SourceLookupError(self.device_kind, rater_id, str(e)) from e


RESOLVERS: dict[str, SourceNameResolver] = {
    resolver.device_kind: resolver
    for resolver in (
        AppSourceNameResolver(),
        LegacyDeviceSourceNameResolver(),
        WebSourceNameResolver(),
    )
}


def resolve_source_name(source: EventSource | None) -> str | None:
    """
    Display name of an event's source, or None.

    Unknown device kinds and failed lookups resolve to None; the
    placeholder is then rendered empty rather than failing the alert.
    """
    if source is None or not source.device or not source.rater:
        return None

    resolver = RESOLVERS.get(source.device)
    if resolver is None:
        log.debug("unknown_source_device", device=source.device)
        return None

    log.debug("resolving_source_name", device=source.device, rater=source.rater)
    try:
        return resolver.resolve(source.rater)
    except SourceLookupError as e:
        log.warning("source_name_lookup_failed", error=str(e), **e.context)
        return None
