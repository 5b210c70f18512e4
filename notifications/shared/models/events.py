"""
Event Models

Pydantic models for the events consumed and produced by the notification
engine. Wire payloads use the camelCase names emitted by the tracking
pipeline (studentId, dayMod2, ...); snake_case field names are accepted too.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


def to_epoch_ms(value: datetime) -> int:
    """Millisecond epoch for a timezone-aware datetime."""
    return int(round(value.timestamp() * 1000))


class EventSource(BaseModel):
    """Who tracked an event and on what kind of device."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    device: str | None = Field(
        default=None,
        description="Device kind: 'App', 'Track 2.0' or 'website'",
    )
    rater: str | None = Field(
        default=None,
        description="Device, app or user id of whoever tracked the event",
    )


class BaseEvent(BaseModel):
    """Base class for all behavior events."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    student_id: str = Field(..., alias="studentId", min_length=1)
    behavior_id: str = Field(..., alias="behaviorId", min_length=1)

    def to_eventbridge_detail(self) -> dict:
        """Convert to the camelCase wire payload."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BehaviorEvent(BaseEvent):
    """
    A tracked behavior occurrence.

    Source: tracking pipeline ('track-event')
    Triggers: behavior_alert Notifier
    Produces: EscalationState (when a subscription awaits a response)
    """

    event_time: datetime = Field(..., alias="eventTime")
    source: EventSource | None = Field(default=None)
    day_parity: int | None = Field(
        default=None,
        alias="dayMod2",
        ge=0,
        le=1,
        description="Occurrence count of this behavior today, mod 2",
    )
    week_parity: int | None = Field(
        default=None,
        alias="weekMod2",
        ge=0,
        le=1,
        description="Occurrence count of this behavior this week, mod 2",
    )
    is_duration: bool = Field(default=False, alias="isDuration")

    @field_validator("event_time")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def detail_type(cls) -> str:
        return "track-event"

    @property
    def event_epoch_ms(self) -> int:
        return to_epoch_ms(self.event_time)


class NotificationRequest(BehaviorEvent):
    """
    One notify pass for a single subscription.

    skip_add_behavior_notification is set by the response check so that
    re-notifications do not write in-app notification records again.
    """

    skip_add_behavior_notification: bool = Field(
        default=False,
        alias="skipAddBehaviorNotification",
    )


class EscalationState(BehaviorEvent):
    """
    Payload carried between the notify pass and the delayed response check.

    Created by the Escalation Scheduler, consumed by the Response Resolution
    Engine, which returns it with has_response/has_timeout/needs_response set.
    """

    skip_timeout: bool = Field(default=False, alias="skipTimeout")
    has_response: bool | None = Field(default=None, alias="hasResponse")
    has_timeout: bool | None = Field(default=None, alias="hasTimeout")
    needs_response: bool | None = Field(default=None, alias="needsResponse")

    @classmethod
    def detail_type(cls) -> str:
        return "ensure-response"

    def to_notification_request(self) -> NotificationRequest:
        """Build the re-notify request for this occurrence."""
        return NotificationRequest(
            student_id=self.student_id,
            behavior_id=self.behavior_id,
            event_time=self.event_time,
            source=self.source,
            day_parity=self.day_parity,
            week_parity=self.week_parity,
            is_duration=self.is_duration,
            skip_add_behavior_notification=True,
        )


class PatternChangedEvent(BaseEvent):
    """
    Behavior pattern change detected for a student.

    Source: pattern analysis pipeline ('behavior-change')
    Triggers: behavior_alert pattern handler
    """

    date_epoch: int = Field(..., alias="dateEpoc", ge=0, description="Millisecond epoch")

    @classmethod
    def detail_type(cls) -> str:
        return "behavior-change"


# Event type mapping for deserialization
EVENT_TYPE_MAP: dict[str, type[BaseEvent]] = {
    "track-event": BehaviorEvent,
    "ensure-response": EscalationState,
    "behavior-change": PatternChangedEvent,
}


def parse_event(detail_type: str, detail: dict) -> BaseEvent:
    """
    Parse an EventBridge event detail into the appropriate model.

    Args:
        detail_type: The EventBridge detail-type
        detail: The event detail payload

    Returns:
        Parsed event model

    Raises:
        ValueError: If detail_type is unknown
        ValidationError: If detail doesn't match schema
    """
    event_class = EVENT_TYPE_MAP.get(detail_type)
    if event_class is None:
        raise ValueError(f"Unknown event type: {detail_type}")
    return event_class.model_validate(detail)
