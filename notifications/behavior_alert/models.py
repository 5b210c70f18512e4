"""
Behavior Alert Models

Pydantic models for the notify pass.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from notifications.shared.models.dynamo import SubscriptionGroup


class Channel(str, Enum):
    """Delivery branch of a dispatch."""

    APP = "app"
    EMAIL = "email"
    SMS = "sms"
    IN_APP = "in_app"


class MatchedSubscription(BaseModel):
    """A subscription selected for an event."""

    model_config = ConfigDict(frozen=True)

    subscription: SubscriptionGroup
    escalation_eligible: bool = Field(
        ...,
        description="Subscription awaits a response and re-notifies until one arrives",
    )


class ComposedMessages(BaseModel):
    """
    Rendered text per channel.

    None means no template applied for the channel; the dispatcher then
    falls back to that channel's default wording.
    """

    model_config = ConfigDict(frozen=True)

    app: str | None = None
    email: str | None = None
    text: str | None = None


class DispatchResult(BaseModel):
    """Outcome of one subscription's fan-out."""

    subscription_key: str
    push_sent: int = 0
    emails_sent: int = 0
    texts_sent: int = 0
    notifications_recorded: int = 0
    errors: dict[Channel, str] = Field(
        default_factory=dict,
        description="Failed branches and their error message",
    )
    error: str | None = Field(
        default=None,
        description="Set when the subscription failed before any branch ran",
    )

    @property
    def succeeded(self) -> bool:
        return not self.errors and self.error is None


class NotifyResult(BaseModel):
    """Outcome of a notify pass for one behavior event."""

    student_id: str
    behavior_id: str
    skipped_reason: str | None = Field(
        default=None,
        description="Set when the event was not processed at all",
    )
    dispatches: list[DispatchResult] = Field(default_factory=list)
    escalation_scheduled: bool = False

    @property
    def matched(self) -> int:
        return len(self.dispatches)

    @property
    def succeeded(self) -> bool:
        return all(d.succeeded for d in self.dispatches)
