"""
Response Check Models

Pydantic models for the delayed response check.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from notifications.shared.models.dynamo import BehaviorOccurrence, SubscriptionGroup


class ResolutionOverride(str, Enum):
    """Why a check was resolved regardless of responses."""

    TRIGGER_REMOVED = "trigger_removed"
    DURATION_STOPPED = "duration_stopped"


class SubscriptionStatus(BaseModel):
    """Classification of one matched subscription."""

    model_config = ConfigDict(frozen=True)

    subscription: SubscriptionGroup
    response: BehaviorOccurrence | None = Field(
        default=None,
        description="Earliest response tracked after the trigger",
    )
    forced: bool = Field(
        default=False,
        description="Resolved by an override rather than by a response",
    )

    @property
    def resolved(self) -> bool:
        return self.forced or self.response is not None


class Resolution(BaseModel):
    """Outcome of evaluating one escalation state."""

    model_config = ConfigDict(frozen=True)

    has_response: bool
    has_timeout: bool
    needs_response: bool
    override: ResolutionOverride | None = None
    statuses: list[SubscriptionStatus] = Field(default_factory=list)
    user_status: dict[str, bool] = Field(
        default_factory=dict,
        description="Outstanding alert flag per user id",
    )

    @property
    def unresolved(self) -> list[SubscriptionStatus]:
        return [s for s in self.statuses if not s.resolved]
