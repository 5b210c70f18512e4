"""
DynamoDB Models

Pydantic models for items in the BehaviorTracking table.

Key layout (single table):
- STUDENT#<student_id> / CONFIG              student details and behavior definitions
- STUDENT#<student_id> / SUBSCRIPTIONS       notification subscription groups
- STUDENT#<student_id> / DATA#<epoch_ms>#<behavior_id>   tracked occurrences
- STUDENT#<student_id> / TEAM#<user_id>      team membership and restrictions
- USER#<user_id> / SUMMARY                   per-student summary (outstanding alert flag)
- USER#<user_id> / PII                       display name
- USN#<user_id> / S#<student_id>#T#<type>#D#<date>   in-app notification records
- APP#<device_id> / PUSH                     mobile push endpoint
- DEVICE#<device_id> / CONFIG                tracking device configuration

Stored attribute names are camelCase, matching the rest of the platform.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =====================================================
# Keys
# =====================================================


def student_pk(student_id: str) -> str:
    return f"STUDENT#{student_id}"


def user_pk(user_id: str) -> str:
    return f"USER#{user_id}"


def data_sk(date_epoch: int, behavior_id: str | None = None) -> str:
    """Sort key for an occurrence; without behavior_id it is a range bound."""
    sk = f"DATA#{date_epoch:015d}"
    if behavior_id is not None:
        sk += f"#{behavior_id}"
    return sk


# =====================================================
# Student configuration
# =====================================================


class StudentDetails(BaseModel):
    """Display name fields for a student."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    nickname: str = Field(default="", alias="nickname")


class StudentBehavior(BaseModel):
    """A behavior or response definition tracked for a student."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Behavior identifier")
    name: str = Field(default="", description="Display name")
    is_duration: bool = Field(default=False, alias="isDuration")
    daytime: bool = Field(
        default=False,
        description="Duration parity is counted per day instead of per week",
    )


class Student(BaseModel):
    """
    Student configuration record.

    PK: STUDENT#<student_id>
    SK: CONFIG
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    student_id: str = Field(..., alias="studentId")
    details: StudentDetails = Field(default_factory=StudentDetails)
    behaviors: list[StudentBehavior] = Field(default_factory=list)
    responses: list[StudentBehavior] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.details.first_name} {self.details.last_name}"

    def find_behavior(self, behavior_id: str) -> StudentBehavior | None:
        """Look up a definition among behaviors first, then responses."""
        for item in (*self.behaviors, *self.responses):
            if item.id == behavior_id:
                return item
        return None

    def find_response(self, behavior_id: str) -> StudentBehavior | None:
        return next((r for r in self.responses if r.id == behavior_id), None)

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> "Student":
        """Parse from DynamoDB item."""
        return cls.model_validate(item)


# =====================================================
# Subscriptions
# =====================================================


class MessageTemplates(BaseModel):
    """Per-channel message templates for a subscription."""

    model_config = ConfigDict(frozen=True)

    default: str | None = None
    app: str | None = None
    email: str | None = None
    text: str | None = None

    def all_templates(self) -> list[str]:
        return [t for t in (self.default, self.app, self.email, self.text) if t]


class SubscriptionGroup(BaseModel):
    """
    A named rule binding trigger behaviors to responses, recipients and templates.

    subscription_id is a stable identifier; groups stored before it existed
    fall back to their name as key.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    subscription_id: str | None = Field(default=None, alias="subscriptionId")
    name: str = Field(..., description="Display name, unique per student")
    behavior_ids: list[str] = Field(default_factory=list, alias="behaviorIds")
    response_ids: list[str] = Field(default_factory=list, alias="responseIds")
    notify_until_response: bool = Field(default=False, alias="notifyUntilResponse")
    emails: list[str] = Field(default_factory=list)
    mobiles: list[str] = Field(default_factory=list)
    user_ids: list[str] = Field(default_factory=list, alias="userIds")
    device_ids: list[str] = Field(default_factory=list, alias="deviceIds")
    messages: MessageTemplates = Field(default_factory=MessageTemplates)

    @property
    def key(self) -> str:
        """Stable key used to correlate the notify pass and the response check."""
        return self.subscription_id or self.name

    @property
    def escalation_eligible(self) -> bool:
        return bool(self.response_ids) and self.notify_until_response

    def watches(self, behavior_id: str) -> bool:
        return behavior_id in self.behavior_ids


class StudentSubscriptions(BaseModel):
    """
    Notification configuration for a student.

    PK: STUDENT#<student_id>
    SK: SUBSCRIPTIONS
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    student_id: str = Field(..., alias="studentId")
    notifications: list[SubscriptionGroup] = Field(default_factory=list)

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> "StudentSubscriptions":
        """Parse from DynamoDB item."""
        return cls.model_validate(item)


# =====================================================
# Tracked data
# =====================================================


class BehaviorOccurrence(BaseModel):
    """
    A single tracked occurrence in a student's data.

    PK: STUDENT#<student_id>
    SK: DATA#<epoch_ms>#<behavior_id>
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    date_epoch: int = Field(..., alias="dateEpoc", description="Millisecond epoch")
    behavior: str = Field(..., description="Behavior or response id")
    deleted: bool = Field(default=False)

    def to_dynamodb(self, student_id: str) -> dict[str, Any]:
        """Convert to DynamoDB item."""
        return {
            "PK": student_pk(student_id),
            "SK": data_sk(self.date_epoch, self.behavior),
            "dateEpoc": self.date_epoch,
            "behavior": self.behavior,
            "deleted": self.deleted,
        }

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> "BehaviorOccurrence":
        """Parse from DynamoDB item."""
        return cls(
            date_epoch=int(item.get("dateEpoc", 0)),
            behavior=item.get("behavior", ""),
            deleted=bool(item.get("deleted", False)),
        )


# =====================================================
# Team
# =====================================================


class AccessLevel(str, Enum):
    """Team member access level to a student's data."""

    ADMIN = "admin"
    READ = "read"
    NONE = "none"


class AccessRestrictions(BaseModel):
    """What a team member may see for a student."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    behavior: AccessLevel | None = Field(default=None)
    behaviors: list[str] | None = Field(
        default=None,
        description="Explicit behavior allow-list; None means unrestricted",
    )

    def allows_behavior(self, behavior_id: str) -> bool:
        if self.behavior == AccessLevel.NONE:
            return False
        if self.behaviors is not None and behavior_id not in self.behaviors:
            return False
        return True


class TeamMember(BaseModel):
    """
    Team membership of a user for a student.

    PK: STUDENT#<student_id>
    SK: TEAM#<user_id>
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    restrictions: AccessRestrictions = Field(default_factory=AccessRestrictions)

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> "TeamMember":
        """Parse from DynamoDB item."""
        return cls.model_validate(item)


# =====================================================
# Devices
# =====================================================


class PushPlatform(str, Enum):
    """Mobile platform behind a push endpoint."""

    IOS = "ios"
    ANDROID = "android"


class PushEndpoint(BaseModel):
    """
    SNS platform endpoint registered for an app install.

    PK: APP#<device_id>
    SK: PUSH
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    device_id: str = Field(..., alias="deviceId")
    os: PushPlatform
    endpoint_arn: str | None = Field(default=None, alias="endpointArn")


# =====================================================
# User records
# =====================================================


class NotificationType(str, Enum):
    """Kind of in-app notification."""

    BEHAVIOR = "behavior"
    BEHAVIOR_CHANGE = "behavior-change"


class NotificationDetails(BaseModel):
    """Payload of an in-app notification."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: NotificationType
    behavior_id: str | None = Field(default=None, alias="behaviorId")
    student_id: str | None = Field(default=None, alias="studentId")


class UserStudentNotification(BaseModel):
    """
    In-app notification for a user about a student.

    PK: USN#<user_id>
    SK: S#<student_id>#T#<type>#D#<date>
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    student_id: str = Field(..., alias="studentId")
    date: int = Field(..., description="Millisecond epoch of the occurrence")
    details: NotificationDetails

    @property
    def pk(self) -> str:
        return f"USN#{self.user_id}"

    @property
    def sk(self) -> str:
        return f"S#{self.student_id}#T#{self.details.type.value}#D#{self.date}"

    def to_dynamodb(self) -> dict[str, Any]:
        """Convert to DynamoDB item."""
        return {
            "PK": self.pk,
            "SK": self.sk,
            "userId": self.user_id,
            "studentId": self.student_id,
            "event": {
                "date": self.date,
                "details": self.details.model_dump(mode="json", by_alias=True, exclude_none=True),
            },
        }

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> "UserStudentNotification":
        """Parse from DynamoDB item."""
        event = item.get("event", {})
        return cls(
            user_id=item.get("userId", ""),
            student_id=item.get("studentId", ""),
            date=int(event.get("date", 0)),
            details=NotificationDetails.model_validate(event.get("details", {})),
        )


class UserStudentSummary(BaseModel):
    """
    Per-student entry in a user's summary list.

    awaiting_response is the outstanding alert flag.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    student_id: str = Field(..., alias="studentId")
    count: int = Field(default=0, ge=0)
    awaiting_response: bool = Field(default=False, alias="awaitingResponse")

    def to_dynamodb(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
