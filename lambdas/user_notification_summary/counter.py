"""
Summary counter arithmetic.

Decides how a user's per-student summary entry changes when one of the
user's in-app notification records is inserted or removed.
"""

from dataclasses import dataclass
from enum import Enum

from notifications.shared.models.dynamo import UserStudentSummary


class SummaryAction(str, Enum):
    """Write to apply to the summary list."""

    APPEND = "append"
    UPDATE = "update"
    REMOVE = "remove"
    NONE = "none"


@dataclass(frozen=True)
class SummaryChange:
    """A single write against the user's summary list."""

    action: SummaryAction
    entry: UserStudentSummary | None = None
    index: int | None = None


def compute_change(
    summary: list[UserStudentSummary],
    student_id: str,
    *,
    inserted: bool,
    had_previous: bool,
) -> SummaryChange:
    """
    Work out the summary write for one notification record change.

    Args:
        summary: The user's current summary entries
        student_id: Student of the changed record
        inserted: The record exists after the change
        had_previous: The record existed before the change

    Returns:
        SummaryChange; NONE for updates of an existing record
    """
    index = next((i for i, e in enumerate(summary) if e.student_id == student_id), None)

    if not inserted:
        if index is None:
            return SummaryChange(SummaryAction.NONE)
        current = summary[index]
        count = max(current.count - 1, 0)
        if count == 0 and not current.awaiting_response:
            return SummaryChange(SummaryAction.REMOVE, index=index)
        return SummaryChange(
            SummaryAction.UPDATE,
            entry=current.model_copy(update={"count": count}),
            index=index,
        )

    if index is None:
        return SummaryChange(
            SummaryAction.APPEND,
            entry=UserStudentSummary(student_id=student_id, count=1, awaiting_response=False),
        )

    if not had_previous:
        current = summary[index]
        return SummaryChange(
            SummaryAction.UPDATE,
            entry=current.model_copy(update={"count": current.count + 1}),
            index=index,
        )

    return SummaryChange(SummaryAction.NONE)
