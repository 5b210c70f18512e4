"""
Duration State Evaluator

A duration behavior is tracked twice: once when it starts, once when it
stops. The tracking pipeline attaches the parity of the occurrence count
(per day and per week) so a single event can tell which half it is.
"""

from notifications.shared.models.dynamo import StudentBehavior


def evaluate_started(
    behavior: StudentBehavior | None,
    day_parity: int | None,
    week_parity: int | None,
) -> bool | None:
    """
    Whether this occurrence starts (True) or stops (False) a duration.

    None for unknown and non-duration behaviors. Daytime behaviors count
    per day, others per week. Missing parity reads as a stop.
    """
    if behavior is None or not behavior.is_duration:
        return None
    parity = day_parity if behavior.daytime else week_parity
    return parity == 0
