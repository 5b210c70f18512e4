"""
Subscription Matcher

Selects the subscriptions interested in a behavior event.
"""

import structlog

from notifications.behavior_alert.models import MatchedSubscription
from notifications.shared.models.dynamo import SubscriptionGroup

log = structlog.get_logger()


def match_subscriptions(
    behavior_id: str,
    subscriptions: list[SubscriptionGroup],
) -> list[MatchedSubscription]:
    """
    Keep the subscriptions that list the event's behavior, in input order.

    Only behavior_ids is consulted; a subscription is never matched on
    its response_ids.
    """
    matches = []
    for subscription in subscriptions:
        if not subscription.watches(behavior_id):
            log.debug(
                "subscription_not_matched",
                subscription=subscription.key,
                behavior_id=behavior_id,
            )
            continue
        matches.append(
            MatchedSubscription(
                subscription=subscription,
                escalation_eligible=subscription.escalation_eligible,
            )
        )
    return matches


def any_escalation_eligible(matches: list[MatchedSubscription]) -> bool:
    return any(m.escalation_eligible for m in matches)
