"""
Message Composer

Renders per-channel alert text from a subscription's templates.
"""

import re
from typing import Callable

from notifications.behavior_alert.models import ComposedMessages
from notifications.shared.models.dynamo import MessageTemplates, Student

WHO_TRACKED = "{whotracked}"


def needs_source_name(templates: MessageTemplates) -> bool:
    """Whether any template references {WhoTracked}, case-insensitively."""
    return any(WHO_TRACKED in t.lower() for t in templates.all_templates())


def render(template: str, values: dict[str, str | None]) -> str:
    """Replace {Placeholder} tokens, matching names case-insensitively."""
    for name, value in values.items():
        template = re.sub(
            re.escape("{" + name + "}"),
            lambda _m, v=value or "": v,
            template,
            flags=re.IGNORECASE,
        )
    return template


def compose_messages(
    templates: MessageTemplates,
    student: Student,
    behavior_name: str | None,
    resolve_source: Callable[[], str | None],
) -> ComposedMessages:
    """
    Render the app, email and text messages of a subscription.

    Each channel uses its own template, else the default template; a
    channel with neither yields None. resolve_source is called at most
    once, and only when some template references {WhoTracked}.
    """
    source = resolve_source() if needs_source_name(templates) else None

    values = {
        "FirstName": student.details.first_name,
        "LastName": student.details.last_name,
        "Nickname": student.details.nickname,
        "WhoTracked": source,
        "Behavior": behavior_name,
    }

    def channel(custom: str | None) -> str | None:
        template = custom or templates.default
        if not template:
            return None
        return render(template, values)

    return ComposedMessages(
        app=channel(templates.app),
        email=channel(templates.email),
        text=channel(templates.text),
    )
