# Overview: Named signals for post-commit side effects (view/cache invalidation).

from __future__ import annotations

from blinker import Namespace
from flask import current_app

_signals = Namespace()

# Sent after a business transaction commits. Receivers get the app as sender
# and `groups`, a tuple of affected read views ("orders", "inventory", "pos").
resources_changed = _signals.signal("resources-changed")


def notify_resources_changed(*groups: str) -> None:
    """
    Fire-and-forget invalidation notice.

    A failing receiver is logged and swallowed: the committed transaction it
    describes is already durable and must not be reported as failed.
    """
    try:
        resources_changed.send(current_app._get_current_object(), groups=tuple(groups))
    except Exception:
        current_app.logger.warning("View invalidation failed for %s", ", ".join(groups), exc_info=True)
