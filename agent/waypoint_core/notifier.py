"""
Best-effort debug notifications.

Fire-and-forget: the core calls send() on lifecycle and error events, and
nothing it does depends on the outcome. Disabled unless the
debug-notification setting is on.
"""

from .config import log
from .constants import NOTIFICATION_TITLE


def log_sink(title, message):
    log.info("NOTIFY [%s] %s", title, message)


class Notifier:

    def __init__(self, enabled, sink=log_sink):
        """enabled: callable read on every send, so toggling takes effect at once."""
        self._enabled = enabled
        self._sink = sink

    def send(self, message, title=None):
        if not self._enabled():
            return
        full_title = NOTIFICATION_TITLE
        if title:
            full_title = f"{NOTIFICATION_TITLE} - {title}"
        try:
            self._sink(full_title, message)
        except Exception as e:
            log.warning("Notification sink failed: %s", e)
