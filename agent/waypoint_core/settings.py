"""
TrackingConfig: typed view over the persisted settings keys.
"""

from .config import STATE_DIR
from .constants import BUFFER_SIZE_CHOICES, DEFAULT_MAX_BUFFER_SIZE
from .store import KeyValueStore


class TrackingConfig:
    """
    Process-wide settings backed by a KeyValueStore.

    Every setter persists immediately. Getters read through the store, so a
    value written by another process (the CLI) is seen on the next access.
    Side effects of toggling (start/stop, "activated" notification) live in
    TrackingAgent.
    """

    HOST = "server_host"
    KEY = "server_key"
    TRACKING = "tracking_activated"
    HIGH_DENSITY = "always_high_density"
    DEBUG_NOTIFICATIONS = "debug_notifications"
    MAX_BUFFER = "selected_max_buffer_size"

    def __init__(self, store):
        self._store = store

    @property
    def server_host(self) -> str:
        return str(self._store.get(self.HOST, "") or "")

    @server_host.setter
    def server_host(self, value):
        self._store.set(self.HOST, (value or "").strip().rstrip("/"))

    @property
    def server_key(self) -> str:
        return str(self._store.get(self.KEY, "") or "")

    @server_key.setter
    def server_key(self, value):
        self._store.set(self.KEY, (value or "").strip())

    @property
    def tracking_activated(self) -> bool:
        return bool(self._store.get(self.TRACKING, False))

    @tracking_activated.setter
    def tracking_activated(self, value):
        self._store.set(self.TRACKING, bool(value))

    @property
    def always_high_density(self) -> bool:
        return bool(self._store.get(self.HIGH_DENSITY, False))

    @always_high_density.setter
    def always_high_density(self, value):
        self._store.set(self.HIGH_DENSITY, bool(value))

    @property
    def debug_notifications(self) -> bool:
        return bool(self._store.get(self.DEBUG_NOTIFICATIONS, False))

    @debug_notifications.setter
    def debug_notifications(self, value):
        self._store.set(self.DEBUG_NOTIFICATIONS, bool(value))

    @property
    def max_buffer_size(self) -> int:
        """A stored 0, garbage, or size outside the choices reads as the default."""
        raw = self._store.get(self.MAX_BUFFER, 0)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return DEFAULT_MAX_BUFFER_SIZE
        if value not in BUFFER_SIZE_CHOICES:
            return DEFAULT_MAX_BUFFER_SIZE
        return value

    @max_buffer_size.setter
    def max_buffer_size(self, value):
        value = int(value)
        if value not in BUFFER_SIZE_CHOICES:
            raise ValueError(
                f"max buffer size must be one of {BUFFER_SIZE_CHOICES}, got {value}"
            )
        self._store.set(self.MAX_BUFFER, value)

    def as_dict(self):
        return {
            "serverHost": self.server_host,
            "serverKey": "***" if self.server_key else "",
            "trackingActivated": self.tracking_activated,
            "alwaysHighDensity": self.always_high_density,
            "debugNotifications": self.debug_notifications,
            "maxBufferSize": self.max_buffer_size,
        }


def load_config(state_dir=STATE_DIR):
    """Open the settings stored under state_dir."""
    return TrackingConfig(KeyValueStore(state_dir))
