"""
DutyCycleState: per-run state of the live-sampling loop.

Created fresh every time the loop (re)starts and dropped when it exits;
never persisted. Only the loop thread touches it, so no locks.
All times are fix timestamps (epoch seconds), which keeps the idle and
vehicle timeouts tied to when positions were measured rather than when
they happened to be delivered.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

from .geo import distance_between
from .models import Fix


@dataclass
class DutyCycleState:
    loop_started_at: float = field(default_factory=time.time)

    # ── Movement anchor ───────────────────────────────────────
    anchor: Optional[Fix] = None
    last_moved_at: Optional[float] = None

    # ── Vehicle detection ─────────────────────────────────────
    in_vehicle: bool = False
    last_fast_at: float = 0.0

    fixes_seen: int = 0

    def update_anchor(self, fix, moving_kmh, radius_m):
        """Re-anchor on first fix, on real speed, or once outside the radius."""
        if (
            self.anchor is None
            or self.last_moved_at is None
            or fix.speed_kmh >= moving_kmh
            or distance_between(self.anchor, fix) >= radius_m
        ):
            self.anchor = fix
            self.last_moved_at = fix.timestamp
            return True
        return False

    def idle_seconds(self, now):
        if self.last_moved_at is None:
            return 0.0
        return now - self.last_moved_at

    def idle_timed_out(self, now, foot_timeout, vehicle_timeout):
        """Long leash once in a vehicle, short leash on foot."""
        idle = self.idle_seconds(now)
        return idle > vehicle_timeout or (idle > foot_timeout and not self.in_vehicle)

    def update_vehicle(self, fix, vehicle_kmh, walking_kmh, out_of_vehicle_timeout):
        """
        Enter in-vehicle at vehicle speed. Leave only after a full timeout
        without a fast sample AND while moving in the [walking, vehicle)
        band, so a short slow stretch on a highway does not flip it.
        Returns True if the flag changed.
        """
        speed = fix.speed_kmh
        if speed >= vehicle_kmh:
            self.last_fast_at = fix.timestamp

        if not self.in_vehicle and speed >= vehicle_kmh:
            self.in_vehicle = True
            return True
        if (
            self.in_vehicle
            and fix.timestamp - self.last_fast_at > out_of_vehicle_timeout
            and walking_kmh <= speed < vehicle_kmh
        ):
            self.in_vehicle = False
            return True
        return False
