"""
DutyCycleController: decides when continuous (live) sampling runs.

Idle          passive / significant-change fixes only
LiveSampling  a loop pulling the source's live stream on its own thread

Idle → LiveSampling: request_start() with tracking AND high density on and
no loop already running (single-flight under a lock).
LiveSampling → Idle: idle timeout, stop request, tracking switched off, or
the source failing. Every exit ends with on_exit(), which the agent wires
to a forced upload.
"""

import threading
import time

from .config import log
from .constants import (
    REGION_TIMEOUT_RADIUS_M, FOOT_IDLE_TIMEOUT_SEC, VEHICLE_IDLE_TIMEOUT_SEC,
    OUT_OF_VEHICLE_TIMEOUT_SEC, MOVING_SPEED_KMH, VEHICLE_SPEED_KMH, WALKING_SPEED_KMH,
)
from .position_source import PositionSourceError
from .state import DutyCycleState

CONTINUE = "continue"
EXIT_IDLE = "exit_idle"


class DutyCycleController:

    def __init__(self, source, tracking_enabled, high_density, on_fix, on_exit, notifier,
                 region_radius_m=REGION_TIMEOUT_RADIUS_M,
                 foot_timeout=FOOT_IDLE_TIMEOUT_SEC,
                 vehicle_timeout=VEHICLE_IDLE_TIMEOUT_SEC,
                 out_of_vehicle_timeout=OUT_OF_VEHICLE_TIMEOUT_SEC):
        self._source = source
        self._tracking_enabled = tracking_enabled
        self._high_density = high_density
        self._on_fix = on_fix
        self._on_exit = on_exit
        self._notifier = notifier

        self.region_radius_m = region_radius_m
        self.foot_timeout = foot_timeout
        self.vehicle_timeout = vehicle_timeout
        self.out_of_vehicle_timeout = out_of_vehicle_timeout

        self._lock = threading.Lock()
        self._running = False
        self._stop = threading.Event()
        self._thread = None
        self.state = None

    @property
    def is_running(self):
        with self._lock:
            return self._running

    # ─── Lifecycle ───────────────────────────────────────────

    def request_start(self):
        """Start the live loop if allowed and not already running."""
        if not self._tracking_enabled() or not self._high_density():
            return False

        with self._lock:
            if self._running:
                return False
            self._running = True
            self._stop.clear()
            self.state = DutyCycleState()
            self._thread = threading.Thread(target=self._run, name="live-loop", daemon=True)

        log.info("Starting live position updates")
        self._thread.start()
        return True

    def request_stop(self):
        """Cooperative: the loop sees this on its next fix (or source wake-up)."""
        self._stop.set()

    def join(self, timeout=None):
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return not self.is_running

    # ─── Per-fix decision ────────────────────────────────────

    def step(self, fix):
        """Advance the state machine by one live fix. Returns CONTINUE or EXIT_IDLE."""
        st = self.state
        st.fixes_seen += 1
        st.update_anchor(fix, MOVING_SPEED_KMH, self.region_radius_m)

        if st.idle_timed_out(fix.timestamp, self.foot_timeout, self.vehicle_timeout):
            return EXIT_IDLE

        if st.update_vehicle(fix, VEHICLE_SPEED_KMH, WALKING_SPEED_KMH,
                             self.out_of_vehicle_timeout):
            log.info("In-vehicle: %s (%.0f km/h)", st.in_vehicle, fix.speed_kmh)
        return CONTINUE

    # ─── Loop (own thread) ───────────────────────────────────

    def _run(self):
        self._notifier.send("Starting Updates")
        try:
            for fix in self._source.live_updates(self._stop):
                if self._stop.is_set() or not self._tracking_enabled():
                    log.info("Live updates stop requested")
                    break
                if self.step(fix) == EXIT_IDLE:
                    log.info(
                        "No movement for %.0fs (in_vehicle=%s), ending live updates",
                        self.state.idle_seconds(fix.timestamp), self.state.in_vehicle,
                    )
                    break
                self._on_fix(fix)
        except PositionSourceError as e:
            log.error("Could not run live location updates: %s", e)
        except Exception as e:
            log.error("Live loop error: %s", e, exc_info=True)
        finally:
            log.info(
                "Logged for %.0f seconds (%d fixes)",
                time.time() - self.state.loop_started_at, self.state.fixes_seen,
            )
            try:
                self._on_exit()
            except Exception as e:
                log.error("Live loop exit hook failed: %s", e)
            with self._lock:
                self._running = False
            self._notifier.send("Stopping Updates")
