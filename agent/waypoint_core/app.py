"""
TrackingAgent: owns the buffer, lanes, controller, and upload pipeline.

Threads:
  write lane    SampleFilter.submit / LocalBuffer.clear, strictly in order
  upload lane   UploadPipeline drains (single-flight, coalesced)
  live loop     DutyCycleController, at most one at a time
  net monitor   refreshes the reachability flag

The presentation layer (CLI, embedding app) only goes through the control
surface at the bottom: enable/disable and other settings, force_flush(),
clear_buffer(), buffer_length().
"""

from .config import log
from .duty_cycle import DutyCycleController
from .buffer import LocalBuffer
from .lanes import SerialLane
from .network import NetworkMonitor
from .notifier import Notifier, log_sink
from .sample_filter import SampleFilter
from .settings import TrackingConfig
from .uploader import UploadPipeline
from . import http_client


class TrackingAgent:

    def __init__(self, store, source, session=None, is_reachable=None,
                 notification_sink=log_sink, **controller_opts):
        """
        store:        KeyValueStore holding settings, buffer, last record
        source:       PositionSource
        is_reachable: optional callable; defaults to a NetworkMonitor probe
        """
        self.config = TrackingConfig(store)
        self._store = store
        self._source = source

        self.notifier = Notifier(lambda: self.config.debug_notifications, notification_sink)
        self.write_lane = SerialLane("write")

        self.buffer = LocalBuffer(
            store,
            max_size=lambda: self.config.max_buffer_size,
            on_full=self._on_buffer_full,
        )
        self.filter = SampleFilter(self.buffer, store)

        self.network = None
        if is_reachable is None:
            self.network = NetworkMonitor(lambda: self.config.server_host)
            is_reachable = lambda: self.network.reachable

        self.uploader = UploadPipeline(
            self.buffer,
            self.config,
            session if session is not None else http_client.create_session(),
            self.notifier,
            is_reachable,
        )

        self.duty_cycle = DutyCycleController(
            source,
            tracking_enabled=lambda: self.config.tracking_activated,
            high_density=lambda: self.config.always_high_density,
            on_fix=self.submit_fix,
            on_exit=lambda: self._flush_after_writes(force=True),
            notifier=self.notifier,
            **controller_opts,
        )

    # ─── Lifecycle ───────────────────────────────────────────

    def try_start(self):
        """Resume tracking at process start if it was left enabled."""
        if self.config.tracking_activated:
            self.start()

    def start(self):
        if not self._source.request_authorization():
            log.warning("Tracking capability not granted, positions will not arrive")
            self.notifier.send("Location access not granted.")
        if self.network is not None:
            self.network.start()
        self._source.start_monitoring(self._on_passive_fixes, self._on_visit, self._on_source_error)
        log.info("Tracking started (high_density=%s, max_buffer=%d)",
                 self.config.always_high_density, self.config.max_buffer_size)
        self.duty_cycle.request_start()

    def stop(self):
        self._source.stop_monitoring()
        self.duty_cycle.request_stop()
        log.info("Tracking stopped")

    def shutdown(self, timeout=10):
        """Stop everything and wait for pending writes and uploads to settle."""
        self.stop()
        self.duty_cycle.join(timeout)
        self.write_lane.join()
        self.uploader.wait_idle(timeout)
        self.write_lane.close()
        if self.network is not None:
            self.network.stop()

    # ─── Position source callbacks ───────────────────────────

    def _on_passive_fixes(self, fixes):
        # While the live loop runs it already delivers these positions
        if not self.duty_cycle.is_running:
            for fix in fixes:
                self.submit_fix(fix)
        self.duty_cycle.request_start()

    def _on_visit(self, visit):
        if not visit.has_departed:
            self._flush_after_writes(force=True)
            return
        self.notifier.send("You left a Location.")
        self.duty_cycle.request_start()

    def _on_source_error(self, error):
        log.error("No location received: %s", error)

    # ─── Write lane plumbing ─────────────────────────────────

    def submit_fix(self, fix):
        self.write_lane.submit(self.filter.submit, fix)

    def _on_buffer_full(self):
        # Runs on the write lane; must not block it
        self.uploader.request_flush(force=False)

    def _flush_after_writes(self, force):
        """Queue the flush behind pending writes so it sees them."""
        self.write_lane.submit(self.uploader.request_flush, force)

    # ─── Control surface ─────────────────────────────────────

    def buffer_length(self):
        return len(self.buffer)

    def force_flush(self):
        """Drain pending writes, then upload everything. Returns (sent, remaining)."""
        self.write_lane.join()
        return self.uploader.flush(force=True)

    def clear_buffer(self):
        self.write_lane.submit(self.buffer.clear)
        self.write_lane.join()

    def set_tracking_enabled(self, enabled):
        self.config.tracking_activated = enabled
        if enabled:
            self.start()
        else:
            self.stop()

    def set_high_density(self, enabled):
        self.config.always_high_density = enabled
        if enabled and self.config.tracking_activated:
            self.duty_cycle.request_start()

    def set_debug_notifications(self, enabled):
        was_enabled = self.config.debug_notifications
        self.config.debug_notifications = enabled
        if enabled and not was_enabled:
            self.notifier.send("Notifications activated.")

    def set_server(self, host, key=None):
        self.config.server_host = host
        if key is not None:
            self.config.server_key = key
        if self.network is not None:
            self.network.check_now()

    def set_max_buffer_size(self, size):
        self.config.max_buffer_size = size
