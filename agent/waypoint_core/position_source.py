"""
Position sources.

PositionSource is the contract the agent consumes; the platform supplies the
real one. Two implementations ship here:

  QueuePositionSource   : fed by push_* calls (embedding apps, tests)
  ReplayPositionSource  : replays a JSON-lines file of fixes as the live stream

Passive (significant-change) fixes, visits and errors are delivered through
callbacks registered with start_monitoring(). The live stream is pulled:
live_updates(cancel) returns a lazy, non-restartable iterator of Fix that
blocks between fixes and ends when `cancel` is set or the stream closes.
"""

import json
import queue
from pathlib import Path

from .config import log
from .models import Fix


class PositionSourceError(RuntimeError):
    """The platform could not deliver positions (no permission, hardware off...)."""


class PositionSource:

    def request_authorization(self):
        """Ask for the tracking capability. Default: already granted."""
        return True

    def start_monitoring(self, on_fix, on_visit, on_error):
        raise NotImplementedError

    def stop_monitoring(self):
        raise NotImplementedError

    def live_updates(self, cancel):
        raise NotImplementedError


_END = object()


class QueuePositionSource(PositionSource):
    """
    In-process source. Passive events are dispatched synchronously to the
    registered callbacks; live fixes are queued for whoever iterates
    live_updates().
    """

    def __init__(self, poll_interval=0.2, authorized=True):
        self._live = queue.Queue()
        self._poll_interval = poll_interval
        self._authorized = authorized
        self._on_fix = None
        self._on_visit = None
        self._on_error = None
        self.monitoring = False

    def request_authorization(self):
        return self._authorized

    def start_monitoring(self, on_fix, on_visit, on_error):
        self._on_fix = on_fix
        self._on_visit = on_visit
        self._on_error = on_error
        self.monitoring = True

    def stop_monitoring(self):
        self.monitoring = False

    # ── Producer side ──────────────────────────────────────

    def push_passive(self, *fixes):
        if self.monitoring and self._on_fix is not None:
            self._on_fix(list(fixes))

    def push_visit(self, visit):
        if self.monitoring and self._on_visit is not None:
            self._on_visit(visit)

    def push_error(self, error):
        if self._on_error is not None:
            self._on_error(error)

    def push_live(self, *fixes):
        for fix in fixes:
            self._live.put(fix)

    def fail_live(self, error):
        self._live.put(error)

    def end_live(self):
        self._live.put(_END)

    # ── Consumer side ──────────────────────────────────────

    def live_updates(self, cancel):
        if not self._authorized:
            raise PositionSourceError("tracking capability not granted")
        while not cancel.is_set():
            try:
                item = self._live.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            if item is _END:
                return
            if isinstance(item, BaseException):
                raise PositionSourceError(str(item)) from item
            yield item


class ReplayPositionSource(PositionSource):
    """
    Replays a recorded track as the live stream. Each line is a JSON object
    with Fix field names. Lines that fail to parse are skipped with a warning.
    """

    def __init__(self, path):
        self._path = Path(path)

    def start_monitoring(self, on_fix, on_visit, on_error):
        log.info("Replay source: passive monitoring is a no-op")

    def stop_monitoring(self):
        pass

    def live_updates(self, cancel):
        try:
            f = self._path.open("r", encoding="utf-8")
        except OSError as e:
            raise PositionSourceError(f"cannot open replay file {self._path}: {e}") from e
        with f:
            for lineno, line in enumerate(f, 1):
                if cancel.is_set():
                    return
                if not line.strip():
                    continue
                try:
                    yield Fix.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                    log.warning("Replay line %d skipped: %s", lineno, e)
