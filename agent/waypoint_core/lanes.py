"""
Serial work lanes.

SerialLane   : one daemon worker draining a queue; tasks run one at a time
               in submission order. Used for every buffer write.
SingleFlight : at most one run in flight. A request arriving mid-run is not
               queued; it sets a pending flag and the running worker goes
               around once more. Used for uploads.
"""

import queue
import threading

from .config import log

_STOP = object()


class SerialLane:

    def __init__(self, name):
        self._name = name
        self._queue = queue.Queue()
        self._thread = None
        self._start_lock = threading.Lock()

    def _ensure_worker(self):
        with self._start_lock:
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(
                    target=self._run, name=f"lane-{self._name}", daemon=True,
                )
                self._thread.start()

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                fn, args, kwargs = item
                fn(*args, **kwargs)
            except Exception as e:
                log.error("%s lane task failed: %s", self._name, e, exc_info=True)
            finally:
                self._queue.task_done()

    def submit(self, fn, *args, **kwargs):
        self._ensure_worker()
        self._queue.put((fn, args, kwargs))

    def join(self):
        """Block until every task submitted so far has run."""
        self._queue.join()

    def close(self):
        if self._thread is not None and self._thread.is_alive():
            self._queue.put(_STOP)
            self._thread.join(timeout=5)


class SingleFlight:

    def __init__(self, name, target):
        """target(force) does the actual work; force requests are OR-ed."""
        self._name = name
        self._target = target
        self._lock = threading.Lock()
        self._in_flight = False
        self._pending = False
        self._pending_force = False
        self._idle = threading.Event()
        self._idle.set()

    @property
    def in_flight(self):
        with self._lock:
            return self._in_flight

    def request(self, force=False):
        """Non-blocking. Returns True if this call started a worker."""
        with self._lock:
            if self._in_flight:
                self._pending = True
                self._pending_force = self._pending_force or force
                log.debug("%s already running, request coalesced", self._name)
                return False
            self._in_flight = True
            self._idle.clear()

        threading.Thread(
            target=self._run, args=(force,), name=f"lane-{self._name}", daemon=True,
        ).start()
        return True

    def run_now(self, force=False):
        """
        Run in the caller's thread. If a run is already in flight, coalesce
        into it and wait for it to finish instead.
        """
        with self._lock:
            if self._in_flight:
                self._pending = True
                self._pending_force = self._pending_force or force
                coalesced = True
            else:
                self._in_flight = True
                self._idle.clear()
                coalesced = False
        if coalesced:
            self.wait()
            return None
        return self._run(force)

    def _run(self, force):
        result = None
        while True:
            try:
                result = self._target(force)
            except Exception as e:
                log.error("%s run failed: %s", self._name, e, exc_info=True)
            with self._lock:
                if not self._pending:
                    self._in_flight = False
                    self._idle.set()
                    return result
                force = self._pending_force
                self._pending = False
                self._pending_force = False

    def wait(self, timeout=None):
        """Block until no run is in flight. Returns False on timeout."""
        return self._idle.wait(timeout)
