"""
SampleFilter: decides whether a raw fix is worth keeping.

Rules, in order:
  1. horizontal accuracy above the limit      → drop (poor fix)
  2. not newer than the last accepted record  → drop (no going back in time)
  3. closer than the minimum displacement     → drop (standing still)
  4. otherwise normalize, append to the buffer, remember as last accepted

Drops are expected behavior, so they only log at DEBUG.
The "last accepted" record is persisted so the rules keep holding after a
restart and after the buffer is cleared or drained.
"""

from .config import log
from .constants import MAX_POSITION_ACCURACY_M, MIN_DISTANCE_BEFORE_SAVE_M
from .geo import distance_between
from .models import PositionRecord

LAST_RECORD_KEY = "last_location_item"

ACCEPTED = "accepted"
REJECT_ACCURACY = "low_accuracy"
REJECT_STALE = "stale_timestamp"
REJECT_DISTANCE = "insufficient_displacement"


class SampleFilter:

    def __init__(self, buffer, store,
                 max_accuracy_m=MAX_POSITION_ACCURACY_M,
                 min_distance_m=MIN_DISTANCE_BEFORE_SAVE_M):
        self._buffer = buffer
        self._store = store
        self.max_accuracy_m = max_accuracy_m
        self.min_distance_m = min_distance_m
        self._last = self._load_last()

    def _load_last(self):
        raw = self._store.get(LAST_RECORD_KEY)
        if raw is None:
            return None
        try:
            return PositionRecord.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            log.warning("Ignoring unreadable last accepted record: %s", e)
            return None

    @property
    def last_accepted(self):
        return self._last

    def evaluate(self, fix):
        """Classify a fix against the rules without side effects."""
        if fix.horizontal_accuracy > self.max_accuracy_m:
            return REJECT_ACCURACY
        last = self._last
        if last is not None:
            if last.timestamp >= fix.timestamp:
                return REJECT_STALE
            if distance_between(last, fix) < self.min_distance_m:
                return REJECT_DISTANCE
        return ACCEPTED

    def submit(self, fix):
        """
        Run a fix through the rules. On acceptance the record is appended
        (which may request a flush) and returned; otherwise returns None.
        Must only be called from the write lane.
        """
        verdict = self.evaluate(fix)
        if verdict != ACCEPTED:
            log.debug("Fix at %.3f dropped: %s", fix.timestamp, verdict)
            return None

        record = PositionRecord.from_fix(fix)
        self._buffer.append(record)
        self._last = record
        self._store.set(LAST_RECORD_KEY, record.to_dict())
        return record
