"""
LocalBuffer: ordered, persisted queue of PositionRecords awaiting upload.

The in-memory list is the working copy; every mutation rewrites the
persisted list so a restart resumes with exactly what was not yet
confirmed delivered. Appends happen on the write lane, head removals on the
upload lane; one lock keeps the two from interleaving mid-update.
"""

import threading

from .config import log
from .models import PositionRecord

BUFFER_KEY = "trace_buffer"


class LocalBuffer:

    def __init__(self, store, max_size=None, on_full=None):
        """
        max_size: callable returning the current high-water mark.
        on_full:  non-blocking callable invoked when an append reaches it.
        """
        self._store = store
        self._max_size = max_size
        self._on_full = on_full
        self._lock = threading.Lock()
        self._records = self._load()

    def _load(self):
        raw = self._store.get(BUFFER_KEY, [])
        if not isinstance(raw, list):
            log.error("Stored buffer is not a list (%s), starting empty", type(raw).__name__)
            return []
        records = []
        for item in raw:
            try:
                records.append(PositionRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                log.warning("Dropping unreadable buffered record: %s", e)
        if records:
            log.info("Restored %d buffered records", len(records))
        return records

    def _persist(self):
        self._store.set(BUFFER_KEY, [r.to_dict() for r in self._records])

    def __len__(self):
        with self._lock:
            return len(self._records)

    def append(self, record):
        with self._lock:
            self._records.append(record)
            self._persist()
            size = len(self._records)

        if self._max_size is not None and size >= self._max_size():
            log.info("Buffer at %d records, requesting flush", size)
            if self._on_full is not None:
                self._on_full()

    def peek_chunk(self, n):
        """First n records (fewer if the buffer is shorter). Nothing is removed."""
        if n <= 0:
            return []
        with self._lock:
            return list(self._records[:n])

    def remove_first(self, n, sent=None):
        """
        Drop exactly the n oldest records. Called only after the upload of
        that exact prefix was confirmed, so n > len is a sequencing bug:
        logged, nothing removed, returns False.

        With `sent` (the records returned by peek_chunk and posted), the head
        must still be those very objects. A clear() plus new appends while the
        POST was in flight makes the head differ, and those records were never
        sent: refuse, log, return False.
        """
        with self._lock:
            if n < 0 or n > len(self._records):
                log.error(
                    "remove_first(%d) with only %d buffered records, ignoring",
                    n, len(self._records),
                )
                return False
            if sent is not None and (
                len(sent) != n
                or any(a is not b for a, b in zip(self._records[:n], sent))
            ):
                log.error(
                    "Buffer head changed during upload, keeping %d records",
                    len(self._records),
                )
                return False
            del self._records[:n]
            self._persist()
            return True

    def clear(self):
        with self._lock:
            dropped = len(self._records)
            self._records = []
            self._persist()
        log.info("Buffer cleared (%d records dropped)", dropped)

    def snapshot(self):
        with self._lock:
            return list(self._records)
