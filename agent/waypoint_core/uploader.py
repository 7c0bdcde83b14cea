"""
UploadPipeline: drains the LocalBuffer to the collection server.

At-least-once per chunk: a chunk is peeked (not popped), posted, and only
removed from the buffer after a 2xx. Any failure stops the drain and leaves
the failed chunk and everything behind it in place for the next trigger.
There is no timer-driven retry; the next threshold crossing, forced flush,
or live-loop exit tries again.

All runs go through a SingleFlight lane so two drains never post
overlapping prefixes.
"""

import json

import requests

from .config import log
from .constants import API_PATH, BATCH_ENDPOINT, API_TIMEOUT_UPLOAD, MAX_CHUNK_SIZE
from .lanes import SingleFlight
from . import http_client


def batch_url(server_host):
    return f"{server_host.rstrip('/')}{API_PATH}{BATCH_ENDPOINT}"


def encode_batch(records):
    """Serialize records to the batch body. Raises ValueError on NaN/inf."""
    return json.dumps({"gps_data": [r.to_wire() for r in records]}, allow_nan=False)


class UploadPipeline:

    def __init__(self, buffer, config, session, notifier, is_reachable,
                 max_chunk_size=MAX_CHUNK_SIZE, timeout=API_TIMEOUT_UPLOAD,
                 session_factory=http_client.create_session):
        """
        session:      a requests.Session (see http_client.create_session)
        is_reachable: callable, True when the network is believed up
        session_factory: builds a replacement session after a connection error
        """
        self._buffer = buffer
        self._config = config
        self.session = session
        self._notifier = notifier
        self._is_reachable = is_reachable
        self.max_chunk_size = max_chunk_size
        self._timeout = timeout
        self._session_factory = session_factory
        self._lane = SingleFlight("upload", self._drain)

    # ─── Triggers ────────────────────────────────────────────

    def request_flush(self, force=False):
        """Non-blocking trigger (threshold, loop exit). Coalesced if busy."""
        self._lane.request(force)

    def flush(self, force=True):
        """
        Blocking flush in the caller's thread. Returns (sent, remaining),
        or None when it was folded into a run that was already in flight.
        """
        return self._lane.run_now(force)

    def wait_idle(self, timeout=None):
        return self._lane.wait(timeout)

    @property
    def in_flight(self):
        return self._lane.in_flight

    # ─── Drain loop ──────────────────────────────────────────

    def _drain(self, force):
        if not force and len(self._buffer) < self._config.max_buffer_size:
            return 0, len(self._buffer)

        if not self._is_reachable():
            log.info("Flush skipped: network unreachable")
            return 0, len(self._buffer)

        host = self._config.server_host
        if not host or len(self._buffer) == 0:
            return 0, len(self._buffer)

        url = batch_url(host)
        params = {"api_key": self._config.server_key}
        sent = 0

        while len(self._buffer) > 0:
            chunk = self._buffer.peek_chunk(self.max_chunk_size)
            before = len(self._buffer)

            if (
                self._post_chunk(url, params, chunk)
                and self._buffer.remove_first(len(chunk), sent=chunk)
            ):
                sent += len(chunk)

            # Nothing removed: the post failed or the prefix no longer matched
            if len(self._buffer) >= before:
                break

        remaining = len(self._buffer)
        if sent:
            log.info("Uploaded %d records (%d still buffered)", sent, remaining)
        return sent, remaining

    def _post_chunk(self, url, params, chunk):
        """One POST. True only on a 2xx; every failure is logged and notified."""
        try:
            body = encode_batch(chunk)
        except (TypeError, ValueError) as e:
            log.error("Could not encode batch of %d records: %s", len(chunk), e)
            self._notifier.send(f"Could not encode batch: {e}", title="Encode Err")
            return False

        try:
            resp = self.session.post(
                url,
                params=params,
                data=body,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            log.warning("Upload network error: %s", e)
            if isinstance(e, requests.ConnectionError):
                self.session = http_client.reset_session(self.session, self._session_factory)
            self._notifier.send(f"Upload failed: {e}", title="Network Err")
            return False

        if 200 <= resp.status_code < 300:
            log.info("Chunk of %d records accepted (HTTP %d)", len(chunk), resp.status_code)
            return True

        detail = (resp.text or "")[:200]
        log.warning("Upload rejected: HTTP %d: %s", resp.status_code, detail)
        self._notifier.send(f"HTTP {resp.status_code}: {detail}", title="HTTP Err")
        return False
