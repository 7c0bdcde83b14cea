"""
Connectivity monitoring.

is_online() is a socket-level probe against the collection server: it only
asks whether a TCP connection can be opened, so it works on any interface.
NetworkMonitor keeps the answer fresh from a daemon thread; the upload
pipeline reads `reachable` as its first precondition.
"""

import socket
import threading
from urllib.parse import urlsplit

from .config import log
from .constants import CONNECTIVITY_CHECK_SEC, CONNECT_TIMEOUT_SEC


def is_online(server_url, timeout=CONNECT_TIMEOUT_SEC):
    """Quick TCP connect to the server's host:port. Never raises."""
    if not server_url:
        return False
    try:
        parts = urlsplit(server_url if "://" in server_url else f"http://{server_url}")
        host = parts.hostname
        if not host:
            return False
        port = parts.port or (443 if parts.scheme == "https" else 80)
        sock = socket.create_connection((host, port), timeout=timeout)
        sock.close()
        return True
    except (socket.timeout, OSError, ValueError):
        return False


class NetworkMonitor:
    """
    Polls is_online() every `interval` seconds against the host returned by
    `server_url()`. Starts pessimistic: unreachable until the first probe
    succeeds.
    """

    def __init__(self, server_url, interval=CONNECTIVITY_CHECK_SEC, probe=is_online):
        self._server_url = server_url
        self._interval = interval
        self._probe = probe
        self._reachable = False
        self._stop = threading.Event()
        self._thread = None

    @property
    def reachable(self):
        return self._reachable

    def check_now(self):
        online = bool(self._probe(self._server_url()))
        if online != self._reachable:
            if online:
                log.info("Network ONLINE, collection server reachable")
            else:
                log.warning("Network OFFLINE, collection server unreachable")
        self._reachable = online
        return online

    def _loop(self):
        while not self._stop.wait(self._interval):
            try:
                self.check_now()
            except Exception as e:
                log.error("Connectivity check error: %s", e)

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self.check_now()
        self._thread = threading.Thread(target=self._loop, name="net-monitor", daemon=True)
        self._thread.start()
        log.info("Network monitor started (every %ds)", self._interval)

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval + 1)
