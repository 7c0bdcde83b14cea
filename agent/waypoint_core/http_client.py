"""
HTTP session with connection pooling, transient-error retry, and certifi CA.

The adapter retries only idempotent requests. A batch POST is sent once per
flush: anything other than a 2xx is reported to the upload pipeline as a
failed chunk and retried on the next flush trigger.
"""

import os

import certifi
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import log

_retry_strategy = Retry(
    total=2,
    backoff_factor=1,                           # Wait 1s, 2s between retries
    status_forcelist=[502, 503, 504],
    allowed_methods=["GET", "HEAD"],            # Never re-send a batch POST
    raise_on_status=False,                      # Hand the final response back
)


def _get_ca_bundle():
    """Env override (REQUESTS_CA_BUNDLE / SSL_CERT_FILE) first, then certifi."""
    env_ca = os.environ.get("REQUESTS_CA_BUNDLE") or os.environ.get("SSL_CERT_FILE")
    if env_ca and os.path.isfile(env_ca):
        return env_ca
    return certifi.where()


def create_session():
    """Create a new requests.Session with pooling, retry, and SSL."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=1,
        pool_maxsize=2,
        max_retries=_retry_strategy,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = _get_ca_bundle()
    return session


def reset_session(session, factory=create_session):
    """Close and recreate the HTTP session (fixes stale connections)."""
    try:
        session.close()
    except Exception as e:
        log.debug("Closing stale session failed: %s", e)
    return factory()
