"""
Paths, logging setup, safe_print.
"""

import os
import sys
import logging
from pathlib import Path


# ─── Paths ───────────────────────────────────────────────────────
# One data directory per user; override with WAYPOINT_AGENT_HOME.

BASE_DIR = Path(os.environ.get("WAYPOINT_AGENT_HOME", Path.home() / ".waypoint-agent"))

STATE_DIR = BASE_DIR / "state"
LOG_FILE = BASE_DIR / "agent.log"


# ─── Safe print (no crash when stdout is gone) ───────────────────

def safe_print(*args, **kwargs):
    try:
        print(*args, **kwargs)
    except Exception:
        pass


# ─── Logging ─────────────────────────────────────────────────────

log = logging.getLogger("waypoint")

_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_file=LOG_FILE, level=logging.INFO, console=True):
    """File log (reset past 1 MB) plus optional console output."""
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    try:
        if log_file.exists() and log_file.stat().st_size > 1_000_000:
            log_file.write_text("")
    except OSError:
        pass

    logging.basicConfig(
        filename=str(log_file),
        level=level,
        format=_FORMAT,
        datefmt=_DATEFMT,
        encoding="utf-8",
    )
    log.setLevel(level)

    if console and not any(getattr(h, "_waypoint_console", False) for h in log.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(_FORMAT, _DATEFMT))
        console_handler._waypoint_console = True
        log.addHandler(console_handler)
