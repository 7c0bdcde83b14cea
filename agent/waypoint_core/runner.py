"""
Entry point, command line, and auto-restart wrapper.

  waypoint-agent run [--replay FILE]   start tracking (blocks)
  waypoint-agent status                buffer length + settings
  waypoint-agent flush                 force-upload the persisted buffer
  waypoint-agent clear                 drop the persisted buffer
  waypoint-agent config [...]          change settings

status/flush/clear/config work on the persisted state and are meant to be
used while no `run` process is holding the buffer.
"""

import argparse
import json
import logging
import sys
import time

from .constants import AGENT_VERSION, BUFFER_SIZE_CHOICES
from .config import log, safe_print, setup_logging, STATE_DIR, LOG_FILE
from .app import TrackingAgent
from .position_source import QueuePositionSource, ReplayPositionSource
from .store import KeyValueStore


def _on_off(value):
    value = value.strip().lower()
    if value in {"1", "on", "true", "yes"}:
        return True
    if value in {"0", "off", "false", "no"}:
        return False
    raise argparse.ArgumentTypeError(f"expected on/off, got {value!r}")


def build_parser():
    parser = argparse.ArgumentParser(prog="waypoint-agent", description="Background location tracking agent")
    parser.add_argument("--state-dir", default=str(STATE_DIR), help="directory holding persisted state")
    parser.add_argument("--log-file", default=str(LOG_FILE))
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="start tracking")
    run.add_argument("--replay", help="JSON-lines file of fixes to replay as the live stream")
    run.add_argument("--no-restart", action="store_true", help="do not restart after a crash")

    sub.add_parser("status", help="show buffer length and settings")
    sub.add_parser("flush", help="upload the buffer now")
    sub.add_parser("clear", help="drop every buffered record")

    cfg = sub.add_parser("config", help="change settings")
    cfg.add_argument("--host")
    cfg.add_argument("--key")
    cfg.add_argument("--tracking", type=_on_off)
    cfg.add_argument("--high-density", type=_on_off)
    cfg.add_argument("--debug-notifications", type=_on_off)
    cfg.add_argument("--max-buffer", type=int, choices=BUFFER_SIZE_CHOICES)
    return parser


# ─── Commands ────────────────────────────────────────────────────

def _cmd_run(agent, args):
    if args.replay:
        # Replay forces tracking on for this run only
        cfg = agent.config
        saved = cfg.tracking_activated, cfg.always_high_density
        cfg.tracking_activated = True
        cfg.always_high_density = True
        try:
            agent.start()
            agent.duty_cycle.join()
            agent.shutdown()
        finally:
            cfg.tracking_activated, cfg.always_high_density = saved
        safe_print(f"Replay finished, {agent.buffer_length()} records still buffered.")
        return 0

    agent.try_start()
    if not agent.config.tracking_activated:
        log.info("Tracking is disabled; enable it with `config --tracking on`")
    safe_print("Agent running. Ctrl+C to stop.\n")
    try:
        while True:
            time.sleep(1)
    finally:
        agent.shutdown()
    return 0


def _cmd_status(agent, args):
    payload = {"version": AGENT_VERSION, "bufferLength": agent.buffer_length()}
    payload.update(agent.config.as_dict())
    safe_print(json.dumps(payload, indent=2))
    return 0


def _cmd_flush(agent, args):
    if agent.network is not None:
        agent.network.check_now()
    result = agent.force_flush()
    if result is None:
        safe_print("A flush was already running.")
        return 0
    sent, remaining = result
    safe_print(f"Uploaded {sent} records, {remaining} still buffered.")
    return 0 if remaining == 0 else 1


def _cmd_clear(agent, args):
    agent.clear_buffer()
    safe_print("Buffer cleared.")
    return 0


def _cmd_config(agent, args):
    if args.host is not None:
        agent.config.server_host = args.host
    if args.key is not None:
        agent.config.server_key = args.key
    if args.tracking is not None:
        agent.config.tracking_activated = args.tracking
    if args.high_density is not None:
        agent.config.always_high_density = args.high_density
    if args.debug_notifications is not None:
        agent.set_debug_notifications(args.debug_notifications)
    if args.max_buffer is not None:
        agent.set_max_buffer_size(args.max_buffer)
    return _cmd_status(agent, args)


_COMMANDS = {
    "run": _cmd_run,
    "status": _cmd_status,
    "flush": _cmd_flush,
    "clear": _cmd_clear,
    "config": _cmd_config,
}


def main(argv=None):
    """Primary entry point. Returns a process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file, level=logging.DEBUG if args.verbose else logging.INFO, console=args.command == "run")

    replay = getattr(args, "replay", None)
    source = ReplayPositionSource(replay) if replay else QueuePositionSource()
    agent = TrackingAgent(KeyValueStore(args.state_dir), source)
    if args.command == "run":
        log.info("WayPoint agent v%s starting (state=%s)", AGENT_VERSION, args.state_dir)
    return _COMMANDS[args.command](agent, args)


def run_with_auto_restart(argv=None):
    """
    Wrapper that restarts `run` after a crash. Crash counter resets if the
    agent ran for 2+ minutes (not a boot-loop).
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    if "run" not in argv or "--no-restart" in argv or "--replay" in argv:
        return main(argv)

    crash_count = 0
    crash_window = 120
    max_rapid_crashes = 10

    while True:
        start_time = time.time()
        try:
            return main(argv)
        except KeyboardInterrupt:
            safe_print("\nAgent stopped by user.")
            return 0
        except Exception as e:
            elapsed = time.time() - start_time
            log.error("Agent crashed after %.0fs: %s", elapsed, e, exc_info=True)

            if elapsed > crash_window:
                crash_count = 0
            crash_count += 1

            if crash_count >= max_rapid_crashes:
                wait = 120
                log.warning("Many rapid crashes (%d). Waiting %ds...", crash_count, wait)
            else:
                wait = min(10 * crash_count, 60)

            log.info("Restarting in %ds (crash %d)...", wait, crash_count)
            time.sleep(wait)


def console_main():
    sys.exit(run_with_auto_restart())
