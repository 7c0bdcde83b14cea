"""
WayPoint Tracking Agent
=======================
Samples device position, filters it, buffers it on disk, and uploads it in
batches to a WayPointDB-compatible collection server.

Usage:
    python agent.py config --host https://waypoint.example.com --key KEY --tracking on
    python agent.py run
    python agent.py status
"""

from waypoint_core.runner import console_main


if __name__ == "__main__":
    console_main()
