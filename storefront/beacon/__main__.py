#!/usr/bin/env python3
"""
Storefront presence beacon (terminal runner)

Runs the beacon the way the site widget does:
  1) count one visit per session          POST /metrics/visit
  2) heartbeat every 15s                  POST /metrics/heartbeat
  3) refresh the counter every 10s        GET  /metrics/stats

Usage:
  python -m storefront.beacon --host www.stealthdma.com
  python -m storefront.beacon --base http://localhost:8080 --duration 60

Notes:
- The client id persists in --identity-file, the visit flag only lives as
  long as the process (one run == one browser session).
- Without --base, a host that is not a production host runs in local mode:
  no visit, no heartbeat, counter shows the fallback text.
"""
import argparse
import asyncio
import os

from ..config import load_env_file
from ..logs import configure_logging
from .controller import (
    HEARTBEAT_INTERVAL_S, STATS_INTERVAL_S, BeaconController,
    resolve_api_base,
)
from .display import TerminalSink
from .storage import JsonFileStore

DEFAULT_IDENTITY_FILE = os.path.join(
    os.path.expanduser("~"), ".storefront", "beacon.json"
)


async def run_beacon(
    api_base: str,
    identity_file: str,
    heartbeat_interval_s: float,
    stats_interval_s: float,
    duration_s: float,
) -> None:
    beacon = BeaconController(
        api_base,
        TerminalSink(),
        local_store=JsonFileStore(identity_file),
        heartbeat_interval_s=heartbeat_interval_s,
        stats_interval_s=stats_interval_s,
    )
    try:
        await beacon.start()
        if duration_s > 0:
            await asyncio.sleep(duration_s)
        else:
            await asyncio.Event().wait()
    finally:
        await beacon.stop()
        print()


def main():
    ap = argparse.ArgumentParser(description="Storefront presence beacon")
    ap.add_argument("--base", default=None,
                    help="Base URL of the stats service (overrides --host)")
    ap.add_argument("--host", default="localhost",
                    help="Site host name used to pick the stats service")
    ap.add_argument("--identity-file", default=DEFAULT_IDENTITY_FILE,
                    help="Where the client id is persisted")
    ap.add_argument("--heartbeat-interval", type=float,
                    default=HEARTBEAT_INTERVAL_S,
                    help="Seconds between heartbeats")
    ap.add_argument("--stats-interval", type=float,
                    default=STATS_INTERVAL_S,
                    help="Seconds between counter refreshes")
    ap.add_argument("--duration", type=float, default=0.0,
                    help="Stop after this many seconds (0 = run until ^C)")
    ap.add_argument("--log-level", default="WARNING")
    args = ap.parse_args()

    load_env_file()
    configure_logging(args.log_level)

    api_base = args.base if args.base is not None else resolve_api_base(args.host)
    if not api_base:
        print("Local mode: no stats service for host", args.host)

    try:
        asyncio.run(run_beacon(
            api_base=api_base,
            identity_file=args.identity_file,
            heartbeat_interval_s=args.heartbeat_interval,
            stats_interval_s=args.stats_interval,
            duration_s=args.duration,
        ))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
