#!/usr/bin/env python3
"""Command-line interface for lb_tracker."""

from __future__ import annotations

import argparse
import sys
import threading
from typing import List, Optional

from .config import TrackerConfig, default_mode, parse_mode, setup_logging
from .listener import Listener, Tracker, open_transport, start_transport
from .models import LEGACY_LOG_FILE, LOG_FILE, TZKT_API_URL, TZKT_WS_URL, utc_now_iso
from .protocol import Session
from .report import DEFAULT_BLOCKS, run_report
from .state import HistoryBuffer, TrackerState
from .views import draw, render_dashboard
from .vote_log import VoteLog
from .web import start_web_dashboard


def connect_and_run(cfg: TrackerConfig) -> None:
    setup_logging(cfg)

    vote_log = VoteLog(cfg.log_path, cfg.legacy_log_path, enabled=cfg.export_off_votes)
    vote_log.load()
    if cfg.export_off_votes:
        print(f"[{utc_now_iso()}] LOG: {vote_log.path} (last logged level={vote_log.last_logged_level})")

    state = TrackerState(mode=cfg.display_mode, history=HistoryBuffer(cfg.history_limit))
    session = Session(state, vote_log=vote_log)

    def render() -> None:
        draw(render_dashboard(
            state.connected, state.current, state.history, state.mode,
            color=cfg.color, width=cfg.width,
        ))

    listener = Listener(verbose=cfg.verbose)
    ws = open_transport(cfg.url, listener)
    tracker = Tracker(session, send=ws.send, render=render, events=listener.events)

    if cfg.web_port:
        t = threading.Thread(target=start_web_dashboard, args=(state, vote_log, cfg.web_port), daemon=True)
        t.start()
        print(f"[{utc_now_iso()}] WEB: dashboard on http://0.0.0.0:{cfg.web_port}")

    print(f"[{utc_now_iso()}] Connecting to {cfg.url} (mode={cfg.display_mode.value}) ...")
    render()
    start_transport(ws)

    try:
        tracker.run()
    except KeyboardInterrupt:
        print(f"\n[{utc_now_iso()}] Exiting...")
    finally:
        try:
            ws.close()
        except Exception:
            pass

    if tracker.closed:
        print(f"[{utc_now_iso()}] Disconnected.", file=sys.stderr)


def run_report_command(args: argparse.Namespace) -> int:
    try:
        print(run_report(args.blocks, api_url=args.api_url))
    except RuntimeError as e:
        print(f"[{utc_now_iso()}] REPORT FAILED: {e}", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Live Tezos liquidity baking toggle tracker (TzKT block stream).")
    p.add_argument("--url", default=TZKT_WS_URL, help=f"TzKT events hub URL (default: {TZKT_WS_URL})")
    p.add_argument(
        "--mode",
        type=parse_mode,
        default=default_mode(),
        help="Which votes enter the recent-blocks history: ALL, ON_OFF or OFF_ONLY "
             "(default: $LB_DISPLAY_MODE or ALL)",
    )

    p.add_argument("--log-path", default=LOG_FILE, help=f"OFF vote JSONL log (default: {LOG_FILE})")
    p.add_argument("--legacy-log-path", default=LEGACY_LOG_FILE,
                   help=f"Legacy JSON array log migrated once on startup (default: {LEGACY_LOG_FILE})")
    p.add_argument("--no-export", dest="export", action="store_false", help="Do not log OFF votes to disk")
    p.set_defaults(export=True)

    p.add_argument("--web-port", type=int, default=0, help="Serve a read-only web view on this port (default: off)")
    p.add_argument("--no-color", dest="color", action="store_false", help="Disable ANSI colors")
    p.set_defaults(color=True)
    p.add_argument("--width", type=int, default=96, help="Dashboard width (default 96)")

    p.add_argument("--verbose", action="store_true", help="Debug logging, including a trace of raw frames")
    p.add_argument("--log-file", help="Write diagnostics to this file instead of stderr")

    sub = p.add_subparsers(dest="command")
    r = sub.add_parser("report", help="Per-baker ON/OFF vote counts over recent blocks")
    r.add_argument("--blocks", "-n", type=int, default=DEFAULT_BLOCKS,
                   help=f"Number of most recent blocks to scan (default {DEFAULT_BLOCKS})")
    r.add_argument("--api-url", default=TZKT_API_URL, help=f"TzKT REST API base (default: {TZKT_API_URL})")
    return p


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
