#!/usr/bin/env python3
"""Runtime configuration for lb_tracker."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from .models import HISTORY_LIMIT, LEGACY_LOG_FILE, LOG_FILE, TZKT_WS_URL, DisplayMode

MODE_ENV = "LB_DISPLAY_MODE"


@dataclass(frozen=True)
class TrackerConfig:
    url: str = TZKT_WS_URL
    display_mode: DisplayMode = DisplayMode.ALL
    history_limit: int = HISTORY_LIMIT
    export_off_votes: bool = True
    log_path: str = LOG_FILE
    legacy_log_path: Optional[str] = LEGACY_LOG_FILE
    web_port: int = 0
    color: bool = True
    width: int = 96
    verbose: bool = False
    log_file: Optional[str] = None


def parse_mode(value: str) -> DisplayMode:
    try:
        return DisplayMode(value.strip().upper())
    except ValueError:
        choices = ", ".join(m.value for m in DisplayMode)
        raise argparse.ArgumentTypeError(f"invalid display mode {value!r} (choose from {choices})")


def default_mode() -> DisplayMode:
    raw = os.environ.get(MODE_ENV, "")
    if not raw:
        return DisplayMode.ALL
    try:
        return parse_mode(raw)
    except argparse.ArgumentTypeError:
        return DisplayMode.ALL


def config_from_args(args: argparse.Namespace) -> TrackerConfig:
    return TrackerConfig(
        url=args.url,
        display_mode=args.mode,
        export_off_votes=args.export,
        log_path=args.log_path,
        legacy_log_path=args.legacy_log_path or None,
        web_port=args.web_port,
        color=args.color,
        width=args.width,
        verbose=args.verbose,
        log_file=args.log_file,
    )


def setup_logging(cfg: TrackerConfig) -> None:
    # The dashboard owns stdout; diagnostics go to a file or to stderr quietly
    level = logging.DEBUG if cfg.verbose else logging.WARNING
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    if cfg.log_file:
        logging.basicConfig(level=level, format=fmt, filename=os.path.expanduser(cfg.log_file))
    else:
        logging.basicConfig(level=level, format=fmt, stream=sys.stderr)
