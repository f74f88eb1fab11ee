#!/usr/bin/env python3
"""lb_tracker - Real-time Tezos liquidity baking toggle monitoring."""

__version__ = "0.1.0"

from .models import BlockSnapshot, LogEntry, Vote, DisplayMode
from .codec import FrameBuffer, split_frames, encode_frame
from .reducer import reduce_block, derive_vote
from .state import HistoryBuffer, TrackerState, should_track, apply_snapshot
from .vote_log import VoteLog
from .protocol import Session, parse_message
from .views import render_dashboard
from .listener import Listener, Tracker

__all__ = [
    "BlockSnapshot", "LogEntry", "Vote", "DisplayMode",
    "FrameBuffer", "split_frames", "encode_frame",
    "reduce_block", "derive_vote",
    "HistoryBuffer", "TrackerState", "should_track", "apply_snapshot",
    "VoteLog", "Session", "parse_message", "render_dashboard",
    "Listener", "Tracker",
]
