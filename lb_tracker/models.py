#!/usr/bin/env python3
"""Data models and helper functions for lb_tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


# Constants
TZKT_WS_URL = "wss://api.tzkt.io/v1/ws"
TZKT_API_URL = "https://api.tzkt.io/v1"

FRAME_TERMINATOR = "\x1e"

THRESHOLD = 1_000_000_000
MAX_EMA = 2 * THRESHOLD
HISTORY_LIMIT = 10

LOG_FILE = "off_votes.jsonl"
LEGACY_LOG_FILE = "off_votes.json"


class Vote(str, Enum):
    ON = "ON"
    OFF = "OFF"
    PASS = "PASS"


class DisplayMode(str, Enum):
    ALL = "ALL"
    ON_OFF = "ON_OFF"
    OFF_ONLY = "OFF_ONLY"


# Helper functions
def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def utc_now_iso_ms() -> str:
    # Log timestamps keep millisecond precision
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clip(s: str, n: int) -> str:
    s = s or ""
    return s if len(s) <= n else s[: max(0, n - 1)] + "…"


def safe_int(x: Any) -> Optional[int]:
    try:
        return int(x)
    except Exception:
        return None


# Dataclasses
@dataclass(frozen=True)
class BlockSnapshot:
    level: int
    ema: int
    pct_of_max: float                # ema / MAX_EMA * 100
    deactivation_progress: float     # ema / THRESHOLD * 100
    vote: Vote
    baker: str                       # alias, else address

    @property
    def deactivated(self) -> bool:
        return self.deactivation_progress >= 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "ema": self.ema,
            "pct_of_max": self.pct_of_max,
            "deactivation_progress": self.deactivation_progress,
            "vote": self.vote.value,
            "baker": self.baker,
        }


@dataclass(frozen=True)
class LogEntry:
    """One persisted OFF vote, as written to the JSONL log."""

    level: int
    vote: str
    baker: str
    ema: int
    timestamp: str                   # ISO-8601 wall clock at processing time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "vote": self.vote,
            "baker": self.baker,
            "ema": self.ema,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LogEntry":
        if not isinstance(d, dict):
            raise ValueError(f"log entry must be an object, got {type(d).__name__}")
        level = safe_int(d.get("level"))
        if level is None:
            raise ValueError(f"log entry has no integer level: {d!r}")
        return cls(
            level=level,
            vote=str(d.get("vote") or ""),
            baker=str(d.get("baker") or ""),
            ema=safe_int(d.get("ema")) or 0,
            timestamp=str(d.get("timestamp") or ""),
        )
