#!/usr/bin/env python3
"""Append-only JSONL persistence of OFF votes for lb_tracker."""

from __future__ import annotations

import json
import logging
import os
import pathlib
from typing import List, Optional

from .models import LEGACY_LOG_FILE, LOG_FILE, BlockSnapshot, LogEntry, Vote, utc_now_iso_ms

logger = logging.getLogger(__name__)

UNSET_LEVEL = -1


class VoteLog:
    """
    One JSON line per OFF-voted block level.

    The watermark (last_logged_level) is the only de-duplication: a level is
    written only if it is above the last one written, so a restart that sees
    the same tip again does not log it twice. Blocks arriving out of order
    below the watermark are not logged.

    Every file error is logged and swallowed; the dashboard keeps running.
    """

    def __init__(self, path: str = LOG_FILE, legacy_path: Optional[str] = LEGACY_LOG_FILE, enabled: bool = True) -> None:
        self.path = pathlib.Path(path).expanduser()
        self.legacy_path = pathlib.Path(legacy_path).expanduser() if legacy_path else None
        self.enabled = enabled
        self.last_logged_level = UNSET_LEVEL
        self.write_errors = 0

    def load(self) -> None:
        """Migrate the legacy array file if needed, then rebuild the watermark."""
        if not self.enabled:
            return
        self.migrate_legacy()
        self._load_watermark()

    def migrate_legacy(self) -> bool:
        if self.legacy_path is None or not self.legacy_path.exists() or self.path.exists():
            return False

        try:
            content = self.legacy_path.read_text(encoding="utf-8")
            if not content.strip():
                return False
            rows = json.loads(content)
            if not isinstance(rows, list):
                raise ValueError(f"expected a JSON array, got {type(rows).__name__}")

            lines = "".join(json.dumps(row, separators=(",", ":")) + "\n" for row in rows)
            tmp = pathlib.Path(str(self.path) + ".tmp")
            tmp.write_text(lines, encoding="utf-8")
            os.replace(tmp, self.path)
        except (OSError, ValueError) as e:
            logger.error("Error migrating legacy log %s: %s", self.legacy_path, e)
            return False

        logger.info("Migrated %d entries from %s to %s", len(rows), self.legacy_path, self.path)
        return True

    def _load_watermark(self) -> None:
        if not self.path.exists():
            return
        try:
            last_line = self._last_line()
        except OSError as e:
            logger.error("Error loading log file %s: %s", self.path, e)
            return
        if not last_line:
            return

        try:
            entry = LogEntry.from_dict(json.loads(last_line))
        except ValueError as e:
            logger.warning("Ignoring unreadable last line in %s: %s", self.path, e)
            return
        self.last_logged_level = entry.level

    def _last_line(self) -> str:
        with open(self.path, "r", encoding="utf-8") as f:
            lines = [ln.strip() for ln in f if ln.strip()]
        return lines[-1] if lines else ""

    def record(self, snap: BlockSnapshot, now: Optional[str] = None) -> bool:
        """Append snap if it is an OFF vote above the watermark. Returns True if written."""
        if not self.enabled or snap.vote != Vote.OFF:
            return False
        if snap.level <= self.last_logged_level:
            return False

        entry = LogEntry(
            level=snap.level,
            vote=snap.vote.value,
            baker=snap.baker,
            ema=snap.ema,
            timestamp=now or utc_now_iso_ms(),
        )
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict(), separators=(",", ":")) + "\n")
        except OSError as e:
            self.write_errors += 1
            # Only the first few, the dashboard redraws on every block.
            if self.write_errors <= 5:
                logger.error("OFF vote append failed for level %s: %s", snap.level, e)
            return False

        self.last_logged_level = snap.level
        return True

    def entries(self) -> List[LogEntry]:
        out: List[LogEntry] = []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                for ln in f:
                    ln = ln.strip()
                    if not ln:
                        continue
                    try:
                        out.append(LogEntry.from_dict(json.loads(ln)))
                    except ValueError:
                        continue
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Error reading log file %s: %s", self.path, e)
        return out

    def tail(self, n: int = 50) -> List[LogEntry]:
        """Most recent n entries, newest first."""
        if n <= 0:
            return []
        return list(reversed(self.entries()[-n:]))
