#!/usr/bin/env python3
"""Session state, display filter and the bounded block history."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Iterator, List, Optional

from .models import HISTORY_LIMIT, BlockSnapshot, DisplayMode, Vote


class Phase(str, Enum):
    CONNECTING = "CONNECTING"
    HANDSHAKING = "HANDSHAKING"
    SUBSCRIBING = "SUBSCRIBING"
    STREAMING = "STREAMING"
    CLOSED = "CLOSED"


def should_track(vote: Vote, mode: DisplayMode) -> bool:
    if mode == DisplayMode.ALL:
        return True
    if mode == DisplayMode.ON_OFF:
        return vote in (Vote.ON, Vote.OFF)
    if mode == DisplayMode.OFF_ONLY:
        return vote == Vote.OFF
    return False


class HistoryBuffer:
    """Oldest-first rolling window of tracked snapshots."""

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        self.limit = limit
        self._items: Deque[BlockSnapshot] = deque(maxlen=limit)

    def append(self, snap: BlockSnapshot) -> None:
        self._items.append(snap)

    def newest_first(self) -> List[BlockSnapshot]:
        return list(reversed(self._items))

    def __iter__(self) -> Iterator[BlockSnapshot]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


@dataclass
class TrackerState:
    """Everything the event loop mutates. Readers treat it as read-only."""

    mode: DisplayMode = DisplayMode.ALL
    phase: Phase = Phase.CONNECTING
    connected: bool = False
    current: Optional[BlockSnapshot] = None
    history: HistoryBuffer = field(default_factory=HistoryBuffer)

    connected_at: Optional[str] = None
    last_message_at: Optional[str] = None
    frames_total: int = 0
    frames_dropped: int = 0
    blocks_total: int = 0


def apply_snapshot(state: TrackerState, snap: BlockSnapshot) -> bool:
    """
    Make snap the current block and add it to history if the display mode
    keeps it. The current block is replaced even when history filters it out.
    """
    state.current = snap
    state.blocks_total += 1
    if should_track(snap.vote, state.mode):
        state.history.append(snap)
        return True
    return False
