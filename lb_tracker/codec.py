#!/usr/bin/env python3
"""Record-separator framing for the TzKT streaming hub."""

from __future__ import annotations

import json
from typing import Any, List

from .models import FRAME_TERMINATOR


def split_frames(chunk: str) -> List[str]:
    """Split one inbound chunk into frames, dropping empty fragments."""
    if not chunk:
        return []
    return [part for part in chunk.split(FRAME_TERMINATOR) if part]


def encode_frame(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":")) + FRAME_TERMINATOR


class FrameBuffer:
    """
    Splitter that tolerates frames spanning several transport chunks.

    Anything after the last terminator is held back until a later chunk
    completes it. With a transport that always delivers whole frames this
    yields exactly what split_frames() would.
    """

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: str) -> List[str]:
        if not chunk:
            return []
        data = self._pending + chunk
        *complete, self._pending = data.split(FRAME_TERMINATOR)
        return [part for part in complete if part]

    def reset(self) -> None:
        self._pending = ""
