#!/usr/bin/env python3
"""Hub session handling: handshake, subscription and message dispatch."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from .codec import encode_frame
from .models import BlockSnapshot, utc_now_iso
from .reducer import reduce_block
from .state import Phase, TrackerState, apply_snapshot
from .vote_log import VoteLog

logger = logging.getLogger(__name__)

HANDSHAKE = {"protocol": "json", "version": 1}
SUBSCRIBE_BLOCKS = {"type": 1, "target": "SubscribeToBlocks", "arguments": []}

MSG_INVOCATION = 1
MSG_PING = 6
BLOCKS_TARGET = "blocks"


class FrameError(ValueError):
    """A frame that is not a JSON document."""


# Inbound message variants
@dataclass(frozen=True)
class HandshakeAck:
    pass


@dataclass(frozen=True)
class KeepAlive:
    pass


@dataclass(frozen=True)
class BlockUpdate:
    block: Dict[str, Any]


@dataclass(frozen=True)
class Unknown:
    payload: Any = field(default=None, compare=False)


Message = Union[HandshakeAck, KeepAlive, BlockUpdate, Unknown]


def parse_message(frame: str) -> Message:
    try:
        msg = json.loads(frame)
    except ValueError as e:
        raise FrameError(f"not JSON: {e}") from e

    if not isinstance(msg, dict):
        return Unknown(msg)
    if not msg:
        return HandshakeAck()

    mtype = msg.get("type")
    if mtype == MSG_PING:
        return KeepAlive()

    if mtype == MSG_INVOCATION and msg.get("target") == BLOCKS_TARGET:
        args = msg.get("arguments")
        update = args[0] if isinstance(args, list) and args else None
        data = update.get("data") if isinstance(update, dict) else None
        # Only the first (newest) block in an envelope matters
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return BlockUpdate(data[0])

    return Unknown(msg)


class Session:
    """
    Connection lifecycle for one hub connection.

    Each on_* method returns the frames to send back (already terminated);
    the caller owns the socket. on_snapshot, if given, is called after every
    block that produced a snapshot.
    """

    def __init__(
        self,
        state: TrackerState,
        vote_log: Optional[VoteLog] = None,
        on_snapshot: Optional[Callable[[BlockSnapshot], None]] = None,
    ) -> None:
        self.state = state
        self.vote_log = vote_log
        self.on_snapshot = on_snapshot

    @property
    def phase(self) -> Phase:
        return self.state.phase

    def on_open(self) -> List[str]:
        self.state.connected = True
        self.state.connected_at = utc_now_iso()
        self.state.phase = Phase.HANDSHAKING
        logger.info("Connected, sending handshake")
        return [encode_frame(HANDSHAKE)]

    def on_close(self) -> None:
        if self.state.phase != Phase.CLOSED:
            logger.info("Session closed in phase %s", self.state.phase.value)
        self.state.connected = False
        self.state.phase = Phase.CLOSED

    def on_error(self, error: Any) -> None:
        logger.warning("Transport error: %s", error)
        self.state.connected = False
        self.state.phase = Phase.CLOSED

    def on_frames(self, frames: List[str]) -> List[str]:
        out: List[str] = []
        for frame in frames:
            out.extend(self.on_frame(frame))
        return out

    def on_frame(self, frame: str) -> List[str]:
        if self.state.phase == Phase.CLOSED:
            return []

        self.state.frames_total += 1
        self.state.last_message_at = utc_now_iso()
        try:
            msg = parse_message(frame)
        except FrameError as e:
            self.state.frames_dropped += 1
            logger.debug("Dropping frame (%d bytes): %s", len(frame), e)
            return []

        return self.dispatch(msg)

    def dispatch(self, msg: Message) -> List[str]:
        if isinstance(msg, HandshakeAck):
            if self.state.phase != Phase.HANDSHAKING:
                logger.debug("Ignoring handshake ack in phase %s", self.state.phase.value)
                return []
            self.state.phase = Phase.SUBSCRIBING
            logger.info("Handshake accepted, subscribing to blocks")
            # No subscription ack is awaited
            self.state.phase = Phase.STREAMING
            return [encode_frame(SUBSCRIBE_BLOCKS)]

        if isinstance(msg, KeepAlive):
            return []

        if isinstance(msg, BlockUpdate):
            self._handle_block(msg.block)
            return []

        logger.debug("Ignoring unrecognised message: %.200r", msg.payload)
        return []

    def _handle_block(self, block: Dict[str, Any]) -> Optional[BlockSnapshot]:
        try:
            snap = reduce_block(block)
        except (AttributeError, TypeError, ValueError) as e:
            logger.debug("Unusable block record: %s", e)
            return None
        if snap is None:
            return None

        apply_snapshot(self.state, snap)
        if self.vote_log is not None:
            self.vote_log.record(snap)
        if self.on_snapshot is not None:
            self.on_snapshot(snap)
        return snap
