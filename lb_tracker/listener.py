#!/usr/bin/env python3
"""WebSocket transport callbacks and the single-threaded event loop for lb_tracker."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import websocket

from .codec import FrameBuffer
from .protocol import Session
from .state import Phase

logger = logging.getLogger(__name__)

EV_OPEN = "open"
EV_MESSAGE = "message"
EV_ERROR = "error"
EV_CLOSE = "close"


@dataclass(frozen=True)
class Event:
    kind: str
    data: Any = None


class Listener:
    """
    websocket-client callbacks. They run on the transport thread and only
    enqueue; all state changes happen in Tracker.run() on the consuming side.
    """

    def __init__(self, events: Optional["queue.Queue[Event]"] = None, verbose: bool = False) -> None:
        self.events: "queue.Queue[Event]" = events if events is not None else queue.Queue()
        self.verbose = verbose

    def on_open(self, ws) -> None:
        self.events.put(Event(EV_OPEN))

    def on_message(self, ws, message) -> None:
        if isinstance(message, (bytes, bytearray)):
            message = message.decode("utf-8", errors="replace")
        if self.verbose:
            short = (message[:200] + "…") if len(message) > 200 else message
            logger.debug("RX (%d chars): %s", len(message), short)
        self.events.put(Event(EV_MESSAGE, message))

    def on_error(self, ws, error) -> None:
        self.events.put(Event(EV_ERROR, error))

    def on_close(self, ws, status_code=None, reason=None) -> None:
        self.events.put(Event(EV_CLOSE, (status_code, reason)))


class Tracker:
    """
    Consumes transport events in arrival order and runs the whole
    frame/dispatch/reduce/filter/log/render pipeline for each one.
    """

    def __init__(
        self,
        session: Session,
        send: Callable[[str], None],
        render: Optional[Callable[[], None]] = None,
        events: Optional["queue.Queue[Event]"] = None,
    ) -> None:
        self.session = session
        self.send = send
        self.render = render
        self.events: "queue.Queue[Event]" = events if events is not None else queue.Queue()
        self.frames = FrameBuffer()

    @property
    def closed(self) -> bool:
        return self.session.phase == Phase.CLOSED

    def handle(self, event: Event) -> None:
        state = self.session.state
        changed = False

        if event.kind == EV_OPEN:
            self.frames.reset()
            self._send_all(self.session.on_open())
            changed = True

        elif event.kind == EV_MESSAGE:
            before = state.blocks_total
            self._send_all(self.session.on_frames(self.frames.feed(event.data or "")))
            changed = state.blocks_total != before

        elif event.kind == EV_ERROR:
            self.session.on_error(event.data)
            changed = True

        elif event.kind == EV_CLOSE:
            code, reason = event.data if event.data else (None, None)
            logger.info("Transport closed (code=%s reason=%s)", code, reason)
            self.session.on_close()
            changed = True

        if changed and self.render is not None:
            self.render()

    def _send_all(self, frames) -> None:
        for frame in frames:
            try:
                self.send(frame)
            except (websocket.WebSocketException, OSError) as e:
                logger.warning("Send failed: %s", e)
                self.session.on_error(e)
                return

    def run(self, poll_interval: float = 0.5, stop: Optional[threading.Event] = None) -> None:
        while not self.closed:
            if stop is not None and stop.is_set():
                return
            try:
                event = self.events.get(timeout=poll_interval)
            except queue.Empty:
                continue
            self.handle(event)


def open_transport(url: str, listener: Listener) -> websocket.WebSocketApp:
    return websocket.WebSocketApp(
        url,
        on_open=listener.on_open,
        on_message=listener.on_message,
        on_error=listener.on_error,
        on_close=listener.on_close,
    )


def start_transport(ws: websocket.WebSocketApp, ping_interval: int = 30, ping_timeout: int = 10) -> threading.Thread:
    t = threading.Thread(
        target=ws.run_forever,
        kwargs={"ping_interval": ping_interval, "ping_timeout": ping_timeout},
        daemon=True,
    )
    t.start()
    return t
