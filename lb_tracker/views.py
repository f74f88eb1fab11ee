#!/usr/bin/env python3
"""Terminal dashboard rendering for lb_tracker."""

from __future__ import annotations

import sys
from typing import Iterable, List, Optional, TextIO, Tuple

from .models import HISTORY_LIMIT, BlockSnapshot, DisplayMode, Vote, clip

CLEAR_HOME = "\x1b[2J\x1b[H"

RESET = "\x1b[0m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
RED = "\x1b[31m"
WHITE = "\x1b[37m"

RULE = "─" * 64

TIER_NOMINAL = "nominal"
TIER_WARNING = "warning"
TIER_CRITICAL = "critical"

_TIER_COLOR = {TIER_NOMINAL: GREEN, TIER_WARNING: YELLOW, TIER_CRITICAL: RED}
_VOTE_COLOR = {Vote.ON: GREEN, Vote.OFF: RED}


def status_banner(progress: float) -> Tuple[str, str]:
    if progress >= 100:
        return TIER_CRITICAL, "🚨 SUBSIDY DISABLED"
    if progress > 80:
        return TIER_WARNING, "⚠️  CLOSE TO DEACTIVATION"
    return TIER_NOMINAL, "✅ SUBSIDIES ACTIVE"


def _paint(text: str, color: str, enabled: bool) -> str:
    return f"{color}{text}{RESET}" if enabled else text


def _header(connected: bool) -> List[str]:
    status = "🟢 Connected" if connected else "🔴 Disconnected"
    return [
        "┌" + "─" * 62 + "┐",
        "│" + "🦁 Tezos Liquidity Baking Tracker".center(61) + "│",
        "│" + status.center(61) + "│",
        "└" + "─" * 62 + "┘",
    ]


def _metrics(snap: BlockSnapshot, color: bool) -> List[str]:
    tier, text = status_banner(snap.deactivation_progress)
    return [
        "",
        "📊  Current EMA Status",
        RULE,
        f"Current Block:        {snap.level:,}",
        f"Current EMA:          {snap.ema:,}",
        f"% of Max (2B):        {snap.pct_of_max:.1f}%",
        f"Deactivation Prog:    {snap.deactivation_progress:.2f}% (Threshold: 50.0% of max)",
        f"Status:               {_paint(text, _TIER_COLOR[tier], color)}",
        RULE,
    ]


def _history(history: Iterable[BlockSnapshot], mode: DisplayMode, color: bool, width: int) -> List[str]:
    title = f"Recent Blocks (Last {HISTORY_LIMIT})"
    if mode != DisplayMode.ALL:
        title += f" [Filter: {mode.value}]"

    lines = [
        "",
        f"📜  {title}",
        "Level       | Vote | Baker",
        "------------|------|" + "-" * 44,
    ]
    for b in history:
        vote = _paint(b.vote.value.ljust(4), _VOTE_COLOR.get(b.vote, WHITE), color)
        lines.append(f"{f'{b.level:,}':<11} | {vote} | {clip(b.baker, max(8, width - 21))}")
    return lines


def render_dashboard(
    connected: bool,
    current: Optional[BlockSnapshot],
    history: Iterable[BlockSnapshot],
    mode: DisplayMode,
    *,
    color: bool = True,
    width: int = 96,
) -> str:
    """
    Build the full dashboard text.

    history is given oldest-first (as stored) and shown newest-first. With
    no current block only the header and a waiting line are rendered.
    """
    lines = _header(connected)
    if current is None:
        lines += ["", "⏳ Waiting for the first block..."]
        return "\n".join(lines)

    lines += _metrics(current, color)
    lines += _history(list(history)[::-1], mode, color, width)
    return "\n".join(lines)


def draw(text: str, stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout
    out.write(CLEAR_HOME)
    out.write(text)
    out.write("\n")
    out.flush()
