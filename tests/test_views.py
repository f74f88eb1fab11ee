#!/usr/bin/env python3
"""Unit tests for the terminal dashboard."""

import io

from lb_tracker.models import BlockSnapshot, DisplayMode, Vote
from lb_tracker.reducer import reduce_block
from lb_tracker.state import HistoryBuffer
from lb_tracker.views import (
    CLEAR_HOME, TIER_CRITICAL, TIER_NOMINAL, TIER_WARNING, draw, render_dashboard, status_banner,
)


def make(level, ema, vote="OFF", baker="tz1X"):
    return reduce_block({"level": level, "lbToggleEma": ema, "lbToggleVote": vote, "proposer": {"address": baker}})


def test_status_tiers():
    assert status_banner(100.0)[0] == TIER_CRITICAL
    assert status_banner(110.0)[0] == TIER_CRITICAL
    assert status_banner(80.01)[0] == TIER_WARNING
    assert status_banner(80.0)[0] == TIER_NOMINAL
    assert status_banner(0.0)[0] == TIER_NOMINAL


def test_waiting_placeholder():
    text = render_dashboard(False, None, [], DisplayMode.ALL, color=False)
    assert "Disconnected" in text
    assert "Waiting for the first block" in text
    assert "Recent Blocks" not in text


def test_metrics_block():
    snap = make(900000, 1_100_000_000)
    text = render_dashboard(True, snap, [snap], DisplayMode.ALL, color=False)
    assert "Connected" in text
    assert "Current Block:        900,000" in text
    assert "Current EMA:          1,100,000,000" in text
    assert "% of Max (2B):        55.0%" in text
    assert "Deactivation Prog:    110.00%" in text
    assert "SUBSIDY DISABLED" in text
    assert "[Filter:" not in text


def test_history_newest_first_with_filter_label():
    hb = HistoryBuffer()
    for level in (1, 2, 3):
        hb.append(make(level, 100_000_000, baker=f"baker{level}"))
    text = render_dashboard(True, make(4, 100_000_000, vote="pass"), hb, DisplayMode.OFF_ONLY, color=False)

    assert "Recent Blocks (Last 10) [Filter: OFF_ONLY]" in text
    assert text.index("baker3") < text.index("baker2") < text.index("baker1")
    assert "SUBSIDIES ACTIVE" in text


def test_color_only_when_enabled():
    snap = make(1, 900_000_000)
    assert "\x1b[" in render_dashboard(True, snap, [snap], DisplayMode.ALL, color=True)
    assert "\x1b[" not in render_dashboard(True, snap, [snap], DisplayMode.ALL, color=False)


def test_render_does_not_mutate_inputs():
    snap = make(1, 900_000_000)
    history = [snap]
    render_dashboard(True, snap, history, DisplayMode.ALL)
    assert history == [snap]
    assert isinstance(snap, BlockSnapshot) and snap.vote == Vote.OFF


def test_draw_clears_screen_first():
    buf = io.StringIO()
    draw("hello", buf)
    assert buf.getvalue() == CLEAR_HOME + "hello\n"
