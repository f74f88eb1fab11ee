#!/usr/bin/env python3
"""Turn raw TzKT block records into BlockSnapshot values."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .models import MAX_EMA, THRESHOLD, BlockSnapshot, Vote


def pct_of_max(ema: int) -> float:
    return ema * 100 / MAX_EMA


def deactivation_progress(ema: int) -> float:
    return ema * 100 / THRESHOLD


def derive_vote(block: Dict[str, Any]) -> Vote:
    """
    Classify the baker's toggle vote for one block.

    lbToggleVote ("on"/"off"/"pass") wins when present; older protocol
    records only carry the boolean lbToggle. Anything unrecognised is PASS.
    """
    explicit = block.get("lbToggleVote")
    if explicit and isinstance(explicit, str):
        try:
            return Vote(explicit.strip().upper())
        except ValueError:
            return Vote.PASS

    toggle = block.get("lbToggle")
    if toggle is True:
        return Vote.ON
    if toggle is False:
        return Vote.OFF
    return Vote.PASS


def baker_name(proposer: Optional[Dict[str, Any]]) -> str:
    if not isinstance(proposer, dict):
        return "?"
    alias = proposer.get("alias")
    if isinstance(alias, str) and alias.strip():
        return alias.strip()
    address = proposer.get("address")
    if isinstance(address, str) and address:
        return address
    return "?"


def reduce_block(block: Dict[str, Any]) -> Optional[BlockSnapshot]:
    """Return a snapshot, or None when the block carries no toggle EMA."""
    ema = block.get("lbToggleEma")
    if ema is None:
        return None

    ema = int(ema)
    return BlockSnapshot(
        level=int(block.get("level") or 0),
        ema=ema,
        pct_of_max=pct_of_max(ema),
        deactivation_progress=deactivation_progress(ema),
        vote=derive_vote(block),
        baker=baker_name(block.get("proposer")),
    )
