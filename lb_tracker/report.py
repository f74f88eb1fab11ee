#!/usr/bin/env python3
"""Historical per-baker toggle vote report from the TzKT blocks endpoint."""

from __future__ import annotations

import json
import sys
import time
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.error import HTTPError, URLError

from .models import TZKT_API_URL, utc_now_iso

DEFAULT_BLOCKS = 1000
BATCH_SIZE = 1000
BATCH_DELAY_S = 0.1

RULE = "─" * 64
WIDE_RULE = "─" * 91


@dataclass
class BakerVotes:
    address: str
    alias: Optional[str] = None
    on_count: int = 0
    off_count: int = 0
    total: int = 0
    last_level: int = 0
    last_vote: str = ""
    last_vote_date: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.alias} ({self.address})" if self.alias else self.address


def fetch_json(url: str, timeout: int = 60) -> Any:
    req = urllib.request.Request(url, headers={
        "User-Agent": "lb_tracker/0.1 (+python urllib)",
        "Accept": "application/json",
    })
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read()
    except HTTPError as e:
        snippet = ""
        try:
            snippet = e.read(500).decode("utf-8", errors="replace")
        except Exception:
            pass  # body is optional context
        raise RuntimeError(f"HTTP error: {e.code} {e.reason} url={url} body={snippet!r}") from e
    except URLError as e:
        raise RuntimeError(f"request failed: {url}: {e}") from e

    try:
        return json.loads(raw.decode("utf-8", errors="replace"))
    except ValueError as e:
        raise RuntimeError(f"invalid JSON from {url}: {e}") from e


def blocks_url(limit: int, max_level: Optional[int] = None, api_url: str = TZKT_API_URL) -> str:
    params = {
        "sort.desc": "level",
        "limit": str(limit),
        "select": "level,producer,lbToggle,timestamp",
    }
    if max_level is not None:
        params["level.lt"] = str(max_level)
    return f"{api_url}/blocks?{urllib.parse.urlencode(params)}"


def fetch_blocks(
    n: int,
    api_url: str = TZKT_API_URL,
    fetch: Callable[[str], Any] = fetch_json,
    delay: float = BATCH_DELAY_S,
    quiet: bool = False,
) -> List[Dict[str, Any]]:
    """Fetch the newest n blocks, newest first, paging down by level."""
    blocks: List[Dict[str, Any]] = []
    remaining = n
    last_level: Optional[int] = None

    while remaining > 0:
        batch = fetch(blocks_url(min(remaining, BATCH_SIZE), last_level, api_url))
        if not isinstance(batch, list) or not batch:
            break
        blocks.extend(batch)
        last_level = batch[-1].get("level")
        remaining -= len(batch)
        if not quiet:
            sys.stdout.write(f"\rFetched {len(blocks)} / {n} blocks...")
            sys.stdout.flush()
        if remaining > 0 and delay:
            time.sleep(delay)

    if not quiet:
        sys.stdout.write("\n")
    return blocks


def aggregate_votes(blocks: List[Dict[str, Any]]) -> Dict[str, BakerVotes]:
    """Per-baker ON/OFF counts. Blocks without an explicit lbToggle are skipped."""
    by_address: Dict[str, BakerVotes] = {}
    for b in blocks:
        toggle = b.get("lbToggle")
        if toggle is not True and toggle is not False:
            continue
        producer = b.get("producer") or {}
        address = producer.get("address")
        if not address:
            continue

        level = int(b.get("level") or 0)
        vote = "ON" if toggle else "OFF"
        entry = by_address.get(address)
        if entry is None:
            entry = BakerVotes(address=address, alias=producer.get("alias") or None,
                               last_level=level, last_vote=vote, last_vote_date=b.get("timestamp") or "")
            by_address[address] = entry

        if toggle:
            entry.on_count += 1
        else:
            entry.off_count += 1
        entry.total += 1

        if level > entry.last_level:
            entry.last_level = level
            entry.last_vote = vote
            entry.last_vote_date = b.get("timestamp") or ""

    return by_address


def _count_table(title: str, rows: List[BakerVotes], count: Callable[[BakerVotes], int], empty: str) -> List[str]:
    lines = ["", title, RULE, "Count | Baker Name (Address)", RULE]
    if not rows:
        lines.append(empty)
    for r in rows:
        lines.append(f"{str(count(r)).ljust(5)} | {r.display_name}")
    lines.append(RULE)
    return lines


def render_report(bakers: Dict[str, BakerVotes], voted_blocks: int, n: int) -> str:
    lines = [f"Found {voted_blocks} blocks with 'lbToggle' votes in the last {n} blocks."]
    if not bakers:
        lines.append("No bakers found voting on LB toggle.")
        return "\n".join(lines)

    all_bakers = list(bakers.values())
    off = sorted((b for b in all_bakers if b.off_count > 0), key=lambda b: b.off_count, reverse=True)
    on = sorted((b for b in all_bakers if b.on_count > 0), key=lambda b: b.on_count, reverse=True)
    mixed = sorted((b for b in all_bakers if b.off_count > 0 and b.on_count > 0), key=lambda b: b.total, reverse=True)

    lines += _count_table("Bakers voting 'OFF':", off, lambda b: b.off_count, "No 'OFF' votes found.")
    lines += _count_table("Bakers voting 'ON':", on, lambda b: b.on_count, "No 'ON' votes found.")

    if not mixed:
        lines += ["", "No bakers found with mixed votes in this period."]
        return "\n".join(lines)

    lines += [
        "",
        "⚠️  Bakers with MIXED votes (both ON and OFF):",
        WIDE_RULE,
        "OFF   | ON    | Total | Last Vote | Date       | Baker Name (Address)",
        WIDE_RULE,
    ]
    for b in mixed:
        date = b.last_vote_date.split("T")[0] if b.last_vote_date else "N/A"
        lines.append(
            f"{str(b.off_count).ljust(5)} | {str(b.on_count).ljust(5)} | {str(b.total).ljust(5)} | "
            f"{(b.last_vote or '?').ljust(9)} | {date.ljust(10)} | {b.display_name}"
        )
    lines.append(WIDE_RULE)
    return "\n".join(lines)


def run_report(n: int = DEFAULT_BLOCKS, api_url: str = TZKT_API_URL) -> str:
    print(f"[{utc_now_iso()}] Checking the last {n} blocks...")
    blocks = fetch_blocks(n, api_url=api_url)
    bakers = aggregate_votes(blocks)
    voted = sum(1 for b in blocks if b.get("lbToggle") is True or b.get("lbToggle") is False)
    return render_report(bakers, voted, n)
