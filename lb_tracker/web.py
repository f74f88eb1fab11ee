#!/usr/bin/env python3
"""Read-only web view of the live tracker state and the OFF-vote log."""

from __future__ import annotations

import html as _html

from flask import Flask, jsonify, request

from .models import HISTORY_LIMIT
from .state import TrackerState
from .views import status_banner
from .vote_log import VoteLog

PAGE_STYLE = (
    "<style>body{font-family:system-ui,Arial;margin:20px} table{border-collapse:collapse;width:100%}"
    "th,td{border-bottom:1px solid #ddd;padding:6px 8px;font-size:14px} th{text-align:left}"
    ".on{color:#1a7f37}.off{color:#cf222e}.warning{color:#9a6700}.critical{color:#cf222e}.nominal{color:#1a7f37}</style>"
)


def create_app(state: TrackerState, vote_log: VoteLog) -> Flask:
    app = Flask(__name__)
    esc = _html.escape

    @app.get("/")
    def index():
        cur = state.current
        conn = "Connected" if state.connected else "Disconnected"
        out = [f"<html><head><meta charset='utf-8'><title>LB Tracker</title>{PAGE_STYLE}</head><body>"]
        out.append("<h2>Tezos Liquidity Baking Tracker</h2>")
        out.append(f"<p><b>{conn}</b> phase={state.phase.value} mode={state.mode.value} blocks={state.blocks_total}</p>")
        if cur is None:
            out.append("<p>Waiting for the first block...</p>")
        else:
            tier, text = status_banner(cur.deactivation_progress)
            out.append("<table>")
            out.append(f"<tr><th>Current Block</th><td>{cur.level:,}</td></tr>")
            out.append(f"<tr><th>Current EMA</th><td>{cur.ema:,}</td></tr>")
            out.append(f"<tr><th>% of Max (2B)</th><td>{cur.pct_of_max:.1f}%</td></tr>")
            out.append(f"<tr><th>Deactivation Prog</th><td>{cur.deactivation_progress:.2f}%</td></tr>")
            out.append(f"<tr><th>Status</th><td class='{tier}'>{esc(text)}</td></tr>")
            out.append("</table>")

        out.append(f"<h3>Recent Blocks (Last {HISTORY_LIMIT})</h3>")
        out.append("<table><tr><th>Level</th><th>Vote</th><th>Baker</th></tr>")
        for b in state.history.newest_first():
            out.append(f"<tr><td>{b.level:,}</td><td class='{b.vote.value.lower()}'>{b.vote.value}</td><td>{esc(b.baker)}</td></tr>")
        out.append("</table>")
        out.append("<p><a href='/off-votes'>Logged OFF votes</a> · <a href='/api/state'>JSON</a></p>")
        out.append("</body></html>")
        return "\n".join(out)

    @app.get("/off-votes")
    def off_votes():
        limit = request.args.get("limit", default=200, type=int)
        rows = vote_log.tail(limit)
        out = [f"<html><head><meta charset='utf-8'><title>OFF votes</title>{PAGE_STYLE}</head><body>"]
        out.append(f"<h2>Logged OFF votes</h2><p><a href='/'>Back</a> · {len(rows)} shown · file={esc(str(vote_log.path))}</p>")
        out.append("<table><tr><th>Level</th><th>Baker</th><th>EMA</th><th>Logged at</th></tr>")
        for e in rows:
            out.append(f"<tr><td>{e.level:,}</td><td>{esc(e.baker)}</td><td>{e.ema:,}</td><td>{esc(e.timestamp)}</td></tr>")
        out.append("</table></body></html>")
        return "\n".join(out)

    @app.get("/api/state")
    def api_state():
        return jsonify({
            "connected": state.connected,
            "phase": state.phase.value,
            "mode": state.mode.value,
            "current": state.current.to_dict() if state.current else None,
            "history": [b.to_dict() for b in state.history.newest_first()],
            "last_logged_level": vote_log.last_logged_level,
        })

    return app


def start_web_dashboard(state: TrackerState, vote_log: VoteLog, port: int) -> None:
    app = create_app(state, vote_log)
    app.run(host="0.0.0.0", port=port, debug=False, use_reloader=False)
