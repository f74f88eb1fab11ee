#!/usr/bin/env python3
"""Unit tests for the OFF vote JSONL log."""

import json

from lb_tracker.models import BlockSnapshot, Vote
from lb_tracker.vote_log import UNSET_LEVEL, VoteLog


def snap(level, vote=Vote.OFF, baker="tz1off", ema=1_100_000_000):
    return BlockSnapshot(level=level, ema=ema, pct_of_max=ema * 100 / 2_000_000_000,
                         deactivation_progress=ema * 100 / 1_000_000_000, vote=vote, baker=baker)


def read_lines(path):
    return [json.loads(ln) for ln in path.read_text(encoding="utf-8").splitlines() if ln.strip()]


def test_idempotent_across_restarts(tmp_path):
    path = tmp_path / "off_votes.jsonl"

    log = VoteLog(str(path), legacy_path=None)
    log.load()
    assert log.last_logged_level == UNSET_LEVEL
    assert log.record(snap(100)) is True
    assert log.record(snap(101)) is True

    # restart: watermark comes back from the tail
    log = VoteLog(str(path), legacy_path=None)
    log.load()
    assert log.last_logged_level == 101
    assert log.record(snap(101)) is False
    assert log.record(snap(102)) is True

    rows = read_lines(path)
    assert [r["level"] for r in rows] == [100, 101, 102]
    assert set(rows[0]) == {"level", "vote", "baker", "ema", "timestamp"}
    assert rows[0]["vote"] == "OFF"
    assert rows[0]["ema"] == 1_100_000_000


def test_only_off_votes_are_logged(tmp_path):
    path = tmp_path / "off_votes.jsonl"
    log = VoteLog(str(path), legacy_path=None)
    log.load()
    assert log.record(snap(1, Vote.ON)) is False
    assert log.record(snap(2, Vote.PASS)) is False
    assert not path.exists()
    assert log.last_logged_level == UNSET_LEVEL


def test_lower_level_after_higher_is_not_logged(tmp_path):
    path = tmp_path / "off_votes.jsonl"
    log = VoteLog(str(path), legacy_path=None)
    log.record(snap(200))
    assert log.record(snap(150)) is False
    assert [r["level"] for r in read_lines(path)] == [200]


def test_timestamp_is_processing_time(tmp_path):
    path = tmp_path / "off_votes.jsonl"
    log = VoteLog(str(path), legacy_path=None)
    log.record(snap(10), now="2024-05-01T12:00:00.000Z")
    assert read_lines(path)[0]["timestamp"] == "2024-05-01T12:00:00.000Z"


def test_lines_are_compact(tmp_path):
    path = tmp_path / "off_votes.jsonl"
    log = VoteLog(str(path), legacy_path=None)
    log.record(snap(100), now="2024-05-01T12:00:00.000Z")
    line = path.read_text(encoding="utf-8").splitlines()[0]
    assert line == ('{"level":100,"vote":"OFF","baker":"tz1off","ema":1100000000,'
                    '"timestamp":"2024-05-01T12:00:00.000Z"}')


def test_legacy_migration(tmp_path):
    legacy = tmp_path / "off_votes.json"
    path = tmp_path / "off_votes.jsonl"
    obj = {"level": 5, "vote": "OFF", "baker": "tz1legacy", "ema": 42, "timestamp": "2024-01-01T00:00:00.000Z"}
    legacy_text = json.dumps([obj], indent=2)
    legacy.write_text(legacy_text, encoding="utf-8")

    log = VoteLog(str(path), str(legacy))
    log.load()

    lines = [ln for ln in path.read_text(encoding="utf-8").splitlines() if ln.strip()]
    assert len(lines) == 1
    assert json.loads(lines[0]) == obj
    assert legacy.read_text(encoding="utf-8") == legacy_text
    assert log.last_logged_level == 5
    assert lines[0].startswith('{"level":5,"vote":"OFF",')


def test_migration_skipped_when_jsonl_exists(tmp_path):
    legacy = tmp_path / "off_votes.json"
    path = tmp_path / "off_votes.jsonl"
    legacy.write_text(json.dumps([{"level": 5, "vote": "OFF", "baker": "a", "ema": 1, "timestamp": "t"}]))
    path.write_text(json.dumps({"level": 9, "vote": "OFF", "baker": "b", "ema": 2, "timestamp": "t"}) + "\n")

    log = VoteLog(str(path), str(legacy))
    log.load()

    assert [r["level"] for r in read_lines(path)] == [9]
    assert log.last_logged_level == 9


def test_broken_legacy_file_is_tolerated(tmp_path):
    legacy = tmp_path / "off_votes.json"
    path = tmp_path / "off_votes.jsonl"
    legacy.write_text("[{not json", encoding="utf-8")

    log = VoteLog(str(path), str(legacy))
    log.load()

    assert not path.exists()
    assert log.last_logged_level == UNSET_LEVEL
    assert log.record(snap(3)) is True


def test_corrupt_tail_keeps_sentinel(tmp_path):
    path = tmp_path / "off_votes.jsonl"
    path.write_text('{"level": 10, "vote": "OFF", "baker": "a", "ema": 1, "timestamp": "t"}\n{"level": 11, "vo\n\n')

    log = VoteLog(str(path), legacy_path=None)
    log.load()
    assert log.last_logged_level == UNSET_LEVEL


def test_trailing_blank_lines_ignored(tmp_path):
    path = tmp_path / "off_votes.jsonl"
    path.write_text('{"level": 10, "vote": "OFF", "baker": "a", "ema": 1, "timestamp": "t"}\n\n\n')

    log = VoteLog(str(path), legacy_path=None)
    log.load()
    assert log.last_logged_level == 10


def test_append_failure_is_suppressed(tmp_path):
    # Parent directory does not exist, so the append fails
    path = tmp_path / "missing" / "off_votes.jsonl"
    log = VoteLog(str(path), legacy_path=None)
    log.load()
    assert log.record(snap(100)) is False
    assert log.last_logged_level == UNSET_LEVEL
    assert log.write_errors == 1


def test_disabled_log_writes_nothing(tmp_path):
    path = tmp_path / "off_votes.jsonl"
    log = VoteLog(str(path), legacy_path=None, enabled=False)
    log.load()
    assert log.record(snap(100)) is False
    assert not path.exists()


def test_tail_newest_first_skips_bad_lines(tmp_path):
    path = tmp_path / "off_votes.jsonl"
    log = VoteLog(str(path), legacy_path=None)
    for level in (1, 2, 3):
        log.record(snap(level))
    with open(path, "a", encoding="utf-8") as f:
        f.write("garbage\n")

    assert [e.level for e in log.tail(2)] == [3, 2]
    assert [e.level for e in log.entries()] == [1, 2, 3]
    assert VoteLog(str(tmp_path / "nope.jsonl"), legacy_path=None).entries() == []
