from __future__ import annotations

import json

import pytest

from adapters import JsonlFrameSource
from storage import DatabaseEventLogger, EventLogger


def test_event_logger_appends_jsonl(tmp_path) -> None:
    logger = EventLogger(tmp_path / "logs")
    logger.log({"hotspot_id": "hotspot_1_2", "vehicle_count": 2}, camera_id="cam0")
    logger.log({"status": "no_crowd", "clusters": []})
    lines = (tmp_path / "logs" / "events.jsonl").read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [
        {"hotspot_id": "hotspot_1_2", "vehicle_count": 2, "camera_id": "cam0"},
        {"status": "no_crowd", "clusters": []},
    ]


def test_database_logger_round_trip(tmp_path) -> None:
    logger = DatabaseEventLogger(db_path=str(tmp_path / "events.db"))
    logger.log({"timestamp": "2024-01-01T00:00:00+00:00", "hotspot_id": "hotspot_1_2"}, camera_id="cam0")
    logger.log({"status": "crowd_detected", "clusters": [{"crowd_id": "crowd_a_b_c"}]})
    assert logger.fetch("hotspot") == [{"timestamp": "2024-01-01T00:00:00+00:00", "hotspot_id": "hotspot_1_2"}]
    assert len(logger.fetch("crowd_summary")) == 1
    assert len(logger.fetch()) == 2
    row = logger.conn.execute("SELECT cluster_id, camera_id FROM events WHERE type = 'hotspot'").fetchone()
    assert row == ("hotspot_1_2", "cam0")
    logger.close()


def test_jsonl_source_yields_non_blank_lines(tmp_path) -> None:
    path = tmp_path / "frames.jsonl"
    path.write_text('{"objects": []}\n\n  \n{broken\n', encoding="utf-8")
    with JsonlFrameSource(str(path)) as source:
        assert list(source.read()) == ['{"objects": []}', "{broken"]
    assert source.handle is None


def test_jsonl_source_requires_open(tmp_path) -> None:
    source = JsonlFrameSource(str(tmp_path / "missing.jsonl"))
    with pytest.raises(RuntimeError):
        list(source.read())
    with pytest.raises(RuntimeError):
        source.open()
