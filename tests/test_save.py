"""Tests for save filesystem helpers."""

from __future__ import annotations

import json
from pathlib import Path

from convo_insights.io import append_jsonl, read_json_dict, save_json
from convo_insights.schemas import RankedItem


def test_save_json_overwrites_atomically(tmp_path: Path):
    json_path = tmp_path / "nested" / "artifact.json"
    save_json(json_path, {"value": 1})
    assert json.loads(json_path.read_text(encoding="utf-8"))["value"] == 1

    save_json(json_path, {"value": 2})
    assert json.loads(json_path.read_text(encoding="utf-8"))["value"] == 2
    assert [path.name for path in json_path.parent.iterdir()] == ["artifact.json"]


def test_append_jsonl_accepts_dicts_and_models(tmp_path: Path):
    jsonl_path = tmp_path / "rows.jsonl"
    append_jsonl(jsonl_path, [{"index": 1}])
    append_jsonl(jsonl_path, [RankedItem(label="a", count=2)])
    append_jsonl(jsonl_path, [])

    rows = [json.loads(line) for line in jsonl_path.read_text(encoding="utf-8").splitlines()]
    assert rows == [{"index": 1}, {"label": "a", "count": 2}]


def test_read_json_dict_tolerates_missing_and_corrupt_files(tmp_path: Path):
    assert read_json_dict(tmp_path / "missing.json") == {}

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")
    assert read_json_dict(corrupt) == {}

    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]", encoding="utf-8")
    assert read_json_dict(listing) == {}
