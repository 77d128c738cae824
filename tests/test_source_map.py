"""
Unit tests for load_source_map().
"""

import json
from pathlib import Path

import pytest

from app.core.config import SOURCE_MAP_PATH
from app.core.source_map import SourceEntry, load_source_map


def test_loads_entries(tmp_path: Path) -> None:
    path = tmp_path / "map.json"
    path.write_text(json.dumps({"a.pdf": {"url": "https://example.org/a", "date": "2023-05-01"}}), encoding="utf-8")
    assert load_source_map(path) == {"a.pdf": SourceEntry(url="https://example.org/a", date="2023-05-01")}


def test_missing_fields_default_to_empty(tmp_path: Path) -> None:
    path = tmp_path / "map.json"
    path.write_text(json.dumps({"a.pdf": {"url": "https://example.org/a"}}), encoding="utf-8")
    assert load_source_map(path)["a.pdf"].date == ""


def test_missing_file_gives_empty_map(tmp_path: Path) -> None:
    assert load_source_map(tmp_path / "nope.json") == {}


def test_non_object_raises(tmp_path: Path) -> None:
    path = tmp_path / "map.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_source_map(path)


def test_bundled_map_loads() -> None:
    entries = load_source_map(SOURCE_MAP_PATH)
    assert "region_2023_budget_session.pdf" in entries
