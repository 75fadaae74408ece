"""Tests for loading and saving local form schemas."""

from __future__ import annotations

import json
from pathlib import Path

from question_builder.schema_store import (
    discover_local_schemas,
    load_local_schemas,
    normalise_schema,
    save_schema,
    schema_path,
)


def test_normalise_schema_fills_missing_lists() -> None:
    schema = normalise_schema({"pages": [{"sections": [{"label": "A"}, "junk"]}, {}]}, "demo")

    assert schema["name"] == "demo"
    assert schema["pages"][0]["sections"][0]["questions"] == []
    assert schema["pages"][0]["sections"][1] == {"questions": []}
    assert schema["pages"][1]["sections"] == []


def test_discover_and_load_local_schemas(tmp_path: Path) -> None:
    target = schema_path("intake", tmp_path)
    target.parent.mkdir(parents=True)
    target.write_text(json.dumps({"name": "Intake", "pages": []}), encoding="utf-8")
    (tmp_path / "not-a-form").mkdir()
    (tmp_path / "stray.json").write_text("{}", encoding="utf-8")

    assert discover_local_schemas(tmp_path) == {"intake": target}

    schemas, sources = load_local_schemas(tmp_path)
    assert schemas == {"intake": {"name": "Intake", "pages": []}}
    assert sources == {"intake": target}


def test_discover_missing_root(tmp_path: Path) -> None:
    assert discover_local_schemas(tmp_path / "missing") == {}


def test_save_schema_writes_json(tmp_path: Path) -> None:
    target = schema_path("new_form", tmp_path)

    save_schema({"name": "New", "pages": []}, target)

    assert json.loads(target.read_text(encoding="utf-8")) == {"name": "New", "pages": []}
