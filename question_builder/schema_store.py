"""Helpers for working with host form schema files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from question_builder.settings import SCHEMAS_ROOT

SCHEMA_FILENAME = "schema.json"


def _ensure_mapping(value: Any) -> Dict[str, Any]:
    """Return ``value`` if it is a mapping, otherwise an empty dict."""

    return dict(value) if isinstance(value, Mapping) else {}


def _ensure_list(value: Any) -> List[Any]:
    """Return ``value`` if it is a list, otherwise an empty list."""

    return list(value) if isinstance(value, list) else []


def normalise_schema(payload: Mapping[str, Any], name: str = "") -> Dict[str, Any]:
    """Ensure the ``pages -> sections -> questions`` lists are present."""

    schema = _ensure_mapping(payload)
    schema["name"] = str(schema.get("name") or name).strip() or name
    pages: List[Dict[str, Any]] = []
    for raw_page in _ensure_list(schema.get("pages")):
        page = _ensure_mapping(raw_page)
        sections: List[Dict[str, Any]] = []
        for raw_section in _ensure_list(page.get("sections")):
            section = _ensure_mapping(raw_section)
            section["questions"] = _ensure_list(section.get("questions"))
            sections.append(section)
        page["sections"] = sections
        pages.append(page)
    schema["pages"] = pages
    return schema


def discover_local_schemas(root: Optional[Path] = None) -> Dict[str, Path]:
    """Return a mapping of ``name -> path`` for local schema files."""

    base = root if root is not None else SCHEMAS_ROOT
    schemas: Dict[str, Path] = {}
    if base.exists():
        for entry in sorted(base.iterdir()):
            if not entry.is_dir():
                continue
            schema_path = entry / SCHEMA_FILENAME
            if schema_path.exists():
                schemas[entry.name] = schema_path
    return schemas


def load_schema(path: Path, name: str = "") -> Dict[str, Any]:
    """Load and normalise the schema stored at ``path``."""

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return normalise_schema(payload, name or path.parent.name)


def load_local_schemas(root: Optional[Path] = None) -> Tuple[Dict[str, Dict[str, Any]], Dict[str, Path]]:
    """Load all local schemas returning them with their source paths."""

    schemas: Dict[str, Dict[str, Any]] = {}
    sources = discover_local_schemas(root)
    for name, path in sources.items():
        schemas[name] = load_schema(path, name)
    return schemas, sources


def schema_path(name: str, root: Optional[Path] = None) -> Path:
    """Return the on-disk path for the schema called ``name``."""

    base = root if root is not None else SCHEMAS_ROOT
    return base / name / SCHEMA_FILENAME


def save_schema(schema: Mapping[str, Any], path: Path) -> Path:
    """Write ``schema`` to ``path`` as indented JSON."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(schema, handle, indent=2)
        handle.write("\n")
    return path


__all__ = [
    "SCHEMA_FILENAME",
    "discover_local_schemas",
    "load_local_schemas",
    "load_schema",
    "normalise_schema",
    "save_schema",
    "schema_path",
]
