"""Configuration read from Streamlit secrets."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st

SCHEMAS_ROOT = Path("form_schemas")
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class DirectorySettings:
    """Connection details for the concept directory."""

    base_url: str
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT


def _section(secrets: Mapping, name: str) -> Dict[str, Any]:
    """Return the table stored under ``name`` in ``secrets``."""

    value = secrets.get(name, {})
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _timeout(value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_TIMEOUT


def directory_settings(secrets: Mapping) -> Optional[DirectorySettings]:
    """Return the concept directory settings found in ``secrets``.

    The ``[concept_directory]`` table is preferred; flat
    ``concept_directory_*`` keys are accepted as a fallback. ``None`` is
    returned when no base URL is configured.
    """

    table = _section(secrets, "concept_directory")
    base_url = table.get("base_url") or secrets.get("concept_directory_url")
    username = table.get("username") or secrets.get("concept_directory_username")
    password = table.get("password") or secrets.get("concept_directory_password")
    timeout = table.get("timeout", secrets.get("concept_directory_timeout"))

    if not isinstance(base_url, str) or not base_url.strip():
        return None
    return DirectorySettings(
        base_url=base_url.strip(),
        username=str(username) if username else None,
        password=str(password) if password else None,
        timeout=_timeout(timeout),
    )


def load_directory_settings() -> Optional[DirectorySettings]:
    """Read the concept directory settings from ``st.secrets``."""

    try:
        return directory_settings(st.secrets)
    except FileNotFoundError:
        return None


__all__ = [
    "DEFAULT_TIMEOUT",
    "DirectorySettings",
    "SCHEMAS_ROOT",
    "directory_settings",
    "load_directory_settings",
]
