"""Tests for reading concept directory settings from secrets."""

from __future__ import annotations

import importlib


def test_directory_settings_from_table() -> None:
    settings = importlib.import_module("question_builder.settings")

    result = settings.directory_settings(
        {
            "concept_directory": {
                "base_url": " https://emr.example/openmrs ",
                "username": "admin",
                "password": "secret",
                "timeout": "5",
            }
        }
    )

    assert result == settings.DirectorySettings(
        base_url="https://emr.example/openmrs",
        username="admin",
        password="secret",
        timeout=5.0,
    )


def test_directory_settings_flat_fallback() -> None:
    settings = importlib.import_module("question_builder.settings")

    result = settings.directory_settings(
        {"concept_directory_url": "https://emr.example", "concept_directory_timeout": -1}
    )

    assert result is not None
    assert result.base_url == "https://emr.example"
    assert result.username is None
    assert result.timeout == settings.DEFAULT_TIMEOUT


def test_directory_settings_missing_url() -> None:
    settings = importlib.import_module("question_builder.settings")

    assert settings.directory_settings({}) is None
    assert settings.directory_settings({"concept_directory": {"base_url": "  "}}) is None
