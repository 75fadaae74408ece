"""Tests for the concept directory client."""

from __future__ import annotations

from typing import Any, Dict, List

import pytest
import requests

from question_builder.concept_directory import CONCEPT_REPRESENTATION, ConceptDirectory
from question_builder.errors import ConceptLookupError


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _patch_get(monkeypatch, response: Any) -> List[Dict[str, Any]]:
    """Replace ``requests.get`` and return the list of recorded calls."""

    calls: List[Dict[str, Any]] = []

    def fake_get(url: str, **kwargs: Any) -> FakeResponse:
        calls.append({"url": url, **kwargs})
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(requests, "get", fake_get)
    return calls


def test_lookup_concept_parses_payload(monkeypatch) -> None:
    calls = _patch_get(
        monkeypatch,
        FakeResponse(payload={"uuid": "c1", "display": "Pain", "datatype": {"name": "Coded"}, "answers": []}),
    )
    directory = ConceptDirectory(base_url="https://emr.example/openmrs/", username="admin", password="secret")

    concept = directory.lookup_concept("c1")

    assert concept.id == "c1"
    assert concept.datatype == "Coded"
    assert calls[0]["url"] == "https://emr.example/openmrs/ws/rest/v1/concept/c1"
    assert calls[0]["params"] == {"v": CONCEPT_REPRESENTATION}
    assert calls[0]["auth"] == ("admin", "secret")


def test_missing_concept_raises_lookup_error(monkeypatch) -> None:
    _patch_get(monkeypatch, FakeResponse(status_code=404))

    with pytest.raises(ConceptLookupError) as excinfo:
        ConceptDirectory(base_url="https://emr.example").lookup_concept("gone")

    assert excinfo.value.concept_id == "gone"


def test_network_error_raises_lookup_error(monkeypatch) -> None:
    _patch_get(monkeypatch, requests.ConnectionError("refused"))

    with pytest.raises(ConceptLookupError):
        ConceptDirectory(base_url="https://emr.example").lookup_concept("c1")


def test_invalid_json_raises_lookup_error(monkeypatch) -> None:
    _patch_get(monkeypatch, FakeResponse(payload=ValueError("not json")))

    with pytest.raises(ConceptLookupError):
        ConceptDirectory(base_url="https://emr.example").lookup_concept("c1")


def test_search_concepts_returns_results(monkeypatch) -> None:
    calls = _patch_get(
        monkeypatch,
        FakeResponse(payload={"results": [{"uuid": "a", "display": "Aspirin"}, {"uuid": "b", "display": "Amoxicillin"}]}),
    )

    results = ConceptDirectory(base_url="https://emr.example").search_concepts(" a ")

    assert [concept.id for concept in results] == ["a", "b"]
    assert calls[0]["params"]["q"] == "a"
    assert calls[0]["auth"] is None


def test_blank_search_does_not_hit_the_network(monkeypatch) -> None:
    calls = _patch_get(monkeypatch, FakeResponse(payload={"results": []}))

    assert ConceptDirectory(base_url="https://emr.example").search_concepts("   ") == []
    assert calls == []
