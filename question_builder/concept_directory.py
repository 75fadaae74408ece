"""Client for the concept directory REST API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests

from question_builder.errors import ConceptLookupError
from question_builder.models import Concept

CONCEPT_REPRESENTATION = (
    "custom:(uuid,display,datatype:(uuid,name),answers:(uuid,display))"
)


@dataclass
class ConceptDirectory:
    """Read concepts from an OpenMRS-style ``/ws/rest/v1/concept`` endpoint."""

    base_url: str
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 10

    def _url(self, concept_id: str = "") -> str:
        """Construct the concept resource URL."""

        url = f"{self.base_url.rstrip('/')}/ws/rest/v1/concept"
        return f"{url}/{concept_id}" if concept_id else url

    def _auth(self) -> Optional[Tuple[str, str]]:
        if self.username and self.password:
            return self.username, self.password
        return None

    def _get(self, url: str, params: Dict[str, str], concept_id: str) -> Dict[str, Any]:
        try:
            response = requests.get(
                url,
                auth=self._auth(),
                headers={"Accept": "application/json"},
                params=params,
                timeout=self.timeout,
            )
            if response.status_code == 404:
                raise ConceptLookupError(concept_id, f"Concept {concept_id} not found.")
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise ConceptLookupError(concept_id, f"Concept directory request failed: {exc}") from exc
        except ValueError as exc:
            raise ConceptLookupError(concept_id, "Concept directory returned invalid JSON.") from exc
        if not isinstance(payload, dict):
            raise ConceptLookupError(concept_id, "Concept directory returned an unexpected payload.")
        return payload

    def lookup_concept(self, concept_id: str) -> Concept:
        """Fetch a single concept by its identifier."""

        payload = self._get(self._url(concept_id), {"v": CONCEPT_REPRESENTATION}, concept_id)
        return Concept.from_payload(payload)

    def search_concepts(self, query: str) -> List[Concept]:
        """Return concepts whose name matches ``query``."""

        text = query.strip()
        if not text:
            return []
        payload = self._get(self._url(), {"q": text, "v": CONCEPT_REPRESENTATION}, text)
        results = payload.get("results", [])
        return [Concept.from_payload(entry) for entry in results if isinstance(entry, dict)]


__all__ = ["CONCEPT_REPRESENTATION", "ConceptDirectory"]
