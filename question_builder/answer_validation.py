"""Check that answers outside a concept's own list still exist remotely."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional, Sequence, Set

from question_builder.models import Answer, Concept

logger = logging.getLogger(__name__)

ConceptLookup = Callable[[str], Concept]


def native_answer_ids(concept: Optional[Concept]) -> Set[str]:
    """Return the identifiers of the answers a concept defines itself."""

    if concept is None:
        return set()
    return {answer.reference_id for answer in concept.answers}


class AnswerValidator:
    """Validate answer references against the concept directory.

    Each call to :meth:`validate` starts a new pass. Lookups run one after the
    other and the pass stops at the first identifier that fails to resolve.
    A pass only publishes its outcome while it is the most recent one, so a
    slow pass that finishes after a newer one started is ignored.
    """

    def __init__(self, lookup: ConceptLookup) -> None:
        self._lookup = lookup
        self._generation = 0
        self._is_valid = True

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_valid(self) -> bool:
        return self._is_valid

    @staticmethod
    def needs_validation(concept: Optional[Concept], display: Sequence[Answer]) -> bool:
        """Return ``True`` when ``display`` holds answers worth checking."""

        return concept is not None and concept.has_native_answers and bool(display)

    async def _resolves(self, reference_id: str) -> bool:
        try:
            concept = await asyncio.to_thread(self._lookup, reference_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Lookup of answer concept %s failed: %s", reference_id, exc)
            return False
        resolved = concept is not None and concept.id == reference_id
        logger.debug("Answer concept %s resolved=%s", reference_id, resolved)
        return resolved

    async def validate(
        self, concept: Optional[Concept], display: Sequence[Answer]
    ) -> Optional[bool]:
        """Run a validation pass and return its outcome.

        Returns ``None`` when a newer pass was started before this one
        finished; the stored outcome is then left to the newer pass.
        """

        self._generation += 1
        generation = self._generation

        if not self.needs_validation(concept, display):
            self._is_valid = True
            return True

        native = native_answer_ids(concept)
        checked: Dict[str, bool] = {}
        outcome = True
        for answer in display:
            reference_id = answer.reference_id
            if reference_id in native or reference_id in checked:
                continue
            if generation != self._generation:
                logger.debug("Dropping stale answer validation pass %d", generation)
                return None
            checked[reference_id] = await self._resolves(reference_id)
            if not checked[reference_id]:
                outcome = False
                break

        if generation != self._generation:
            logger.debug("Dropping stale answer validation pass %d", generation)
            return None
        self._is_valid = outcome
        return outcome


__all__ = ["AnswerValidator", "ConceptLookup", "native_answer_ids"]
