"""Reconcile concept answers with the answers stored on a question.

Every function here is pure: it receives the current value and returns the
new one, handing back the very same object when nothing changes so callers
can skip needless updates.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from question_builder.models import Answer, Concept, FieldState, Question


def _index_of(answers: Sequence[Answer], reference_id: str) -> Optional[int]:
    """Return the position of ``reference_id`` in ``answers`` if present."""

    return next(
        (index for index, answer in enumerate(answers) if answer.reference_id == reference_id),
        None,
    )


def reconcile_answers(concept: Optional[Concept], answers: Sequence[Answer]) -> List[Answer]:
    """Return the ordered, de-duplicated list of answers to display.

    Concept answers come first in their native order, labelled with the
    question's stored label when it overrides one. Stored answers the concept
    does not know about follow in their own order. When the concept offers no
    answers at all the stored answers are shown as they are.
    """

    native = concept.answers if concept is not None else ()
    committed = tuple(answers)
    if not native and committed:
        return list(committed)

    overrides: Dict[str, str] = {}
    for answer in committed:
        overrides.setdefault(answer.reference_id, answer.label)

    display: List[Answer] = []
    seen = set()
    for answer in native:
        if answer.reference_id in seen:
            continue
        seen.add(answer.reference_id)
        display.append(
            Answer(
                reference_id=answer.reference_id,
                label=overrides.get(answer.reference_id, answer.label),
            )
        )

    for answer in committed:
        if answer.reference_id in seen:
            continue
        seen.add(answer.reference_id)
        display.append(answer)

    return display


def move_answer(
    answers: Tuple[Answer, ...], source_id: str, target_id: str
) -> Tuple[Answer, ...]:
    """Move ``source_id`` to the position currently held by ``target_id``."""

    old_index = _index_of(answers, source_id)
    new_index = _index_of(answers, target_id)
    if old_index is None or new_index is None or old_index == new_index:
        return answers

    reordered = list(answers)
    reordered.insert(new_index, reordered.pop(old_index))
    return tuple(reordered)


def replace_selection(question: Question, selected: Iterable[Any]) -> Question:
    """Replace the stored answers with the ``selected`` ``{id, label}`` items."""

    mapped = tuple(Answer.from_selection(item) for item in selected)
    if mapped == question.answers:
        return question
    return replace(question, answers=mapped)


def answer_from_concept(concept: Concept) -> Answer:
    """Return the answer offered by a concept picked through search."""

    return Answer(reference_id=concept.id, label=concept.display)


def add_additional_answer(state: FieldState, answer: Answer) -> FieldState:
    """Append ``answer`` to both the stored and the additional answers.

    Nothing happens when the identifier is already known to either list.
    """

    known = {item.reference_id for item in state.question.answers}
    known.update(item.reference_id for item in state.additional_answers)
    if answer.reference_id in known:
        return state

    question = replace(state.question, answers=state.question.answers + (answer,))
    return FieldState(
        question=question,
        additional_answers=state.additional_answers + (answer,),
    )


def delete_additional_answer(state: FieldState, reference_id: str) -> FieldState:
    """Remove ``reference_id`` from both the additional and stored answers."""

    additional = tuple(
        answer for answer in state.additional_answers if answer.reference_id != reference_id
    )
    answers = tuple(
        answer for answer in state.question.answers if answer.reference_id != reference_id
    )
    if additional == state.additional_answers and answers == state.question.answers:
        return state
    return FieldState(
        question=replace(state.question, answers=answers),
        additional_answers=additional,
    )


def prune_additional_answers(state: FieldState) -> FieldState:
    """Drop additional answers that are no longer stored on the question."""

    stored = {answer.reference_id for answer in state.question.answers}
    kept = tuple(answer for answer in state.additional_answers if answer.reference_id in stored)
    if kept == state.additional_answers:
        return state
    return replace(state, additional_answers=kept)


__all__ = [
    "add_additional_answer",
    "answer_from_concept",
    "delete_additional_answer",
    "move_answer",
    "prune_additional_answers",
    "reconcile_answers",
    "replace_selection",
]
