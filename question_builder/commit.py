"""Save an edited question back into the host schema."""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from question_builder.errors import SchemaCoordinateError
from question_builder.field_state import QuestionFieldState
from question_builder.models import Answer, Question, SchemaCoordinate
from question_builder.question_ids import question_id_exists

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str, str], None]
SchemaChange = Callable[[Dict[str, Any]], None]

SUCCESS_LEVEL = "success"
ERROR_LEVEL = "error"


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a save attempt."""

    ok: bool
    created: bool
    schema: Optional[Dict[str, Any]] = None
    question: Optional[Question] = None
    errors: Tuple[str, ...] = ()


def merge_additional_answers(question: Question, additional: Sequence[Answer]) -> Question:
    """Append additional answers the question does not store yet."""

    stored = {answer.reference_id for answer in question.answers}
    missing = tuple(answer for answer in additional if answer.reference_id not in stored)
    if not missing:
        return question
    return replace(question, answers=question.answers + missing)


def save_blockers(container: QuestionFieldState, schema: Mapping[str, Any]) -> List[str]:
    """Return the reasons preventing the question from being saved."""

    question = container.question
    errors: List[str] = []
    if not question.id:
        errors.append("The question must define an id.")
    if not container.is_concept_valid:
        errors.append("The selected concept could not be found.")
    if question.type.requires_concept and not question.concept:
        errors.append("Observation questions must be linked to a concept.")
    if question.id and question_id_exists(question.id, schema, question, container.original):
        errors.append(f"Duplicate question id detected: {question.id}")
    if not question.rendering:
        errors.append("Select a rendering type for the question.")
    return errors


def can_save(container: QuestionFieldState, schema: Mapping[str, Any]) -> bool:
    return not save_blockers(container, schema)


def _checked_index(items: Any, index: Optional[int], what: str) -> int:
    if not isinstance(items, list):
        raise SchemaCoordinateError(f"Schema has no {what} list.")
    if index is None or not 0 <= index < len(items):
        raise SchemaCoordinateError(f"No {what[:-1]} at index {index}.")
    return index


def write_question(
    schema: Mapping[str, Any],
    question: Question,
    coordinate: SchemaCoordinate,
    *,
    is_new: bool,
) -> Dict[str, Any]:
    """Return a copy of ``schema`` with ``question`` written at ``coordinate``.

    New questions, and edits whose coordinate carries no question index, are
    appended to the section. Other edits replace the entry at
    ``coordinate.question_index``. ``schema`` itself is never modified.
    """

    new_schema = deepcopy(dict(schema))
    pages = new_schema.get("pages")
    page = pages[_checked_index(pages, coordinate.page_index, "pages")]
    sections = page.get("sections")
    section = sections[_checked_index(sections, coordinate.section_index, "sections")]

    append = is_new or coordinate.question_index is None
    questions = section.get("questions")
    if questions is None and append:
        questions = section["questions"] = []

    payload = question.to_dict()
    if append:
        if not isinstance(questions, list):
            raise SchemaCoordinateError("Schema has no questions list.")
        questions.append(payload)
    else:
        questions[_checked_index(questions, coordinate.question_index, "questions")] = payload
    return new_schema


def commit_question(
    container: QuestionFieldState,
    schema: Mapping[str, Any],
    coordinate: SchemaCoordinate,
    *,
    on_schema_change: SchemaChange,
    notify: Notifier,
) -> CommitResult:
    """Merge pending answers and write the question into a copy of ``schema``.

    Failures while writing are reported through ``notify`` and leave the edit
    session open so the user can try again.
    """

    created = container.is_new
    blockers = save_blockers(container, schema)
    if blockers:
        logger.info("Refusing to save question %r: %s", container.question.id, "; ".join(blockers))
        return CommitResult(ok=False, created=created, errors=tuple(blockers))

    question = merge_additional_answers(container.question, container.additional_answers)
    container.update_question(lambda _: question)

    try:
        new_schema = write_question(schema, question, coordinate, is_new=created)
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Saving question %r failed: %s", question.id, exc)
        notify(ERROR_LEVEL, "Error saving question", str(exc))
        return CommitResult(ok=False, created=created, question=question, errors=(str(exc),))

    on_schema_change(new_schema)
    notify(
        SUCCESS_LEVEL,
        "Success!",
        "New question created" if created else "Question updated",
    )
    container.commit()
    logger.info(
        "Saved question %r at page %d section %d",
        question.id,
        coordinate.page_index,
        coordinate.section_index,
    )
    return CommitResult(ok=True, created=created, schema=new_schema, question=question)


__all__ = [
    "CommitResult",
    "ERROR_LEVEL",
    "Notifier",
    "SUCCESS_LEVEL",
    "can_save",
    "commit_question",
    "merge_additional_answers",
    "save_blockers",
    "write_question",
]
