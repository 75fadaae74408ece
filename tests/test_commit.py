"""Tests for saving an edited question into the host schema."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import replace
from typing import Any, Dict, List, Tuple

import pytest

from question_builder.commit import (
    can_save,
    commit_question,
    merge_additional_answers,
    save_blockers,
    write_question,
)
from question_builder.errors import SchemaCoordinateError
from question_builder.field_state import EditStatus, QuestionFieldState
from question_builder.models import Answer, Question, QuestionType, SchemaCoordinate


def _schema() -> Dict[str, Any]:
    """Return a schema with two sections on the first page."""

    return {
        "name": "Demo",
        "pages": [
            {
                "label": "First page",
                "sections": [
                    {"label": "Intro", "questions": [{"id": "intro", "type": "control"}]},
                    {
                        "label": "Vitals",
                        "questions": [
                            {"id": "q0", "type": "obs", "questionOptions": {"rendering": "number", "concept": "c0"}},
                            {"id": "q1", "type": "obs", "questionOptions": {"rendering": "number", "concept": "c1"}},
                            {"id": "q2", "type": "obs", "questionOptions": {"rendering": "text", "concept": "c2"}},
                        ],
                    },
                ],
            }
        ],
    }


class Recorder:
    """Collect schema changes and notifications."""

    def __init__(self) -> None:
        self.schemas: List[Dict[str, Any]] = []
        self.notifications: List[Tuple[str, str, str]] = []

    def on_schema_change(self, schema: Dict[str, Any]) -> None:
        self.schemas.append(schema)

    def notify(self, level: str, title: str, message: str) -> None:
        self.notifications.append((level, title, message))


def _new_question() -> Question:
    return Question(id="new_q", type=QuestionType.CONTROL, rendering="text", label="New")


def test_new_question_is_appended_to_section() -> None:
    schema = _schema()
    before = deepcopy(schema)
    container = QuestionFieldState(_new_question())
    recorder = Recorder()

    result = commit_question(
        container,
        schema,
        SchemaCoordinate(page_index=0, section_index=1),
        on_schema_change=recorder.on_schema_change,
        notify=recorder.notify,
    )

    assert result.ok is True
    assert result.created is True
    questions = recorder.schemas[0]["pages"][0]["sections"][1]["questions"]
    assert [question["id"] for question in questions] == ["q0", "q1", "q2", "new_q"]
    assert schema == before
    assert recorder.notifications == [("success", "Success!", "New question created")]
    assert container.status is EditStatus.COMMITTED


def test_existing_question_is_replaced_in_place() -> None:
    schema = _schema()
    before = deepcopy(schema)
    original = Question.from_dict(schema["pages"][0]["sections"][1]["questions"][2])
    container = QuestionFieldState.editing(original)
    container.update_question(lambda question: replace(question, label="Renamed", rendering="textarea"))
    recorder = Recorder()

    result = commit_question(
        container,
        schema,
        SchemaCoordinate(page_index=0, section_index=1, question_index=2),
        on_schema_change=recorder.on_schema_change,
        notify=recorder.notify,
    )

    assert result.ok is True
    assert result.created is False
    new_schema = recorder.schemas[0]
    assert new_schema is not schema
    written = new_schema["pages"][0]["sections"][1]["questions"][2]
    assert written["label"] == "Renamed"
    assert written["questionOptions"] == {"rendering": "textarea", "concept": "c2"}
    assert len(new_schema["pages"][0]["sections"][1]["questions"]) == 3
    assert schema == before
    assert recorder.notifications == [("success", "Success!", "Question updated")]


def test_additional_answers_are_merged_on_save() -> None:
    question = Question(id="q", answers=(Answer("a", "A"),))

    merged = merge_additional_answers(question, [Answer("a", "A again"), Answer("b", "B")])

    assert merged.answers == (Answer("a", "A"), Answer("b", "B"))
    assert merge_additional_answers(merged, [Answer("b", "B")]) is merged


def test_write_failure_is_reported_and_session_stays_open() -> None:
    schema = _schema()
    before = deepcopy(schema)
    container = QuestionFieldState(_new_question())
    recorder = Recorder()

    result = commit_question(
        container,
        schema,
        SchemaCoordinate(page_index=3, section_index=0),
        on_schema_change=recorder.on_schema_change,
        notify=recorder.notify,
    )

    assert result.ok is False
    assert recorder.schemas == []
    assert recorder.notifications == [("error", "Error saving question", "No page at index 3.")]
    assert container.status is EditStatus.EDITING
    assert schema == before


def test_blocked_save_changes_nothing() -> None:
    schema = _schema()
    container = QuestionFieldState(Question(id="q1", type=QuestionType.OBS))
    recorder = Recorder()

    result = commit_question(
        container,
        schema,
        SchemaCoordinate(page_index=0, section_index=1),
        on_schema_change=recorder.on_schema_change,
        notify=recorder.notify,
    )

    assert result.ok is False
    assert result.errors
    assert recorder.schemas == []
    assert recorder.notifications == []
    assert container.status is EditStatus.EDITING


@pytest.mark.parametrize(
    "question,fragment",
    [
        (Question(id="", rendering="text"), "must define an id"),
        (Question(id="x", type=QuestionType.OBS, rendering="text"), "linked to a concept"),
        (Question(id="q1", rendering="text"), "Duplicate question id"),
        (Question(id="x"), "rendering type"),
    ],
)
def test_save_blockers(question: Question, fragment: str) -> None:
    container = QuestionFieldState(question)

    blockers = save_blockers(container, _schema())

    assert any(fragment in reason for reason in blockers)
    assert can_save(container, _schema()) is False


def test_invalid_concept_blocks_save() -> None:
    container = QuestionFieldState(_new_question())
    assert can_save(container, _schema()) is True

    container.set_concept_valid(False)

    assert save_blockers(container, _schema()) == ["The selected concept could not be found."]


def test_editing_without_renaming_is_not_a_duplicate() -> None:
    schema = _schema()
    original = Question.from_dict(schema["pages"][0]["sections"][1]["questions"][0])

    assert save_blockers(QuestionFieldState.editing(original), schema) == []


def test_write_question_rejects_bad_question_index() -> None:
    with pytest.raises(SchemaCoordinateError):
        write_question(
            _schema(),
            _new_question(),
            SchemaCoordinate(page_index=0, section_index=1, question_index=7),
            is_new=False,
        )


def test_edit_without_question_index_is_appended() -> None:
    schema = _schema()

    updated = write_question(
        schema,
        _new_question(),
        SchemaCoordinate(page_index=0, section_index=1),
        is_new=False,
    )

    questions = updated["pages"][0]["sections"][1]["questions"]
    assert [question["id"] for question in questions] == ["q0", "q1", "q2", "new_q"]
    assert len(schema["pages"][0]["sections"][1]["questions"]) == 3


def test_committing_an_edit_without_question_index_appends() -> None:
    original = Question(id="moved", type=QuestionType.OBS, rendering="text", concept="c9")
    container = QuestionFieldState.editing(original)
    recorder = Recorder()

    result = commit_question(
        container,
        _schema(),
        SchemaCoordinate(page_index=0, section_index=0),
        on_schema_change=recorder.on_schema_change,
        notify=recorder.notify,
    )

    assert result.ok is True
    assert result.created is False
    questions = recorder.schemas[0]["pages"][0]["sections"][0]["questions"]
    assert [question["id"] for question in questions] == ["intro", "moved"]
    assert recorder.notifications == [("success", "Success!", "Question updated")]


def test_write_question_creates_missing_questions_list() -> None:
    schema = {"pages": [{"sections": [{"label": "Empty"}]}]}

    updated = write_question(schema, _new_question(), SchemaCoordinate(0, 0), is_new=True)

    assert updated["pages"][0]["sections"][0]["questions"][0]["id"] == "new_q"
    assert "questions" not in schema["pages"][0]["sections"][0]
