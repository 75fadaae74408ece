"""Streamlit page for creating or editing a single form question."""

from __future__ import annotations

import asyncio
import hashlib
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from Home import EDIT_TARGET_STATE_KEY, get_schemas
from question_builder.answer_validation import AnswerValidator, ConceptLookup
from question_builder.commit import ERROR_LEVEL, SUCCESS_LEVEL, commit_question, save_blockers
from question_builder.concept_directory import ConceptDirectory
from question_builder.errors import ConceptLookupError
from question_builder.field_state import QuestionFieldState
from question_builder.models import Answer, Concept, Question, QuestionType, SchemaCoordinate
from question_builder.question_ids import question_id_exists
from question_builder.settings import load_directory_settings

FIELD_STATE_KEY = "editor_field_state"
FIELD_TARGET_STATE_KEY = "editor_field_target"
VALIDATOR_STATE_KEY = "editor_answer_validators"
WIDGET_EPOCH_STATE_KEY = "editor_widget_epoch"
CONCEPT_CACHE_STATE_KEY = "editor_concepts"
SEARCH_RESULTS_STATE_KEY = "editor_answer_search_results"
HOME_PAGE = "Home.py"
UNSELECTED_LABEL = "— Select an option —"
RENDERING_TYPES = [
    "text",
    "textarea",
    "number",
    "select",
    "radio",
    "checkbox",
    "toggle",
    "date",
    "datetime",
    "ui-select-extended",
    "group",
    "markdown",
]
QUESTION_TYPE_LABELS = {
    QuestionType.UNSET: UNSELECTED_LABEL,
    QuestionType.OBS: "Observation",
    QuestionType.OBS_GROUP: "Observation group",
    QuestionType.CONTROL: "Control",
    QuestionType.TEST_ORDER: "Test order",
    QuestionType.ENCOUNTER_DATETIME: "Encounter date",
    QuestionType.ENCOUNTER_LOCATION: "Encounter location",
    QuestionType.ENCOUNTER_PROVIDER: "Encounter provider",
    QuestionType.PATIENT_IDENTIFIER: "Patient identifier",
    QuestionType.PROGRAM_STATE: "Program state",
    QuestionType.OTHER: "Other",
}


def get_directory() -> Optional[ConceptDirectory]:
    """Return a concept directory client if one is configured."""

    settings = load_directory_settings()
    if settings is None:
        return None
    return ConceptDirectory(
        base_url=settings.base_url,
        username=settings.username,
        password=settings.password,
        timeout=settings.timeout,
    )


def notify(level: str, title: str, message: str) -> None:
    """Show a save notification."""

    st.toast(f"{title} {message}", icon="✅" if level == SUCCESS_LEVEL else "⚠️")
    if level == ERROR_LEVEL:
        st.error(f"{title}: {message}")


def _concept_cache() -> Dict[str, Concept]:
    return st.session_state.setdefault(CONCEPT_CACHE_STATE_KEY, {})


def _lookup_and_bind(
    container: QuestionFieldState, concept_id: str, directory: Optional[ConceptDirectory]
) -> None:
    """Resolve ``concept_id`` and bind it, flagging the concept when it fails."""

    cache = _concept_cache()
    if concept_id in cache:
        container.bind_concept(cache[concept_id])
        return
    if directory is None:
        container.update_question(lambda question: replace(question, concept=concept_id))
        return
    try:
        concept = directory.lookup_concept(concept_id)
    except ConceptLookupError as exc:
        container.update_question(lambda question: replace(question, concept=concept_id))
        container.set_concept_valid(False)
        st.warning(str(exc))
        return
    cache[concept.id] = concept
    container.bind_concept(concept, valid=concept.id == concept_id)


def widget_epoch() -> int:
    return st.session_state.get(WIDGET_EPOCH_STATE_KEY, 0)


def reset_widgets() -> None:
    """Give every editor widget a fresh key so it reads its value from the session."""

    st.session_state[WIDGET_EPOCH_STATE_KEY] = widget_epoch() + 1


def answers_key(prefix: str, answers: Sequence[Answer]) -> str:
    """Return a widget key that changes whenever the stored answers change."""

    digest = hashlib.sha256(
        "\n".join(answer.reference_id for answer in answers).encode("utf-8")
    ).hexdigest()[:10]
    return f"{prefix}_answers_{digest}"


def open_session(target: Dict[str, Any], schema: Dict[str, Any]) -> QuestionFieldState:
    """Return the edit session for ``target``, creating it when needed."""

    container = st.session_state.get(FIELD_STATE_KEY)
    if container is not None and st.session_state.get(FIELD_TARGET_STATE_KEY) == target:
        return container

    question_index = target.get("question")
    if question_index is None:
        container = QuestionFieldState.creating()
    else:
        section = schema["pages"][target["page"]]["sections"][target["section"]]
        container = QuestionFieldState.editing(
            Question.from_dict(section["questions"][question_index])
        )
        if container.question.concept:
            _lookup_and_bind(container, container.question.concept, get_directory())

    st.session_state[FIELD_STATE_KEY] = container
    st.session_state[FIELD_TARGET_STATE_KEY] = dict(target)
    st.session_state.pop(SEARCH_RESULTS_STATE_KEY, None)
    st.session_state.pop(VALIDATOR_STATE_KEY, None)
    reset_widgets()
    return container


def close_session() -> None:
    for key in (FIELD_STATE_KEY, FIELD_TARGET_STATE_KEY, VALIDATOR_STATE_KEY, SEARCH_RESULTS_STATE_KEY):
        st.session_state.pop(key, None)
    st.session_state.pop(EDIT_TARGET_STATE_KEY, None)


def render_answers(
    container: QuestionFieldState, prefix: str, directory: Optional[ConceptDirectory]
) -> None:
    """Render answer selection, ordering and additional answers."""

    display = container.display_answers()
    if display:
        labels = {answer.reference_id: answer.label or answer.reference_id for answer in display}
        selected_ids = [
            answer.reference_id for answer in container.question.answers if answer.reference_id in labels
        ]
        chosen = st.multiselect(
            "Select answers to display",
            options=list(labels),
            default=selected_ids,
            format_func=lambda reference_id: labels.get(reference_id, reference_id),
            key=answers_key(prefix, container.question.answers),
        )
        if chosen != selected_ids:
            container.select_answers({"id": rid, "label": labels[rid]} for rid in chosen)
            st.rerun()

    answers = container.question.answers
    if len(answers) > 1:
        names = {answer.reference_id: answer.label or answer.reference_id for answer in answers}
        for position, answer in enumerate(answers, start=1):
            st.markdown(f"{position}. {names[answer.reference_id]}")
        order_key = answers_key(prefix, answers)
        col_source, col_target, col_action = st.columns([2, 2, 1])
        source = col_source.selectbox(
            "Move answer", options=list(names), format_func=names.get, key=f"{order_key}_move_source"
        )
        target = col_target.selectbox(
            "To the position of", options=list(names), format_func=names.get, key=f"{order_key}_move_target"
        )
        if col_action.button("Move", key=f"{prefix}_move"):
            if container.reorder_answers(source, target):
                st.rerun()

    concept = container.concept
    if concept is None or not concept.is_coded or directory is None:
        return

    query = st.text_input("Search for a concept to add as an answer", key=f"{prefix}_answer_query")
    if st.button("Search", key=f"{prefix}_answer_search"):
        try:
            st.session_state[SEARCH_RESULTS_STATE_KEY] = directory.search_concepts(query)
        except ConceptLookupError as exc:
            st.error(str(exc))
    results: List[Concept] = st.session_state.get(SEARCH_RESULTS_STATE_KEY, [])
    if results:
        choice = st.selectbox(
            "Search results",
            options=range(len(results)),
            format_func=lambda index: results[index].display or results[index].id,
            key=f"{prefix}_answer_result",
        )
        if st.button("Add answer", key=f"{prefix}_answer_add"):
            if container.add_additional_answer(results[choice]):
                st.rerun()
            st.info("That answer is already part of the question.")

    for answer in container.additional_answers:
        col_text, col_action = st.columns([5, 1])
        col_text.markdown(f"➕ {answer.label or answer.reference_id}")
        if col_action.button("Remove", key=f"{prefix}_additional_{answer.reference_id}"):
            container.delete_additional_answer(answer.reference_id)
            st.rerun()


def render_question_fields(
    container: QuestionFieldState,
    prefix: str,
    schema: Dict[str, Any],
    root: QuestionFieldState,
    directory: Optional[ConceptDirectory],
) -> None:
    """Render the inputs shared by top-level and grouped questions."""

    question = container.question
    identifier = st.text_input("Question id", value=question.id, key=f"{prefix}_id").strip()
    if identifier != question.id:
        container.update_question(lambda current: replace(current, id=identifier))
    if identifier and question_id_exists(identifier, schema, root.question, root.original):
        st.error("This question id is already used in the schema.")

    label = st.text_input("Label", value=question.label or "", key=f"{prefix}_label")
    if label != (question.label or ""):
        container.update_question(lambda current: replace(current, label=label or None))

    col_type, col_rendering = st.columns(2)
    current_type = container.question.type
    type_tag = container.question.type_tag
    type_options = [
        value for value in QuestionType if value is not QuestionType.OTHER or value is current_type
    ]
    question_type = col_type.selectbox(
        "Question type",
        options=type_options,
        index=type_options.index(current_type),
        format_func=lambda value: (
            f"Other ({type_tag})"
            if value is QuestionType.OTHER and type_tag
            else QUESTION_TYPE_LABELS.get(value, value.value)
        ),
        key=f"{prefix}_type",
    )
    if question_type is not container.question.type:
        container.update_question(lambda current: replace(current, type=question_type))

    rendering_options = [""] + RENDERING_TYPES
    current_rendering = container.question.rendering
    if current_rendering not in rendering_options:
        rendering_options.append(current_rendering)
    rendering = col_rendering.selectbox(
        "Rendering",
        options=rendering_options,
        index=rendering_options.index(current_rendering),
        format_func=lambda value: value or UNSELECTED_LABEL,
        key=f"{prefix}_rendering",
    )
    if rendering != current_rendering:
        container.update_question(lambda current: replace(current, rendering=rendering))

    col_concept, col_lookup, col_clear = st.columns([4, 1, 1])
    concept_id = col_concept.text_input(
        "Concept id", value=container.question.concept, key=f"{prefix}_concept"
    ).strip()
    if col_lookup.button("Look up", key=f"{prefix}_concept_lookup") and concept_id:
        _lookup_and_bind(container, concept_id, directory)
        st.rerun()
    if col_clear.button("Clear", key=f"{prefix}_concept_clear"):
        container.bind_concept(None)
        st.rerun()
    if container.question.concept in _concept_cache() and container.concept is None:
        container.bind_concept(_concept_cache()[container.question.concept])
    if container.concept is not None:
        datatype = container.concept.datatype or "no datatype"
        st.caption(f"Concept: {container.concept.display} ({datatype})")
    elif not container.is_concept_valid:
        st.warning("The concept could not be found in the concept directory.")

    render_answers(container, prefix, directory)


def render_grouped_questions(
    container: QuestionFieldState,
    prefix: str,
    schema: Dict[str, Any],
    directory: Optional[ConceptDirectory],
) -> None:
    """Render the questions grouped under an observation group."""

    grouped = container.question.questions
    for index, nested in enumerate(grouped):
        with st.expander(nested.label or f"Question {index + 1}", expanded=index == len(grouped) - 1):
            render_question_fields(container.child(index), f"{prefix}_q{index}", schema, container, directory)
            if st.button("Delete question", key=f"{prefix}_q{index}_delete", type="secondary"):
                container.delete_grouped_question(index)
                st.session_state.pop(VALIDATOR_STATE_KEY, None)
                reset_widgets()
                st.rerun()

    if container.question.type.is_group and st.button("Add a grouped question", key=f"{prefix}_add_grouped"):
        container.add_grouped_question()
        reset_widgets()
        st.rerun()


def answer_validity(
    container: QuestionFieldState,
    validators: Dict[Optional[int], AnswerValidator],
    lookup: ConceptLookup,
) -> Dict[Optional[int], bool]:
    """Validate the answers of ``container`` and of each of its grouped questions.

    Results are keyed by grouped question index, with ``None`` for the
    top-level question. Each slot keeps its own validator in ``validators``.
    """

    slots = [(None, container)] + [
        (index, container.child(index)) for index in range(len(container.question.questions))
    ]

    async def run_passes() -> Dict[Optional[int], bool]:
        outcome: Dict[Optional[int], bool] = {}
        for slot, field in slots:
            validator = validators.get(slot)
            if validator is None:
                validator = validators[slot] = AnswerValidator(lookup)
            outcome[slot] = await field.refresh_answer_validity(validator)
        return outcome

    return asyncio.run(run_passes())


def refresh_answer_validity(container: QuestionFieldState, directory: Optional[ConceptDirectory]) -> None:
    """Re-check answer references against the concept directory."""

    if directory is None:
        return
    validators = st.session_state.setdefault(VALIDATOR_STATE_KEY, {})
    for slot, valid in answer_validity(container, validators, directory.lookup_concept).items():
        if valid:
            continue
        if slot is None:
            st.warning("Some answers no longer exist in the concept directory.")
        else:
            st.warning(f"Some answers of grouped question {slot + 1} no longer exist in the concept directory.")


def main() -> None:
    """Render the question editor."""

    target = st.session_state.get(EDIT_TARGET_STATE_KEY)
    schemas = get_schemas()
    if not target or target.get("schema") not in schemas:
        st.info("Choose a question to edit from the schema overview.")
        return

    schema_name = target["schema"]
    schema = schemas[schema_name]
    container = open_session(target, schema)
    directory = get_directory()
    st.title("Edit question" if container.original is not None else "Create a new question")

    prefix = f"question_{widget_epoch()}"
    render_question_fields(container, prefix, schema, container, directory)
    render_grouped_questions(container, prefix, schema, directory)
    refresh_answer_validity(container, directory)

    st.divider()
    blockers = save_blockers(container, schema)
    for reason in blockers:
        st.caption(reason)

    col_cancel, col_save = st.columns(2)
    if col_cancel.button("Cancel"):
        container.discard()
        close_session()
        st.switch_page(HOME_PAGE)
    if col_save.button("Save", type="primary", disabled=bool(blockers)):
        coordinate = SchemaCoordinate(
            page_index=target["page"],
            section_index=target["section"],
            question_index=target.get("question"),
        )
        result = commit_question(
            container,
            schema,
            coordinate,
            on_schema_change=lambda new_schema: schemas.__setitem__(schema_name, new_schema),
            notify=notify,
        )
        if result.ok:
            close_session()
            st.switch_page(HOME_PAGE)


if __name__ == "__main__":
    main()
