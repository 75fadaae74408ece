"""Streamlit home screen listing the questions of each form schema."""

from __future__ import annotations

from typing import Any, Dict, Optional

import streamlit as st

from question_builder.question_ids import duplicate_question_ids
from question_builder.schema_store import load_local_schemas, save_schema, schema_path

SCHEMAS_STATE_KEY = "builder_schemas"
SOURCES_STATE_KEY = "builder_schema_sources"
SELECTED_SCHEMA_STATE_KEY = "builder_selected_schema"
EDIT_TARGET_STATE_KEY = "builder_edit_target"
EDITOR_PAGE = "pages/01_Question_Editor.py"


def get_schemas() -> Dict[str, Dict[str, Any]]:
    """Return the schemas held in session state, loading them on first use."""

    if SCHEMAS_STATE_KEY not in st.session_state:
        schemas, sources = load_local_schemas()
        st.session_state[SCHEMAS_STATE_KEY] = schemas
        st.session_state[SOURCES_STATE_KEY] = sources
    return st.session_state[SCHEMAS_STATE_KEY]


def open_editor(
    schema_name: str,
    page_index: int,
    section_index: int,
    question_index: Optional[int] = None,
) -> None:
    """Remember which question to edit and switch to the editor page."""

    st.session_state[EDIT_TARGET_STATE_KEY] = {
        "schema": schema_name,
        "page": page_index,
        "section": section_index,
        "question": question_index,
    }
    st.switch_page(EDITOR_PAGE)


def _question_caption(question: Dict[str, Any]) -> str:
    label = question.get("label") or "Untitled question"
    identifier = question.get("id") or "no id"
    kind = question.get("type") or "unset"
    nested = question.get("questions")
    suffix = f" · {len(nested)} grouped" if isinstance(nested, list) and nested else ""
    return f"{label} (`{identifier}`, {kind}){suffix}"


def render_schema(name: str, schema: Dict[str, Any]) -> None:
    """Render pages, sections and questions with edit actions."""

    duplicates = duplicate_question_ids(schema)
    if duplicates:
        st.warning(f"Duplicate question ids: {', '.join(duplicates)}")

    pages = schema.get("pages", [])
    if not pages:
        st.info("This schema has no pages yet.")
        return

    for page_index, page in enumerate(pages):
        st.subheader(page.get("label") or f"Page {page_index + 1}")
        for section_index, section in enumerate(page.get("sections", [])):
            with st.expander(section.get("label") or f"Section {section_index + 1}", expanded=True):
                for question_index, question in enumerate(section.get("questions", [])):
                    col_text, col_action = st.columns([5, 1])
                    col_text.markdown(_question_caption(question))
                    if col_action.button(
                        "Edit",
                        key=f"edit_{name}_{page_index}_{section_index}_{question_index}",
                    ):
                        open_editor(name, page_index, section_index, question_index)
                if st.button(
                    "Add question",
                    key=f"add_{name}_{page_index}_{section_index}",
                ):
                    open_editor(name, page_index, section_index)


def main() -> None:
    """Render the schema overview."""

    st.title("Form builder")

    schemas = get_schemas()
    if not schemas:
        st.error("No schemas found. Add one under form_schemas/<name>/schema.json.")
        return

    names = list(schemas.keys())
    selected = st.session_state.get(SELECTED_SCHEMA_STATE_KEY)
    if selected not in names:
        selected = names[0]
    selected = st.selectbox("Schema", options=names, index=names.index(selected))
    st.session_state[SELECTED_SCHEMA_STATE_KEY] = selected

    render_schema(selected, schemas[selected])

    st.divider()
    if st.button("Save schema to disk", type="primary"):
        sources = st.session_state.get(SOURCES_STATE_KEY, {})
        target = sources.get(selected) or schema_path(selected)
        try:
            save_schema(schemas[selected], target)
        except OSError as exc:
            st.error(f"Failed to save schema: {exc}.")
        else:
            st.success(f"Schema saved to {target}.")


if __name__ == "__main__":
    main()
