"""Detect duplicate question identifiers across a host schema."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from question_builder.models import Question

QuestionNode = Union[Question, Mapping[str, Any]]


def _node_parts(node: Any) -> Optional[Tuple[str, Iterable[Any]]]:
    """Return ``(id, children)`` for a question object or schema entry."""

    if isinstance(node, Question):
        return node.id, node.questions
    if isinstance(node, Mapping):
        children = node.get("questions")
        return str(node.get("id") or ""), children if isinstance(children, list) else []
    return None


def collect_question_ids(questions: Optional[Iterable[QuestionNode]]) -> List[str]:
    """Return every identifier in ``questions``, descending into groups."""

    ids: List[str] = []
    for node in questions or []:
        parts = _node_parts(node)
        if parts is None:
            continue
        identifier, children = parts
        ids.append(identifier)
        ids.extend(collect_question_ids(children))
    return ids


def schema_question_ids(schema: Mapping[str, Any]) -> List[str]:
    """Return the identifiers of all questions in ``schema`` in tree order."""

    ids: List[str] = []
    pages = schema.get("pages") if isinstance(schema, Mapping) else None
    for page in pages if isinstance(pages, list) else []:
        if not isinstance(page, Mapping):
            continue
        sections = page.get("sections")
        for section in sections if isinstance(sections, list) else []:
            if not isinstance(section, Mapping):
                continue
            questions = section.get("questions")
            ids.extend(collect_question_ids(questions if isinstance(questions, list) else []))
    return ids


def _own_and_nested_ids(node: QuestionNode) -> List[str]:
    parts = _node_parts(node)
    if parts is None:
        return []
    identifier, children = parts
    return collect_question_ids(children) + [identifier]


def question_id_exists(
    candidate: str,
    schema: Mapping[str, Any],
    question: Question,
    original: Optional[QuestionNode] = None,
) -> bool:
    """Return ``True`` if committing ``question`` would duplicate ``candidate``.

    ``original`` is the question as it was before editing. Its identifiers are
    removed once each from the schema ids so an edited question is not
    counted against itself. An original without an identifier is treated as a
    new question.
    """

    schema_ids = schema_question_ids(schema)

    if original is not None:
        original_ids = _own_and_nested_ids(original)
        if original_ids and original_ids[-1]:
            for identifier in original_ids:
                if identifier in schema_ids:
                    schema_ids.remove(identifier)

    edited_ids = _own_and_nested_ids(question)
    occurrences = Counter(schema_ids + edited_ids)
    return occurrences[candidate] > 1


def duplicate_question_ids(schema: Mapping[str, Any]) -> List[str]:
    """Return identifiers used by more than one question in ``schema``."""

    counts: Dict[str, int] = Counter(schema_question_ids(schema))
    return [identifier for identifier, count in counts.items() if identifier and count > 1]


__all__ = [
    "collect_question_ids",
    "duplicate_question_ids",
    "question_id_exists",
    "schema_question_ids",
]
