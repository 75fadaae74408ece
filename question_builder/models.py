"""Data model for the question being edited and its answer choices."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

CODED_DATATYPE = "Coded"
_OWNED_QUESTION_KEYS = frozenset({"id", "type", "label", "questionOptions", "questions"})
_OWNED_OPTION_KEYS = frozenset({"rendering", "concept", "answers"})


def _ensure_mapping(value: Any) -> Dict[str, Any]:
    """Return ``value`` if it is a mapping, otherwise an empty dict."""

    return dict(value) if isinstance(value, Mapping) else {}


def _ensure_list(value: Any) -> list:
    """Return ``value`` if it is a list, otherwise an empty list."""

    return list(value) if isinstance(value, list) else []


class QuestionType(str, Enum):
    """Question type tags understood by the form engine."""

    UNSET = ""
    OBS = "obs"
    OBS_GROUP = "obsGroup"
    CONTROL = "control"
    TEST_ORDER = "testOrder"
    ENCOUNTER_DATETIME = "encounterDatetime"
    ENCOUNTER_LOCATION = "encounterLocation"
    ENCOUNTER_PROVIDER = "encounterProvider"
    PATIENT_IDENTIFIER = "patientIdentifier"
    PROGRAM_STATE = "programState"
    OTHER = "other"

    @classmethod
    def from_value(cls, value: Any) -> "QuestionType":
        """Return the member for ``value``.

        ``None`` maps to ``UNSET``; tags the editor does not know map to ``OTHER``.
        """

        if isinstance(value, cls):
            return value
        text = "" if value is None else str(value)
        try:
            return cls(text)
        except ValueError:
            return cls.OTHER

    @property
    def is_group(self) -> bool:
        return self is QuestionType.OBS_GROUP

    @property
    def requires_concept(self) -> bool:
        return self is QuestionType.OBS


@dataclass(frozen=True)
class Answer:
    """A selectable answer: a concept reference paired with a display label."""

    reference_id: str
    label: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Answer":
        """Build an answer from the ``questionOptions.answers`` entry shape."""

        return cls(
            reference_id=str(payload.get("concept") or ""),
            label=str(payload.get("label") or ""),
        )

    @classmethod
    def from_selection(cls, item: Any) -> "Answer":
        """Build an answer from a selected ``{id, label}`` item."""

        if isinstance(item, Answer):
            return item
        payload = _ensure_mapping(item)
        label = payload.get("label", payload.get("text"))
        return cls(reference_id=str(payload.get("id") or ""), label=str(label or ""))

    def to_dict(self) -> Dict[str, str]:
        return {"concept": self.reference_id, "label": self.label}


@dataclass(frozen=True)
class Concept:
    """Read-only vocabulary entry supplied by the concept directory."""

    id: str
    display: str = ""
    datatype: Optional[str] = None
    answers: Tuple[Answer, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Concept":
        """Build a concept from a directory REST representation.

        The payload carries ``uuid``, ``display``, a ``datatype`` object with a
        ``name`` and, for coded concepts, ``answers`` with their own ``uuid``
        and ``display``.
        """

        datatype = payload.get("datatype")
        if isinstance(datatype, Mapping):
            datatype_name = datatype.get("name") or datatype.get("display")
        else:
            datatype_name = datatype
        answers = tuple(
            Answer(
                reference_id=str(entry.get("uuid") or entry.get("id") or ""),
                label=str(entry.get("display") or ""),
            )
            for entry in _ensure_list(payload.get("answers"))
            if isinstance(entry, Mapping)
        )
        return cls(
            id=str(payload.get("uuid") or payload.get("id") or ""),
            display=str(payload.get("display") or ""),
            datatype=str(datatype_name) if datatype_name else None,
            answers=answers,
        )

    @property
    def is_coded(self) -> bool:
        return bool(self.datatype) and self.datatype.lower() == CODED_DATATYPE.lower()

    @property
    def has_native_answers(self) -> bool:
        return bool(self.answers)


@dataclass(frozen=True)
class Question:
    """Working copy of a single form field.

    ``extra`` and ``options_extra`` keep the keys the editor does not manage so
    that a round trip through :meth:`from_dict` and :meth:`to_dict` leaves the
    rest of the field definition untouched. ``type_tag`` holds the original
    tag of a question whose type is ``OTHER`` so it is written back unchanged.
    """

    id: str = ""
    type: QuestionType = QuestionType.CONTROL
    label: Optional[str] = None
    rendering: str = ""
    concept: str = ""
    answers: Tuple[Answer, ...] = ()
    questions: Tuple["Question", ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)
    options_extra: Dict[str, Any] = field(default_factory=dict)
    type_tag: str = ""

    @classmethod
    def empty(cls) -> "Question":
        """Return the template used when creating a new question."""

        return cls(type=QuestionType.CONTROL)

    @classmethod
    def empty_grouped(cls) -> "Question":
        """Return the template used when adding a question to a group."""

        return cls(type=QuestionType.UNSET)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Question":
        """Convert a schema question entry into a :class:`Question`."""

        options = _ensure_mapping(payload.get("questionOptions"))
        label = payload.get("label")
        raw_type = payload.get("type")
        question_type = QuestionType.from_value(raw_type)
        return cls(
            id=str(payload.get("id") or ""),
            type=question_type,
            label=label if isinstance(label, str) else None,
            rendering=str(options.get("rendering") or ""),
            concept=str(options.get("concept") or ""),
            answers=tuple(
                Answer.from_dict(entry)
                for entry in _ensure_list(options.get("answers"))
                if isinstance(entry, Mapping)
            ),
            questions=tuple(
                cls.from_dict(entry)
                for entry in _ensure_list(payload.get("questions"))
                if isinstance(entry, Mapping)
            ),
            extra={
                key: deepcopy(value)
                for key, value in payload.items()
                if key not in _OWNED_QUESTION_KEYS
            },
            options_extra={
                key: deepcopy(value)
                for key, value in options.items()
                if key not in _OWNED_OPTION_KEYS
            },
            type_tag=str(raw_type) if question_type is QuestionType.OTHER else "",
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the schema representation of this question."""

        tag = self.type_tag if self.type is QuestionType.OTHER and self.type_tag else self.type.value
        payload: Dict[str, Any] = {"id": self.id, "type": tag}
        if self.label is not None:
            payload["label"] = self.label
        payload.update(deepcopy(self.extra))

        options: Dict[str, Any] = deepcopy(self.options_extra)
        if self.rendering:
            options["rendering"] = self.rendering
        if self.concept:
            options["concept"] = self.concept
        if self.answers:
            options["answers"] = [answer.to_dict() for answer in self.answers]
        if options:
            payload["questionOptions"] = options

        if self.questions or self.type.is_group:
            payload["questions"] = [question.to_dict() for question in self.questions]
        return payload


@dataclass(frozen=True)
class SchemaCoordinate:
    """Location of a question inside the host schema.

    ``question_index`` is ``None`` when a new question is appended to the
    section.
    """

    page_index: int
    section_index: int
    question_index: Optional[int] = None


@dataclass(frozen=True)
class FieldState:
    """Snapshot of an edit session: the question and its pending answers."""

    question: Question
    additional_answers: Tuple[Answer, ...] = ()


__all__ = [
    "Answer",
    "CODED_DATATYPE",
    "Concept",
    "FieldState",
    "Question",
    "QuestionType",
    "SchemaCoordinate",
]
