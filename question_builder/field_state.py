"""Mutable container for the question being edited."""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from question_builder.answer_validation import AnswerValidator
from question_builder.answers import (
    add_additional_answer,
    answer_from_concept,
    delete_additional_answer,
    move_answer,
    prune_additional_answers,
    reconcile_answers,
    replace_selection,
)
from question_builder.errors import EditSessionClosedError
from question_builder.models import Answer, Concept, FieldState, Question

logger = logging.getLogger(__name__)

Listener = Callable[[FieldState], None]
ChildUpdate = Callable[[int, Question], None]
StateTransform = Callable[[FieldState], FieldState]
QuestionTransform = Callable[[Question], Question]


class EditStatus(str, Enum):
    """Lifecycle of an edit session."""

    EDITING = "editing"
    COMMITTED = "committed"
    DISCARDED = "discarded"


class QuestionFieldState:
    """Own the working copy of a question for one edit session.

    All changes go through :meth:`update`, which applies a pure transform of
    the previous :class:`FieldState`. A container created through
    :meth:`child` edits one grouped question and reports every change to its
    parent as ``(index, question)``; the parent then writes the child into its
    own ``questions``.
    """

    def __init__(
        self,
        initial: Optional[Question] = None,
        *,
        original: Optional[Question] = None,
        index: Optional[int] = None,
        on_child_update: Optional[ChildUpdate] = None,
    ) -> None:
        self._state = FieldState(question=initial if initial is not None else Question.empty())
        self._original = original
        self._index = index
        self._on_child_update = on_child_update
        self._listeners: List[Listener] = []
        self._status = EditStatus.EDITING
        self._revision = 0
        self._concept: Optional[Concept] = None
        self._is_concept_valid = True
        self._answers_valid = True
        self._validated_input: Optional[Tuple[Optional[Concept], Tuple[Answer, ...]]] = None
        self._children: Dict[int, "QuestionFieldState"] = {}

    @classmethod
    def editing(cls, question: Question) -> "QuestionFieldState":
        """Open a session that replaces ``question`` on save."""

        return cls(question, original=question)

    @classmethod
    def creating(cls) -> "QuestionFieldState":
        """Open a session for a brand new question."""

        return cls(Question.empty())

    # State access -----------------------------------------------------------------

    @property
    def state(self) -> FieldState:
        return self._state

    @property
    def question(self) -> Question:
        return self._state.question

    @property
    def additional_answers(self) -> Tuple[Answer, ...]:
        return self._state.additional_answers

    @property
    def original(self) -> Optional[Question]:
        return self._original

    @property
    def is_new(self) -> bool:
        return self._original is None

    @property
    def is_nested(self) -> bool:
        return self._on_child_update is not None

    @property
    def status(self) -> EditStatus:
        return self._status

    @property
    def revision(self) -> int:
        """Number of state changes applied so far."""

        return self._revision

    @property
    def concept(self) -> Optional[Concept]:
        return self._concept

    @property
    def is_concept_valid(self) -> bool:
        return self._is_concept_valid

    @property
    def answers_valid(self) -> bool:
        """Outcome of the latest answer validation pass."""

        return self._answers_valid

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every state change; returns an unsubscribe."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Updates ----------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._status is not EditStatus.EDITING:
            raise EditSessionClosedError(f"Edit session is already {self._status.value}.")

    def update(self, transform: StateTransform) -> bool:
        """Apply ``transform`` to the current state.

        Returns ``True`` when the state changed. A transform that yields an
        equal state is ignored and nobody is notified.
        """

        self._ensure_open()
        previous = self._state
        updated = transform(previous)
        if updated is previous or updated == previous:
            return False

        self._state = updated
        self._revision += 1
        if self._on_child_update is not None and self._index is not None:
            self._on_child_update(self._index, updated.question)
        for listener in list(self._listeners):
            listener(updated)
        return True

    def update_question(self, transform: QuestionTransform) -> bool:
        """Apply ``transform`` to the question alone."""

        return self.update(lambda state: replace(state, question=transform(state.question)))

    # Grouped questions -----------------------------------------------------------

    def child(self, index: int) -> "QuestionFieldState":
        """Return the container editing the grouped question at ``index``.

        The same container is returned on every call, keeping its additional
        answers and concept binding, until the grouped question at ``index``
        is replaced by something other than that child.
        """

        question = self.question.questions[index]
        existing = self._children.get(index)
        if existing is not None and existing.question == question:
            return existing

        child = QuestionFieldState(
            question,
            original=question,
            index=index,
            on_child_update=self.child_updated,
        )
        self._children[index] = child
        return child

    def child_updated(self, index: int, question: Question) -> None:
        """Write the updated grouped question reported by a child."""

        def splice(current: Question) -> Question:
            if not 0 <= index < len(current.questions):
                raise IndexError(f"No grouped question at index {index}.")
            questions = current.questions[:index] + (question,) + current.questions[index + 1 :]
            return replace(current, questions=questions)

        self.update_question(splice)

    def add_grouped_question(self) -> bool:
        return self.update_question(
            lambda question: replace(
                question, questions=question.questions + (Question.empty_grouped(),)
            )
        )

    def delete_grouped_question(self, index: int) -> bool:
        changed = self.update_question(
            lambda question: replace(
                question,
                questions=tuple(
                    child for position, child in enumerate(question.questions) if position != index
                ),
            )
        )
        if changed:
            self._children = {
                position - 1 if position > index else position: child
                for position, child in self._children.items()
                if position != index
            }
            for position, child in self._children.items():
                child._index = position
        return changed

    # Answers ----------------------------------------------------------------------

    def display_answers(self) -> List[Answer]:
        """Return the answers offered for selection."""

        return reconcile_answers(self._concept, self.question.answers)

    def select_answers(self, selected: Iterable[Any]) -> bool:
        """Replace the stored answers with ``selected`` ``{id, label}`` items."""

        items = list(selected)
        return self.update(
            lambda state: prune_additional_answers(
                replace(state, question=replace_selection(state.question, items))
            )
        )

    def reorder_answers(self, source_id: str, target_id: str) -> bool:
        """Move the answer ``source_id`` to where ``target_id`` currently sits."""

        return self.update_question(
            lambda question: replace(
                question, answers=move_answer(question.answers, source_id, target_id)
            )
        )

    def add_additional_answer(self, item: Union[Answer, Concept]) -> bool:
        answer = answer_from_concept(item) if isinstance(item, Concept) else item
        return self.update(lambda state: add_additional_answer(state, answer))

    def delete_additional_answer(self, reference_id: str) -> bool:
        return self.update(lambda state: delete_additional_answer(state, reference_id))

    # Concept ----------------------------------------------------------------------

    def bind_concept(self, concept: Optional[Concept], *, valid: bool = True) -> bool:
        """Bind ``concept`` to the question.

        Removing the concept also drops the additional answers added for it.
        """

        self._ensure_open()
        self._concept = concept
        self._is_concept_valid = valid

        def rebind(state: FieldState) -> FieldState:
            question = replace(state.question, concept=concept.id if concept is not None else "")
            additional = state.additional_answers if concept is not None else ()
            return FieldState(question=question, additional_answers=additional)

        return self.update(rebind)

    def set_concept_valid(self, valid: bool) -> None:
        self._ensure_open()
        self._is_concept_valid = valid

    async def refresh_answer_validity(self, validator: AnswerValidator) -> bool:
        """Validate the displayed answers if they changed since the last pass."""

        display = tuple(self.display_answers())
        key = (self._concept, display)
        if key == self._validated_input:
            return self._answers_valid

        self._validated_input = key
        outcome = await validator.validate(self._concept, display)
        if outcome is not None:
            self._answers_valid = outcome
        return self._answers_valid

    # Lifecycle --------------------------------------------------------------------

    def commit(self) -> None:
        self._ensure_open()
        self._status = EditStatus.COMMITTED
        logger.debug("Committed edit session for question %r", self.question.id)

    def discard(self) -> None:
        self._ensure_open()
        self._status = EditStatus.DISCARDED
        logger.debug("Discarded edit session for question %r", self.question.id)


__all__ = ["EditStatus", "QuestionFieldState"]
