"""Question field editing engine for tree-shaped form schemas."""

from .answer_validation import AnswerValidator  # noqa: F401
from .commit import CommitResult, can_save, commit_question, save_blockers  # noqa: F401
from .field_state import EditStatus, QuestionFieldState  # noqa: F401
from .models import (  # noqa: F401
    Answer,
    Concept,
    FieldState,
    Question,
    QuestionType,
    SchemaCoordinate,
)
