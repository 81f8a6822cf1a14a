"""
Core data models for the pointer quiz.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Question:
    """Represents a single multiple-choice quiz question."""
    prompt: str
    options: Tuple[str, ...]
    correct_index: int
    explanation: str
    code_example: Optional[str] = None
    tip: Optional[str] = None


@dataclass(frozen=True)
class AnswerRecord:
    """Outcome of one graded question."""
    question_index: int
    selected_option: int
    is_correct: bool


@dataclass
class QuizSession:
    """State of one learner's run through a question bank."""
    questions: Tuple[Question, ...]
    current_index: int = 0
    selected_option: Optional[int] = None
    is_answer_checked: bool = False
    score: int = 0
    is_completed: bool = False
    answers: List[AnswerRecord] = field(default_factory=list)


class SessionState(Enum):
    """Enumeration of quiz session states."""
    AWAITING_SELECTION = "awaiting_selection"
    ANSWER_CHECKED = "answer_checked"
    COMPLETED = "completed"


class OptionStatus(Enum):
    """Display status of an answer option."""
    NEUTRAL = "neutral"
    SELECTED = "selected"
    CORRECT = "correct"
    INCORRECT = "incorrect"


class CompletionVerdict(Enum):
    """Overall result of a completed quiz."""
    MASTERED = "mastered"
    GOOD = "good"
    NEEDS_REVIEW = "needs_review"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session, published after every transition."""
    current_index: int
    total_questions: int
    question: Question
    selected_option: Optional[int]
    is_answer_checked: bool
    last_answer_correct: Optional[bool]
    score: int
    is_completed: bool
    state: SessionState
    progress_fraction: float
    explanation: Optional[str] = None

    @property
    def is_last_question(self) -> bool:
        return self.current_index == self.total_questions - 1


class SegmentKind(Enum):
    """Kinds of content an enriched explanation is made of."""
    TEXT = "text"
    CODE = "code"
    COMPARISON = "comparison"
    TIP = "tip"


@dataclass(frozen=True)
class ExplanationSegment:
    """One displayable block of an enriched explanation."""
    kind: SegmentKind
    text: str


@dataclass(frozen=True)
class QuizSection:
    """A lesson section and the question bank that tests it."""
    id: str
    name: str
    quiz_name: str


@dataclass
class QuizSettings:
    """Configuration settings for quiz sessions."""
    pass_threshold: float = 0.7
    view_timeout: int = 600
    ephemeral: bool = True
