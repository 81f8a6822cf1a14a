"""
Quiz session controller for the pointer quiz.
Walks one learner through a question bank, grades answers and tracks score.
"""
import logging
from collections.abc import Mapping, Sequence, Set
from typing import Any, Callable, Dict, List, Optional

from .explanation import enrich_explanation
from .models import (
    AnswerRecord,
    CompletionVerdict,
    OptionStatus,
    Question,
    QuizSession,
    SessionSnapshot,
    SessionState,
)

SnapshotCallback = Callable[[SessionSnapshot], None]


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class InvalidQuestionBank(QuizControllerError):
    """Raised when a session cannot be created from the supplied question bank."""
    pass


class InvalidTransition(QuizControllerError):
    """Raised when an operation is called while its precondition does not hold."""
    pass


class IndexOutOfRange(QuizControllerError, IndexError):
    """Raised when an option index is outside the current question's options."""
    pass


class QuizController:
    """
    Drives a single quiz session.

    The controller exclusively owns its QuizSession. The only entry points
    that change it are select_option, check_answer and next_question; every
    successful transition is published to subscribers as a SessionSnapshot.
    """

    DEFAULT_PASS_THRESHOLD = 0.7

    def __init__(
        self,
        questions: Sequence[Question],
        quiz_name: str = "quiz",
        pass_threshold: float = DEFAULT_PASS_THRESHOLD
    ):
        """
        Create a session for the given question bank.

        Args:
            questions: Ordered, non-empty sequence of Question objects
            quiz_name: Name used in logs and status summaries
            pass_threshold: Fraction of correct answers considered a good result

        Raises:
            InvalidQuestionBank: If the question bank is missing, empty or malformed
        """
        self.logger = logging.getLogger(__name__)
        self.quiz_name = quiz_name
        self.pass_threshold = pass_threshold

        bank = self._validate_question_bank(questions)
        self._session = QuizSession(questions=bank)
        self._subscribers: List[SnapshotCallback] = []

        self.logger.info(f"Created quiz session: quiz='{quiz_name}', questions={len(bank)}")

    @staticmethod
    def _validate_question_bank(questions: Any) -> tuple:
        if questions is None:
            raise InvalidQuestionBank("Question bank is missing")

        if (not isinstance(questions, Sequence)
                or isinstance(questions, (str, bytes, Mapping, Set))):
            raise InvalidQuestionBank(
                f"Question bank must be an ordered sequence, got {type(questions).__name__}"
            )

        if len(questions) == 0:
            raise InvalidQuestionBank("Question bank is empty")

        for i, question in enumerate(questions):
            if not isinstance(question, Question):
                raise InvalidQuestionBank(
                    f"Question {i} must be a Question, got {type(question).__name__}"
                )
            if not question.options:
                raise InvalidQuestionBank(f"Question {i} has no options")
            if (not isinstance(question.correct_index, int)
                    or isinstance(question.correct_index, bool)
                    or not 0 <= question.correct_index < len(question.options)):
                raise InvalidQuestionBank(
                    f"Question {i} correct_index {question.correct_index!r} is out of range"
                )

        return tuple(questions)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def session(self) -> QuizSession:
        return self._session

    @property
    def total_questions(self) -> int:
        return len(self._session.questions)

    @property
    def current_question(self) -> Question:
        return self._session.questions[self._session.current_index]

    @property
    def state(self) -> SessionState:
        if self._session.is_completed:
            return SessionState.COMPLETED
        if self._session.is_answer_checked:
            return SessionState.ANSWER_CHECKED
        return SessionState.AWAITING_SELECTION

    @property
    def last_answer_correct(self) -> Optional[bool]:
        """Whether the current question was answered correctly, None until it is checked."""
        if not self._session.is_answer_checked:
            return None
        return self._session.selected_option == self.current_question.correct_index

    def progress_fraction(self) -> float:
        """
        Get the fraction of the quiz reached so far.

        Returns:
            (current_index + 1) / total questions, a value in (0, 1]
        """
        return (self._session.current_index + 1) / self.total_questions

    def final_score_percentage(self) -> int:
        """
        Get the final score as a whole percentage.

        Returns:
            100 * score / total questions, with halves rounded up

        Raises:
            InvalidTransition: If the quiz has not been completed
        """
        if not self._session.is_completed:
            raise InvalidTransition("Final score is only available once the quiz is completed")
        total = self.total_questions
        return (200 * self._session.score + total) // (2 * total)

    def enriched_explanation(self) -> str:
        """
        Get the enriched explanation for the current question.

        Raises:
            InvalidTransition: If the current answer has not been checked
        """
        if not self._session.is_answer_checked:
            raise InvalidTransition("Explanation is only available after checking the answer")
        return enrich_explanation(self.current_question)

    def option_status(self, index: int) -> OptionStatus:
        """
        Get how an option should be displayed for the current question.

        Args:
            index: Option index

        Returns:
            SELECTED for the tentative choice before grading; CORRECT for the
            right option and INCORRECT for a wrong choice after grading;
            NEUTRAL otherwise
        """
        session = self._session
        if not session.is_answer_checked:
            if session.selected_option == index:
                return OptionStatus.SELECTED
            return OptionStatus.NEUTRAL

        if index == self.current_question.correct_index:
            return OptionStatus.CORRECT
        if index == session.selected_option:
            return OptionStatus.INCORRECT
        return OptionStatus.NEUTRAL

    def snapshot(self) -> SessionSnapshot:
        """Build a read-only snapshot of the current session state."""
        session = self._session
        return SessionSnapshot(
            current_index=session.current_index,
            total_questions=self.total_questions,
            question=self.current_question,
            selected_option=session.selected_option,
            is_answer_checked=session.is_answer_checked,
            last_answer_correct=self.last_answer_correct,
            score=session.score,
            is_completed=session.is_completed,
            state=self.state,
            progress_fraction=self.progress_fraction(),
            explanation=self.enriched_explanation() if session.is_answer_checked else None
        )

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: SnapshotCallback) -> None:
        """Register a callback that receives a snapshot after every transition."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: SnapshotCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _publish(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            callback(snapshot)

    def _reject(self, operation: str, reason: str) -> None:
        self.logger.warning(f"Rejected {operation} for quiz '{self.quiz_name}': {reason}")
        raise InvalidTransition(f"Cannot {operation}: {reason}")

    # ------------------------------------------------------------------
    # Learner intents
    # ------------------------------------------------------------------

    def select_option(self, index: int) -> None:
        """
        Record the learner's tentative choice for the current question.

        Args:
            index: Index into the current question's options

        Raises:
            InvalidTransition: If the quiz is completed or the answer was already checked
            IndexOutOfRange: If index is not a valid option index
        """
        session = self._session
        if session.is_completed:
            self._reject("select an option", "quiz is completed")
        if session.is_answer_checked:
            self._reject("select an option", "answer already checked")

        option_count = len(self.current_question.options)
        if (not isinstance(index, int) or isinstance(index, bool)
                or not 0 <= index < option_count):
            self.logger.warning(
                f"Option index {index!r} out of range for question {session.current_index + 1} "
                f"({option_count} options)"
            )
            raise IndexOutOfRange(
                f"Option index {index!r} is out of range (0-{option_count - 1})"
            )

        session.selected_option = index
        self.logger.debug(f"Selected option {index} for question {session.current_index + 1}")
        self._publish()

    def check_answer(self) -> bool:
        """
        Grade the selected option for the current question.

        Returns:
            True if the selected option is correct, False otherwise

        Raises:
            InvalidTransition: If nothing is selected, the answer was already
                checked or the quiz is completed
        """
        session = self._session
        if session.is_completed:
            self._reject("check answer", "quiz is completed")
        if session.is_answer_checked:
            self._reject("check answer", "answer already checked")
        if session.selected_option is None:
            self._reject("check answer", "no option selected")

        is_correct = session.selected_option == self.current_question.correct_index
        session.is_answer_checked = True
        if is_correct:
            session.score += 1

        session.answers.append(AnswerRecord(
            question_index=session.current_index,
            selected_option=session.selected_option,
            is_correct=is_correct
        ))

        self.logger.debug(
            f"Checked question {session.current_index + 1}: "
            f"{'correct' if is_correct else 'incorrect'}, score={session.score}"
        )
        self._publish()
        return is_correct

    def next_question(self) -> bool:
        """
        Advance past the current, already graded question.

        Returns:
            True if a new question is now current, False if the quiz was completed

        Raises:
            InvalidTransition: If the answer has not been checked or the quiz is completed
        """
        session = self._session
        if session.is_completed:
            self._reject("advance", "quiz is completed")
        if not session.is_answer_checked:
            self._reject("advance", "answer not checked")

        if session.current_index >= self.total_questions - 1:
            session.is_completed = True
            self.logger.info(
                f"Quiz '{self.quiz_name}' completed: {session.score}/{self.total_questions}"
            )
            self._publish()
            return False

        session.current_index += 1
        session.selected_option = None
        session.is_answer_checked = False

        self.logger.debug(f"Advanced to question {session.current_index + 1}")
        self._publish()
        return True

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def get_verdict(self) -> CompletionVerdict:
        """
        Classify the final result.

        Raises:
            InvalidTransition: If the quiz has not been completed
        """
        if not self._session.is_completed:
            raise InvalidTransition("Verdict is only available once the quiz is completed")

        score = self._session.score
        total = self.total_questions
        if score == total:
            return CompletionVerdict.MASTERED
        if score >= total * self.pass_threshold:
            return CompletionVerdict.GOOD
        return CompletionVerdict.NEEDS_REVIEW

    def get_quiz_completion_info(self) -> Dict[str, Any]:
        """
        Get completion information for a finished quiz.

        Returns:
            Dictionary with score, total, percentage, verdict and answer history

        Raises:
            InvalidTransition: If the quiz has not been completed
        """
        return {
            'quiz_name': self.quiz_name,
            'score': self._session.score,
            'total_questions': self.total_questions,
            'percentage': self.final_score_percentage(),
            'verdict': self.get_verdict(),
            'answers': list(self._session.answers)
        }

    def get_session_status_summary(self) -> str:
        """
        Get a human-readable summary of the session status.

        Returns:
            Formatted string describing the session status
        """
        status_parts = [
            f"Quiz: {self.quiz_name}",
            f"Progress: {self._session.current_index + 1}/{self.total_questions}",
            f"Score: {self._session.score}"
        ]

        state = self.state
        if state == SessionState.AWAITING_SELECTION:
            status_parts.append("Status: Awaiting answer")
        elif state == SessionState.ANSWER_CHECKED:
            status_parts.append("Status: Answer checked")
        else:
            status_parts.append(f"Status: Completed ({self.final_score_percentage()}%)")

        return " | ".join(status_parts)
