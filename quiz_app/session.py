"""
Quiz session state machine.

A session drives one play-through over a fixed question sequence. It is
purely tick-driven: something else (see ``quiz_engine.QuizEngine``) owns the
clock and calls ``tick()`` once per time unit.

    AWAITING_ANSWER(i) --submit / timeout--> ANSWER_LOCKED(i, selected)
    ANSWER_LOCKED(i)   --advance-->          ADVANCING
    ADVANCING          ------------->        AWAITING_ANSWER(i + 1) | COMPLETED(result)
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from .models import Question, QuizResult

logger = logging.getLogger(__name__)

NO_ANSWER = -1

TRIGGER_TICK = "tick"
TRIGGER_TIMEOUT = "timeout"
TRIGGER_SUBMIT = "submit"
TRIGGER_ADVANCE = "advance"


class QuizError(Exception):
    """Base exception for quiz errors."""
    pass


class SessionConstructionError(QuizError, ValueError):
    """Raised when a session cannot be started, e.g. with no questions."""
    pass


class ReentrantTransitionError(QuizError, RuntimeError):
    """Raised when a listener tries to drive the session it is being notified by."""
    pass


class SessionPhase(Enum):
    """Enumeration of session phases."""
    AWAITING_ANSWER = "awaiting_answer"
    ANSWER_LOCKED = "answer_locked"
    ADVANCING = "advancing"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of a session."""
    phase: SessionPhase
    index: int
    total: int
    score: int
    remaining_time: int
    selected_answer: Optional[int] = None
    timed_out: bool = False
    answered_correctly: Optional[bool] = None
    result: Optional[QuizResult] = None

    @property
    def explanation_visible(self) -> bool:
        return self.phase == SessionPhase.ANSWER_LOCKED

    @property
    def progress(self) -> float:
        """Fraction of the quiz reached, counting the active question."""
        if self.phase == SessionPhase.COMPLETED:
            return 1.0
        return (self.index + 1) / self.total

    @property
    def is_completed(self) -> bool:
        return self.phase == SessionPhase.COMPLETED


@dataclass(frozen=True)
class SessionTransition:
    """Notification passed to session listeners."""
    previous: SessionState
    current: SessionState
    trigger: str


TransitionListener = Callable[[SessionTransition], None]


class QuizSession:
    """
    Single play-through state machine.

    All stimuli (``tick``, ``submit_answer``, ``advance``) return True when
    applied and False when ignored, so callers can tell a lock-in no-op from
    a real transition.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        timer_duration: int = 30,
        session_id: Optional[str] = None,
    ):
        """
        Initialize a session in AWAITING_ANSWER(0).

        Args:
            questions: Selected question sequence, fixed for the session
            timer_duration: Time units allowed per question
            session_id: Identifier used in log messages

        Raises:
            SessionConstructionError: If there are no questions or the duration is not positive
        """
        if not questions:
            raise SessionConstructionError("Cannot start a quiz session with no questions")
        if not isinstance(timer_duration, int) or timer_duration < 1:
            raise SessionConstructionError(f"Timer duration must be a positive integer, got {timer_duration!r}")

        self._questions = tuple(questions)
        self._timer_duration = timer_duration
        self.session_id = session_id or hex(id(self))

        self._phase = SessionPhase.AWAITING_ANSWER
        self._index = 0
        self._score = 0
        self._remaining_time = timer_duration
        self._selected_answer: Optional[int] = None
        self._timed_out = False
        self._result: Optional[QuizResult] = None

        self._listeners: List[TransitionListener] = []
        self._notifying = 0
        self.ignored_actions = 0

        logger.info(f"Session {self.session_id} created with {len(self._questions)} questions")

    # Read-only views

    @property
    def questions(self) -> Sequence[Question]:
        return self._questions

    @property
    def total_questions(self) -> int:
        return len(self._questions)

    @property
    def timer_duration(self) -> int:
        return self._timer_duration

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_question(self) -> Question:
        return self._questions[self._index]

    @property
    def score(self) -> int:
        return self._score

    @property
    def remaining_time(self) -> int:
        return self._remaining_time

    @property
    def selected_answer(self) -> Optional[int]:
        return self._selected_answer

    @property
    def result(self) -> Optional[QuizResult]:
        return self._result

    @property
    def is_completed(self) -> bool:
        return self._phase == SessionPhase.COMPLETED

    @property
    def explanation(self) -> Optional[str]:
        """Explanation of the active question, visible only while the answer is locked."""
        if self._phase == SessionPhase.ANSWER_LOCKED:
            return self.current_question.explanation
        return None

    @property
    def state(self) -> SessionState:
        answered_correctly = None
        if self._selected_answer is not None:
            answered_correctly = self.current_question.is_correct(self._selected_answer)
        return SessionState(
            phase=self._phase,
            index=self._index,
            total=len(self._questions),
            score=self._score,
            remaining_time=self._remaining_time,
            selected_answer=self._selected_answer,
            timed_out=self._timed_out,
            answered_correctly=answered_correctly,
            result=self._result,
        )

    # Observers

    def subscribe(self, listener: TransitionListener) -> Callable[[], None]:
        """
        Register a transition listener.

        Listeners run synchronously after each transition and must not block
        or drive the session.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, previous: SessionState, trigger: str) -> None:
        transition = SessionTransition(previous=previous, current=self.state, trigger=trigger)
        self._notifying += 1
        try:
            for listener in list(self._listeners):
                try:
                    listener(transition)
                except Exception:
                    logger.exception(f"Session {self.session_id} listener failed on '{trigger}'")
        finally:
            self._notifying -= 1

    def _guard(self, action: str) -> None:
        if self._notifying:
            raise ReentrantTransitionError(
                f"Cannot {action} session {self.session_id} from inside a transition listener"
            )

    def _ignore(self, action: str) -> bool:
        self.ignored_actions += 1
        logger.debug(f"Session {self.session_id}: ignored {action} in phase {self._phase.value}")
        return False

    # Stimuli

    def tick(self) -> bool:
        """
        Consume one time unit of the active question.

        Reaching zero with no answer locks in NO_ANSWER, scored as incorrect.
        """
        self._guard("tick")
        if self._phase != SessionPhase.AWAITING_ANSWER:
            return self._ignore("tick")

        previous = self.state
        self._remaining_time = max(self._remaining_time - 1, 0)
        if self._remaining_time == 0:
            logger.info(f"Session {self.session_id}: question {self._index + 1} timed out")
            self._lock_in(NO_ANSWER, timed_out=True)
            self._notify(previous, TRIGGER_TIMEOUT)
        else:
            self._notify(previous, TRIGGER_TICK)
        return True

    def submit_answer(self, selected_index: int) -> bool:
        """
        Lock in an answer for the active question.

        Out-of-range indices are accepted and scored as no answer. Calls made
        after lock-in are ignored.
        """
        self._guard("submit an answer to")
        if self._phase != SessionPhase.AWAITING_ANSWER:
            return self._ignore("submit_answer")

        previous = self.state
        self._lock_in(selected_index, timed_out=False)
        self._notify(previous, TRIGGER_SUBMIT)
        return True

    def _lock_in(self, selected_index: int, timed_out: bool) -> None:
        question = self.current_question
        if not isinstance(selected_index, int) or not 0 <= selected_index < len(question.options):
            selected_index = NO_ANSWER
        self._selected_answer = selected_index
        self._timed_out = timed_out
        if question.is_correct(selected_index):
            self._score += 1
        self._phase = SessionPhase.ANSWER_LOCKED
        logger.debug(
            f"Session {self.session_id}: question {self._index + 1} locked with answer {selected_index}, score {self._score}"
        )

    def advance(self) -> bool:
        """Move from a locked answer to the next question, or complete the quiz."""
        self._guard("advance")
        if self._phase != SessionPhase.ANSWER_LOCKED:
            return self._ignore("advance")

        previous = self.state
        self._phase = SessionPhase.ADVANCING
        self._notify(previous, TRIGGER_ADVANCE)

        previous = self.state
        if self._index + 1 < len(self._questions):
            self._index += 1
            self._remaining_time = self._timer_duration
            self._selected_answer = None
            self._timed_out = False
            self._phase = SessionPhase.AWAITING_ANSWER
        else:
            self._result = QuizResult(score=self._score, total_questions=len(self._questions))
            self._phase = SessionPhase.COMPLETED
            logger.info(
                f"Session {self.session_id} completed with score {self._score}/{len(self._questions)}"
            )
        self._notify(previous, TRIGGER_ADVANCE)
        return True
