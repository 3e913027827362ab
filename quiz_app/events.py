"""
Game events broadcast while a quiz is played.

Events are a tagged union discriminated by ``EventKind``; handlers switch on
``event.kind`` rather than on event classes.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .session import SessionPhase, SessionTransition, TRIGGER_SUBMIT, TRIGGER_TIMEOUT

logger = logging.getLogger(__name__)


class EventKind(Enum):
    GAME_START = "game_start"
    ANSWER_SELECTED = "answer_selected"
    GAME_END = "game_end"


@dataclass(frozen=True)
class GameEvent:
    """A game start, answer or end notification."""
    kind: EventKind
    session_id: str
    category: Optional[str] = None
    question_index: Optional[int] = None
    selected_answer: Optional[int] = None
    correct: Optional[bool] = None
    timed_out: bool = False
    final_score: Optional[int] = None
    total_questions: Optional[int] = None

    @classmethod
    def game_start(cls, session_id: str, category: str) -> "GameEvent":
        return cls(kind=EventKind.GAME_START, session_id=session_id, category=category)

    @classmethod
    def answer_selected(
        cls, session_id: str, question_index: int, selected_answer: int, correct: bool, timed_out: bool = False
    ) -> "GameEvent":
        return cls(
            kind=EventKind.ANSWER_SELECTED,
            session_id=session_id,
            question_index=question_index,
            selected_answer=selected_answer,
            correct=correct,
            timed_out=timed_out,
        )

    @classmethod
    def game_end(cls, session_id: str, final_score: int, total_questions: int) -> "GameEvent":
        return cls(
            kind=EventKind.GAME_END,
            session_id=session_id,
            final_score=final_score,
            total_questions=total_questions,
        )

    def describe(self) -> str:
        if self.kind == EventKind.GAME_START:
            return f"Game started with category: {self.category}"
        if self.kind == EventKind.ANSWER_SELECTED:
            suffix = " (timed out)" if self.timed_out else ""
            return f"Answer selected: {self.selected_answer} for question {self.question_index}{suffix}"
        return f"Game ended with score: {self.final_score}/{self.total_questions}"


def events_for_transition(session_id: str, transition: SessionTransition) -> List[GameEvent]:
    """Translate a session transition into the game events it implies."""
    current = transition.current
    if transition.trigger in (TRIGGER_SUBMIT, TRIGGER_TIMEOUT):
        return [
            GameEvent.answer_selected(
                session_id,
                question_index=current.index,
                selected_answer=current.selected_answer,
                correct=bool(current.answered_correctly),
                timed_out=current.timed_out,
            )
        ]
    if current.phase == SessionPhase.COMPLETED and transition.previous.phase != SessionPhase.COMPLETED:
        return [GameEvent.game_end(session_id, current.result.score, current.result.total_questions)]
    return []


EventHandler = Callable[[GameEvent], None]


class GameEventBus:
    """Broadcasts game events to any number of handlers."""

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: GameEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Game event handler failed for {event.kind.value}")

    @property
    def handler_count(self) -> int:
        return len(self._handlers)


def log_game_event(event: GameEvent) -> None:
    """Diagnostic handler that logs every event."""
    logger.info(
        event.describe(),
        extra={
            'event_type': event.kind.value,
            'session_id': event.session_id,
        }
    )
