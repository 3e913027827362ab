"""
Quiz engine: real-time timers that drive a quiz session.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Optional

from .models import QuizResult
from .session import QuizSession, SessionPhase, SessionTransition

logger = logging.getLogger(__name__)


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_created(session_id: str, kind: str, interval: float) -> None:
        logger.debug(
            f"Timer lifecycle: CREATED - Session {session_id}, Kind {kind}, Interval {interval:.3f}s",
            extra={
                'event_type': 'timer_created',
                'session_id': session_id,
                'timer_kind': kind,
                'interval': interval,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_update(session_id: str, remaining_time: int, total_duration: int) -> None:
        """Log countdown updates, throttled to avoid spam."""
        if remaining_time % 10 == 0 or remaining_time <= 5:
            progress_percent = ((total_duration - remaining_time) / total_duration) * 100
            logger.debug(
                f"Timer lifecycle: UPDATE - Session {session_id}, Remaining {remaining_time} ({progress_percent:.1f}% complete)",
                extra={
                    'event_type': 'timer_update',
                    'session_id': session_id,
                    'remaining_time': remaining_time,
                    'total_duration': total_duration,
                    'progress_percent': progress_percent,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_timer_completion(session_id: str, kind: str, completion_type: str) -> None:
        """Log timer completion (natural expiry or cancellation)."""
        logger.debug(
            f"Timer lifecycle: COMPLETED - Session {session_id}, Kind {kind}, Type {completion_type}",
            extra={
                'event_type': 'timer_completed',
                'session_id': session_id,
                'timer_kind': kind,
                'completion_type': completion_type,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_stale_tick(session_id: str, timer_index: int, current_index: int) -> None:
        logger.warning(
            f"Timer lifecycle: STALE_TICK - Session {session_id}, timer for question {timer_index + 1} fired on question {current_index + 1}",
            extra={
                'event_type': 'timer_stale_tick',
                'session_id': session_id,
                'timer_index': timer_index,
                'current_index': current_index,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(session_id: str, error_type: str, error_message: str, operation: str) -> None:
        logger.error(
            f"Timer lifecycle: ERROR - Session {session_id}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'session_id': session_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


class QuizTimer:
    """
    A single asyncio task that fires a callback.

    A repeating timer fires every ``interval`` seconds until cancelled; a
    one-shot timer fires once after ``interval`` seconds.
    """

    REPEATING = "countdown"
    ONE_SHOT = "advance_delay"

    def __init__(self, session_id: str, interval: float, callback: Callable[[], Any], repeat: bool = True):
        self._session_id = session_id
        self._interval = interval
        self._callback = callback
        self._repeat = repeat
        self._task: Optional[asyncio.Task] = None
        self._is_cancelled = False
        self.fire_count = 0

    @property
    def kind(self) -> str:
        return self.REPEATING if self._repeat else self.ONE_SHOT

    def start(self) -> asyncio.Task:
        """Schedule the timer on the running event loop."""
        if self._task is not None:
            raise RuntimeError(f"Timer for session {self._session_id} already started")
        TimerLifecycleLogger.log_timer_created(self._session_id, self.kind, self._interval)
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def _run(self) -> None:
        try:
            while not self._is_cancelled:
                await asyncio.sleep(self._interval)
                if self._is_cancelled:
                    break
                self.fire_count += 1
                self._callback()
                if not self._repeat:
                    break
        except asyncio.CancelledError:
            TimerLifecycleLogger.log_timer_completion(self._session_id, self.kind, "asyncio_cancelled")
            raise
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(self._session_id, type(e).__name__, str(e), "timer_callback")
            raise
        completion = "cancelled" if self._is_cancelled else "natural_expiry"
        TimerLifecycleLogger.log_timer_completion(self._session_id, self.kind, completion)

    def cancel(self) -> None:
        """Cancel the timer. Safe to call repeatedly and from inside its own callback."""
        self._is_cancelled = True
        if self._task is None or self._task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # Inside our own callback the loop exits on the cancelled flag
        if self._task is not current:
            self._task.cancel()

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    @property
    def is_live(self) -> bool:
        return (
            not self._is_cancelled
            and self._task is not None
            and not self._task.done()
        )


class QuizEngine:
    """
    Drives one QuizSession in real time.

    The engine holds at most one live timer: the per-question countdown while
    an answer is awaited and the advance delay while the answer is locked.
    Every transition out of a phase cancels that phase's timer before the next
    one is scheduled.
    """

    def __init__(self, session: QuizSession, tick_interval: float = 1.0, advance_delay: int = 3):
        """
        Initialize the engine.

        Args:
            session: Session to drive
            tick_interval: Seconds per time unit
            advance_delay: Time units spent in ANSWER_LOCKED before auto-advance
        """
        if tick_interval <= 0:
            raise ValueError("Tick interval must be positive")
        if advance_delay < 0:
            raise ValueError("Advance delay cannot be negative")

        self.session = session
        self.tick_interval = tick_interval
        self.advance_delay = advance_delay
        self._timer: Optional[QuizTimer] = None
        self._timer_index: Optional[int] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._completed: Optional[asyncio.Future] = None
        self._started = False
        self._abandoned = False

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def has_live_timer(self) -> bool:
        return self._timer is not None and self._timer.is_live

    @property
    def is_running(self) -> bool:
        return self._started and not self._abandoned and not self.session.is_completed

    @property
    def is_abandoned(self) -> bool:
        return self._abandoned

    def start(self) -> None:
        """
        Start driving the session. Must be called from a running event loop.

        Raises:
            RuntimeError: If the engine was already started
        """
        if self._started:
            raise RuntimeError(f"Engine for session {self.session_id} already started")
        self._started = True
        self._completed = asyncio.get_running_loop().create_future()
        self._unsubscribe = self.session.subscribe(self._on_transition)
        logger.info(f"Engine started for session {self.session_id}")

        if self.session.is_completed:
            self._finish()
        elif self.session.phase == SessionPhase.AWAITING_ANSWER:
            self._start_countdown()
        elif self.session.phase == SessionPhase.ANSWER_LOCKED:
            self._schedule_advance()

    def submit_answer(self, selected_index: int) -> bool:
        if not self.is_running:
            return False
        return self.session.submit_answer(selected_index)

    def advance_now(self) -> bool:
        """Skip the rest of the advance delay."""
        if not self.is_running:
            return False
        return self.session.advance()

    def abandon(self) -> None:
        """Stop the play-through and release its timer."""
        if self._abandoned or not self._started:
            self._abandoned = True
            return
        self._abandoned = True
        self._release_timer()
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        if self._completed is not None and not self._completed.done():
            self._completed.set_result(None)
        logger.info(f"Session {self.session_id} abandoned at question {self.session.current_index + 1}")

    def add_done_callback(self, callback: Callable[[Optional[QuizResult]], Any]) -> None:
        """
        Call ``callback`` with the result (None when abandoned) once the session ends.

        The callback runs on the event loop, outside any session notification.
        """
        if self._completed is None:
            raise RuntimeError(f"Engine for session {self.session_id} has not been started")
        self._completed.add_done_callback(lambda future: callback(future.result()))

    async def wait_completed(self) -> Optional[QuizResult]:
        """
        Wait for the session to finish.

        Returns:
            The final result, or None if the session was abandoned
        """
        if self._completed is None:
            raise RuntimeError(f"Engine for session {self.session_id} has not been started")
        return await asyncio.shield(self._completed)

    # Timer management

    def _release_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._timer_index = None

    def _install_timer(self, timer: QuizTimer) -> None:
        self._release_timer()
        self._timer = timer
        self._timer_index = self.session.current_index
        timer.start()

    def _start_countdown(self) -> None:
        index = self.session.current_index
        self._install_timer(
            QuizTimer(self.session_id, self.tick_interval, lambda: self._on_tick(index), repeat=True)
        )

    def _schedule_advance(self) -> None:
        index = self.session.current_index
        self._install_timer(
            QuizTimer(
                self.session_id,
                self.tick_interval * self.advance_delay,
                lambda: self._on_advance_due(index),
                repeat=False,
            )
        )

    def _on_tick(self, index: int) -> None:
        if self._abandoned:
            return
        if index != self.session.current_index or self.session.phase != SessionPhase.AWAITING_ANSWER:
            TimerLifecycleLogger.log_stale_tick(self.session_id, index, self.session.current_index)
            return
        self.session.tick()
        TimerLifecycleLogger.log_timer_update(
            self.session_id, self.session.remaining_time, self.session.timer_duration
        )

    def _on_advance_due(self, index: int) -> None:
        if self._abandoned or index != self.session.current_index:
            return
        self.session.advance()

    def _on_transition(self, transition: SessionTransition) -> None:
        # Only timers are touched here; the session itself is never driven from a listener
        previous, current = transition.previous, transition.current
        if previous.phase == current.phase and previous.index == current.index:
            return

        if current.phase == SessionPhase.ANSWER_LOCKED:
            self._release_timer()
            self._schedule_advance()
        elif current.phase == SessionPhase.AWAITING_ANSWER:
            self._start_countdown()
        elif current.phase == SessionPhase.ADVANCING:
            self._release_timer()
        elif current.phase == SessionPhase.COMPLETED:
            self._finish()

    def _finish(self) -> None:
        self._release_timer()
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        if self._completed is not None and not self._completed.done():
            self._completed.set_result(self.session.result)
        logger.info(f"Engine finished for session {self.session_id}")
