"""
Quiz controller for the General Knowledge Quiz.
Manages play-throughs per channel, the player profile and results.
"""
import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from . import achievements
from .config_manager import ConfigManager
from .data_manager import DataManager
from .events import GameEvent, GameEventBus, events_for_transition, log_game_event
from .models import QuizResult, QuizSettings, QuizVersion, UserProfile
from .profile_store import AVATARS, ProfileStore, is_known_avatar
from .question_selector import select_questions
from .quiz_engine import QuizEngine
from .session import QuizError, QuizSession, SessionConstructionError, SessionTransition


class QuizControllerError(QuizError):
    """Base exception for quiz controller errors."""
    pass


class SessionConflictError(QuizControllerError):
    """Raised when a channel already has a running quiz."""
    pass


class SessionNotFoundError(QuizControllerError):
    """Raised when a channel has no quiz."""
    pass


@dataclass
class QuizSummary:
    """Everything the results screen needs."""
    result: QuizResult
    new_achievements: List[str]
    profile: UserProfile
    message: str


@dataclass
class _Play:
    session: QuizSession
    engine: QuizEngine
    settings: QuizSettings
    finished: asyncio.Future
    unsubscribes: List[Callable[[], None]] = field(default_factory=list)
    summary: Optional[QuizSummary] = None


class QuizController:
    """
    Orchestrates quiz play-throughs.

    Each channel has at most one running quiz. A finished quiz is kept until
    the channel starts another one so its summary can still be read.
    Methods that start timers must be called from a running event loop.
    """

    def __init__(
        self,
        data_manager: DataManager,
        config_manager: ConfigManager,
        profile_store: ProfileStore,
        event_bus: Optional[GameEventBus] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the quiz controller.

        Args:
            data_manager: Question catalog
            config_manager: Quiz settings
            profile_store: Storage for the player profile
            event_bus: Bus for game events, a logging bus is created if None
            rng: Random source for question selection
        """
        self.logger = logging.getLogger(__name__)
        self.data_manager = data_manager
        self.config_manager = config_manager
        self.profile_store = profile_store
        self.rng = rng or random.Random()

        if event_bus is None:
            event_bus = GameEventBus()
            event_bus.subscribe(log_game_event)
        self.event_bus = event_bus

        self._plays: Dict[int, _Play] = {}
        self.logger.info("QuizController initialized")

    # Profile

    def get_profile(self) -> UserProfile:
        return self.profile_store.load()

    def update_profile(self, username: str, avatar: Optional[str] = None) -> Dict[str, Any]:
        """
        Set the player's display name and avatar, keeping cumulative stats.

        Returns:
            Dictionary with success status, profile and user-friendly message
        """
        username = (username or "").strip()
        if not username:
            return {
                'success': False,
                'error': "Username is required",
                'user_message': "❌ Please enter your username"
            }

        profile = self.profile_store.load()
        if avatar is not None and not is_known_avatar(avatar):
            return {
                'success': False,
                'error': f"Unknown avatar: {avatar}",
                'user_message': f"❌ Choose one of: {' '.join(AVATARS)}"
            }

        profile.username = username
        if avatar is not None:
            profile.avatar = avatar

        try:
            self.profile_store.save(profile)
        except OSError as e:
            self.logger.error(f"Failed to save profile: {e}")
            return {
                'success': False,
                'error': f"Failed to save profile: {e}",
                'user_message': "❌ Could not save your profile"
            }

        self.logger.info(f"Profile updated for '{username}'")
        return {
            'success': True,
            'profile': profile,
            'message': f"Profile updated for {username}",
            'user_message': f"✅ Welcome, {profile.display_name}!"
        }

    # Sessions

    def create_session(self, channel_id: int, settings: Optional[QuizSettings] = None) -> QuizSession:
        """
        Select questions and start a timed play-through for a channel.

        Args:
            channel_id: Channel identifier
            settings: Optional settings, uses the config manager's if None

        Returns:
            The new session

        Raises:
            SessionConflictError: If the channel already has a running quiz
            SessionConstructionError: If no questions could be selected
        """
        if self.has_active_session(channel_id):
            raise SessionConflictError(f"Channel {channel_id} already has a quiz in progress")

        settings = settings or self.config_manager.get_quiz_settings()
        pool = self.data_manager.get_current_questions()
        if not pool:
            raise SessionConstructionError("The question catalog is empty")

        questions = select_questions(pool, settings.question_count, rng=self.rng)
        session = QuizSession(
            questions,
            timer_duration=settings.timer_duration,
            session_id=f"{channel_id}-{self.rng.getrandbits(32):08x}",
        )
        engine = QuizEngine(session, tick_interval=settings.tick_interval, advance_delay=settings.advance_delay)

        self._discard(channel_id)
        play = _Play(
            session=session,
            engine=engine,
            settings=settings,
            finished=asyncio.get_running_loop().create_future(),
        )
        play.unsubscribes.append(session.subscribe(self._event_forwarder(session.session_id)))
        self._plays[channel_id] = play

        engine.start()
        engine.add_done_callback(lambda result: self._on_finished(channel_id, play, result))

        categories = sorted({q.category for q in questions})
        category = categories[0] if len(categories) == 1 else "Mixed Categories"
        self.event_bus.publish(GameEvent.game_start(session.session_id, category))

        self.logger.info(
            f"Created quiz session for channel {channel_id}: questions={len(questions)}, "
            f"version={self.data_manager.get_current_release().version}"
        )
        return session

    def _event_forwarder(self, session_id: str) -> Callable[[SessionTransition], None]:
        def forward(transition: SessionTransition) -> None:
            for event in events_for_transition(session_id, transition):
                self.event_bus.publish(event)
        return forward

    def start_quiz(self, channel_id: int, settings: Optional[QuizSettings] = None) -> Dict[str, Any]:
        """
        Start a quiz with user-friendly error reporting.

        Returns:
            Dictionary with success status, session info and messages
        """
        try:
            session = self.create_session(channel_id, settings)
        except SessionConflictError as e:
            self.logger.warning(str(e))
            return {
                'success': False,
                'error': str(e),
                'user_message': "❌ A quiz is already running here. Use `/stop` to end it first."
            }
        except SessionConstructionError as e:
            self.logger.error(f"Failed to start quiz for channel {channel_id}: {e}")
            return {
                'success': False,
                'error': str(e),
                'user_message': "❌ No questions are available right now."
            }

        return {
            'success': True,
            'session_info': self.get_session_progress(channel_id),
            'message': f"Quiz started with {session.total_questions} questions",
            'user_message': f"🎯 Quiz started with {session.total_questions} questions!"
        }

    def get_session(self, channel_id: int) -> Optional[QuizSession]:
        play = self._plays.get(channel_id)
        return play.session if play else None

    def get_engine(self, channel_id: int) -> Optional[QuizEngine]:
        play = self._plays.get(channel_id)
        return play.engine if play else None

    def has_active_session(self, channel_id: int) -> bool:
        play = self._plays.get(channel_id)
        return play is not None and play.engine.is_running

    def submit_answer(self, channel_id: int, selected_index: int) -> Dict[str, Any]:
        """
        Submit an answer for the channel's current question.

        Returns:
            Dictionary with success status, whether the answer was accepted and
            whether it was correct
        """
        play = self._plays.get(channel_id)
        if play is None or not play.engine.is_running:
            return {
                'success': False,
                'accepted': False,
                'error': f"No quiz in progress for channel {channel_id}",
                'user_message': "❌ No quiz in progress. Use `/quiz` to start one."
            }

        accepted = play.engine.submit_answer(selected_index)
        state = play.session.state
        if not accepted:
            return {
                'success': True,
                'accepted': False,
                'user_message': "⏳ This question is already answered."
            }

        return {
            'success': True,
            'accepted': True,
            'correct': bool(state.answered_correctly),
            'score': state.score,
            'user_message': "✅ Correct!" if state.answered_correctly else "❌ Not quite."
        }

    def stop_quiz(self, channel_id: int) -> Dict[str, Any]:
        """Abandon the channel's quiz and release its timer."""
        play = self._plays.get(channel_id)
        if play is None or not play.engine.is_running:
            return {
                'success': False,
                'error': f"No quiz in progress for channel {channel_id}",
                'user_message': "❌ No quiz in progress."
            }

        progress = self.get_session_progress(channel_id)
        self._discard(channel_id)
        self.logger.info(f"Stopped quiz for channel {channel_id}")
        return {
            'success': True,
            'session_info': progress,
            'user_message': f"🛑 Quiz stopped at question {progress['current_question']}/{progress['total_questions']}."
        }

    def _discard(self, channel_id: int) -> None:
        play = self._plays.pop(channel_id, None)
        if play is None:
            return
        play.engine.abandon()
        for unsubscribe in play.unsubscribes:
            unsubscribe()
        if not play.finished.done():
            play.finished.set_result(None)

    def _on_finished(self, channel_id: int, play: _Play, result: Optional[QuizResult]) -> None:
        if result is None:
            if not play.finished.done():
                play.finished.set_result(None)
            return
        if play.summary is None:
            play.summary = self.finalize(result)
        if not play.finished.done():
            play.finished.set_result(play.summary)

    def finalize(self, result: QuizResult) -> QuizSummary:
        """
        Apply a completed quiz to the stored profile.

        Returns:
            Summary for the results screen
        """
        previous = self.profile_store.load()
        new_achievements = achievements.evaluate_achievements(result, previous)
        profile = achievements.apply_result(previous, result, new_achievements)

        try:
            self.profile_store.save(profile)
        except OSError as e:
            self.logger.error(f"Failed to save profile after quiz: {e}")

        if new_achievements:
            self.logger.info(f"New achievements unlocked: {', '.join(new_achievements)}")

        return QuizSummary(
            result=result,
            new_achievements=new_achievements,
            profile=profile,
            message=achievements.performance_message(result.percentage),
        )

    async def wait_for_result(self, channel_id: int) -> Optional[QuizSummary]:
        """
        Wait until the channel's quiz ends.

        Returns:
            The summary, or None if the quiz was stopped

        Raises:
            SessionNotFoundError: If the channel never started a quiz
        """
        play = self._plays.get(channel_id)
        if play is None:
            raise SessionNotFoundError(f"No quiz for channel {channel_id}")
        return await asyncio.shield(play.finished)

    def get_session_progress(self, channel_id: int) -> Optional[Dict[str, Any]]:
        """
        Get progress information for the channel's quiz.

        Returns:
            Dictionary with progress details, or None if there is no quiz
        """
        play = self._plays.get(channel_id)
        if play is None:
            return None
        state = play.session.state
        return {
            'session_id': play.session.session_id,
            'phase': state.phase.value,
            'current_question': state.index + 1,
            'total_questions': state.total,
            'score': state.score,
            'remaining_time': state.remaining_time,
            'progress': state.progress,
            'settings': {
                'question_count': play.settings.question_count,
                'timer_duration': play.settings.timer_duration,
                'advance_delay': play.settings.advance_delay,
            },
        }

    def get_version_history(self) -> List[QuizVersion]:
        return self.data_manager.get_version_history()

    def get_current_version(self) -> str:
        return self.data_manager.get_current_release().version

    def build_share_text(self, summary: QuizSummary) -> str:
        """Plain-text result card the player can copy elsewhere."""
        result = summary.result
        categories = ", ".join(self.data_manager.get_categories())
        return (
            "🎯 General Knowledge Quiz Results 🎯\n"
            f"Player: {summary.profile.display_name}\n"
            f"Score: {result.score}/{result.total_questions} ({result.rounded_percentage}%)\n"
            f"Categories: {categories}\n"
            "\n"
            f"{summary.message}\n"
            "\n"
            "#GeneralKnowledge #Quiz #Learning"
        )
