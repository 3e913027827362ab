"""
Unit tests for QuizTimer and QuizEngine.
"""
import asyncio
import unittest
from unittest.mock import Mock, patch

from quiz_app.models import QuizResult
from quiz_app.quiz_engine import QuizEngine, QuizTimer
from quiz_app.session import NO_ANSWER, QuizSession, SessionPhase
from tests.test_fixtures import AsyncTestHelpers, TestFixtures

FAST_TICK = 0.01
SLOW_TICK = 30.0


class RecordingTimer(QuizTimer):
    """QuizTimer that remembers every instance created."""
    instances = []

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        RecordingTimer.instances.append(self)


class TestQuizTimer(unittest.IsolatedAsyncioTestCase):
    """Test cases for the asyncio timer."""

    async def test_one_shot_fires_once(self):
        callback = Mock()
        timer = QuizTimer("s1", FAST_TICK, callback, repeat=False)
        task = timer.start()
        await AsyncTestHelpers.run_with_timeout(task)

        callback.assert_called_once()
        self.assertEqual(timer.fire_count, 1)
        self.assertFalse(timer.is_live)
        self.assertEqual(timer.kind, QuizTimer.ONE_SHOT)

    async def test_repeating_fires_until_cancelled(self):
        callback = Mock()
        timer = QuizTimer("s1", FAST_TICK, callback, repeat=True)
        timer.start()

        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: callback.call_count >= 3))
        timer.cancel()
        self.assertFalse(timer.is_live)
        self.assertTrue(timer.is_cancelled)

        fired = callback.call_count
        await asyncio.sleep(FAST_TICK * 5)
        self.assertEqual(callback.call_count, fired)

    async def test_cancel_from_inside_callback(self):
        timer = None

        def cancel_self():
            timer.cancel()

        timer = QuizTimer("s1", FAST_TICK, cancel_self, repeat=True)
        task = timer.start()
        await AsyncTestHelpers.run_with_timeout(task)

        self.assertEqual(timer.fire_count, 1)
        self.assertTrue(task.done())
        self.assertFalse(task.cancelled())

    async def test_cancel_is_idempotent(self):
        timer = QuizTimer("s1", SLOW_TICK, Mock())
        timer.start()
        timer.cancel()
        timer.cancel()
        self.assertFalse(timer.is_live)

    async def test_cannot_start_twice(self):
        timer = QuizTimer("s1", SLOW_TICK, Mock())
        timer.start()
        with self.assertRaises(RuntimeError):
            timer.start()
        timer.cancel()


class TestQuizEngine(unittest.IsolatedAsyncioTestCase):
    """Test cases for the engine driving a session in real time."""

    def setUp(self):
        self.questions = TestFixtures.create_sample_questions()[:2]
        RecordingTimer.instances = []

    def make_engine(self, tick_interval=SLOW_TICK, timer_duration=3, advance_delay=2):
        session = QuizSession(self.questions, timer_duration=timer_duration, session_id="test")
        return session, QuizEngine(session, tick_interval=tick_interval, advance_delay=advance_delay)

    async def test_invalid_construction(self):
        session = QuizSession(self.questions)
        with self.assertRaises(ValueError):
            QuizEngine(session, tick_interval=0)
        with self.assertRaises(ValueError):
            QuizEngine(session, advance_delay=-1)

    async def test_start_installs_countdown(self):
        session, engine = self.make_engine()
        engine.start()

        self.assertTrue(engine.has_live_timer)
        self.assertEqual(engine._timer.kind, QuizTimer.REPEATING)
        self.assertTrue(engine.is_running)
        engine.abandon()

    async def test_start_twice_raises(self):
        session, engine = self.make_engine()
        engine.start()
        with self.assertRaises(RuntimeError):
            engine.start()
        engine.abandon()

    async def test_submit_swaps_countdown_for_advance_delay(self):
        session, engine = self.make_engine()
        engine.start()
        countdown = engine._timer

        self.assertTrue(engine.submit_answer(self.questions[0].correct_answer))

        self.assertFalse(countdown.is_live)
        self.assertTrue(engine.has_live_timer)
        self.assertEqual(engine._timer.kind, QuizTimer.ONE_SHOT)
        self.assertEqual(session.phase, SessionPhase.ANSWER_LOCKED)
        engine.abandon()

    async def test_advance_now_starts_next_countdown(self):
        session, engine = self.make_engine()
        engine.start()
        engine.submit_answer(0)
        advance_timer = engine._timer

        self.assertTrue(engine.advance_now())

        self.assertFalse(advance_timer.is_live)
        self.assertEqual(session.current_index, 1)
        self.assertEqual(engine._timer.kind, QuizTimer.REPEATING)
        self.assertTrue(engine.has_live_timer)
        engine.abandon()

    async def test_advance_now_before_answer_is_ignored(self):
        session, engine = self.make_engine()
        engine.start()
        self.assertFalse(engine.advance_now())
        self.assertEqual(session.current_index, 0)
        engine.abandon()

    async def test_unanswered_quiz_times_out_and_completes(self):
        session, engine = self.make_engine(tick_interval=FAST_TICK)
        engine.start()

        result = await AsyncTestHelpers.run_with_timeout(engine.wait_completed())

        self.assertEqual(result, QuizResult(score=0, total_questions=2))
        self.assertTrue(session.is_completed)
        self.assertFalse(engine.has_live_timer)
        self.assertFalse(engine.is_running)

    async def test_correct_then_timeout_scores_half(self):
        session, engine = self.make_engine(tick_interval=FAST_TICK, timer_duration=50)
        transitions = []
        session.subscribe(transitions.append)
        engine.start()

        engine.submit_answer(self.questions[0].correct_answer)
        result = await AsyncTestHelpers.run_with_timeout(engine.wait_completed())

        self.assertEqual(result.score, 1)
        self.assertEqual(result.percentage, 50.0)
        locked = [t.current for t in transitions if t.current.phase == SessionPhase.ANSWER_LOCKED]
        self.assertEqual(locked[-1].selected_answer, NO_ANSWER)
        self.assertTrue(locked[-1].timed_out)

    async def test_at_most_one_live_timer(self):
        with patch('quiz_app.quiz_engine.QuizTimer', RecordingTimer):
            session, engine = self.make_engine(tick_interval=FAST_TICK)
            engine.start()
            waiter = asyncio.ensure_future(engine.wait_completed())
            answered = False

            while not waiter.done():
                live = sum(1 for timer in RecordingTimer.instances if timer.is_live)
                self.assertLessEqual(live, 1)
                if not answered and session.phase == SessionPhase.AWAITING_ANSWER:
                    engine.submit_answer(0)
                    answered = True
                await asyncio.sleep(FAST_TICK / 4)

        self.assertTrue(session.is_completed)
        self.assertEqual(sum(1 for timer in RecordingTimer.instances if timer.is_live), 0)
        # countdown + advance delay per question
        self.assertEqual(len(RecordingTimer.instances), 4)

    async def test_abandon_releases_timer(self):
        session, engine = self.make_engine(tick_interval=FAST_TICK)
        engine.start()
        countdown = engine._timer

        engine.abandon()

        self.assertTrue(engine.is_abandoned)
        self.assertFalse(engine.has_live_timer)
        self.assertFalse(countdown.is_live)
        self.assertIsNone(await engine.wait_completed())

        index, remaining = session.current_index, session.remaining_time
        await asyncio.sleep(FAST_TICK * 5)
        self.assertEqual((session.current_index, session.remaining_time), (index, remaining))
        self.assertFalse(engine.submit_answer(0))

    async def test_stale_tick_is_ignored(self):
        session, engine = self.make_engine()
        engine.start()
        engine.submit_answer(0)
        engine.advance_now()

        with self.assertLogs("quiz_app.quiz_engine", level="WARNING"):
            engine._on_tick(0)

        self.assertEqual(session.remaining_time, 3)
        self.assertEqual(session.current_index, 1)
        engine.abandon()

    async def test_done_callback_receives_result(self):
        session, engine = self.make_engine()
        engine.start()
        received = []
        engine.add_done_callback(received.append)

        engine.submit_answer(0)
        engine.advance_now()
        engine.submit_answer(0)
        engine.advance_now()

        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: received))
        self.assertEqual(received[0].total_questions, 2)

    async def test_done_callback_receives_none_on_abandon(self):
        session, engine = self.make_engine()
        engine.start()
        received = []
        engine.add_done_callback(received.append)

        engine.abandon()

        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: received))
        self.assertEqual(received, [None])

    async def test_wait_before_start_raises(self):
        session, engine = self.make_engine()
        with self.assertRaises(RuntimeError):
            await engine.wait_completed()


if __name__ == '__main__':
    unittest.main()
