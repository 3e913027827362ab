"""
Unit tests for timer lifecycle logging and timer error handling.
"""
import asyncio
import unittest
from unittest.mock import patch

from quiz_app import quiz_engine
from quiz_app.quiz_engine import QuizTimer, TimerLifecycleLogger

ENGINE_LOGGER = "quiz_app.quiz_engine"


def records_of(logs, event_type):
    return [r for r in logs.records if getattr(r, 'event_type', None) == event_type]


class TestTimerLifecycleLogger(unittest.TestCase):
    """Test cases for structured timer log records."""

    def test_timer_created_record(self):
        with self.assertLogs(ENGINE_LOGGER, level="DEBUG") as logs:
            TimerLifecycleLogger.log_timer_created("s1", QuizTimer.REPEATING, 1.0)

        record = records_of(logs, 'timer_created')[0]
        self.assertEqual(record.session_id, "s1")
        self.assertEqual(record.timer_kind, "countdown")
        self.assertEqual(record.interval, 1.0)

    def test_timer_update_is_throttled(self):
        with patch.object(quiz_engine.logger, 'debug') as mock_debug:
            TimerLifecycleLogger.log_timer_update("s1", 17, 30)
            mock_debug.assert_not_called()

            TimerLifecycleLogger.log_timer_update("s1", 20, 30)
            TimerLifecycleLogger.log_timer_update("s1", 4, 30)
            self.assertEqual(mock_debug.call_count, 2)

        extra = mock_debug.call_args.kwargs['extra']
        self.assertEqual(extra['remaining_time'], 4)
        self.assertAlmostEqual(extra['progress_percent'], 86.666, places=2)

    def test_stale_tick_is_a_warning(self):
        with self.assertLogs(ENGINE_LOGGER, level="WARNING") as logs:
            TimerLifecycleLogger.log_stale_tick("s1", timer_index=0, current_index=1)

        record = records_of(logs, 'timer_stale_tick')[0]
        self.assertEqual((record.timer_index, record.current_index), (0, 1))

    def test_timer_error_record(self):
        with self.assertLogs(ENGINE_LOGGER, level="ERROR") as logs:
            TimerLifecycleLogger.log_timer_error("s1", "ValueError", "boom", "timer_callback")

        record = records_of(logs, 'timer_error')[0]
        self.assertEqual(record.error_type, "ValueError")
        self.assertEqual(record.operation, "timer_callback")


class TestTimerLifecycle(unittest.IsolatedAsyncioTestCase):
    """Test cases for how QuizTimer reports its own lifecycle."""

    async def test_natural_expiry_is_logged(self):
        timer = QuizTimer("s1", 0.001, lambda: None, repeat=False)

        with self.assertLogs(ENGINE_LOGGER, level="DEBUG") as logs:
            await timer.start()

        completed = records_of(logs, 'timer_completed')
        self.assertEqual(len(completed), 1)
        self.assertEqual(completed[0].completion_type, "natural_expiry")
        self.assertEqual(completed[0].timer_kind, "advance_delay")

    async def test_external_cancel_is_logged(self):
        timer = QuizTimer("s1", 10.0, lambda: None)

        with self.assertLogs(ENGINE_LOGGER, level="DEBUG") as logs:
            task = timer.start()
            await asyncio.sleep(0)
            timer.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await task

        self.assertEqual(records_of(logs, 'timer_completed')[0].completion_type, "asyncio_cancelled")
        self.assertFalse(timer.is_live)

    async def test_cancel_inside_callback_completes_as_cancelled(self):
        def callback():
            timer.cancel()

        timer = QuizTimer("s1", 0.001, callback)

        with self.assertLogs(ENGINE_LOGGER, level="DEBUG") as logs:
            await timer.start()

        self.assertEqual(records_of(logs, 'timer_completed')[0].completion_type, "cancelled")
        self.assertEqual(timer.fire_count, 1)

    async def test_callback_error_is_logged_and_raised(self):
        def callback():
            raise ValueError("callback failed")

        timer = QuizTimer("s1", 0.001, callback, repeat=False)

        with self.assertLogs(ENGINE_LOGGER, level="ERROR") as logs:
            with self.assertRaises(ValueError):
                await timer.start()

        record = records_of(logs, 'timer_error')[0]
        self.assertEqual(record.error_message, "callback failed")
        self.assertFalse(timer.is_live)


if __name__ == '__main__':
    unittest.main()
