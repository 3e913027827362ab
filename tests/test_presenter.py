"""
Unit tests for Discord embeds and the session presenter.
"""
import asyncio
import unittest
from datetime import date, datetime

from quiz_app import presenter
from quiz_app.models import QuizResult, QuizVersion, UserProfile
from quiz_app.quiz_controller import QuizSummary
from quiz_app.session import NO_ANSWER, QuizSession, SessionPhase, SessionState
from tests.test_fixtures import AsyncTestHelpers, MockDiscordObjects, TestFixtures


def field_values(embed):
    return {field.name: field.value for field in embed.fields}


class TestOptionLabels(unittest.TestCase):
    """Test cases for option letters."""

    def test_parse_option_label(self):
        self.assertEqual(presenter.parse_option_label("A"), 0)
        self.assertEqual(presenter.parse_option_label(" d "), 3)
        self.assertEqual(presenter.parse_option_label("Z"), NO_ANSWER)
        self.assertEqual(presenter.parse_option_label(""), NO_ANSWER)
        self.assertEqual(presenter.parse_option_label("AB"), NO_ANSWER)

    def test_option_label(self):
        self.assertEqual(presenter.option_label(2), "C")
        self.assertEqual(presenter.option_label(NO_ANSWER), "?")

    def test_progress_bar(self):
        self.assertEqual(presenter.progress_bar(0.5, width=4), "▰▰▱▱")
        self.assertEqual(presenter.progress_bar(1.5, width=2), "▰▰")


class TestEmbedBuilders(unittest.TestCase):
    """Test cases for the screen embeds."""

    def setUp(self):
        self.question = TestFixtures.create_sample_questions()[2]

    def make_state(self, **overrides):
        values = dict(phase=SessionPhase.AWAITING_ANSWER, index=0, total=4, score=0, remaining_time=30)
        values.update(overrides)
        return SessionState(**values)

    def test_question_embed(self):
        embed = presenter.build_question_embed(self.question, self.make_state(score=2))

        self.assertEqual(embed.title, "🎯 Question 1/4")
        self.assertEqual(embed.description, self.question.text)
        self.assertEqual(embed.color.value, presenter.COLOR_WARNING)
        fields = field_values(embed)
        self.assertIn("**C.** Paris", fields["Options"])
        self.assertEqual(fields["📚 Category"], "Geography")
        self.assertEqual(fields["⭐ Score"], "2")
        self.assertEqual(fields["⏱️ Time Remaining"], "30 seconds")

    def test_question_embed_low_time(self):
        embed = presenter.build_question_embed(self.question, self.make_state(remaining_time=10))
        self.assertEqual(embed.color.value, presenter.COLOR_DANGER)
        self.assertIn("⚠️ Time Remaining", field_values(embed))

        embed = presenter.build_question_embed(self.question, self.make_state(remaining_time=1))
        self.assertEqual(field_values(embed)["⚠️ Time Remaining"], "1 second")

    def test_reveal_correct(self):
        state = self.make_state(
            phase=SessionPhase.ANSWER_LOCKED, selected_answer=2, answered_correctly=True, score=1
        )
        embed = presenter.build_reveal_embed(self.question, state)

        self.assertTrue(embed.title.startswith("✅ Correct!"))
        fields = field_values(embed)
        self.assertEqual(fields["✅ Correct Answer"], "**C. Paris**")
        self.assertEqual(fields["Your Answer"], "C. Paris")
        self.assertEqual(fields["💡 Explanation"], self.question.explanation)
        self.assertEqual(embed.footer.text, "Next question coming up")

    def test_reveal_timeout_on_last_question(self):
        state = self.make_state(
            phase=SessionPhase.ANSWER_LOCKED, index=3, selected_answer=NO_ANSWER,
            answered_correctly=False, timed_out=True, remaining_time=0
        )
        embed = presenter.build_reveal_embed(self.question, state)

        self.assertTrue(embed.title.startswith("⏰ Time's Up!"))
        self.assertEqual(field_values(embed)["Your Answer"], "No answer")
        self.assertEqual(embed.footer.text, "That was the final question")

    def test_reveal_out_of_range_answer(self):
        state = self.make_state(phase=SessionPhase.ANSWER_LOCKED, selected_answer=NO_ANSWER, answered_correctly=False)
        embed = presenter.build_reveal_embed(self.question, state)
        self.assertTrue(embed.title.startswith("❌ Incorrect"))
        self.assertEqual(field_values(embed)["Your Answer"], "Invalid choice")

    def test_profile_embed(self):
        profile = TestFixtures.create_sample_profile()
        profile.last_played = datetime(2024, 10, 2, 8, 5)
        embed = presenter.build_profile_embed(profile)

        self.assertEqual(embed.title, "👩‍💻 Ada")
        fields = field_values(embed)
        self.assertEqual(fields["🏆 Total Score"], "12")
        self.assertEqual(fields["Achievements"], "🏅 Tech Expert")
        self.assertEqual(embed.footer.text, "Last played 2024-10-02 08:05")

    def test_new_profile_embed(self):
        embed = presenter.build_profile_embed(UserProfile())
        self.assertIn("New Player", embed.title)
        self.assertEqual(field_values(embed)["Achievements"], "None yet")

    def test_results_embed(self):
        summary = QuizSummary(
            result=QuizResult(score=4, total_questions=5),
            new_achievements=["Tech Expert"],
            profile=UserProfile(username="Ada", total_score=4, games_played=1),
            message="Excellent work! Great knowledge! 👏",
        )
        embed = presenter.build_results_embed(summary)

        self.assertEqual(embed.description, summary.message)
        fields = field_values(embed)
        self.assertEqual(fields["📊 Final Score"], "4/5 (80%)")
        self.assertEqual(fields["🏅 New Achievements"], "Tech Expert")
        self.assertEqual(fields["🎮 Games Played"], "1")

    def test_versions_embed(self):
        versions = [
            QuizVersion("1.0.0", date(2024, 1, 1), "Initial release"),
            QuizVersion("2.0.0", date(2024, 10, 2), "Major update"),
        ]
        embed = presenter.build_versions_embed(versions, "2.0.0")

        names = [field.name for field in embed.fields]
        self.assertEqual(names, ["⭐ v2.0.0 (2024-10-02)", "v1.0.0 (2024-01-01)"])
        self.assertIn("Major update", embed.fields[0].value)


class TestQuizPresenter(unittest.IsolatedAsyncioTestCase):
    """Test cases for rendering a session into a channel."""

    async def asyncSetUp(self):
        self.questions = TestFixtures.create_sample_questions()[:2]
        self.session = QuizSession(self.questions, timer_duration=5, session_id="present")
        self.channel = MockDiscordObjects.create_mock_channel()
        self.presenter = presenter.QuizPresenter(self.session, self.channel)

    async def asyncTearDown(self):
        self.presenter.close()

    async def test_full_play_through(self):
        task = asyncio.create_task(self.presenter.run())
        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: self.channel.send.await_count == 1))
        first_message = self.presenter.message

        self.session.tick()
        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: first_message.edit.await_count == 1))
        self.assertIn("4 seconds", str(first_message.edit.call_args.kwargs['embed'].fields[1].value))

        self.session.submit_answer(self.questions[0].correct_answer)
        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: first_message.edit.await_count == 2))
        reveal = first_message.edit.call_args.kwargs['embed']
        self.assertTrue(reveal.title.startswith("✅ Correct!"))

        self.session.advance()
        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: self.channel.send.await_count == 2))
        self.assertIsNot(self.presenter.message, first_message)
        self.assertEqual(self.channel.send.call_args.kwargs['embed'].title, "🎯 Question 2/2")

        self.session.submit_answer(0)
        self.session.advance()
        await AsyncTestHelpers.run_with_timeout(task)

        self.assertEqual(self.channel.send.await_count, 2)

    async def test_close_stops_rendering(self):
        task = asyncio.create_task(self.presenter.run())
        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: self.channel.send.await_count == 1))

        self.presenter.close()
        await AsyncTestHelpers.run_with_timeout(task)

        self.session.tick()
        await asyncio.sleep(0.01)
        self.presenter.message.edit.assert_not_awaited()

    async def test_stale_countdown_snapshots_are_skipped(self):
        task = asyncio.create_task(self.presenter.run())
        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: self.channel.send.await_count == 1))
        message = self.presenter.message

        self.session.tick()
        self.session.tick()
        self.session.tick()
        self.assertTrue(await AsyncTestHelpers.wait_until(lambda: message.edit.await_count >= 1))
        await asyncio.sleep(0.01)

        self.assertEqual(message.edit.await_count, 1)
        self.assertIn("2 seconds", message.edit.call_args.kwargs['embed'].fields[1].value)
        self.presenter.close()
        await AsyncTestHelpers.run_with_timeout(task)

    async def test_http_errors_are_logged(self):
        self.channel.send.side_effect = MockDiscordObjects.create_http_exception()
        task = asyncio.create_task(self.presenter.run())

        with self.assertLogs("quiz_app.presenter", level="ERROR"):
            self.assertTrue(await AsyncTestHelpers.wait_until(lambda: self.channel.send.await_count == 1))
            await asyncio.sleep(0)

        self.presenter.close()
        await AsyncTestHelpers.run_with_timeout(task)
        self.assertIsNone(self.presenter.message)


if __name__ == '__main__':
    unittest.main()
