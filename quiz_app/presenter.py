"""
Discord presentation for quiz screens.

Embed builders are pure functions of core state. ``QuizPresenter`` follows a
session's transitions and keeps one message per question up to date.
"""
import asyncio
import logging
from typing import List, Optional

import discord

from .models import Question, QuizVersion, UserProfile
from .session import NO_ANSWER, QuizSession, SessionPhase, SessionState, SessionTransition

logger = logging.getLogger(__name__)

OPTION_LABELS = "ABCDEFGH"

COLOR_INFO = 0x3498db
COLOR_SUCCESS = 0x00ff00
COLOR_WARNING = 0xffa500
COLOR_DANGER = 0xff0000

LOW_TIME_THRESHOLD = 10


def option_label(index: int) -> str:
    return OPTION_LABELS[index] if 0 <= index < len(OPTION_LABELS) else "?"


def parse_option_label(label: str) -> int:
    """
    Map an option letter (case-insensitive) to its index.

    Unknown labels map to NO_ANSWER so the session scores them as incorrect.
    """
    label = (label or "").strip().upper()
    if len(label) == 1 and label in OPTION_LABELS:
        return OPTION_LABELS.index(label)
    return NO_ANSWER


def progress_bar(fraction: float, width: int = 10) -> str:
    fraction = min(max(fraction, 0.0), 1.0)
    filled = round(fraction * width)
    return "▰" * filled + "▱" * (width - filled)


def build_profile_embed(profile: UserProfile) -> discord.Embed:
    """Profile card with cumulative stats and unlocked achievements."""
    embed = discord.Embed(
        title=f"{profile.avatar} {profile.username or 'New Player'}",
        description="Your quiz profile",
        color=COLOR_INFO
    )
    embed.add_field(name="🏆 Total Score", value=str(profile.total_score), inline=True)
    embed.add_field(name="🎮 Games Played", value=str(profile.games_played), inline=True)

    achievements = "\n".join(f"🏅 {a}" for a in profile.achievements) or "None yet"
    embed.add_field(name="Achievements", value=achievements, inline=False)

    if profile.last_played:
        embed.set_footer(text=f"Last played {profile.last_played.strftime('%Y-%m-%d %H:%M')}")
    else:
        embed.set_footer(text="Use /quiz to play your first game")
    return embed


def build_question_embed(question: Question, state: SessionState) -> discord.Embed:
    """
    Question card while an answer is awaited.

    The card turns red once ``LOW_TIME_THRESHOLD`` time units or fewer remain.
    """
    low_time = state.remaining_time <= LOW_TIME_THRESHOLD
    embed = discord.Embed(
        title=f"🎯 Question {state.index + 1}/{state.total}",
        description=question.text,
        color=COLOR_DANGER if low_time else COLOR_WARNING
    )

    options = "\n".join(
        f"**{option_label(i)}.** {option}" for i, option in enumerate(question.options)
    )
    embed.add_field(name="Options", value=options, inline=False)

    timer_emoji = "⚠️" if low_time else "⏱️"
    embed.add_field(
        name=f"{timer_emoji} Time Remaining",
        value=f"{state.remaining_time} second{'s' if state.remaining_time != 1 else ''}",
        inline=True
    )
    embed.add_field(name="📚 Category", value=question.category, inline=True)
    embed.add_field(name="⭐ Score", value=str(state.score), inline=True)

    embed.set_footer(text=f"{progress_bar(state.progress)}  Answer with /answer")
    return embed


def build_reveal_embed(question: Question, state: SessionState) -> discord.Embed:
    """Answer card shown while the answer is locked, explanation included."""
    if state.timed_out:
        title = f"⏰ Time's Up! - Question {state.index + 1}/{state.total}"
        color = COLOR_DANGER
    elif state.answered_correctly:
        title = f"✅ Correct! - Question {state.index + 1}/{state.total}"
        color = COLOR_SUCCESS
    else:
        title = f"❌ Incorrect - Question {state.index + 1}/{state.total}"
        color = COLOR_DANGER

    embed = discord.Embed(title=title, description=question.text, color=color)
    embed.add_field(
        name="✅ Correct Answer",
        value=f"**{option_label(question.correct_answer)}. {question.correct_option}**",
        inline=False
    )

    if state.timed_out:
        chosen = "No answer"
    elif state.selected_answer is None or state.selected_answer == NO_ANSWER:
        chosen = "Invalid choice"
    else:
        chosen = f"{option_label(state.selected_answer)}. {question.options[state.selected_answer]}"
    embed.add_field(name="Your Answer", value=chosen, inline=True)
    embed.add_field(name="⭐ Score", value=str(state.score), inline=True)

    if question.explanation:
        embed.add_field(name="💡 Explanation", value=question.explanation, inline=False)

    if state.index + 1 >= state.total:
        embed.set_footer(text="That was the final question")
    else:
        embed.set_footer(text="Next question coming up")
    return embed


def build_results_embed(summary) -> discord.Embed:
    """
    Results screen for a finished quiz.

    Args:
        summary: QuizSummary from the controller
    """
    result = summary.result
    embed = discord.Embed(
        title="🎉 Quiz Complete!",
        description=summary.message,
        color=COLOR_SUCCESS
    )
    embed.add_field(
        name="📊 Final Score",
        value=f"{result.score}/{result.total_questions} ({result.rounded_percentage}%)",
        inline=False
    )

    if summary.new_achievements:
        embed.add_field(
            name="🏅 New Achievements",
            value="\n".join(summary.new_achievements),
            inline=False
        )

    profile = summary.profile
    embed.add_field(name="🏆 Total Score", value=str(profile.total_score), inline=True)
    embed.add_field(name="🎮 Games Played", value=str(profile.games_played), inline=True)
    embed.set_footer(text="Use /quiz to play again")
    return embed


def build_versions_embed(versions: List[QuizVersion], current_version: str) -> discord.Embed:
    """Version history, newest first, with the current release starred."""
    embed = discord.Embed(
        title="📜 Version History",
        description=f"Current version: **{current_version}**",
        color=COLOR_INFO
    )
    for version in sorted(versions, key=lambda v: v.version_key, reverse=True):
        marker = "⭐ " if version.version == current_version else ""
        embed.add_field(
            name=f"{marker}v{version.version} ({version.last_updated.isoformat()})",
            value=f"{version.changelog}\n{len(version.questions)} questions",
            inline=False
        )
    return embed


class QuizPresenter:
    """
    Renders a running session into a Discord channel.

    Transitions are queued as snapshots by a session listener and rendered
    by ``run()``; the listener itself never touches the session or awaits.
    """

    def __init__(self, session: QuizSession, channel: discord.abc.Messageable):
        self.session = session
        self.channel = channel
        self.message: Optional[discord.Message] = None
        self._message_index: Optional[int] = None
        self._queue: "asyncio.Queue[Optional[SessionState]]" = asyncio.Queue()
        self._unsubscribe = session.subscribe(self._on_transition)
        self._closed = False

    def _on_transition(self, transition: SessionTransition) -> None:
        self._queue.put_nowait(transition.current)

    def close(self) -> None:
        """Stop following the session; ``run()`` returns after draining."""
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self._queue.put_nowait(None)

    async def run(self) -> None:
        """Render snapshots until the session completes or the presenter is closed."""
        await self._render(self.session.state)
        while True:
            state = await self._queue.get()
            if state is None:
                break

            # Countdown ticks are superseded by any newer snapshot
            if state.phase == SessionPhase.AWAITING_ANSWER and not self._queue.empty():
                continue

            await self._render(state)
            if state.is_completed:
                break
        self.close()

    async def _show(self, index: int, embed: discord.Embed) -> None:
        if self.message is None or self._message_index != index:
            self.message = await self.channel.send(embed=embed)
            self._message_index = index
        else:
            await self.message.edit(embed=embed)

    async def _render(self, state: SessionState) -> None:
        if state.phase == SessionPhase.ADVANCING or state.is_completed:
            return

        question = self.session.questions[state.index]
        if state.phase == SessionPhase.AWAITING_ANSWER:
            embed = build_question_embed(question, state)
        else:
            embed = build_reveal_embed(question, state)

        try:
            await self._show(state.index, embed)
        except discord.HTTPException as e:
            logger.error(f"Failed to render question {state.index + 1} for session {self.session.session_id}: {e}")
