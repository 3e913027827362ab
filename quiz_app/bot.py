import asyncio
import logging
import os
from typing import Dict, Optional

import discord
from discord import app_commands
from discord.ext import commands

from . import presenter
from .config_manager import ConfigManager
from .data_manager import DataManager
from .models import MAX_OPTIONS
from .profile_store import AVATARS, ProfileStore
from .quiz_controller import QuizController, SessionNotFoundError

logger = logging.getLogger(__name__)

AVATAR_CHOICES = [app_commands.Choice(name=avatar, value=avatar) for avatar in AVATARS]
ANSWER_CHOICES = [app_commands.Choice(name=label, value=label) for label in presenter.OPTION_LABELS[:MAX_OPTIONS]]


class QuizBot(commands.Bot):
    """Discord bot for the General Knowledge Quiz"""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.data_manager: Optional[DataManager] = None
        self.config_manager: Optional[ConfigManager] = None
        self.profile_store: Optional[ProfileStore] = None
        self.quiz_controller: Optional[QuizController] = None

        # Background presentation per channel
        self._quiz_tasks: Dict[int, asyncio.Task] = {}
        self._presenters: Dict[int, presenter.QuizPresenter] = {}

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = ConfigManager()
            if self.app_config:
                errors = self.config_manager.apply_config(self.app_config)
                for error in errors:
                    logger.warning(f"Configuration value ignored: {error}")

            self.data_manager = DataManager(self.config_manager.get_catalog_directory())
            self.data_manager.load_catalog()
            logger.info(self.data_manager.get_loading_summary())

            self.profile_store = ProfileStore(self.config_manager.get_profile_path())
            self.quiz_controller = QuizController(self.data_manager, self.config_manager, self.profile_store)

            await self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    async def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="profile", description="Show your profile, or set your name and avatar")
        @app_commands.describe(username="Display name", avatar="Avatar to show next to your name")
        @app_commands.choices(avatar=AVATAR_CHOICES)
        async def profile_command(
            interaction: discord.Interaction,
            username: Optional[str] = None,
            avatar: Optional[app_commands.Choice[str]] = None,
        ):
            await self.handle_profile(interaction, username, avatar.value if avatar else None)

        @self.tree.command(name="set_questions", description="Set the number of questions for the next quiz")
        async def set_questions_command(interaction: discord.Interaction, number: int):
            await self.handle_setting(interaction, self.config_manager.set_question_count(number))

        @self.tree.command(name="set_timer", description="Set the timer duration for each question (5-300 seconds)")
        async def set_timer_command(interaction: discord.Interaction, seconds: int):
            await self.handle_setting(interaction, self.config_manager.set_timer_duration(seconds))

        @self.tree.command(name="quiz", description="Start a quiz with current settings")
        async def quiz_command(interaction: discord.Interaction):
            await self.handle_quiz(interaction)

        @self.tree.command(name="answer", description="Answer the current question")
        @app_commands.choices(option=ANSWER_CHOICES)
        async def answer_command(interaction: discord.Interaction, option: app_commands.Choice[str]):
            await self.handle_answer(interaction, option.value)

        @self.tree.command(name="next", description="Skip straight to the next question after answering")
        async def next_command(interaction: discord.Interaction):
            await self.handle_next(interaction)

        @self.tree.command(name="stop", description="Stop the current quiz")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="status", description="Show current quiz status and progress")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @self.tree.command(name="versions", description="Show the question catalog's version history")
        async def versions_command(interaction: discord.Interaction):
            await self.handle_versions(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")
        print(f"🤖 {self.user} is Ready and Online!")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        if self.quiz_controller is not None:
            for channel_id in list(self._quiz_tasks):
                self.quiz_controller.stop_quiz(channel_id)
                self._release_presentation(channel_id)
        await super().close()

    # Responses

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send error response to user with fallback handling"""
        embed = discord.Embed(title=title, description=message, color=presenter.COLOR_DANGER)
        embed.set_footer(text="If this error persists, try using /help for available commands")
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Failed to send error embed: {e}")

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        embed = discord.Embed(title=title, description=message, color=presenter.COLOR_INFO)
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Failed to send info embed: {e}")

    # Command handlers

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        help_embed = discord.Embed(
            title="🎯 General Knowledge Quiz",
            description="Timed multiple-choice questions across science, geography, history and more",
            color=presenter.COLOR_SUCCESS
        )
        help_embed.add_field(
            name="👤 Profile",
            value=(
                "`/profile` - Show your profile\n"
                "`/profile <username> [avatar]` - Set your name and avatar\n"
                "`/versions` - Show the question catalog's version history"
            ),
            inline=False
        )
        help_embed.add_field(
            name="🎮 Playing",
            value=(
                "`/quiz` - Start a quiz\n"
                "`/answer <A-D>` - Answer the current question\n"
                "`/next` - Move on once the answer is revealed\n"
                "`/stop` - Stop the current quiz\n"
                "`/status` - Show progress"
            ),
            inline=False
        )
        help_embed.add_field(
            name="📋 Settings",
            value=(
                "`/set_questions <number>` - Questions per quiz\n"
                "`/set_timer <seconds>` - Time per question (5-300 sec)"
            ),
            inline=False
        )
        help_embed.add_field(
            name="⚙️ Current Settings",
            value=f"```\n{self.config_manager.get_settings_summary()}\n```",
            inline=False
        )
        help_embed.set_footer(text=f"Catalog version {self.quiz_controller.get_current_version()}")
        await interaction.response.send_message(embed=help_embed)

    async def handle_profile(self, interaction: discord.Interaction, username: Optional[str], avatar: Optional[str]):
        """Handle /profile command"""
        if username is None and avatar is None:
            profile = self.quiz_controller.get_profile()
            await interaction.response.send_message(embed=presenter.build_profile_embed(profile))
            return

        if username is None:
            username = self.quiz_controller.get_profile().username
        result = self.quiz_controller.update_profile(username, avatar)
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'], "❌ Profile Not Saved")
            return

        embed = presenter.build_profile_embed(result['profile'])
        await interaction.response.send_message(content=result['user_message'], embed=embed)

    async def handle_setting(self, interaction: discord.Interaction, result: Dict):
        if result['success']:
            await interaction.response.send_message(result['user_message'])
        else:
            await self.send_error_response(interaction, result['user_message'], "❌ Invalid Setting")

    async def handle_quiz(self, interaction: discord.Interaction):
        """Handle /quiz command"""
        channel_id = interaction.channel_id
        if not self.quiz_controller.get_profile().username:
            await self.send_info_response(
                interaction,
                "Set a username with `/profile <username>` before playing.",
                "👤 Profile Needed"
            )
            return

        result = self.quiz_controller.start_quiz(channel_id)
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'], "❌ Cannot Start Quiz")
            return

        info = result['session_info']
        embed = discord.Embed(
            title="🚀 Quiz Started",
            description=result['user_message'],
            color=presenter.COLOR_SUCCESS
        )
        embed.add_field(name="⏱️ Timer", value=f"{info['settings']['timer_duration']} seconds per question", inline=True)
        embed.add_field(name="📦 Version", value=self.quiz_controller.get_current_version(), inline=True)
        embed.set_footer(text="Get ready for the first question!")
        await interaction.response.send_message(embed=embed)

        session = self.quiz_controller.get_session(channel_id)
        quiz_presenter = presenter.QuizPresenter(session, interaction.channel)
        self._presenters[channel_id] = quiz_presenter
        self._quiz_tasks[channel_id] = asyncio.create_task(
            self._run_quiz(channel_id, interaction.channel, quiz_presenter)
        )

    async def _run_quiz(self, channel_id: int, channel, quiz_presenter: presenter.QuizPresenter):
        render_task = asyncio.create_task(quiz_presenter.run())
        try:
            summary = await self.quiz_controller.wait_for_result(channel_id)
            await render_task
            if summary is None:
                return
            await channel.send(embed=presenter.build_results_embed(summary))
            await channel.send(f"```\n{self.quiz_controller.build_share_text(summary)}\n```")
        except SessionNotFoundError:
            # Stopped before the task got to run
            render_task.cancel()
        except discord.HTTPException as e:
            logger.error(f"Failed to send results for channel {channel_id}: {e}")
        finally:
            quiz_presenter.close()
            if self._quiz_tasks.get(channel_id) is asyncio.current_task():
                del self._quiz_tasks[channel_id]
            if self._presenters.get(channel_id) is quiz_presenter:
                del self._presenters[channel_id]

    def _release_presentation(self, channel_id: int):
        quiz_presenter = self._presenters.pop(channel_id, None)
        if quiz_presenter:
            quiz_presenter.close()

    async def handle_answer(self, interaction: discord.Interaction, label: str):
        """Handle /answer command"""
        result = self.quiz_controller.submit_answer(interaction.channel_id, presenter.parse_option_label(label))
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'], "❌ No Quiz")
            return
        await interaction.response.send_message(result['user_message'], ephemeral=True)

    async def handle_next(self, interaction: discord.Interaction):
        """Handle /next command"""
        engine = self.quiz_controller.get_engine(interaction.channel_id)
        if engine is None or not engine.advance_now():
            await self.send_info_response(interaction, "Answer the current question first.", "⏳ Not Yet")
            return
        await interaction.response.send_message("➡️ Moving on", ephemeral=True)

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        channel_id = interaction.channel_id
        result = self.quiz_controller.stop_quiz(channel_id)
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'], "❌ No Active Quiz")
            return

        self._release_presentation(channel_id)
        info = result['session_info']
        embed = discord.Embed(
            title="🛑 Quiz Stopped",
            description=result['user_message'],
            color=presenter.COLOR_WARNING
        )
        embed.add_field(name="⭐ Score", value=f"{info['score']}/{info['total_questions']}", inline=True)
        embed.set_footer(text="Stopped quizzes are not recorded. Use /quiz to begin a new one")
        await interaction.response.send_message(embed=embed)

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        info = self.quiz_controller.get_session_progress(interaction.channel_id)
        if info is None:
            await self.send_info_response(
                interaction,
                "There is no quiz in this channel. Use `/quiz` to start one.",
                "📊 No Active Quiz"
            )
            return

        embed = discord.Embed(title="📊 Quiz Status", color=presenter.COLOR_INFO)
        embed.add_field(
            name="Progress",
            value=f"{presenter.progress_bar(info['progress'])} {info['current_question']}/{info['total_questions']}",
            inline=False
        )
        embed.add_field(name="⭐ Score", value=str(info['score']), inline=True)
        embed.add_field(name="⏱️ Time Remaining", value=f"{info['remaining_time']} seconds", inline=True)
        embed.add_field(name="State", value=info['phase'].replace('_', ' ').title(), inline=True)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def handle_versions(self, interaction: discord.Interaction):
        """Handle /versions command"""
        embed = presenter.build_versions_embed(
            self.quiz_controller.get_version_history(),
            self.quiz_controller.get_current_version(),
        )
        if self.data_manager.has_load_errors():
            embed.add_field(
                name="⚠️ Loading Issues",
                value="Some catalog files had loading errors. Check logs for details.",
                inline=False
            )
        await interaction.response.send_message(embed=embed)


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting General Knowledge Quiz bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
