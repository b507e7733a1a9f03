import discord
from discord import app_commands
from discord.ext import commands
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from .catalog import QUIZ_DEFINITIONS
from .config_manager import ConfigManager
from .game_controller import GameController
from .home import WELCOME_NOTICE, consume_welcome_notice, display_nickname, welcome_message
from .models import AnswerKind, End, Paused, WarmUp
from .session import GameSession
from .stats_store import JsonStatsStore, StatsStore

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_directory: str = "./logs/") -> logging.Logger:
    """Set up console and file logging for the bot."""
    logs_dir = Path(log_directory)
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(logs_dir / "bot.log", encoding='utf-8'),
        ]
    )

    # Errors also go to their own file
    error_handler = logging.FileHandler(logs_dir / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger().addHandler(error_handler)

    # Reduce discord.py noise
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)

    return logging.getLogger("brainstress")


def build_session_embed(session: GameSession) -> discord.Embed:
    """Render the current phase of a session as an embed."""
    state = session.game_state
    title = session.quiz.title

    if isinstance(state, WarmUp):
        embed = discord.Embed(
            title=f"🧠 {title}",
            description=f"Get ready! Starting in **{session.time_remaining_warmup}**...",
            color=0x6699ff
        )
    elif isinstance(state, End):
        embed = discord.Embed(
            title="🏆 You won!" if state.win else "💥 Quiz over",
            description=f"**{title}**: {len(session.items_solved)}/{session.total_items} solved",
            color=0x00ff00 if state.win else 0xff0000
        )
        embed.set_footer(text="Use /play to start another quiz")
        return embed
    else:
        item = session.quiz_item
        remaining = session.time_remaining_item
        if isinstance(state, Paused):
            color = 0xffaa00
        elif remaining > 2:
            color = 0x00ff00
        else:
            color = 0xff0000
        embed = discord.Embed(
            title=f"🎯 Question {session.quiz_item_number}/{session.total_items}",
            description=f"**{item.text}**" if item is not None else "",
            color=color
        )
        embed.add_field(
            name="⏸️ Paused" if isinstance(state, Paused) else "⏱️ Time Remaining",
            value=session.time_remaining_for_humans(),
            inline=True
        )
        if item is not None and item.options:
            embed.add_field(name="Options", value=", ".join(item.options), inline=False)
        if item is not None and item.answer.kind == AnswerKind.MULTIPLE_CHOICE:
            embed.set_footer(text="Pick every correct option with /answer, then /confirm")
        else:
            embed.set_footer(text="Reply with /answer")

    embed.add_field(
        name="📊 Score",
        value=f"✅ {len(session.items_solved)}  ❌ {len(session.items_failed)}",
        inline=True
    )
    return embed


class QuizBot(commands.Bot):
    """Discord front-end for BrainStress quizzes"""

    def __init__(self, config=None, store: Optional[StatsStore] = None):
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
        self.config_manager = ConfigManager()
        self.store = store
        self.game_controller: Optional[GameController] = None
        self._game_messages: Dict[int, discord.Message] = {}

    def initialize_components(self) -> None:
        """Apply configuration and build the store and controller."""
        if self.app_config:
            self.config_manager.apply_config(self.app_config)
        if self.store is None:
            self.store = JsonStatsStore(self.config_manager.get_stats_file())
        self.game_controller = GameController(self.store, self.config_manager)

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")
            self.initialize_components()
            await self.setup_commands()
            logger.info("Bot setup completed successfully")
        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    async def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="help", description="Display available commands")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="quizzes", description="List available quizzes")
        @app_commands.describe(category="Category to filter by, e.g. Math")
        async def quizzes_command(interaction: discord.Interaction, category: Optional[str] = None):
            await self.handle_quizzes(interaction, category)

        @self.tree.command(name="play", description="Start a quiz in this channel")
        @app_commands.describe(quiz="Quiz key from /quizzes")
        async def play_command(interaction: discord.Interaction, quiz: str):
            await self.handle_play(interaction, quiz)

        @self.tree.command(name="answer", description="Answer the current question")
        async def answer_command(interaction: discord.Interaction, value: str):
            await self.handle_answer(interaction, value)

        @self.tree.command(name="confirm", description="Submit your picks for a multiple-choice question")
        async def confirm_command(interaction: discord.Interaction):
            await self.handle_confirm(interaction)

        @self.tree.command(name="pause", description="Pause the current question")
        async def pause_command(interaction: discord.Interaction):
            await self.handle_pause(interaction)

        @self.tree.command(name="resume", description="Resume the paused question")
        async def resume_command(interaction: discord.Interaction):
            await self.handle_resume(interaction)

        @self.tree.command(name="stop", description="Stop the current quiz without scoring it")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="status", description="Show the current quiz progress")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @self.tree.command(name="stats", description="Show wins and fails per quiz")
        async def stats_command(interaction: discord.Interaction):
            await self.handle_stats(interaction)

        @self.tree.command(name="nickname", description="Set the nickname used in greetings")
        async def nickname_command(interaction: discord.Interaction, name: str):
            await self.handle_nickname(interaction, name)

    async def on_ready(self):
        """Called when the bot has connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        if self.game_controller is not None:
            await self.game_controller.shutdown()
        await super().close()

    # Session rendering

    async def refresh_game_message(self, session: GameSession, channel_id: int) -> None:
        """Edit the channel's game message to reflect the session."""
        message = self._game_messages.get(channel_id)
        if message is None:
            return
        try:
            await message.edit(embed=build_session_embed(session))
        except discord.HTTPException as e:
            # Keep ticking even if Discord rejects an edit
            logger.warning(f"Failed to update game message for channel {channel_id}: {e}")

    async def finish_game_message(self, session: GameSession, channel_id: int) -> None:
        await self.refresh_game_message(session, channel_id)
        self._game_messages.pop(channel_id, None)
        logger.info(
            f"Game finished in channel {channel_id}: {session.progress()['solved']}/{session.total_items} solved"
        )

    # Command handlers

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        embed = discord.Embed(
            title="🧠 BrainStress Commands",
            description="Answer as many questions as you can before the timer runs out!",
            color=0x6699ff
        )
        embed.add_field(name="/quizzes [category]", value="List available quizzes", inline=False)
        embed.add_field(name="/play <quiz>", value="Start a quiz in this channel", inline=False)
        embed.add_field(name="/answer <value>", value="Answer the current question", inline=False)
        embed.add_field(name="/confirm", value="Submit picks for a multiple-choice question", inline=False)
        embed.add_field(name="/pause, /resume, /stop", value="Control the running quiz", inline=False)
        embed.add_field(name="/status, /stats", value="Show progress and results", inline=False)
        embed.add_field(name="/nickname <name>", value="Set your nickname", inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def handle_quizzes(self, interaction: discord.Interaction, category: Optional[str] = None):
        """Handle /quizzes command"""
        definitions = self.game_controller.list_quizzes(category)
        if not definitions:
            await self.send_info_response(interaction, f"No quizzes found for category '{category}'.")
            return

        embed = discord.Embed(
            title=f"{welcome_message()} {display_nickname(self.store)}",
            description="Quizzes",
            color=0x6699ff
        )
        for definition in definitions:
            embed.add_field(
                name=f"`{definition.key}` · {definition.title}",
                value=(
                    f"{definition.category.name} · {definition.difficulty.value} · "
                    f"{definition.item_count} questions\n"
                    f"🏆 {self.store.get_wins(definition.quiz_id)}  💥 {self.store.get_fails(definition.quiz_id)}"
                ),
                inline=False
            )
        await interaction.response.send_message(embed=embed)

    async def handle_play(self, interaction: discord.Interaction, quiz: str):
        """Handle /play command"""
        channel_id = interaction.channel_id
        result = self.game_controller.start_game(channel_id, quiz)
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'], "❌ Cannot Start Quiz")
            return

        session = self.game_controller.get_session(channel_id)
        try:
            await interaction.response.send_message(embed=build_session_embed(session))
            self._game_messages[channel_id] = await interaction.original_response()
            if consume_welcome_notice(self.store):
                await interaction.followup.send(
                    f"Hello, {display_nickname(self.store)}! {WELCOME_NOTICE}", ephemeral=True
                )
        except discord.HTTPException as e:
            logger.error(f"Failed to present quiz in channel {channel_id}: {e}")
            await self.game_controller.stop_game(channel_id)
            return

        # A replaced session must not render over the channel's new game
        async def on_tick(ticked: GameSession):
            if self.game_controller.get_session(channel_id) is ticked:
                await self.refresh_game_message(ticked, channel_id)

        async def on_finish(finished: GameSession):
            if self.game_controller.get_session(channel_id) is finished:
                await self.finish_game_message(finished, channel_id)

        self.game_controller.attach_ticker(channel_id, on_tick=on_tick, on_finish=on_finish)

    async def handle_answer(self, interaction: discord.Interaction, value: str):
        """Handle /answer command"""
        channel_id = interaction.channel_id
        result = self.game_controller.submit_answer(channel_id, value)

        if 'error' in result:
            await self.send_error_response(interaction, result['user_message'], "❌ No Quiz")
            return

        if result['result'] == 'solved':
            await interaction.response.send_message("✅ Correct!", ephemeral=True)
        elif result['result'] == 'failed':
            await interaction.response.send_message(
                f"❌ Wrong, the answer was **{result['expected']}**", ephemeral=True
            )
        elif result['result'] == 'buffered':
            await interaction.response.send_message(
                f"📝 Noted **{value}**. Use /confirm when you are done.", ephemeral=True
            )
        else:
            await self.send_info_response(interaction, "No question is waiting for an answer right now.")
            return

        session = self.game_controller.get_session(channel_id)
        if session is not None:
            await self.refresh_game_message(session, channel_id)

    async def handle_confirm(self, interaction: discord.Interaction):
        """Handle /confirm command"""
        channel_id = interaction.channel_id
        result = self.game_controller.confirm_answers(channel_id)

        if 'error' in result:
            await self.send_error_response(interaction, result['user_message'], "❌ No Quiz")
        elif result['result'] == 'ignored':
            await self.send_info_response(interaction, "Only multiple-choice questions need /confirm.")
        else:
            text = "✅ Correct!" if result['result'] == 'solved' else "❌ Not quite."
            await interaction.response.send_message(text, ephemeral=True)
            session = self.game_controller.get_session(channel_id)
            if session is not None:
                await self.refresh_game_message(session, channel_id)

    async def handle_pause(self, interaction: discord.Interaction):
        """Handle /pause command"""
        channel_id = interaction.channel_id
        result = self.game_controller.pause_game(channel_id)
        if result['success']:
            embed = discord.Embed(
                title="⏸️ Quiz Paused",
                description=f"{result['message']}. Use `/resume` to continue.",
                color=0xffaa00
            )
            await interaction.response.send_message(embed=embed)
            await self.refresh_game_message(self.game_controller.get_session(channel_id), channel_id)
        else:
            await self.send_info_response(interaction, result['user_message'])

    async def handle_resume(self, interaction: discord.Interaction):
        """Handle /resume command"""
        channel_id = interaction.channel_id
        result = self.game_controller.resume_game(channel_id)
        if result['success']:
            embed = discord.Embed(
                title="▶️ Quiz Resumed",
                description=result['message'],
                color=0x00ff00
            )
            await interaction.response.send_message(embed=embed)
            await self.refresh_game_message(self.game_controller.get_session(channel_id), channel_id)
        else:
            await self.send_info_response(interaction, result['user_message'])

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        channel_id = interaction.channel_id
        result = await self.game_controller.stop_game(channel_id)
        self._game_messages.pop(channel_id, None)
        if result['success']:
            info = result['session_info']
            embed = discord.Embed(
                title="⏹️ Quiz Stopped",
                description=f"**{info['title']}** stopped after {info['solved'] + info['failed']} questions",
                color=0xff6600
            )
            await interaction.response.send_message(embed=embed)
        else:
            await self.send_info_response(interaction, result['user_message'])

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        status = self.game_controller.get_status(interaction.channel_id)
        if status is None:
            await self.send_info_response(interaction, "No quiz in this channel. Use `/play` to start one.")
            return

        embed = discord.Embed(
            title=f"📊 {status['title']}",
            description=f"Phase: **{status['phase']}**",
            color=0x6699ff
        )
        embed.add_field(
            name="Progress",
            value=(
                f"Question {status['item_number']}/{status['total_items']}\n"
                f"Solved: {status['solved']} · Failed: {status['failed']} · Left: {status['remaining']}"
            ),
            inline=False
        )
        embed.add_field(name="Time Remaining", value=f"{status['time_remaining']}s", inline=True)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def handle_stats(self, interaction: discord.Interaction):
        """Handle /stats command"""
        embed = discord.Embed(
            title=f"🏅 Results for {display_nickname(self.store)}",
            color=0x6699ff
        )
        for definition in QUIZ_DEFINITIONS.values():
            embed.add_field(
                name=f"{definition.title} (`{definition.key}`)",
                value=f"🏆 {self.store.get_wins(definition.quiz_id)}  💥 {self.store.get_fails(definition.quiz_id)}",
                inline=True
            )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def handle_nickname(self, interaction: discord.Interaction, name: str):
        """Handle /nickname command"""
        if not name.strip():
            await self.send_error_response(interaction, "Nickname cannot be empty.", "❌ Invalid Nickname")
            return
        self.store.set_nickname(name)
        await interaction.response.send_message(
            f"{welcome_message()} **{display_nickname(self.store)}**!", ephemeral=True
        )

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xff0000
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        """Send formatted info response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0x6699ff
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send info response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting BrainStress bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
