"""
Game controller for the BrainStress quiz bot.
Manages one game session and its ticker per Discord channel.
"""
import logging
import random
import time
from typing import Any, Dict, List, Optional

from . import catalog
from .config_manager import ConfigManager
from .models import Paused
from .session import GameSession
from .stats_store import StatsStore
from .ticker import SessionTicker, TickCallback


class GameControllerError(Exception):
    """Base exception for game controller errors."""
    pass


class SessionConflictError(GameControllerError):
    """Raised when a game is already running in the channel."""
    pass


class SessionNotFoundError(GameControllerError):
    """Raised when operating on a channel without a running game."""
    pass


class UnknownQuizError(GameControllerError):
    """Raised when the requested quiz is not in the catalog."""
    pass


class GameController:
    """
    Orchestrates game sessions across Discord channels.

    Each channel has at most one running session. Finished sessions stay
    available for status queries until replaced or cleaned up.
    """

    def __init__(self, store: StatsStore, config_manager: ConfigManager, rng: Optional[random.Random] = None):
        """
        Initialize the game controller.

        Args:
            store: Persistence collaborator handed to every session
            config_manager: Source of game settings
            rng: Random source for quiz generation
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.config_manager = config_manager
        self._rng = rng or random.Random()

        self._sessions: Dict[int, GameSession] = {}
        self._tickers: Dict[int, SessionTicker] = {}

        self.logger.info("GameController initialized")

    # Session registry

    def get_session(self, channel_id: int) -> Optional[GameSession]:
        return self._sessions.get(channel_id)

    def has_active_session(self, channel_id: int) -> bool:
        """
        Check if a channel has a session that has not ended.

        Args:
            channel_id: Discord channel identifier

        Returns:
            True if channel has a running session, False otherwise
        """
        session = self._sessions.get(channel_id)
        return session is not None and not session.is_finished

    def create_session(self, channel_id: int, quiz_key: str) -> GameSession:
        """
        Build the quiz and register a new session for the channel.

        Raises:
            SessionConflictError: If a session is still running in the channel
            UnknownQuizError: If the quiz key is not in the catalog
        """
        if self.has_active_session(channel_id):
            raise SessionConflictError(f"Game already running in channel {channel_id}")

        if not catalog.quiz_exists(quiz_key):
            raise UnknownQuizError(f"Quiz '{quiz_key}' not found")

        settings = self.config_manager.get_game_settings()
        quiz = catalog.build_quiz(quiz_key, rng=self._rng, question_count=settings.question_count)
        session = GameSession(quiz, self.store, settings)

        # A finished session may still hold a ticker sleeping until its next tick
        stale_ticker = self._tickers.pop(channel_id, None)
        if stale_ticker is not None:
            stale_ticker.cancel()
        self._sessions[channel_id] = session

        self.logger.info(
            f"Created game session for channel {channel_id}: quiz='{quiz_key}', items={len(quiz.items)}",
            extra={
                'event_type': 'session_created',
                'channel_id': channel_id,
                'quiz_id': quiz.id,
                'timestamp': time.time()
            }
        )
        return session

    def attach_ticker(
        self,
        channel_id: int,
        on_tick: Optional[TickCallback] = None,
        on_finish: Optional[TickCallback] = None
    ) -> Optional[SessionTicker]:
        """
        Start ticking the channel's session. Must be called from a running loop.

        Returns:
            The started ticker, or None if the channel has no running session
        """
        session = self._sessions.get(channel_id)
        if session is None or session.is_finished:
            return None

        existing = self._tickers.get(channel_id)
        if existing is not None and existing.is_running:
            self.logger.warning(f"Ticker already running for channel {channel_id}")
            return existing

        ticker = SessionTicker(
            session,
            interval=session.settings.tick_interval,
            channel_id=str(channel_id),
            on_tick=on_tick,
            on_finish=on_finish
        )
        self._tickers[channel_id] = ticker
        ticker.start()
        return ticker

    def get_ticker(self, channel_id: int) -> Optional[SessionTicker]:
        return self._tickers.get(channel_id)

    def cleanup_finished_sessions(self) -> int:
        """
        Drop sessions that reached their end phase.

        Returns:
            Number of sessions cleaned up
        """
        finished = [channel_id for channel_id, session in self._sessions.items() if session.is_finished]
        for channel_id in finished:
            del self._sessions[channel_id]
            ticker = self._tickers.pop(channel_id, None)
            if ticker is not None:
                ticker.cancel()

        if finished:
            self.logger.info(f"Cleaned up {len(finished)} finished sessions")
        return len(finished)

    def _require_session(self, channel_id: int) -> GameSession:
        session = self._sessions.get(channel_id)
        if session is None or session.is_finished:
            raise SessionNotFoundError(f"No running game in channel {channel_id}")
        return session

    # Public operations returning result dictionaries

    def start_game(self, channel_id: int, quiz_key: str) -> Dict[str, Any]:
        """
        Start a game with error handling.

        Args:
            channel_id: Discord channel identifier
            quiz_key: Catalog key of the quiz to play

        Returns:
            Dictionary with operation results and error information
        """
        try:
            session = self.create_session(channel_id, quiz_key)
            return {
                'success': True,
                'message': f"Started quiz '{session.quiz.title}' with {session.total_items} questions",
                'session_info': session.progress()
            }
        except Exception as e:
            return self._handle_session_error(channel_id, e, "start_game")

    def pause_game(self, channel_id: int) -> Dict[str, Any]:
        try:
            session = self._require_session(channel_id)
            was_paused = isinstance(session.game_state, Paused)
            session.pause()
            if not isinstance(session.game_state, Paused):
                return {
                    'success': False,
                    'message': "Game can only be paused while a question is active",
                    'user_message': "ℹ️ The game can only be paused while a question is active.",
                    'session_info': session.progress()
                }
            return {
                'success': True,
                'message': "Game is already paused" if was_paused else "Game paused",
                'session_info': session.progress()
            }
        except Exception as e:
            return self._handle_session_error(channel_id, e, "pause_game")

    def resume_game(self, channel_id: int) -> Dict[str, Any]:
        try:
            session = self._require_session(channel_id)
            was_paused = isinstance(session.game_state, Paused)
            session.resume()
            return {
                'success': True,
                'message': "Game resumed" if was_paused else "Game is not paused",
                'session_info': session.progress()
            }
        except Exception as e:
            return self._handle_session_error(channel_id, e, "resume_game")

    async def stop_game(self, channel_id: int) -> Dict[str, Any]:
        """
        Stop a game and release its ticker. The attempt is not scored.

        Args:
            channel_id: Discord channel identifier

        Returns:
            Dictionary with operation results and final session info
        """
        session = self._sessions.get(channel_id)
        if session is None:
            return {
                'success': False,
                'message': "No game to stop in this channel",
                'user_message': "ℹ️ No game found in this channel"
            }

        session_info = session.progress()
        ticker = self._tickers.pop(channel_id, None)
        if ticker is not None:
            await ticker.stop()
        del self._sessions[channel_id]

        self.logger.info(
            f"Stopped game session for channel {channel_id}",
            extra={
                'event_type': 'session_stopped',
                'channel_id': channel_id,
                'ticker_released': ticker is not None,
                'timestamp': time.time()
            }
        )
        return {
            'success': True,
            'message': "Game stopped",
            'session_info': session_info
        }

    def submit_answer(self, channel_id: int, value: str) -> Dict[str, Any]:
        """
        Forward an answer to the channel's session.

        Returns:
            Dictionary with 'result' set to 'solved', 'failed', 'buffered'
            or 'ignored' when the session was not accepting answers
        """
        try:
            session = self._require_session(channel_id)
            solved_before = len(session.items_solved)
            failed_before = len(session.items_failed)
            buffered_before = len(session.answers)
            item = session.quiz_item

            session.submit_answer(value)

            if len(session.items_solved) > solved_before:
                result = 'solved'
            elif len(session.items_failed) > failed_before:
                result = 'failed'
            elif len(session.answers) > buffered_before:
                result = 'buffered'
            else:
                result = 'ignored'

            return {
                'success': result != 'ignored',
                'result': result,
                'expected': item.answer.first if item is not None and result == 'failed' else None,
                'session_info': session.progress()
            }
        except Exception as e:
            return self._handle_session_error(channel_id, e, "submit_answer")

    def confirm_answers(self, channel_id: int) -> Dict[str, Any]:
        try:
            session = self._require_session(channel_id)
            solved_before = len(session.items_solved)
            failed_before = len(session.items_failed)

            session.confirm_answers()

            if len(session.items_solved) > solved_before:
                result = 'solved'
            elif len(session.items_failed) > failed_before:
                result = 'failed'
            else:
                result = 'ignored'
            return {
                'success': result != 'ignored',
                'result': result,
                'session_info': session.progress()
            }
        except Exception as e:
            return self._handle_session_error(channel_id, e, "confirm_answers")

    def get_status(self, channel_id: int) -> Optional[Dict[str, Any]]:
        session = self._sessions.get(channel_id)
        if session is None:
            return None
        status = session.progress()
        ticker = self._tickers.get(channel_id)
        status['ticker_running'] = ticker is not None and ticker.is_running
        return status

    def get_all_active_sessions(self) -> Dict[int, Dict[str, Any]]:
        return {
            channel_id: session.progress()
            for channel_id, session in self._sessions.items()
            if not session.is_finished
        }

    def list_quizzes(self, category_name: Optional[str] = None) -> List[catalog.QuizDefinition]:
        category = catalog.get_category(category_name) if category_name else None
        if category_name and category is None:
            return []
        return catalog.available_quizzes(category)

    async def shutdown(self) -> None:
        """Release every ticker; used when the bot closes."""
        for channel_id in list(self._tickers.keys()):
            ticker = self._tickers.pop(channel_id)
            await ticker.stop()
        self.cleanup_finished_sessions()
        self.logger.info("GameController shut down")

    # Error handling

    def _handle_session_error(self, channel_id: int, error: Exception, operation: str) -> Dict[str, Any]:
        """
        Log an error and convert it into a result dictionary.

        Args:
            channel_id: Discord channel identifier
            error: The exception that occurred
            operation: Description of the operation that failed
        """
        if isinstance(error, GameControllerError):
            self.logger.warning(f"{operation} rejected for channel {channel_id}: {error}")
        else:
            self.logger.error(f"Error in {operation} for channel {channel_id}: {error}", exc_info=True)

        return {
            'success': False,
            'error': str(error),
            'operation': operation,
            'user_message': self._get_user_friendly_error_message(error, operation)
        }

    def _get_user_friendly_error_message(self, error: Exception, operation: str) -> str:
        if isinstance(error, SessionConflictError):
            return "❌ A game is already running in this channel. Please stop it first with `/stop`."

        elif isinstance(error, SessionNotFoundError):
            return "❌ No running game in this channel. Start one with `/play`."

        elif isinstance(error, UnknownQuizError):
            available = ", ".join(catalog.QUIZ_DEFINITIONS.keys())
            return f"❌ Quiz not found. Available quizzes: {available}"

        else:
            return f"❌ An unexpected error occurred during {operation}. Please try again."
