"""
Unit tests for GameController session management.
"""
import asyncio
import random
import unittest
from unittest.mock import AsyncMock, patch

from brainstress.config_manager import ConfigManager
from brainstress.game_controller import (
    GameController, SessionConflictError, SessionNotFoundError, UnknownQuizError
)
from brainstress.models import End, Paused, Playing, WarmUp
from brainstress.stats_store import MemoryStatsStore
from tests.test_fixtures import AsyncTestHelpers


class TestGameController(unittest.TestCase):
    """Test cases for synchronous controller operations."""

    def setUp(self):
        self.store = MemoryStatsStore()
        self.config_manager = ConfigManager()
        self.config_manager.set_warmup_seconds(0)
        self.controller = GameController(self.store, self.config_manager, rng=random.Random(3))
        self.channel_id = 12345

    def _start_playing(self, quiz_key="level1"):
        self.controller.start_game(self.channel_id, quiz_key)
        session = self.controller.get_session(self.channel_id)
        session.tick()
        return session

    def test_start_game(self):
        result = self.controller.start_game(self.channel_id, "level1")

        self.assertTrue(result['success'])
        self.assertEqual(result['message'], "Started quiz 'Additions' with 20 questions")
        self.assertEqual(result['session_info']['quiz_id'], "math-level1")
        self.assertTrue(self.controller.has_active_session(self.channel_id))
        self.assertIsInstance(self.controller.get_session(self.channel_id).game_state, WarmUp)

    def test_question_count_setting_applies(self):
        self.config_manager.set_question_count(4)
        self.controller.start_game(self.channel_id, "level1")
        self.assertEqual(self.controller.get_session(self.channel_id).total_items, 4)

    def test_start_game_conflict(self):
        self.controller.start_game(self.channel_id, "level1")
        result = self.controller.start_game(self.channel_id, "level2")

        self.assertFalse(result['success'])
        self.assertIn("already running", result['user_message'])

        with self.assertRaises(SessionConflictError):
            self.controller.create_session(self.channel_id, "level2")

    def test_start_game_unknown_quiz(self):
        result = self.controller.start_game(self.channel_id, "level99")

        self.assertFalse(result['success'])
        self.assertEqual(result['operation'], "start_game")
        self.assertIn("level1", result['user_message'])
        with self.assertRaises(UnknownQuizError):
            self.controller.create_session(self.channel_id, "level99")

    def test_finished_session_can_be_replaced(self):
        self.controller.start_game(self.channel_id, "dummy")
        session = self.controller.get_session(self.channel_id)
        session.end()

        result = self.controller.start_game(self.channel_id, "level2")
        self.assertTrue(result['success'])
        self.assertIsNot(self.controller.get_session(self.channel_id), session)

    def test_channels_are_independent(self):
        self.controller.start_game(1, "level1")
        self.controller.start_game(2, "level2")

        sessions = self.controller.get_all_active_sessions()
        self.assertEqual(set(sessions), {1, 2})
        self.assertEqual(sessions[2]['title'], "Subtractions")

    def test_pause_and_resume(self):
        session = self._start_playing()

        result = self.controller.pause_game(self.channel_id)
        self.assertTrue(result['success'])
        self.assertEqual(result['message'], "Game paused")
        self.assertIsInstance(session.game_state, Paused)

        self.assertEqual(self.controller.pause_game(self.channel_id)['message'], "Game is already paused")

        result = self.controller.resume_game(self.channel_id)
        self.assertEqual(result['message'], "Game resumed")
        self.assertIsInstance(session.game_state, Playing)

        self.assertEqual(self.controller.resume_game(self.channel_id)['message'], "Game is not paused")

    def test_pause_during_warmup_rejected(self):
        self.config_manager.set_warmup_seconds(3)
        self.controller.start_game(self.channel_id, "level1")

        result = self.controller.pause_game(self.channel_id)
        self.assertFalse(result['success'])
        self.assertIn("user_message", result)

    def test_operations_without_session(self):
        for operation in (self.controller.pause_game, self.controller.resume_game, self.controller.confirm_answers):
            result = operation(self.channel_id)
            self.assertFalse(result['success'])
            self.assertIn("No running game", result['user_message'])

        result = self.controller.submit_answer(self.channel_id, "4")
        self.assertFalse(result['success'])
        self.assertIsNone(self.controller.get_status(self.channel_id))

        with self.assertRaises(SessionNotFoundError):
            self.controller._require_session(self.channel_id)

    def test_submit_correct_and_wrong_answers(self):
        session = self._start_playing()

        expected = session.quiz_item.answer.first
        result = self.controller.submit_answer(self.channel_id, expected)
        self.assertTrue(result['success'])
        self.assertEqual(result['result'], "solved")
        self.assertIsNone(result['expected'])

        expected = session.quiz_item.answer.first
        result = self.controller.submit_answer(self.channel_id, "not a number")
        self.assertEqual(result['result'], "failed")
        self.assertEqual(result['expected'], expected)
        self.assertEqual(result['session_info']['solved'], 1)
        self.assertEqual(result['session_info']['failed'], 1)

    def test_submit_while_paused_is_ignored(self):
        self._start_playing()
        self.controller.pause_game(self.channel_id)

        result = self.controller.submit_answer(self.channel_id, "1")
        self.assertFalse(result['success'])
        self.assertEqual(result['result'], "ignored")

    def test_confirm_on_text_item_is_ignored(self):
        self._start_playing()
        result = self.controller.confirm_answers(self.channel_id)
        self.assertEqual(result['result'], "ignored")

    def test_playing_dummy_records_win(self):
        session = self._start_playing("dummy")
        self.controller.submit_answer(self.channel_id, session.quiz_item.answer.first)

        self.assertEqual(session.game_state, End(win=True))
        self.assertFalse(self.controller.has_active_session(self.channel_id))
        self.assertEqual(self.store.get_wins("math-dummy"), 1)
        self.assertEqual(self.controller.get_status(self.channel_id)['phase'], "end")

    def test_cleanup_finished_sessions(self):
        self.controller.start_game(1, "dummy")
        self.controller.start_game(2, "level1")
        self.controller.get_session(1).end()

        self.assertEqual(self.controller.cleanup_finished_sessions(), 1)
        self.assertIsNone(self.controller.get_session(1))
        self.assertIsNotNone(self.controller.get_session(2))

    def test_list_quizzes(self):
        self.assertEqual(len(self.controller.list_quizzes()), 4)
        self.assertEqual(len(self.controller.list_quizzes("math")), 4)
        self.assertEqual(self.controller.list_quizzes("History"), [])

    def test_attach_ticker_without_session(self):
        self.assertIsNone(self.controller.attach_ticker(self.channel_id))

    def test_unexpected_error_is_wrapped(self):
        with patch('brainstress.catalog.build_quiz', side_effect=RuntimeError("boom")):
            result = self.controller.start_game(self.channel_id, "level1")

        self.assertFalse(result['success'])
        self.assertEqual(result['error'], "boom")
        self.assertIn("unexpected error", result['user_message'])


class TestGameControllerAsync(unittest.IsolatedAsyncioTestCase):
    """Test cases for ticker-driven controller operations."""

    async def asyncSetUp(self):
        self.store = MemoryStatsStore()
        self.config_manager = ConfigManager()
        self.config_manager.set_warmup_seconds(0)
        self.config_manager.set_tick_interval(0.1)
        self.controller = GameController(self.store, self.config_manager)
        self.channel_id = 12345

    async def asyncTearDown(self):
        await self.controller.shutdown()

    async def test_attach_ticker_runs_session(self):
        self.controller.start_game(self.channel_id, "level1")
        on_tick = AsyncMock()

        ticker = self.controller.attach_ticker(self.channel_id, on_tick=on_tick)
        self.assertIsNotNone(ticker)
        self.assertIs(self.controller.get_ticker(self.channel_id), ticker)
        self.assertIs(self.controller.attach_ticker(self.channel_id), ticker)

        session = self.controller.get_session(self.channel_id)
        reached = await AsyncTestHelpers.wait_until(lambda: isinstance(session.game_state, Playing))
        self.assertTrue(reached)
        on_tick.assert_awaited_with(session)
        self.assertTrue(self.controller.get_status(self.channel_id)['ticker_running'])

    async def test_stop_game_releases_ticker(self):
        self.controller.start_game(self.channel_id, "level1")
        ticker = self.controller.attach_ticker(self.channel_id)

        result = await self.controller.stop_game(self.channel_id)

        self.assertTrue(result['success'])
        self.assertEqual(result['session_info']['title'], "Additions")
        self.assertFalse(ticker.is_running)
        self.assertIsNone(self.controller.get_session(self.channel_id))
        self.assertIsNone(self.controller.get_ticker(self.channel_id))
        self.assertEqual(self.store.get_fails("math-level1"), 0)

    async def test_stop_game_without_session(self):
        result = await self.controller.stop_game(self.channel_id)
        self.assertFalse(result['success'])
        self.assertEqual(result['message'], "No game to stop in this channel")

    async def test_replacing_finished_session_cancels_old_ticker(self):
        self.controller.start_game(self.channel_id, "dummy")
        on_finish = AsyncMock()
        old_ticker = self.controller.attach_ticker(self.channel_id, on_finish=on_finish)
        session = self.controller.get_session(self.channel_id)
        await AsyncTestHelpers.wait_until(lambda: isinstance(session.game_state, Playing))

        self.controller.submit_answer(self.channel_id, session.quiz_item.answer.first)
        self.assertTrue(session.is_finished)
        result = self.controller.start_game(self.channel_id, "dummy")
        self.assertTrue(result['success'])

        released = await AsyncTestHelpers.wait_until(lambda: not old_ticker.is_running)
        self.assertTrue(released)
        await asyncio.sleep(0.25)
        on_finish.assert_not_awaited()
        self.assertIsNot(self.controller.get_session(self.channel_id), session)

    async def test_shutdown_drops_finished_sessions(self):
        self.controller.start_game(1, "dummy")
        self.controller.start_game(2, "level1")
        self.controller.get_session(1).end()

        await self.controller.shutdown()

        self.assertIsNone(self.controller.get_session(1))
        self.assertIsNotNone(self.controller.get_session(2))

    async def test_shutdown_stops_all_tickers(self):
        self.controller.start_game(1, "level1")
        self.controller.start_game(2, "level2")
        tickers = [self.controller.attach_ticker(1), self.controller.attach_ticker(2)]

        await self.controller.shutdown()

        self.assertTrue(all(not ticker.is_running for ticker in tickers))
        self.assertIsNone(self.controller.get_ticker(1))


if __name__ == '__main__':
    unittest.main()
