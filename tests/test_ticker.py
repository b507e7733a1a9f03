"""
Unit tests for SessionTicker lifecycle management.
"""
import asyncio
import unittest
from unittest.mock import AsyncMock, patch

from brainstress.models import End, Playing
from brainstress.session import GameSession
from brainstress.stats_store import MemoryStatsStore
from brainstress.ticker import SessionTicker, TickerLifecycleLogger
from tests.test_fixtures import TestFixtures, AsyncTestHelpers


class TestSessionTicker(unittest.IsolatedAsyncioTestCase):
    """Test cases for the asyncio tick task."""

    def _session(self, items=None, warmup_seconds=0, item_seconds=5):
        return GameSession(
            TestFixtures.create_sample_quiz(items=items),
            MemoryStatsStore(),
            TestFixtures.create_game_settings(warmup_seconds=warmup_seconds, default_item_seconds=item_seconds)
        )

    async def test_ticks_until_session_ends(self):
        session = self._session(items=[TestFixtures.create_text_item()])
        on_tick = AsyncMock()
        on_finish = AsyncMock()
        ticker = SessionTicker(session, interval=0.001, on_tick=on_tick, on_finish=on_finish)

        task = ticker.start()
        await AsyncTestHelpers.run_with_timeout(task, timeout=2.0)

        # One tick leaves warm-up, six exhaust the 5 second item budget
        self.assertEqual(session.game_state, End(win=False))
        self.assertEqual(ticker.ticks, 7)
        self.assertEqual(on_tick.await_count, 7)
        on_finish.assert_awaited_once_with(session)
        self.assertFalse(ticker.is_running)

    async def test_start_marks_session_begun(self):
        session = self._session()
        ticker = SessionTicker(session, interval=10)
        ticker.start()
        try:
            self.assertIsNotNone(session.started_at)
            self.assertTrue(ticker.is_running)
        finally:
            await ticker.stop()

    async def test_start_twice_returns_same_task(self):
        ticker = SessionTicker(self._session(), interval=10)
        first = ticker.start()
        second = ticker.start()
        try:
            self.assertIs(first, second)
        finally:
            await ticker.stop()

    async def test_stop_releases_task(self):
        session = self._session()
        ticker = SessionTicker(session, interval=0.01)
        ticker.start()
        reached = await AsyncTestHelpers.wait_until(lambda: isinstance(session.game_state, Playing))
        self.assertTrue(reached)

        await ticker.stop()
        self.assertFalse(ticker.is_running)

        ticks = ticker.ticks
        await asyncio.sleep(0.05)
        self.assertEqual(ticker.ticks, ticks)
        self.assertFalse(session.is_finished)

    async def test_stop_without_start(self):
        ticker = SessionTicker(self._session())
        await ticker.stop()
        self.assertFalse(ticker.is_running)

    async def test_paused_session_keeps_countdown(self):
        session = self._session()
        ticker = SessionTicker(session, interval=0.01)
        ticker.start()
        await AsyncTestHelpers.wait_until(lambda: isinstance(session.game_state, Playing))
        session.pause()
        frozen = session.time_remaining_item

        await asyncio.sleep(0.05)
        self.assertEqual(session.time_remaining_item, frozen)
        await ticker.stop()

    async def test_failing_on_tick_keeps_session_running(self):
        session = self._session(items=[TestFixtures.create_text_item()])
        on_tick = AsyncMock(side_effect=ConnectionResetError("connection lost"))
        on_finish = AsyncMock()
        ticker = SessionTicker(session, interval=0.001, channel_id="chan", on_tick=on_tick, on_finish=on_finish)

        with patch.object(TickerLifecycleLogger, 'log_ticker_error') as log_error:
            await AsyncTestHelpers.run_with_timeout(ticker.start(), timeout=2.0)

        self.assertEqual(session.game_state, End(win=False))
        self.assertEqual(on_tick.await_count, 7)
        on_finish.assert_awaited_once_with(session)
        self.assertEqual(log_error.call_count, 7)
        self.assertEqual(log_error.call_args[0][0], "chan")
        self.assertEqual(log_error.call_args[0][3], "on_tick")

    async def test_failing_on_finish_is_logged(self):
        session = self._session(items=[])
        on_finish = AsyncMock(side_effect=RuntimeError("render failed"))
        ticker = SessionTicker(session, interval=0.001, on_finish=on_finish)

        with patch.object(TickerLifecycleLogger, 'log_ticker_error') as log_error:
            task = ticker.start()
            await AsyncTestHelpers.run_with_timeout(task)

        self.assertIsNone(task.exception())
        self.assertTrue(session.is_finished)
        log_error.assert_called_once()
        self.assertEqual(log_error.call_args[0][1], "RuntimeError")


if __name__ == '__main__':
    unittest.main()
