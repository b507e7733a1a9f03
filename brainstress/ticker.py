"""
Periodic tick subscription driving a game session on the asyncio loop.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from .session import GameSession

# Set up logger for ticker operations
logger = logging.getLogger(__name__)

TickCallback = Callable[[GameSession], Awaitable[Any]]


class TickerLifecycleLogger:
    """Structured logging for ticker lifecycle events."""

    @staticmethod
    def log_ticker_start(channel_id: str, interval: float) -> None:
        logger.info(
            f"Ticker lifecycle: START - Channel {channel_id}, Interval {interval:.2f}s",
            extra={
                'event_type': 'ticker_start',
                'channel_id': channel_id,
                'interval': interval,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_ticker_completion(channel_id: str, completion_type: str, ticks: int) -> None:
        """Log ticker completion (session end or cancellation)."""
        logger.info(
            f"Ticker lifecycle: COMPLETED - Channel {channel_id}, Type {completion_type}, Ticks {ticks}",
            extra={
                'event_type': 'ticker_completed',
                'channel_id': channel_id,
                'completion_type': completion_type,
                'ticks': ticks,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_ticker_error(channel_id: str, error_type: str, error_message: str, operation: str) -> None:
        logger.error(
            f"Ticker lifecycle: ERROR - Channel {channel_id}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'ticker_error',
                'channel_id': channel_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


class SessionTicker:
    """Owned, cancelable subscription emitting one tick per interval to a session."""

    def __init__(
        self,
        session: GameSession,
        interval: float = 1.0,
        channel_id: Optional[str] = None,
        on_tick: Optional[TickCallback] = None,
        on_finish: Optional[TickCallback] = None
    ):
        """
        Initialize the ticker.

        Args:
            session: Session receiving the ticks
            interval: Seconds between ticks
            channel_id: Identifier used in log records
            on_tick: Awaited after every tick with the session
            on_finish: Awaited once when the session reaches its end phase
        """
        self.session = session
        self.interval = interval
        self.channel_id = channel_id or session.quiz.id
        self.on_tick = on_tick
        self.on_finish = on_finish
        self._task: Optional[asyncio.Task] = None
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Create the background task. Must be called from a running loop."""
        if self.is_running:
            return self._task
        self.session.begin()
        TickerLifecycleLogger.log_ticker_start(self.channel_id, self.interval)
        self._task = asyncio.create_task(self._run())
        return self._task

    async def _run(self) -> None:
        try:
            while not self.session.is_finished:
                await asyncio.sleep(self.interval)
                self.session.tick()
                self._ticks += 1
                await self._run_callback(self.on_tick, "on_tick")

            TickerLifecycleLogger.log_ticker_completion(self.channel_id, "session_end", self._ticks)
            await self._run_callback(self.on_finish, "on_finish")

        except asyncio.CancelledError:
            TickerLifecycleLogger.log_ticker_completion(self.channel_id, "cancelled", self._ticks)
            raise
        except Exception as e:
            TickerLifecycleLogger.log_ticker_error(self.channel_id, "tick_execution_error", str(e), "_run")
            raise

    async def _run_callback(self, callback: Optional[TickCallback], operation: str) -> None:
        """Await a callback; its failures are logged so the session keeps ticking."""
        if callback is None:
            return
        try:
            await callback(self.session)
        except Exception as e:
            TickerLifecycleLogger.log_ticker_error(self.channel_id, type(e).__name__, str(e), operation)

    def cancel(self) -> None:
        """Request cancellation of the tick task."""
        if self._task is not None and not self._task.done():
            logger.debug(f"Cancelling ticker task for channel {self.channel_id}")
            self._task.cancel()

    async def stop(self) -> None:
        """Cancel the tick task and wait until it has released."""
        task = self._task
        self.cancel()
        if task is None or task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            TickerLifecycleLogger.log_ticker_error(self.channel_id, "stop_error", str(e), "stop")
