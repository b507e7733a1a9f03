"""
Test fixtures and sample data for BrainStress tests.
"""
import asyncio
import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence
from unittest.mock import Mock, AsyncMock
import discord

from brainstress.generator import MATH_CATEGORY, MATH_ITEM_TIME
from brainstress.models import (
    AnswerKind, Difficulty, GameSettings, Quiz, QuizItem, QuizItemAnswer
)


class TestFixtures:
    """Centralized test fixtures for all test modules."""

    @staticmethod
    def create_text_item(text: str = "2 + 2", answer: str = "4") -> QuizItem:
        """Create a text item with the standard math time budget."""
        return QuizItem(
            text=text,
            time=QuizItem.time_budget(MATH_ITEM_TIME),
            answer=QuizItemAnswer(kind=AnswerKind.TEXT, values=(answer,)),
            category=MATH_CATEGORY
        )

    @staticmethod
    def create_choice_item(
        kind: AnswerKind = AnswerKind.SINGLE_CHOICE,
        values: Sequence[str] = ("Paris",),
        options: Sequence[str] = ("London", "Paris", "Berlin", "Madrid"),
        text: str = "Pick the right option"
    ) -> QuizItem:
        return QuizItem(
            text=text,
            time=QuizItem.time_budget(MATH_ITEM_TIME),
            answer=QuizItemAnswer(kind=kind, values=tuple(values)),
            category=MATH_CATEGORY,
            options=tuple(options)
        )

    @staticmethod
    def create_sample_items() -> List[QuizItem]:
        return [
            TestFixtures.create_text_item("2 + 2", "4"),
            TestFixtures.create_text_item("3 + 5", "8"),
            TestFixtures.create_text_item("9 + 1", "10"),
        ]

    @staticmethod
    def create_sample_quiz(
        items: Optional[List[QuizItem]] = None,
        difficulty: Difficulty = Difficulty.EASY,
        quiz_id: str = "math-test"
    ) -> Quiz:
        """Create a quiz over the given items (three text items by default)."""
        return Quiz(
            title="Additions",
            items=TestFixtures.create_sample_items() if items is None else items,
            category=MATH_CATEGORY,
            difficulty=difficulty,
            id=quiz_id
        )

    @staticmethod
    def create_game_settings(
        warmup_seconds: int = 3,
        default_item_seconds: int = 5,
        tick_interval: float = 1.0,
        question_count: Optional[int] = None
    ) -> GameSettings:
        return GameSettings(
            warmup_seconds=warmup_seconds,
            feedback_seconds=2,
            default_item_seconds=default_item_seconds,
            tick_interval=tick_interval,
            question_count=question_count
        )

    @staticmethod
    def create_config_dict(stats_file: str = "./data/stats.json") -> Dict:
        """Create a config.json-shaped dictionary."""
        return {
            "bot": {"token": "test-token", "command_prefix": "!"},
            "game": {
                "warmup_seconds": 2,
                "feedback_seconds": 1,
                "default_item_seconds": 6,
                "tick_interval": 0.5,
                "question_count": 4
            },
            "storage": {"stats_file": stats_file},
            "logging": {"level": "DEBUG", "log_directory": "./logs/"}
        }

    @staticmethod
    def write_stats_file(path: Path, data) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)
        return path


class MockDiscordObjects:
    """Mock Discord objects for testing bot functionality."""

    @staticmethod
    def create_mock_interaction(channel_id: int = 12345, user_id: int = 67890) -> Mock:
        """Create mock Discord interaction."""
        interaction = Mock(spec=discord.Interaction)
        interaction.channel_id = channel_id
        interaction.user = Mock()
        interaction.user.id = user_id
        interaction.response = Mock()
        interaction.response.is_done.return_value = False
        interaction.response.send_message = AsyncMock()
        interaction.followup = Mock()
        interaction.followup.send = AsyncMock()
        interaction.original_response = AsyncMock(return_value=MockDiscordObjects.create_mock_message())
        return interaction

    @staticmethod
    def create_mock_message(message_id: int = 11111, content: str = "Test message") -> Mock:
        """Create mock Discord message."""
        message = Mock(spec=discord.Message)
        message.id = message_id
        message.content = content
        message.edit = AsyncMock()
        message.delete = AsyncMock()
        return message


class AsyncTestHelpers:
    """Helper functions for async testing."""

    @staticmethod
    async def run_with_timeout(coro, timeout: float = 5.0):
        """Run coroutine with timeout."""
        return await asyncio.wait_for(coro, timeout=timeout)

    @staticmethod
    async def wait_until(predicate, timeout: float = 2.0, step: float = 0.005) -> bool:
        """Poll ``predicate`` until it holds or the timeout passes."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            if predicate():
                return True
            await asyncio.sleep(step)
        return predicate()
