"""
Game session state machine.

A session owns one attempt at a quiz. It is advanced by ``tick()`` (one call
per time unit) and by answers forwarded from the presentation layer. Every
operation declines to act on missing data instead of raising.
"""
import logging
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .generator import answers_match, normalize_answer
from .models import (
    AnswerKind, End, Feedback, GameSettings, GameState, Paused, Playing,
    Quiz, QuizItem, WarmUp
)
from .stats_store import StatsStore

Observer = Callable[["GameSession"], None]


class GameSession:
    """Drives one quiz attempt from warm-up to end and scores it."""

    def __init__(self, quiz: Quiz, store: StatsStore, settings: Optional[GameSettings] = None):
        """
        Initialize the session.

        Args:
            quiz: Quiz to play; the session keeps its own copies
            store: Persistence collaborator receiving the outcome
            settings: Timing configuration, defaults if None
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings or GameSettings()
        self.store = store

        self.original_quiz: Quiz = quiz.copy()
        self.quiz: Quiz = quiz.copy()
        self.quiz_item: Optional[QuizItem] = None
        self.quiz_item_number = 0

        self.items_solved: List[QuizItem] = []
        self.items_failed: List[QuizItem] = []
        self.answers: List[str] = []

        self.game_state: GameState = WarmUp()

        self.time_remaining_warmup = self.settings.warmup_seconds
        self.time_remaining_item = self.settings.default_item_seconds
        self.time_remaining_feedback = self.settings.feedback_seconds

        self.started_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None

        # Original item index -> solved?
        self._outcomes: Dict[int, bool] = {}
        self._observers: List[Observer] = []

    # Observation

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """
        Register a callback run with the session after each state change.

        Returns:
            Callable removing the observer again
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        for observer in list(self._observers):
            try:
                observer(self)
            except Exception as e:
                self.logger.error(
                    f"Session observer failed for quiz {self.quiz.id}: {e}",
                    exc_info=True,
                    extra={
                        'event_type': 'observer_error',
                        'quiz_id': self.quiz.id,
                        'timestamp': time.time()
                    }
                )

    def _set_state(self, state: GameState, reason: Optional[str] = None) -> None:
        previous = self.game_state
        self.game_state = state
        self.logger.info(
            f"Session state: {previous.phase.value} -> {state.phase.value}"
            + (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'session_state_transition',
                'quiz_id': self.quiz.id,
                'from_state': previous.phase.value,
                'to_state': state.phase.value,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    # Tick handling

    def begin(self) -> None:
        """Mark the session as started; ticks drive it from here on."""
        if self.started_at is None:
            self.started_at = datetime.now()
            self.logger.info(f"Session started for quiz '{self.quiz.title}' ({len(self.original_quiz.items)} items)")
        self._notify()

    def tick(self) -> None:
        """Advance the session by one time unit."""
        state = self.game_state
        if isinstance(state, WarmUp):
            self._tick_warmup()
        elif isinstance(state, Playing):
            self._tick_playing()
        elif isinstance(state, Paused):
            return
        elif isinstance(state, Feedback):
            # Feedback display hook; not wired to auto-advance
            return
        else:
            return
        self._notify()

    def _tick_warmup(self) -> None:
        if self.time_remaining_warmup > 0:
            self.time_remaining_warmup -= 1
            return
        self.start()

    def _tick_playing(self) -> None:
        if self.time_remaining_item > 0:
            self.time_remaining_item -= 1
            return
        self.logger.debug(f"Item {self.quiz_item_number} timed out")
        if self.quiz_item is not None and self.quiz_item.answer.kind == AnswerKind.MULTIPLE_CHOICE:
            self._check_multiple_choice()
        else:
            self.check()
        self.remove()
        self.load_next()

    # Quiz operations

    def start(self) -> None:
        """Leave warm-up: present the first item, or end an empty quiz."""
        if not isinstance(self.game_state, WarmUp):
            return
        self.time_remaining_warmup = 0
        self.load_next()
        if isinstance(self.game_state, End):
            return
        self._set_state(Playing(), "warm-up finished")

    def end(self) -> None:
        """Score the attempt, report it to the store and enter the end phase."""
        if isinstance(self.game_state, End):
            return
        win = len(self.items_solved) == len(self.original_quiz.items)
        if win:
            self.store.increment_win(self.quiz.id)
        else:
            self.store.increment_fail(self.quiz.id)
        self.quiz_item = None
        self.answers.clear()
        self.ended_at = datetime.now()
        self._set_state(End(win=win), "quiz finished")

    def pause(self) -> None:
        """Freeze the item countdown until ``resume``."""
        if isinstance(self.game_state, Playing):
            self._set_state(Paused(), "pause requested")
            self._notify()

    def resume(self) -> None:
        """Continue play with the countdown where it was frozen."""
        if isinstance(self.game_state, Paused):
            self._set_state(Playing(), "resume requested")
            self._notify()

    def load_next(self) -> None:
        """Present the front item of the working quiz, or end when none remain."""
        if not self.quiz.items:
            self.end()
            return
        self.quiz_item = self.quiz.items[0]
        budget = self.quiz_item.time_for(self.quiz.difficulty)
        self.time_remaining_item = budget if budget is not None else self.settings.default_item_seconds
        self.quiz_item_number += 1

    def remove(self) -> None:
        """Drop the front item of the working quiz."""
        if self.quiz.items:
            self.quiz.items.pop(0)

    def _record(self, item: QuizItem, solved: bool) -> None:
        self._outcomes[self.current_index] = solved
        if solved:
            self.items_solved.append(item)
        else:
            self.items_failed.append(item)
        self.answers.clear()
        self.logger.debug(f"Item '{item.text}' {'solved' if solved else 'failed'}")

    def check(self) -> None:
        """
        Classify the active text or single-choice item against the first
        buffered answer. Multiple-choice items are left to ``confirm_answers``.
        """
        item = self.quiz_item
        if item is None:
            return
        if item.answer.kind not in (AnswerKind.TEXT, AnswerKind.SINGLE_CHOICE):
            return
        given = self.answers[0] if self.answers else None
        self._record(item, answers_match(given, item.answer.first))

    def _check_multiple_choice(self) -> None:
        item = self.quiz_item
        if item is None:
            return
        given = {normalize_answer(answer) for answer in self.answers}
        expected = {normalize_answer(value) for value in item.answer.values}
        self._record(item, bool(given) and given == expected)

    def submit_answer(self, value: str) -> None:
        """
        Buffer an answer for the active item. Text and single-choice items
        complete immediately; multiple-choice items wait for ``confirm_answers``.
        """
        item = self.quiz_item
        if item is None or not isinstance(self.game_state, Playing):
            return
        self.answers.append(value)
        if item.answer.kind in (AnswerKind.TEXT, AnswerKind.SINGLE_CHOICE):
            self.check()
            self.remove()
            self.load_next()
        self._notify()

    def confirm_answers(self) -> None:
        """Complete the active multiple-choice item with the buffered answers."""
        item = self.quiz_item
        if item is None or not isinstance(self.game_state, Playing):
            return
        if item.answer.kind != AnswerKind.MULTIPLE_CHOICE:
            return
        self._check_multiple_choice()
        self.remove()
        self.load_next()
        self._notify()

    # Read helpers

    @property
    def current_index(self) -> int:
        """Position of the working quiz's front item within the original quiz."""
        return len(self.original_quiz.items) - len(self.quiz.items)

    @property
    def total_items(self) -> int:
        return len(self.original_quiz.items)

    @property
    def is_finished(self) -> bool:
        return isinstance(self.game_state, End)

    def _valid_index(self, index: int) -> bool:
        return 0 <= index < len(self.original_quiz.items)

    def is_active(self, index: int) -> bool:
        if self.quiz_item is None or not self._valid_index(index):
            return False
        return index == self.current_index

    def is_solved(self, index: int) -> bool:
        return self._outcomes.get(index) is True

    def is_failed(self, index: int) -> bool:
        return self._outcomes.get(index) is False

    def in_queue(self, index: int) -> bool:
        return self._valid_index(index) and index >= self.current_index

    def time_remaining_for_humans(self) -> str:
        """Item countdown as MM:SS, or HH:MM:SS once it spans an hour."""
        hours, remainder = divmod(max(self.time_remaining_item, 0), 3600)
        minutes, seconds = divmod(remainder, 60)
        if hours > 0:
            return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
        return f"{minutes:02d}:{seconds:02d}"

    def progress(self) -> Dict[str, object]:
        """Snapshot of the session for status displays."""
        state = self.game_state
        return {
            'quiz_id': self.quiz.id,
            'title': self.quiz.title,
            'phase': state.phase.value,
            'win': state.win if isinstance(state, End) else None,
            'item_number': self.quiz_item_number,
            'total_items': self.total_items,
            'solved': len(self.items_solved),
            'failed': len(self.items_failed),
            'remaining': len(self.quiz.items),
            'time_remaining': self.time_remaining_item,
            'warmup_remaining': self.time_remaining_warmup,
            'started_at': self.started_at
        }
