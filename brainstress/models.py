"""
Core data models for the BrainStress quiz game.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
import uuid


@dataclass(frozen=True)
class Category:
    """Named grouping tag for quizzes."""
    name: str


class Difficulty(Enum):
    """Difficulty level of a quiz; drives operand ranges and time budgets."""
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


class Operator(Enum):
    """Arithmetic operator used by generated math items."""
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"


class AnswerKind(Enum):
    """How an item expects to be answered."""
    TEXT = "text"
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"


@dataclass(frozen=True)
class QuizItemAnswer:
    """Expected answer value(s) for a quiz item."""
    kind: AnswerKind
    values: Tuple[str, ...]

    @property
    def first(self) -> Optional[str]:
        return self.values[0] if self.values else None


@dataclass(frozen=True)
class QuizItem:
    """A single question with its expected answer and time budget."""
    text: str
    time: Tuple[Tuple[Difficulty, int], ...]
    answer: QuizItemAnswer
    category: Category
    options: Tuple[str, ...] = ()

    def time_for(self, difficulty: Difficulty) -> Optional[int]:
        """Seconds allotted to this item at the given difficulty, if defined."""
        return dict(self.time).get(difficulty)

    @staticmethod
    def time_budget(budget: Dict[Difficulty, int]) -> Tuple[Tuple[Difficulty, int], ...]:
        """Freeze a difficulty -> seconds mapping for storage on an item."""
        return tuple((difficulty, budget[difficulty]) for difficulty in Difficulty if difficulty in budget)


@dataclass
class Quiz:
    """A titled, ordered sequence of quiz items."""
    title: str
    items: List[QuizItem]
    category: Category
    difficulty: Difficulty
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def copy(self) -> "Quiz":
        """Return a quiz sharing identity but owning an independent item list."""
        return Quiz(
            title=self.title,
            items=list(self.items),
            category=self.category,
            difficulty=self.difficulty,
            id=self.id
        )


class Phase(Enum):
    """Display names for the game state variants."""
    WARM_UP = "warm_up"
    PLAYING = "playing"
    PAUSED = "paused"
    FEEDBACK = "feedback"
    END = "end"


@dataclass(frozen=True)
class WarmUp:
    phase = Phase.WARM_UP


@dataclass(frozen=True)
class Playing:
    phase = Phase.PLAYING


@dataclass(frozen=True)
class Paused:
    phase = Phase.PAUSED


@dataclass(frozen=True)
class Feedback:
    """Post-answer feedback phase."""
    correct: bool
    phase = Phase.FEEDBACK


@dataclass(frozen=True)
class End:
    """Terminal phase carrying the outcome of the attempt."""
    win: bool
    phase = Phase.END


GameState = Union[WarmUp, Playing, Paused, Feedback, End]


@dataclass
class GameSettings:
    """Timing configuration applied to each game session."""
    warmup_seconds: int = 3
    feedback_seconds: int = 2
    default_item_seconds: int = 5
    tick_interval: float = 1.0
    question_count: Optional[int] = None
