"""
Procedural generation of arithmetic quiz items.
"""
import logging
import operator
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .models import AnswerKind, Category, Difficulty, Operator, QuizItem, QuizItemAnswer

logger = logging.getLogger(__name__)

MATH_CATEGORY = Category(name="Math")

# Seconds allotted per item, per difficulty
MATH_ITEM_TIME: Dict[Difficulty, int] = {
    Difficulty.EASY: 5,
    Difficulty.NORMAL: 8,
    Difficulty.HARD: 12,
}

DECIMAL_PLACES = 2


@dataclass(frozen=True)
class OperatorSpec:
    """Symbol, combining function and operand intervals for one operator."""
    symbol: str
    func: Callable[[float, float], float]
    intervals: Dict[Difficulty, Tuple[int, int]]

    def interval(self, difficulty: Difficulty) -> Tuple[int, int]:
        return self.intervals[difficulty]


OPERATORS: Dict[Operator, OperatorSpec] = {
    Operator.ADD: OperatorSpec(
        "+", operator.add,
        {Difficulty.EASY: (1, 10), Difficulty.NORMAL: (10, 50), Difficulty.HARD: (50, 200)}
    ),
    Operator.SUBTRACT: OperatorSpec(
        "-", operator.sub,
        {Difficulty.EASY: (1, 10), Difficulty.NORMAL: (10, 50), Difficulty.HARD: (50, 200)}
    ),
    Operator.MULTIPLY: OperatorSpec(
        "×", operator.mul,
        {Difficulty.EASY: (1, 10), Difficulty.NORMAL: (2, 20), Difficulty.HARD: (10, 50)}
    ),
    # Lower bounds stay above zero so the divisor is never 0
    Operator.DIVIDE: OperatorSpec(
        "÷", operator.truediv,
        {Difficulty.EASY: (1, 10), Difficulty.NORMAL: (2, 20), Difficulty.HARD: (10, 50)}
    ),
}


def clean_number(value: float) -> str:
    """
    Format a number without a trailing decimal part.

    Whole values drop the fraction (4.0 -> "4"); other values are rounded to
    two decimals with trailing zeros stripped (2.50 -> "2.5").
    """
    rounded = round(float(value), DECIMAL_PLACES)
    if rounded.is_integer():
        return str(int(rounded))
    return f"{rounded:.{DECIMAL_PLACES}f}".rstrip("0").rstrip(".")


def normalize_answer(answer: str) -> str:
    """Lower-cased, trimmed answer; numbers in their cleaned form."""
    text = answer.strip().lower()
    try:
        return clean_number(float(text))
    except ValueError:
        return text


def answers_match(given: Optional[str], expected: Optional[str]) -> bool:
    """
    Case-insensitive answer comparison.

    Numeric answers are compared in their cleaned form, so "4.0" matches "4".
    A missing answer on either side never matches.
    """
    if given is None or expected is None:
        return False
    return normalize_answer(given) == normalize_answer(expected)


class MathItemGenerator:
    """Generate arithmetic quiz items for a difficulty and operator."""

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self._rng = rng if rng is not None else random.Random(seed)

    def draw_operands(self, difficulty: Difficulty, qoperator: Operator) -> Tuple[int, int]:
        lo, hi = OPERATORS[qoperator].interval(difficulty)
        return self._rng.randint(lo, hi), self._rng.randint(lo, hi)

    def generate_item(self, difficulty: Difficulty, qoperator: Operator) -> QuizItem:
        spec = OPERATORS[qoperator]
        left, right = self.draw_operands(difficulty, qoperator)
        result = spec.func(float(left), float(right))

        return QuizItem(
            text=f"{clean_number(left)} {spec.symbol} {clean_number(right)}",
            time=QuizItem.time_budget(MATH_ITEM_TIME),
            answer=QuizItemAnswer(kind=AnswerKind.TEXT, values=(clean_number(result),)),
            category=MATH_CATEGORY
        )

    def generate(self, count: int, difficulty: Difficulty, qoperator: Operator) -> List[QuizItem]:
        """
        Generate ``count`` items. Duplicates are allowed; a count below 1
        yields an empty list.
        """
        items = [self.generate_item(difficulty, qoperator) for _ in range(max(count, 0))]
        logger.debug(
            f"Generated {len(items)} {qoperator.value} items at {difficulty.value} difficulty",
            extra={
                'event_type': 'items_generated',
                'count': len(items),
                'difficulty': difficulty.value,
                'operator': qoperator.value
            }
        )
        return items


def generate_math_items(
    count: int,
    difficulty: Difficulty,
    qoperator: Operator,
    rng: Optional[random.Random] = None
) -> List[QuizItem]:
    """Module-level shortcut for ``MathItemGenerator(rng=rng).generate(...)``."""
    return MathItemGenerator(rng=rng).generate(count, difficulty, qoperator)
