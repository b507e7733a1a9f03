"""
Built-in quiz catalog.

Quizzes are static, in-process definitions; items are generated fresh each
time a quiz is built while the quiz id stays stable so outcomes accumulate.
"""
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from .generator import MATH_CATEGORY, MathItemGenerator
from .models import Category, Difficulty, Operator, Quiz

ALL_CATEGORY = Category(name="All")

CATEGORIES: List[Category] = [ALL_CATEGORY, MATH_CATEGORY]


@dataclass(frozen=True)
class QuizDefinition:
    """Recipe for building one catalog quiz."""
    key: str
    title: str
    category: Category
    difficulty: Difficulty
    operator: Operator
    item_count: int

    @property
    def quiz_id(self) -> str:
        """Stable id under which outcomes are recorded."""
        return f"{self.category.name.lower()}-{self.key}"


QUIZ_DEFINITIONS: Dict[str, QuizDefinition] = {
    definition.key: definition
    for definition in [
        QuizDefinition("dummy", "Additions", MATH_CATEGORY, Difficulty.EASY, Operator.ADD, 1),
        QuizDefinition("level1", "Additions", MATH_CATEGORY, Difficulty.EASY, Operator.ADD, 20),
        QuizDefinition("level2", "Subtractions", MATH_CATEGORY, Difficulty.EASY, Operator.SUBTRACT, 20),
        QuizDefinition("level3", "Multiplications", MATH_CATEGORY, Difficulty.NORMAL, Operator.MULTIPLY, 20),
    ]
}


def get_category(name: str) -> Optional[Category]:
    """Look up a category by name, case-insensitively."""
    for category in CATEGORIES:
        if category.name.lower() == name.strip().lower():
            return category
    return None


def available_quizzes(category: Optional[Category] = None) -> List[QuizDefinition]:
    """List catalog quizzes, optionally filtered; the All category matches everything."""
    if category is None or category == ALL_CATEGORY:
        return list(QUIZ_DEFINITIONS.values())
    return [definition for definition in QUIZ_DEFINITIONS.values() if definition.category == category]


def quiz_exists(key: str) -> bool:
    return key in QUIZ_DEFINITIONS


def build_quiz(
    key: str,
    rng: Optional[random.Random] = None,
    question_count: Optional[int] = None
) -> Quiz:
    """
    Build a playable quiz from its catalog definition.

    Args:
        key: Catalog key, e.g. ``"level1"``
        rng: Random source for item generation
        question_count: Overrides the definition's item count when given

    Raises:
        KeyError: If the key is not in the catalog
    """
    definition = QUIZ_DEFINITIONS[key]
    count = question_count if question_count is not None else definition.item_count
    items = MathItemGenerator(rng=rng).generate(count, definition.difficulty, definition.operator)
    return Quiz(
        title=definition.title,
        items=items,
        category=definition.category,
        difficulty=definition.difficulty,
        id=definition.quiz_id
    )
