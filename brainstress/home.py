"""
Home screen helpers: greeting, nickname and the one-time welcome notice.
"""
from datetime import datetime
from typing import Optional

from .stats_store import WELCOME_ALERT_SHOWN, StatsStore

ANONYMOUS_NICKNAME = "Anonymous"

WELCOME_NOTICE = (
    "Welcome to Brain Stress Quizzes! We are still working on the game, so you "
    "might run into odd behaviour while playing. Thanks for your patience, and "
    "any feedback is welcome!"
)


def welcome_message(hour: Optional[int] = None) -> str:
    """Greeting for the hour of day (current local hour if omitted)."""
    if hour is None:
        hour = datetime.now().hour
    if 6 <= hour < 12:
        return "Morning,"
    if hour == 12:
        return "Good day,"
    if 13 <= hour < 17:
        return "Good afternoon,"
    if 17 <= hour < 22:
        return "Good evening,"
    return "Hello,"


def display_nickname(store: StatsStore) -> str:
    nickname = store.get_nickname()
    return nickname if nickname else ANONYMOUS_NICKNAME


def consume_welcome_notice(store: StatsStore) -> bool:
    """
    Return True exactly once per store: the first call records that the
    welcome notice was shown.
    """
    if store.get_flag(WELCOME_ALERT_SHOWN):
        return False
    store.set_flag(WELCOME_ALERT_SHOWN, True)
    return True
