"""
Configuration manager for game timing, question counts and storage paths.
"""
import logging
from typing import Any, Dict, List, Optional

from .models import GameSettings


class ConfigManager:
    """Manages game settings and validates changes to them."""

    # Default configuration values
    DEFAULT_WARMUP_SECONDS = 3
    DEFAULT_FEEDBACK_SECONDS = 2
    DEFAULT_ITEM_SECONDS = 5
    DEFAULT_TICK_INTERVAL = 1.0
    DEFAULT_QUESTION_COUNT = None  # Use each quiz's own item count
    DEFAULT_STATS_FILE = "./data/stats.json"

    # Validation limits
    MIN_WARMUP_SECONDS = 0
    MAX_WARMUP_SECONDS = 30
    MIN_FEEDBACK_SECONDS = 0
    MAX_FEEDBACK_SECONDS = 30
    MIN_ITEM_SECONDS = 1
    MAX_ITEM_SECONDS = 300
    MIN_TICK_INTERVAL = 0.1
    MAX_TICK_INTERVAL = 10.0
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 100

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = GameSettings()
        self._stats_file = self.DEFAULT_STATS_FILE

    def get_game_settings(self) -> GameSettings:
        """
        Get a copy of the current game settings.

        Returns:
            GameSettings object with current configuration
        """
        return GameSettings(
            warmup_seconds=self._settings.warmup_seconds,
            feedback_seconds=self._settings.feedback_seconds,
            default_item_seconds=self._settings.default_item_seconds,
            tick_interval=self._settings.tick_interval,
            question_count=self._settings.question_count
        )

    def _set_int_setting(self, attribute: str, label: str, value: Any, minimum: int, maximum: int) -> Dict[str, Any]:
        # bool is an int subclass but never a valid duration
        if not isinstance(value, int) or isinstance(value, bool):
            error_msg = f"{label} must be an integer, got {type(value).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(value).__name__}"
            }

        if value < minimum or value > maximum:
            error_msg = f"{label} must be between {minimum} and {maximum}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {label} must be between {minimum} and {maximum}"
            }

        setattr(self._settings, attribute, value)
        self.logger.info(f"{label} set to {value}")
        return {
            'success': True,
            'message': f"{label} set to {value}",
            'user_message': f"✅ {label} set to {value}"
        }

    def set_warmup_seconds(self, seconds: int) -> Dict[str, Any]:
        """Set the warm-up countdown length."""
        return self._set_int_setting(
            'warmup_seconds', "Warm-up seconds", seconds,
            self.MIN_WARMUP_SECONDS, self.MAX_WARMUP_SECONDS
        )

    def set_feedback_seconds(self, seconds: int) -> Dict[str, Any]:
        return self._set_int_setting(
            'feedback_seconds', "Feedback seconds", seconds,
            self.MIN_FEEDBACK_SECONDS, self.MAX_FEEDBACK_SECONDS
        )

    def set_default_item_seconds(self, seconds: int) -> Dict[str, Any]:
        """Set the countdown used for items without a budget for the quiz difficulty."""
        return self._set_int_setting(
            'default_item_seconds', "Default item seconds", seconds,
            self.MIN_ITEM_SECONDS, self.MAX_ITEM_SECONDS
        )

    def set_question_count(self, count: Optional[int]) -> Dict[str, Any]:
        """
        Set the number of items per quiz.

        Args:
            count: Number of items, or None to use each quiz's own count

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if count is None:
            self._settings.question_count = None
            self.logger.info("Question count set to quiz defaults")
            return {
                'success': True,
                'message': "Question count set to quiz defaults",
                'user_message': "✅ Each quiz will use its own number of questions"
            }
        return self._set_int_setting(
            'question_count', "Question count", count,
            self.MIN_QUESTION_COUNT, self.MAX_QUESTION_COUNT
        )

    def set_tick_interval(self, interval: float) -> Dict[str, Any]:
        """
        Set the seconds between session ticks.

        Args:
            interval: Tick interval in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(interval, (int, float)) or isinstance(interval, bool):
            error_msg = f"Tick interval must be a number, got {type(interval).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(interval).__name__}"
            }

        if interval < self.MIN_TICK_INTERVAL or interval > self.MAX_TICK_INTERVAL:
            error_msg = f"Tick interval must be between {self.MIN_TICK_INTERVAL} and {self.MAX_TICK_INTERVAL}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Tick interval must be between {self.MIN_TICK_INTERVAL} and {self.MAX_TICK_INTERVAL} seconds"
            }

        self._settings.tick_interval = float(interval)
        self.logger.info(f"Tick interval set to {interval}")
        return {
            'success': True,
            'message': f"Tick interval set to {interval}",
            'user_message': f"✅ Tick interval set to {interval} seconds"
        }

    def set_stats_file(self, path: str) -> Dict[str, Any]:
        if not isinstance(path, str) or not path.strip():
            error_msg = "Stats file path must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid stats file path"
            }

        self._stats_file = path.strip()
        self.logger.info(f"Stats file set to {self._stats_file}")
        return {
            'success': True,
            'message': f"Stats file set to {self._stats_file}",
            'user_message': f"✅ Stats will be stored in {self._stats_file}"
        }

    def get_stats_file(self) -> str:
        return self._stats_file

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply the ``game`` and ``storage`` sections of a loaded config file.

        Invalid values keep their defaults.

        Returns:
            List of error messages for rejected values
        """
        errors = []
        game_config = config.get('game', {})
        setters = {
            'warmup_seconds': self.set_warmup_seconds,
            'feedback_seconds': self.set_feedback_seconds,
            'default_item_seconds': self.set_default_item_seconds,
            'tick_interval': self.set_tick_interval,
            'question_count': self.set_question_count,
        }
        for key, setter in setters.items():
            if key in game_config:
                result = setter(game_config[key])
                if not result['success']:
                    errors.append(result['error'])

        storage_config = config.get('storage', {})
        if 'stats_file' in storage_config:
            result = self.set_stats_file(storage_config['stats_file'])
            if not result['success']:
                errors.append(result['error'])

        if errors:
            self.logger.warning(f"Configuration applied with {len(errors)} rejected values")
        else:
            self.logger.info("Configuration applied successfully")
        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = GameSettings()
        self._stats_file = self.DEFAULT_STATS_FILE
        self.logger.info("Configuration reset to defaults")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings.

        Returns:
            Dictionary with 'valid' flag and list of 'issues'
        """
        validation_result = {"valid": True, "issues": []}
        settings = self._settings

        int_checks = [
            ("warm-up seconds", settings.warmup_seconds, self.MIN_WARMUP_SECONDS, self.MAX_WARMUP_SECONDS),
            ("feedback seconds", settings.feedback_seconds, self.MIN_FEEDBACK_SECONDS, self.MAX_FEEDBACK_SECONDS),
            ("default item seconds", settings.default_item_seconds, self.MIN_ITEM_SECONDS, self.MAX_ITEM_SECONDS),
        ]
        for label, value, minimum, maximum in int_checks:
            if not isinstance(value, int) or value < minimum or value > maximum:
                validation_result["valid"] = False
                validation_result["issues"].append(f"Invalid {label}: {value}")

        if not (self.MIN_TICK_INTERVAL <= settings.tick_interval <= self.MAX_TICK_INTERVAL):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid tick interval: {settings.tick_interval}")

        if settings.question_count is not None and (
            settings.question_count < self.MIN_QUESTION_COUNT or
            settings.question_count > self.MAX_QUESTION_COUNT
        ):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid question count: {settings.question_count}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        settings = self._settings
        question_count_str = (
            str(settings.question_count)
            if settings.question_count is not None
            else "quiz default"
        )
        return (
            f"Game Settings:\n"
            f"• Warm-up: {settings.warmup_seconds} seconds\n"
            f"• Feedback: {settings.feedback_seconds} seconds\n"
            f"• Default item time: {settings.default_item_seconds} seconds\n"
            f"• Tick interval: {settings.tick_interval} seconds\n"
            f"• Questions: {question_count_str}\n"
            f"• Stats file: {self._stats_file}"
        )
