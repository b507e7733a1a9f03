"""
Key-value persistence for per-quiz outcomes, nickname and UI flags.
"""
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List

WELCOME_ALERT_SHOWN = "welcome_alert_shown"


class StatsStore(ABC):
    """
    Persistence collaborator injected into game sessions.

    Calls are fire-and-forget: implementations log failures instead of raising.
    """

    @abstractmethod
    def increment_win(self, quiz_id: str) -> None:
        ...

    @abstractmethod
    def increment_fail(self, quiz_id: str) -> None:
        ...

    @abstractmethod
    def get_wins(self, quiz_id: str) -> int:
        ...

    @abstractmethod
    def get_fails(self, quiz_id: str) -> int:
        ...

    @abstractmethod
    def get_nickname(self) -> str:
        ...

    @abstractmethod
    def set_nickname(self, nickname: str) -> None:
        ...

    @abstractmethod
    def get_flag(self, key: str) -> bool:
        ...

    @abstractmethod
    def set_flag(self, key: str, value: bool) -> None:
        ...


class MemoryStatsStore(StatsStore):
    """Dictionary-backed store; also the in-memory state of ``JsonStatsStore``."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._data: Dict[str, Any] = self._empty()

    @staticmethod
    def _empty() -> Dict[str, Any]:
        return {"wins": {}, "fails": {}, "nickname": "", "flags": {}}

    def _changed(self) -> None:
        """Hook run after every mutation."""

    def increment_win(self, quiz_id: str) -> None:
        self._data["wins"][quiz_id] = self.get_wins(quiz_id) + 1
        self.logger.info(f"Recorded win for quiz {quiz_id}")
        self._changed()

    def increment_fail(self, quiz_id: str) -> None:
        self._data["fails"][quiz_id] = self.get_fails(quiz_id) + 1
        self.logger.info(f"Recorded fail for quiz {quiz_id}")
        self._changed()

    def get_wins(self, quiz_id: str) -> int:
        return int(self._data["wins"].get(quiz_id, 0))

    def get_fails(self, quiz_id: str) -> int:
        return int(self._data["fails"].get(quiz_id, 0))

    def get_nickname(self) -> str:
        return self._data["nickname"]

    def set_nickname(self, nickname: str) -> None:
        self._data["nickname"] = nickname.strip()
        self._changed()

    def get_flag(self, key: str) -> bool:
        return bool(self._data["flags"].get(key, False))

    def set_flag(self, key: str, value: bool) -> None:
        self._data["flags"][key] = bool(value)
        self._changed()

    def get_summary(self) -> Dict[str, Any]:
        """Snapshot of all recorded outcomes."""
        return {
            'wins': dict(self._data["wins"]),
            'fails': dict(self._data["fails"]),
            'nickname': self.get_nickname(),
            'flags': dict(self._data["flags"])
        }


class JsonStatsStore(MemoryStatsStore):
    """Store persisted to a single JSON document, rewritten after each change."""

    def __init__(self, path: str = "./data/stats.json"):
        """
        Initialize the store and load any existing document.

        Args:
            path: Location of the JSON stats file
        """
        super().__init__()
        self.path = Path(path)
        self.load_errors: List[str] = []
        self._load_failed = False
        self.load()

    def validate_structure(self, data: Any) -> bool:
        """
        Validate the shape of a stats document.

        Expected structure:
        {
            "wins": {quiz_id: int},
            "fails": {quiz_id: int},
            "nickname": str,
            "flags": {key: bool}
        }
        """
        if not isinstance(data, dict):
            self.logger.error("Stats data must be a JSON object")
            return False

        for key in ("wins", "fails", "flags"):
            if key in data and not isinstance(data[key], dict):
                self.logger.error(f"'{key}' value must be an object")
                return False

        for key in ("wins", "fails"):
            for quiz_id, count in data.get(key, {}).items():
                if not isinstance(count, int) or count < 0:
                    self.logger.error(f"'{key}' count for {quiz_id} must be a non-negative integer")
                    return False

        if "nickname" in data and not isinstance(data["nickname"], str):
            self.logger.error("'nickname' value must be a string")
            return False

        return True

    def load(self) -> bool:
        """
        Load the document from disk. A missing file starts an empty store.

        Returns:
            True if the store holds the file contents (or the file is absent)
        """
        self.load_errors.clear()
        self._data = self._empty()
        self._load_failed = True

        if not self.path.exists():
            self.logger.info(f"No stats file at {self.path}, starting empty")
            self._load_failed = False
            return True

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {self.path}: {e}")
            self.load_errors.append(f"Invalid JSON: {e}")
            return False
        except OSError as e:
            self.logger.error(f"Failed to read stats file {self.path}: {e}")
            self.load_errors.append(f"Read error: {e}")
            return False

        if not self.validate_structure(data):
            self.load_errors.append("Invalid stats structure")
            return False

        for key in ("wins", "fails", "flags"):
            self._data[key].update(data.get(key, {}))
        self._data["nickname"] = data.get("nickname", "")

        self.logger.info(
            f"Loaded stats for {len(self._data['wins']) + len(self._data['fails'])} quiz entries from {self.path}"
        )
        self._load_failed = False
        return True

    def save(self) -> bool:
        """Write the document, creating the parent directory when needed."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
            return True
        except OSError as e:
            self.logger.error(
                f"Failed to save stats to {self.path}: {e}",
                extra={
                    'event_type': 'stats_save_failed',
                    'path': str(self.path)
                }
            )
            self.load_errors.append(f"Write error: {e}")
            return False

    def _changed(self) -> None:
        # An unreadable file stays on disk until load() succeeds
        if self._load_failed:
            self.logger.warning(
                f"Not saving stats to {self.path}: the existing file could not be loaded",
                extra={
                    'event_type': 'stats_save_skipped',
                    'path': str(self.path)
                }
            )
            return
        self.save()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0
