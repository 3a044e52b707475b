import json
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from dual_n_back.constants import PREFERENCES_PATH


class PreferencesStore(Protocol):
    """Persisted user preferences; only the highscore is stored."""

    def read_highscore(self) -> int:
        ...

    def write_highscore(self, value: int) -> bool:
        """Persist `value`. Returns False when it could not be saved."""
        ...


class InMemoryPreferencesStore:
    def __init__(self, highscore: int = 0):
        self.highscore = int(highscore)
        self.writes: list[int] = []

    def read_highscore(self) -> int:
        return self.highscore

    def write_highscore(self, value: int) -> bool:
        self.highscore = int(value)
        self.writes.append(int(value))
        return True


class JsonPreferencesStore:
    """
    Preferences kept as a small JSON object on disk, e.g. {"highscore": 8}.

    A missing or unreadable file reads as a highscore of 0. Writes go to a
    temporary file first and are moved into place.
    """

    def __init__(
        self,
        path: Path = PREFERENCES_PATH,
        logger: Optional[logging.Logger] = None,
    ):
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.logger.warning("Could not read preferences %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            self.logger.warning("Ignoring malformed preferences in %s", self.path)
            return {}
        return data

    def read_highscore(self) -> int:
        try:
            return int(self._load().get("highscore", 0))
        except (TypeError, ValueError):
            self.logger.warning("Ignoring non-integer highscore in %s", self.path)
            return 0

    def write_highscore(self, value: int) -> bool:
        data = self._load()
        data["highscore"] = int(value)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            self.logger.warning("Could not save highscore to %s: %s", self.path, e)
            return False
        return True
