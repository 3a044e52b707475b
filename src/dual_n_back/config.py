from dataclasses import dataclass
from enum import Enum

from dual_n_back.constants import (
    DEFAULT_ALPHABET_SIZE,
    DEFAULT_MATCH_PERCENTAGE,
    DEFAULT_N,
    DEFAULT_SEQUENCE_LENGTH,
    DEFAULT_STEP_INTERVAL_MS,
)


class InvalidConfiguration(ValueError):
    """Raised by `SessionConfig.validate` for settings no session can run with."""


class GameMode(str, Enum):
    VISUAL = "visual"
    AUDIO = "audio"
    AUDIO_VISUAL = "audio_visual"

    @property
    def has_visual(self) -> bool:
        return self in (GameMode.VISUAL, GameMode.AUDIO_VISUAL)

    @property
    def has_audio(self) -> bool:
        return self in (GameMode.AUDIO, GameMode.AUDIO_VISUAL)


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Everything a single session needs; fixed for the session's duration."""

    n: int = DEFAULT_N
    sequence_length: int = DEFAULT_SEQUENCE_LENGTH
    visual_alphabet_size: int = DEFAULT_ALPHABET_SIZE
    audio_alphabet_size: int = DEFAULT_ALPHABET_SIZE
    match_percentage: float = DEFAULT_MATCH_PERCENTAGE
    step_interval_ms: int = DEFAULT_STEP_INTERVAL_MS
    mode: GameMode = GameMode.VISUAL

    @property
    def step_interval_s(self) -> float:
        return self.step_interval_ms / 1000.0

    def validate(self) -> None:
        if self.n < 1:
            raise InvalidConfiguration(f"n must be >= 1, got {self.n}")
        if self.sequence_length <= self.n:
            raise InvalidConfiguration(
                f"sequence_length must be greater than n ({self.n}), "
                f"got {self.sequence_length}"
            )
        if self.visual_alphabet_size < 2:
            raise InvalidConfiguration(
                f"visual_alphabet_size must be >= 2, got {self.visual_alphabet_size}"
            )
        if self.audio_alphabet_size < 2:
            raise InvalidConfiguration(
                f"audio_alphabet_size must be >= 2, got {self.audio_alphabet_size}"
            )
        if not 0 <= self.match_percentage <= 100:
            raise InvalidConfiguration(
                "match_percentage must be between 0 and 100, "
                f"got {self.match_percentage}"
            )
        if self.step_interval_ms <= 0:
            raise InvalidConfiguration(
                f"step_interval_ms must be > 0, got {self.step_interval_ms}"
            )
        if not isinstance(self.mode, GameMode):
            raise InvalidConfiguration(f"unknown game mode: {self.mode!r}")
