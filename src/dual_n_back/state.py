import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from dual_n_back.config import GameMode


@dataclass(frozen=True, slots=True)
class SessionState:
    """Snapshot of a session as seen by front ends (pure data)."""

    mode: GameMode = GameMode.VISUAL
    n: int = 0
    sequence_length: int = 0
    current_index: int = -1
    visual_value: int = -1
    audio_value: int = -1
    visual_match_checked: bool = False
    audio_match_checked: bool = False
    score: int = 0
    highscore: int = 0
    event_tic: int = 0  # bumps on every step so repeated values still retrigger
    running: bool = False
    warning: Optional[str] = None


StateObserver = Callable[[SessionState], None]


class StateChannel:
    """
    Synchronous publish/subscribe channel for `SessionState` snapshots.

    Observers run on the publishing thread, in subscription order. A
    snapshot published by an observer while it is being notified is
    queued until the current snapshot has reached every observer, so all
    observers see the same order. A failing observer is logged and
    skipped; the others still get the snapshot.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._observers: list[StateObserver] = []
        self._lock = threading.Lock()
        self._local = threading.local()

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register `observer`; returns a callable that unsubscribes it."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe():
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def publish(self, state: SessionState) -> None:
        pending = getattr(self._local, "pending", None)
        if pending is not None:
            pending.append(state)
            return

        pending = self._local.pending = deque([state])
        try:
            while pending:
                self._deliver(pending.popleft())
        finally:
            self._local.pending = None

    def _deliver(self, state: SessionState) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(state)
            except Exception as e:
                self.logger.exception("State observer failed: %s", e)

    def __len__(self) -> int:
        return len(self._observers)
