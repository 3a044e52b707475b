import queue
import threading

import pytest


class ManualTimer:
    """Timer whose waits only end when the test calls `tick()`."""

    def __init__(self):
        self._ticks = threading.Semaphore(0)
        self.waits: list[float] = []

    def tick(self, count: int = 1):
        for _ in range(count):
            self._ticks.release()

    def wait(self, seconds: float, cancelled: threading.Event) -> bool:
        self.waits.append(seconds)
        while not cancelled.is_set():
            if self._ticks.acquire(timeout=0.005):
                return cancelled.is_set()
        return True


class InstantTimer:
    """Timer that never blocks; a whole session runs as fast as possible."""

    def __init__(self):
        self.waits: list[float] = []

    def wait(self, seconds: float, cancelled: threading.Event) -> bool:
        self.waits.append(seconds)
        return cancelled.is_set()


class StateRecorder:
    """Observer collecting every published snapshot."""

    def __init__(self):
        self.states = []
        self._queue = queue.Queue()

    def __call__(self, state):
        self.states.append(state)
        self._queue.put(state)

    def next(self, timeout: float = 2.0):
        return self._queue.get(timeout=timeout)

    def drain(self):
        while not self._queue.empty():
            self._queue.get_nowait()


@pytest.fixture
def manual_timer():
    return ManualTimer()


@pytest.fixture
def instant_timer():
    return InstantTimer()


@pytest.fixture
def recorder():
    return StateRecorder()
