import threading
from typing import Protocol


class Timer(Protocol):
    """Cancellable wait used between session steps.

    The session loop depends on this interface rather than sleeping directly.
    """

    def wait(self, seconds: float, cancelled: threading.Event) -> bool:
        """Block for `seconds`. Return True if `cancelled` was set meanwhile."""


class EventTimer:
    """Production timer: waits on the cancellation event itself."""

    def wait(self, seconds: float, cancelled: threading.Event) -> bool:
        return cancelled.wait(max(0.0, seconds))
