import logging
from typing import Optional

from dual_n_back.state import SessionState
from .base import BaseStreamer


class SessionStreamer(BaseStreamer):
    """
    Forwards session snapshots over OSC. Subscribe an instance to a
    `SessionController`:

      /nback/step   [index, visual_value, audio_value, event_tic]
      /nback/score  [score, visual_checked, audio_checked]
      /nback/end    [score, highscore]
    """

    def __init__(
        self,
        ip: str = "127.0.0.1",
        port: int = 5005,
        prefix: str = "/nback",
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(ip, port)
        self.prefix = prefix.rstrip("/")
        self.logger = logger or logging.getLogger(__name__)
        self._last: Optional[SessionState] = None

    def __call__(self, state: SessionState) -> None:
        self.send(state)

    def send(self, state: SessionState) -> None:
        last, self._last = self._last, state
        new_step = state.running and (
            last is None or not last.running or state.event_tic != last.event_tic
        )
        if new_step:
            self.client.send_message(
                f"{self.prefix}/step",
                [state.current_index, state.visual_value, state.audio_value, state.event_tic],
            )
        elif state.running:
            self.client.send_message(
                f"{self.prefix}/score",
                [
                    state.score,
                    int(state.visual_match_checked),
                    int(state.audio_match_checked),
                ],
            )
        if last is not None and last.running and not state.running:
            self.client.send_message(
                f"{self.prefix}/end", [state.score, state.highscore]
            )
            self.logger.debug("Streamed end of session to %s:%d", self.ip, self.port)
