import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from dual_n_back.config import GameMode, SessionConfig
from dual_n_back.constants import START_DELAY_MS
from dual_n_back.nback import generate_nback_sequence
from dual_n_back.preferences import PreferencesStore
from dual_n_back.state import SessionState, StateChannel, StateObserver
from dual_n_back.timing import EventTimer, Timer


class SessionController:
    """
    Runs one n-back session at a time: Idle -> Running -> Idle.

    `start_session` generates a stimulus sequence per active modality and
    starts a worker thread that steps through them on a fixed interval.
    Every mutation (step, match report, finish) happens under one lock and
    is published to subscribers while the lock is held, so observers see
    snapshots in mutation order.

    Cancellation is checked only after a wait returns, never mid-step, so
    a cancelled session can't leave a half-applied step behind.
    """

    def __init__(
        self,
        preferences: PreferencesStore,
        *,
        settings: Optional[SessionConfig] = None,
        generator: Optional[Callable[..., list[int]]] = None,
        rng=None,
        timer: Optional[Timer] = None,
        start_delay_ms: int = START_DELAY_MS,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self._preferences = preferences
        self._settings = settings or SessionConfig()
        self._generator = generator or generate_nback_sequence
        self._rng = rng
        self._timer = timer or EventTimer()
        self._start_delay_s = start_delay_ms / 1000.0

        self._lock = threading.RLock()
        self._channel = StateChannel(logger=self.logger)

        self._config: Optional[SessionConfig] = None
        self._visual_events: list[int] = []
        self._audio_events: list[int] = []
        self._cancel: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

        self._state = SessionState(
            mode=self._settings.mode,
            n=self._settings.n,
            sequence_length=self._settings.sequence_length,
            highscore=int(preferences.read_highscore()),
        )

    # ---- observation ----
    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        return self._channel.subscribe(observer)

    def snapshot(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.snapshot().running

    @property
    def score(self) -> int:
        return self.snapshot().score

    @property
    def highscore(self) -> int:
        return self.snapshot().highscore

    @property
    def settings(self) -> SessionConfig:
        """Config the next `start_session()` without arguments will use."""
        with self._lock:
            return self._settings

    @property
    def config(self) -> Optional[SessionConfig]:
        """Config of the current (or last) session."""
        with self._lock:
            return self._config

    @property
    def visual_sequence(self) -> tuple[int, ...]:
        with self._lock:
            return tuple(self._visual_events)

    @property
    def audio_sequence(self) -> tuple[int, ...]:
        with self._lock:
            return tuple(self._audio_events)

    # ---- settings ----
    def set_mode(self, mode: GameMode) -> None:
        self._change_settings(mode=GameMode(mode))

    def set_n_back(self, n: int) -> None:
        self._change_settings(n=int(n))

    def set_event_interval(self, interval_ms: int) -> None:
        self._change_settings(step_interval_ms=int(interval_ms))

    def set_sequence_length(self, length: int) -> None:
        self._change_settings(sequence_length=int(length))

    def set_visual_alphabet_size(self, size: int) -> None:
        self._change_settings(visual_alphabet_size=int(size))

    def set_audio_alphabet_size(self, size: int) -> None:
        self._change_settings(audio_alphabet_size=int(size))

    def _change_settings(self, **changes) -> None:
        # Validation is deferred to start_session; a running session keeps its config.
        with self._lock:
            self._settings = replace(self._settings, **changes)
            if not self._state.running:
                self._update(
                    mode=self._settings.mode,
                    n=self._settings.n,
                    sequence_length=self._settings.sequence_length,
                )

    # ---- lifecycle ----
    def start_session(self, config: Optional[SessionConfig] = None) -> None:
        """
        Start a new session, cancelling any session already running.

        Raises InvalidConfiguration before touching any state if the
        config can't be played.
        """
        with self._lock:
            config = self._settings if config is None else config
        config.validate()

        self._stop_loop()

        with self._lock:
            # Another thread may have started a session while we were joining.
            if self._cancel is not None:
                self._cancel.set()

            self._settings = config
            self._config = config
            self._visual_events = (
                self._generate(config, config.visual_alphabet_size)
                if config.mode.has_visual
                else []
            )
            self._audio_events = (
                self._generate(config, config.audio_alphabet_size)
                if config.mode.has_audio
                else []
            )
            self.logger.debug("Visual sequence: %s", self._visual_events)
            self.logger.debug("Audio sequence: %s", self._audio_events)

            # Reset without publishing; the first published state is step 0.
            self._state = SessionState(
                mode=config.mode,
                n=config.n,
                sequence_length=config.sequence_length,
                highscore=self._state.highscore,
                event_tic=self._state.event_tic,
                running=True,
            )

            cancel = threading.Event()
            self._cancel = cancel
            self._thread = threading.Thread(
                target=self._run,
                args=(config, cancel),
                name="nback-session",
                daemon=True,
            )
            self.logger.info(
                "Starting %s session: n=%d, length=%d, interval=%dms",
                config.mode.value,
                config.n,
                config.sequence_length,
                config.step_interval_ms,
            )
            self._thread.start()

    def cancel_session(self) -> None:
        """Stop the running session without updating the highscore."""
        self._stop_loop()
        with self._lock:
            if self._state.running:
                self._update(running=False)
                self.logger.info("Session cancelled at step %d", self._state.current_index)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the session thread. Returns True once it has finished."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _generate(self, config: SessionConfig, alphabet_size: int) -> list[int]:
        return list(
            self._generator(
                config.sequence_length,
                alphabet_size,
                config.match_percentage,
                config.n,
                rng=self._rng,
            )
        )

    def _stop_loop(self) -> None:
        with self._lock:
            cancel, thread = self._cancel, self._thread
            if cancel is not None:
                cancel.set()
        # An observer may call us from the loop thread, or while holding the lock
        # the loop needs to see `cancel`. Setting it under the lock is enough then.
        if thread is None or thread is threading.current_thread():
            return
        if self._lock._is_owned():
            return
        thread.join()

    def _run(self, config: SessionConfig, cancel: threading.Event) -> None:
        if self._timer.wait(self._start_delay_s, cancel):
            return
        for index in range(config.sequence_length):
            with self._lock:
                if cancel.is_set():
                    return
                self._step(config, index)
            if self._timer.wait(config.step_interval_s, cancel):
                return
        with self._lock:
            if cancel.is_set():
                return
            self._finish()

    def _step(self, config: SessionConfig, index: int) -> None:
        changes = {}
        if config.mode.has_visual:
            changes["visual_value"] = self._visual_events[index]
        if config.mode.has_audio:
            changes["audio_value"] = self._audio_events[index]
        self._update(
            current_index=index,
            visual_match_checked=False,
            audio_match_checked=False,
            event_tic=self._state.event_tic + 1,
            **changes,
        )

    def _finish(self) -> None:
        score = self._state.score
        highscore = self._state.highscore
        warning = None
        if score > highscore:
            highscore = score
            if not self._save_highscore(score):
                warning = f"New highscore {score} could not be saved"
        self._update(running=False, highscore=highscore, warning=warning)
        self.logger.info("Session finished: score=%d, highscore=%d", score, highscore)

    def _save_highscore(self, score: int) -> bool:
        try:
            saved = bool(self._preferences.write_highscore(score))
        except OSError as e:
            self.logger.warning("Saving highscore %d failed: %s", score, e)
            return False
        if not saved:
            self.logger.warning("Saving highscore %d failed", score)
        return saved

    def _update(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        self._channel.publish(self._state)

    # ---- match reports ----
    def report_visual_match(self) -> bool:
        """
        Claim that the visual stimulus matches the one n steps back.

        Only the first claim per step counts. Returns True if the claim
        was processed and correct.
        """
        with self._lock:
            s = self._state
            if not s.running or not s.mode.has_visual or s.visual_match_checked:
                return False
            if s.current_index < s.n:
                return False
            matched = s.visual_value == self._visual_events[s.current_index - s.n]
            self._update(visual_match_checked=True, score=s.score + int(matched))
            return matched

    def report_audio_match(self) -> bool:
        """Audio counterpart of `report_visual_match`, against the audio stream."""
        with self._lock:
            s = self._state
            if not s.running or not s.mode.has_audio or s.audio_match_checked:
                return False
            if s.current_index < s.n:
                return False
            matched = s.audio_value == self._audio_events[s.current_index - s.n]
            self._update(audio_match_checked=True, score=s.score + int(matched))
            return matched
