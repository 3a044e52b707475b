import logging
import random
from pathlib import Path

import typer
from pythonosc import dispatcher, osc_server

from dual_n_back.config import GameMode, InvalidConfiguration, SessionConfig
from dual_n_back.constants import (
    DEFAULT_ALPHABET_SIZE,
    DEFAULT_MATCH_PERCENTAGE,
    DEFAULT_N,
    DEFAULT_SEQUENCE_LENGTH,
    DEFAULT_STEP_INTERVAL_MS,
    PREFERENCES_PATH,
    START_DELAY_MS,
)
from dual_n_back.nback import InvalidParameter, NBackSequence
from dual_n_back.preferences import JsonPreferencesStore
from dual_n_back.session import SessionController
from dual_n_back.state import SessionState
from dual_n_back.stimuli import grid_position, letter_for

app = typer.Typer()
osc_app = typer.Typer()
app.add_typer(osc_app, name="osc")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Dual n-back memory training."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@osc_app.command()
def reader(ip: str = "127.0.0.1", port: int = 5005):
    """Print n-back session messages received over OSC."""

    def print_handler(address, *args):
        print(f"Received message from {address}: {args}")

    disp = dispatcher.Dispatcher()
    disp.map("/nback/*", print_handler)

    server = osc_server.ThreadingOSCUDPServer((ip, port), disp)
    print(f"Serving on {server.server_address}")
    server.serve_forever()


def _build_config(
    mode: GameMode,
    n: int,
    length: int,
    interval_ms: int,
    visual_size: int,
    audio_size: int,
) -> SessionConfig:
    config = SessionConfig(
        n=n,
        sequence_length=length,
        visual_alphabet_size=visual_size,
        audio_alphabet_size=audio_size,
        step_interval_ms=interval_ms,
        mode=mode,
    )
    try:
        config.validate()
    except InvalidConfiguration as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2)
    return config


@app.command()
def play(
    mode: GameMode = GameMode.AUDIO_VISUAL,
    n: int = DEFAULT_N,
    length: int = DEFAULT_SEQUENCE_LENGTH,
    interval_ms: int = DEFAULT_STEP_INTERVAL_MS,
    visual_size: int = DEFAULT_ALPHABET_SIZE,
    audio_size: int = DEFAULT_ALPHABET_SIZE,
    prefs: Path = PREFERENCES_PATH,
    osc_port: int | None = None,
):
    """
    Play dual n-back in a pygame window.
    """
    from dual_n_back.game import DualNBackGame

    config = _build_config(mode, n, length, interval_ms, visual_size, audio_size)
    controller = SessionController(JsonPreferencesStore(prefs), settings=config)
    if osc_port is not None:
        from dual_n_back.streaming.session import SessionStreamer

        controller.subscribe(SessionStreamer(port=osc_port))
    DualNBackGame(controller).run()


def _format_state(state: SessionState) -> str:
    parts = [f"[{state.current_index + 1:>2}/{state.sequence_length}]"]
    if state.mode.has_visual:
        parts.append(f"position {state.visual_value}")
    if state.mode.has_audio:
        letter = letter_for(state.audio_value) if state.audio_value <= 26 else state.audio_value
        parts.append(f"letter {letter}")
    parts.append(f"score {state.score}")
    return "  ".join(parts)


@app.command()
def simulate(
    mode: GameMode = GameMode.AUDIO_VISUAL,
    n: int = DEFAULT_N,
    length: int = DEFAULT_SEQUENCE_LENGTH,
    interval_ms: int = DEFAULT_STEP_INTERVAL_MS,
    visual_size: int = DEFAULT_ALPHABET_SIZE,
    audio_size: int = DEFAULT_ALPHABET_SIZE,
    prefs: Path = PREFERENCES_PATH,
    seed: int | None = None,
    start_delay_ms: int = START_DELAY_MS,
    perfect: bool = typer.Option(
        False, help="Report every true match, as a perfect player would."
    ),
):
    """
    Run a session in the terminal, printing every step.
    """
    config = _build_config(mode, n, length, interval_ms, visual_size, audio_size)
    controller = SessionController(
        JsonPreferencesStore(prefs),
        rng=random.Random(seed) if seed is not None else None,
        start_delay_ms=start_delay_ms,
    )

    def on_state(state: SessionState):
        if not state.running:
            return
        if state.visual_match_checked or state.audio_match_checked:
            return
        typer.echo(_format_state(state))
        if perfect and state.current_index >= state.n:
            back = state.current_index - state.n
            if state.mode.has_visual and controller.visual_sequence[back] == state.visual_value:
                controller.report_visual_match()
            if state.mode.has_audio and controller.audio_sequence[back] == state.audio_value:
                controller.report_audio_match()

    controller.subscribe(on_state)
    controller.start_session(config)
    try:
        controller.join()
    except KeyboardInterrupt:
        controller.cancel_session()
        raise typer.Exit(code=130)

    final = controller.snapshot()
    typer.echo(f"Score: {final.score}  Highscore: {final.highscore}")
    if final.warning:
        typer.echo(f"Warning: {final.warning}", err=True)


@app.command()
def preview(
    length: int = DEFAULT_SEQUENCE_LENGTH,
    size: int = DEFAULT_ALPHABET_SIZE,
    match_percentage: float = DEFAULT_MATCH_PERCENTAGE,
    n: int = DEFAULT_N,
    seed: int | None = None,
):
    """
    Print a generated sequence, marking the n-back matches.
    """
    try:
        seq = NBackSequence(
            length,
            n,
            alphabet_size=size,
            match_percentage=match_percentage,
            rng=random.Random(seed) if seed is not None else None,
        )
    except InvalidParameter as e:
        typer.echo(f"Invalid parameters: {e}", err=True)
        raise typer.Exit(code=2)

    for i, (value, is_match) in enumerate(seq):
        row, col = grid_position(value, size)
        marker = "*" if is_match else " "
        typer.echo(f"{i:>3} {marker} {value:>2}  (row {row}, col {col})")
    typer.echo(f"Matches: {sum(seq.truth)}/{length - n}")


@app.command()
def highscore(
    prefs: Path = PREFERENCES_PATH,
    reset: bool = False,
):
    """
    Show the stored highscore, or reset it to 0.
    """
    store = JsonPreferencesStore(prefs)
    if reset:
        if not store.write_highscore(0):
            typer.echo(f"Could not reset highscore in {prefs}", err=True)
            raise typer.Exit(code=1)
        typer.echo("Highscore reset.")
        return
    typer.echo(f"Highscore: {store.read_highscore()}")


if __name__ == "__main__":
    app()
