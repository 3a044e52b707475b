from typing import Optional

import numpy as np
import pygame
from pygame import Rect

from dual_n_back.session import SessionController
from dual_n_back.state import SessionState
from dual_n_back.stimuli import grid_position, grid_shape, letter_for, tone_frequency


# -------------------- Utilities --------------------
def make_beep(
    frequency: float = 880, duration_ms: int = 120, volume: float = 0.5
) -> pygame.mixer.Sound:
    """Generate a sine beep as a pygame Sound. Assumes mixer is initialized."""
    init = pygame.mixer.get_init()
    if init is None:
        raise RuntimeError("pygame.mixer not initialized")
    sample_rate, _fmt, channels = init

    n_samples = int(sample_rate * (duration_ms / 1000.0))
    t = np.linspace(
        0.0, duration_ms / 1000.0, n_samples, endpoint=False, dtype=np.float64
    )
    wave = 0.5 * np.sin(2.0 * np.pi * float(frequency) * t)
    mono = (wave * (2**15 - 1)).astype(np.int16, copy=False)

    if channels == 1:
        pcm = mono
    elif channels == 2:
        pcm = np.column_stack((mono, mono))
    else:
        raise ValueError(f"Unsupported mixer channels: {channels}")

    pcm = np.ascontiguousarray(pcm)
    snd = pygame.sndarray.make_sound(pcm)
    snd.set_volume(max(0.0, min(1.0, float(volume))))
    return snd


# -------------------- Match panels --------------------
class MatchPanel:
    """Button-like panel for one modality; lights up once a match is claimed."""

    def __init__(self, label: str, key_hint: str):
        self.label = label
        self.key_hint = key_hint
        self.rect: Optional[Rect] = None

    def draw(
        self,
        screen: pygame.Surface,
        font_big,
        font_small,
        *,
        checked: bool,
        subtitle: Optional[str] = None,
    ):
        if self.rect is None:
            raise RuntimeError("MatchPanel.rect not set; call layout_ui first")
        pygame.draw.rect(screen, (40, 42, 48), self.rect, border_radius=12)
        pygame.draw.rect(screen, (160, 160, 170), self.rect, width=2, border_radius=12)
        if checked:
            overlay = pygame.Surface((self.rect.w, self.rect.h), pygame.SRCALPHA)
            overlay.fill((60, 120, 200, 140))
            screen.blit(overlay, self.rect.topleft)

        main = font_big.render(self.label, True, (235, 235, 235))
        screen.blit(main, main.get_rect(center=(self.rect.centerx, self.rect.y + self.rect.h * 0.40)))
        hint = font_small.render(
            subtitle if checked and subtitle else self.key_hint, True, (200, 200, 200)
        )
        screen.blit(hint, hint.get_rect(center=(self.rect.centerx, self.rect.y + self.rect.h * 0.75)))


# -------------------- Game --------------------
class DualNBackGame:
    """
    Pygame front end for a `SessionController`.

    The controller owns all game state; each frame only reads its latest
    snapshot. Keys:
      1 / A  visual match      2 / L  audio match
      Space  new session       Esc    quit
    """

    VISUAL_KEYS = (pygame.K_1, pygame.K_a)
    AUDIO_KEYS = (pygame.K_2, pygame.K_l)

    def __init__(
        self,
        controller: SessionController,
        *,
        window_size=(900, 700),
        highlight_ms: int = 1000,
    ):
        self.controller = controller
        self.highlight_ms = highlight_ms

        pygame.init()
        pygame.mixer.init(frequency=44100, size=-16, channels=2, buffer=512)
        self.screen = pygame.display.set_mode(window_size)
        pygame.display.set_caption("Dual N-Back")
        self.clock = pygame.time.Clock()
        self.font_big = pygame.font.SysFont(None, 48)
        self.font_small = pygame.font.SysFont(None, 24)

        self._tones: dict[int, pygame.mixer.Sound] = {}
        self._last_tic = 0
        self._shown_at = 0

        self.visual_panel = MatchPanel("Position", "1 / A")
        self.audio_panel = MatchPanel("Sound", "2 / L")
        self.grid_rect = self.layout_ui(self.screen.get_size())

    def layout_ui(self, window_size: tuple[int, int]) -> Rect:
        W, H = window_size
        grid = Rect(W // 2 - 210, 110, 420, 420)
        self.visual_panel.rect = Rect(W // 2 - 330, grid.bottom + 30, 300, 90)
        self.audio_panel.rect = Rect(W // 2 + 30, grid.bottom + 30, 300, 90)
        return grid

    def _tone(self, value: int) -> pygame.mixer.Sound:
        if value not in self._tones:
            self._tones[value] = make_beep(tone_frequency(value), 400, 0.6)
        return self._tones[value]

    # ---- rendering helpers ----
    def _draw_header(self, state: SessionState):
        step = max(0, state.current_index + 1)
        hdr = self.font_big.render(
            f"n={state.n}   Step {step}/{state.sequence_length}", True, (235, 235, 235)
        )
        self.screen.blit(hdr, (24, 24))
        scores = self.font_small.render(
            f"Score: {state.score}   Highscore: {state.highscore}", True, (210, 210, 210)
        )
        self.screen.blit(scores, (24, 64))
        if not state.running:
            tip = self.font_small.render(
                f"Mode: {state.mode.value}. Press Space to start, Esc to quit.",
                True,
                (210, 210, 210),
            )
            self.screen.blit(tip, (24, self.screen.get_height() - 30))
        if state.warning:
            warn = self.font_small.render(state.warning, True, (230, 160, 60))
            self.screen.blit(warn, (24, self.screen.get_height() - 54))

    def _draw_grid(self, state: SessionState):
        config = self.controller.config or self.controller.settings
        size = config.visual_alphabet_size
        rows, cols = grid_shape(size)
        cell_w = self.grid_rect.w // cols
        cell_h = self.grid_rect.h // rows

        active = None
        lit = pygame.time.get_ticks() - self._shown_at < self.highlight_ms
        if state.running and state.mode.has_visual and state.visual_value > 0 and lit:
            active = grid_position(state.visual_value, size)

        for value in range(1, size + 1):
            row, col = grid_position(value, size)
            cell = Rect(
                self.grid_rect.x + col * cell_w + 4,
                self.grid_rect.y + row * cell_h + 4,
                cell_w - 8,
                cell_h - 8,
            )
            color = (40, 160, 90) if (row, col) == active else (90, 92, 100)
            pygame.draw.rect(self.screen, color, cell, border_radius=12)

    def _draw_listen(self, state: SessionState):
        # Audio-only mode has no grid to look at.
        if state.mode.has_visual or not state.running:
            return
        label = self.font_big.render("Listen", True, (235, 235, 235))
        self.screen.blit(label, label.get_rect(center=self.grid_rect.center))

    def _on_new_step(self, state: SessionState):
        self._last_tic = state.event_tic
        self._shown_at = pygame.time.get_ticks()
        if state.mode.has_audio and state.audio_value > 0:
            self._tone(state.audio_value).play()

    @staticmethod
    def _letter_subtitle(value: int) -> Optional[str]:
        if 1 <= value <= 26:
            return f"This was: {letter_for(value)}"
        return None

    # ---- input ----
    def _handle_keydown(self, key: int) -> bool:
        if key == pygame.K_ESCAPE:
            return False
        if key == pygame.K_SPACE:
            self.controller.start_session()
        elif key in self.VISUAL_KEYS:
            self.controller.report_visual_match()
        elif key in self.AUDIO_KEYS:
            self.controller.report_audio_match()
        return True

    # ---- main loop ----
    def run(self):
        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    running = self._handle_keydown(event.key)

            state = self.controller.snapshot()
            if state.running and state.event_tic != self._last_tic:
                self._on_new_step(state)

            self.screen.fill((20, 22, 26))
            self._draw_header(state)
            if state.mode.has_visual:
                self._draw_grid(state)
            self._draw_listen(state)
            if state.mode.has_visual:
                self.visual_panel.draw(
                    self.screen,
                    self.font_big,
                    self.font_small,
                    checked=state.visual_match_checked,
                    subtitle=f"This was: cell {state.visual_value}",
                )
            if state.mode.has_audio:
                self.audio_panel.draw(
                    self.screen,
                    self.font_big,
                    self.font_small,
                    checked=state.audio_match_checked,
                    subtitle=self._letter_subtitle(state.audio_value),
                )
            pygame.display.flip()
            self.clock.tick(60)

        self.controller.cancel_session()
        pygame.quit()
