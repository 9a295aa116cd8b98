"""Live preview: a wall/audio driven clock and a pygame painter for FrameState."""
import logging
import time as _time
from typing import Callable, Optional

import pygame

from audio_player import AudioPlayer
from frame_state import (
    FrameState, TextRow, build_render_plan, compute_frame_state,
    fit_scale, highlight_band, highlight_span, row_left,
)
from project import VideoProject
from utils import find_font_path

logger = logging.getLogger(__name__)


class PreviewClock:
    """
    Elapsed playback time for the preview.
    While audio is playing its position is authoritative; otherwise time runs
    from a monotonic wall-clock reference.
    """

    def __init__(self, total_duration: float, looping: bool = False, audio: Optional[AudioPlayer] = None,
                 now: Callable[[], float] = _time.monotonic, loop_audio: bool = False):
        self.total_duration = max(0.0, total_duration)
        self.looping = looping
        self.audio = audio if audio is not None and audio.loaded else None
        self.loop_audio = loop_audio
        self._audio_start = 0.0  # timeline time at which the audio file's 0 plays
        self._now = now
        self.playing = False
        self._start_ref = 0.0  # now() at which time 0 happened
        self._paused_at = 0.0

    def _start_audio(self, t: float):
        if not self.audio:
            return
        if self.loop_audio and self.audio.duration:
            # Same as the export, which repeats the track up to the total duration
            position = t % self.audio.duration
        elif t < self.audio.duration:
            position = t
        else:
            return
        self._audio_start = t - position
        self.audio.play(position)

    def play(self):
        if self.playing:
            return
        if self._paused_at >= self.total_duration:
            self._paused_at = 0.0
        self._start_ref = self._now() - self._paused_at
        self.playing = True
        self._start_audio(self._paused_at)

    def pause(self):
        if not self.playing:
            return
        self._paused_at = self.current_time()
        self.playing = False
        if self.audio:
            self.audio.pause()

    def toggle(self):
        if self.playing:
            self.pause()
        else:
            self.play()

    def stop(self):
        self.playing = False
        self._paused_at = 0.0
        if self.audio:
            self.audio.stop()

    def seek(self, t: float):
        t = max(0.0, min(self.total_duration, t))
        self._paused_at = t
        self._start_ref = self._now() - t
        if self.audio:
            self.audio.stop()
            if self.playing:
                self._start_audio(t)

    def current_time(self) -> float:
        if not self.playing:
            return self._paused_at

        if self.audio and self.audio.is_playing():
            t = self._audio_start + self.audio.get_position()
            # Keep the wall reference in step so time continues past the end of the audio
            self._start_ref = self._now() - t
        else:
            t = self._now() - self._start_ref
            if (self.audio and self.loop_audio and t < self.total_duration
                    and t >= self._audio_start + self.audio.duration):
                # The track ran out, wrap it around
                self._start_audio(t)

        if t >= self.total_duration:
            if self.looping and self.total_duration > 0:
                self._paused_at = 0.0
                self._start_ref = self._now()
                if self.audio:
                    self.audio.stop()
                    self._start_audio(0.0)
                return 0.0
            self.playing = False
            self._paused_at = self.total_duration
            return self.total_duration

        return max(0.0, t)


class PreviewRenderer:
    """Paints the project onto a pygame surface at the preview clock's time."""

    def __init__(self, project: VideoProject, size: tuple[int, int], audio_duration: Optional[float] = None,
                 audio: Optional[AudioPlayer] = None):
        self.project = project
        self.width, self.height = size
        self.plan = build_render_plan(project, self.width, self.height, audio_duration)
        self.clock = PreviewClock(self.plan.timeline.total_duration, project.animation.is_looping, audio,
                                  loop_audio=project.audio.loop)
        self._font_path, _ = find_font_path()
        self._fonts = {}
        if not pygame.font.get_init():
            pygame.font.init()
        if self._font_path is None:
            logger.info("No system font found, preview uses the pygame default font")

    @property
    def timeline(self):
        return self.plan.timeline

    def frame_state_at(self, t: float) -> FrameState:
        return compute_frame_state(self.plan, t)

    def _font(self, size: int, bold: bool = False) -> pygame.font.Font:
        font = self._fonts.get((size, bold))
        if font is None:
            font = pygame.font.Font(self._font_path, max(1, size))
            font.set_bold(bold)
            self._fonts[(size, bold)] = font
        return font

    def draw(self, surface: pygame.Surface) -> FrameState:
        """Draw the current frame and return the state that was drawn."""
        state = self.frame_state_at(self.clock.current_time())
        self.paint(surface, state)
        return state

    def paint(self, surface: pygame.Surface, state: FrameState):
        surface.fill(state.background)

        if state.highlight is not None:
            self._paint_highlight(surface, state)

        for row in state.rows:
            self._paint_row(surface, row, state.text_color)

        if state.progress_bar is not None:
            self._paint_progress_bar(surface, state)

        for row in state.ending_rows:
            self._paint_row(surface, row, state.text_color)

    def _paint_row(self, surface, row: TextRow, color):
        if not row.text or row.opacity <= 0:
            return
        font = self._font(row.font_size, row.bold)
        text_surf = font.render(row.text, True, color)
        width, height = text_surf.get_size()

        scale = fit_scale(width, row.max_width)
        if scale < 1.0:
            width = max(1, int(width * scale))
            text_surf = pygame.transform.smoothscale(text_surf, (width, height))

        text_surf.set_alpha(int(255 * min(1.0, row.opacity)))
        surface.blit(text_surf, (round(row_left(row, width)), round(row.y - height / 2)))

    def _paint_highlight(self, surface, state: FrameState):
        hl = state.highlight
        row = state.rows[hl.row]
        font = self._font(row.font_size, row.bold)

        widths = [font.size(word)[0] for word in hl.words]
        space = font.size(' ')[0]
        scale = fit_scale(font.size(row.text)[0], row.max_width)
        left, clip = highlight_span(widths, space, hl.progress, row, scale)
        top, band_height = highlight_band(row)
        if clip < 1:
            return

        band = pygame.Surface((int(clip), int(band_height)), pygame.SRCALPHA)
        pygame.draw.rect(band, hl.color + (int(255 * hl.opacity),), band.get_rect(), border_radius=8)
        surface.blit(band, (round(left), round(top)))

    def _paint_progress_bar(self, surface, state: FrameState):
        bar = state.progress_bar
        track = pygame.Surface((int(bar.width), int(bar.height)), pygame.SRCALPHA)
        track.fill((255, 255, 255, int(255 * 0.2 * bar.opacity)))
        surface.blit(track, (round(bar.x), round(bar.y)))

        filled = int(bar.width * bar.fraction)
        if filled > 0:
            fill = pygame.Surface((filled, int(bar.height)), pygame.SRCALPHA)
            fill.fill(bar.color + (int(255 * bar.opacity),))
            surface.blit(fill, (round(bar.x), round(bar.y)))

    def cleanup(self):
        if self.clock.audio:
            self.clock.audio.cleanup()
