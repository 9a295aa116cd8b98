"""
Scroll Lyric Video

Usage: python main.py [project.lvproject]

Controls:
- P: Play/Pause
- S: Stop and reset to beginning
- LEFT/RIGHT: Seek backward/forward 5 seconds
- Q: Cycle export quality
- E: Export video
- W: Save project
- ESC: Quit (or cancel a running export)

Or use the buttons!
"""
import logging
import math
import os
import sys
import time as _time
from dataclasses import replace

import pygame
from pygame import QUIT, KEYDOWN, MOUSEBUTTONDOWN, VIDEORESIZE
from pygame import K_p, K_s, K_LEFT, K_RIGHT, K_e, K_q, K_w, K_ESCAPE

from audio_player import AudioPlayer, probe_duration
from exceptions import ExportCancelled, ExportFailed
from preview import PreviewRenderer
from project import VideoProject, load_project, save_project, validate_project_for_export
from timeline import wpm_level
from utils import format_time
from video_renderer import QUALITY_SETTINGS, ExportRenderer

logger = logging.getLogger(__name__)

APP_NAME = "Scroll Lyric Video"
SEEK_STEP = 5.0


def status_line(state, timeline, quality):
    """The playback summary shown in the status bar."""
    info = (f"{format_time(state.time)} / {format_time(timeline.total_duration)}"
            f"   {timeline.target_wpm} WPM ({wpm_level(timeline.target_wpm)})"
            f"   quality: {quality}")
    if state.page is not None:
        # Pages are counted from 0 internally
        info += f"   page {state.page.current_page + 1}/{state.page.total_pages}"
    return info


def refresh_audio(project):
    """
    Measure the project's audio file again.

    The stored duration is only used when the file can't be measured, since the
    file may have been replaced after the project was saved. A missing file
    drops the audio from the project.
    """
    audio_path = project.audio.file
    if not audio_path:
        return project
    if not os.path.exists(audio_path):
        logger.warning("Audio file not found: %s", audio_path)
        return replace(project, audio=replace(project.audio, file=None, duration=None))
    duration = probe_duration(audio_path) or project.audio.duration
    return replace(project, audio=replace(project.audio, duration=duration))


class Button:
    """Simple clickable button."""
    def __init__(self, x, y, width, height, text, callback, color=(60, 60, 60), hover_color=(80, 80, 80)):
        self.rect = pygame.Rect(x, y, width, height)
        self.text = text
        self.callback = callback
        self.color = color
        self.hover_color = hover_color
        self.is_hovered = False

    def draw(self, screen, font):
        color = self.hover_color if self.is_hovered else self.color
        pygame.draw.rect(screen, color, self.rect, border_radius=5)
        pygame.draw.rect(screen, (100, 100, 100), self.rect, 1, border_radius=5)

        text_surface = font.render(self.text, True, (250, 250, 250))
        screen.blit(text_surface, text_surface.get_rect(center=self.rect.center))

    def handle_event(self, event):
        if event.type == pygame.MOUSEMOTION:
            self.is_hovered = self.rect.collidepoint(event.pos)
        elif event.type == MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                self.callback()
                return True
        return False


class LyricVideoCreator:
    # Colors
    BG_COLOR = (20, 20, 20)
    TEXT_COLOR = (250, 250, 250)
    DIM_COLOR = (100, 100, 100)
    ACCENT_COLOR = (100, 200, 100)
    PANEL_COLOR = (30, 30, 30)

    # Layout
    WIDTH = 1150
    HEIGHT = 750
    MARGIN = 20
    STATUS_HEIGHT = 60
    BUTTON_PANEL_WIDTH = 160

    def __init__(self, initial_file=None):
        pygame.init()
        pygame.display.set_caption(APP_NAME)
        self.screen = pygame.display.set_mode((self.WIDTH, self.HEIGHT), pygame.RESIZABLE)
        self.clock = pygame.time.Clock()

        font_path = pygame.font.match_font('arial') or pygame.font.match_font('helvetica')
        self.font = pygame.font.Font(font_path, 20)
        self.small_font = pygame.font.Font(font_path, 16)
        self.title_font = pygame.font.Font(font_path, 28)
        self.button_font = pygame.font.Font(font_path, 14)

        self.project = VideoProject()
        self.project_path = None
        self.quality = "hd"
        self.running = True
        self.exporting = False
        self.status_message = ""
        self.status_time = 0
        self.set_status("Open a project file to get started", 10.0)

        self.preview = None
        self.preview_surface = None
        self.buttons = self._create_buttons()

        if initial_file:
            self.open_project(initial_file)
        else:
            self._rebuild_preview()

    def _create_buttons(self):
        x = self.WIDTH - self.BUTTON_PANEL_WIDTH + 15
        width = self.BUTTON_PANEL_WIDTH - 30
        entries = [
            ("Play / Pause (P)", self.toggle_play),
            ("Stop (S)", self.stop),
            ("<< 5s", self.seek_back),
            (">> 5s", self.seek_forward),
            ("Quality (Q)", self.cycle_quality),
            ("Save Project (W)", self.save),
            ("Export (E)", self.export_video),
        ]
        return [Button(x, self.MARGIN + i * 45, width, 35, text, callback)
                for i, (text, callback) in enumerate(entries)]

    def set_status(self, message: str, duration: float = 3.0):
        self.status_message = message
        self.status_time = _time.monotonic() + duration

    def _preview_size(self):
        """Largest box with the canvas aspect ratio that fits the preview area."""
        area_w = self.WIDTH - self.BUTTON_PANEL_WIDTH - self.MARGIN * 2
        area_h = self.HEIGHT - self.STATUS_HEIGHT - self.MARGIN * 2
        canvas_w, canvas_h = self.project.canvas_size
        scale = min(area_w / canvas_w, area_h / canvas_h)
        return max(1, int(canvas_w * scale)), max(1, int(canvas_h * scale))

    def _rebuild_preview(self):
        """(Re)create the preview renderer and its audio player for the current project."""
        position = 0.0
        if self.preview:
            position = self.preview.clock.current_time()
            self.preview.cleanup()

        audio = None
        if self.project.audio.file:
            audio = AudioPlayer(volume=self.project.audio.volume / 100)
            if not audio.load(self.project.audio.file):
                self.set_status("Could not play audio, previewing without sound")

        size = self._preview_size()
        self.preview = PreviewRenderer(self.project, size, audio=audio)
        self.preview_surface = pygame.Surface(size)
        self.preview.clock.seek(position)

    def open_project(self, file_path):
        project = load_project(file_path)
        if project is None:
            self.set_status(f"Failed to load project: {os.path.basename(file_path)}")
            self._rebuild_preview()
            return

        audio_path = project.audio.file
        project = refresh_audio(project)

        self.project = project
        self.project_path = file_path
        self._rebuild_preview()
        if audio_path and project.audio.file is None:
            self.set_status(f"Audio file not found: {os.path.basename(audio_path)}")
        else:
            self.set_status(f"Project loaded: {os.path.basename(file_path)}")

    def save(self):
        if not self.project_path:
            self.set_status("No project file to save to")
            return
        try:
            save_project(self.project, self.project_path)
            self.set_status(f"Project saved: {os.path.basename(self.project_path)}")
        except OSError as e:
            logger.error("Save failed: %s", e)
            self.set_status(f"Save failed: {e}")

    def toggle_play(self):
        self.preview.clock.toggle()
        self.set_status("Playing" if self.preview.clock.playing else "Paused", 1.0)

    def stop(self):
        self.preview.clock.stop()
        self.set_status("Stopped", 1.0)

    def seek_back(self):
        clock = self.preview.clock
        clock.seek(clock.current_time() - SEEK_STEP)
        self.set_status(f"Seek: {clock.current_time():.1f}s", 1.0)

    def seek_forward(self):
        clock = self.preview.clock
        clock.seek(clock.current_time() + SEEK_STEP)
        self.set_status(f"Seek: {clock.current_time():.1f}s", 1.0)

    def cycle_quality(self):
        names = list(QUALITY_SETTINGS)
        self.quality = names[(names.index(self.quality) + 1) % len(names)]
        settings = QUALITY_SETTINGS[self.quality]
        self.set_status(f"Export quality: {self.quality} ({settings['bitrate']}, {settings['fps']} fps)")

    def export_video(self):
        """Export the video next to the project file."""
        if self.exporting:
            self.set_status("An export is already running")
            return

        validation = validate_project_for_export(self.project)
        if not validation.is_ready:
            failed = next((c for c in validation.checks if c.status == 'error'), None)
            reason = f"{failed.label} {failed.message}" if failed else "invalid timeline"
            self.set_status(f"Cannot export: {reason}")
            return

        base = os.path.splitext(self.project_path)[0] if self.project_path else self.project.name
        file_path = base + ".mp4"

        self.preview.clock.pause()
        self.exporting = True
        cancelled = [False]
        render_start = _time.monotonic()

        renderer = ExportRenderer(self.project, quality=self.quality)
        output_filename = os.path.basename(file_path)

        def progress(p):
            self._draw_export_progress(p, renderer, output_filename, render_start)

            # Process events to prevent "not responding"
            for event in pygame.event.get():
                if event.type == KEYDOWN and event.key == K_ESCAPE:
                    cancelled[0] = True

        try:
            renderer.render(file_path, progress_callback=progress, check_cancelled=lambda: cancelled[0])
            self.set_status(f"Exported: {output_filename}")
        except ExportCancelled:
            self.set_status("Export cancelled")
        except ExportFailed as e:
            self.set_status(f"Export failed: {e.reason}")
        finally:
            self.exporting = False

    def _draw_export_progress(self, p, renderer, output_filename, render_start):
        self.screen.fill(self.BG_COLOR)
        cx = self.WIDTH // 2

        title_surf = self.title_font.render("Exporting Video", True, self.TEXT_COLOR)
        self.screen.blit(title_surf, title_surf.get_rect(center=(cx, int(self.HEIGHT * 0.15))))

        info_text = f"{renderer.WIDTH} × {renderer.HEIGHT}  ·  {output_filename}"
        info_surf = self.small_font.render(info_text, True, self.DIM_COLOR)
        self.screen.blit(info_surf, info_surf.get_rect(center=(cx, int(self.HEIGHT * 0.21))))

        # Progress ring, sweeping from the top
        ring_radius = 60
        ring_cy = int(self.HEIGHT * 0.45)
        ring_rect = pygame.Rect(cx - ring_radius, ring_cy - ring_radius, ring_radius * 2, ring_radius * 2)
        pygame.draw.arc(self.screen, self.DIM_COLOR, ring_rect, 0, math.tau, 5)
        if p > 0:
            start = math.pi / 2
            pygame.draw.arc(self.screen, self.ACCENT_COLOR, ring_rect, start, start + p * math.tau, 5)

        pct_surf = self.title_font.render(f"{int(p * 100)}%", True, self.TEXT_COLOR)
        self.screen.blit(pct_surf, pct_surf.get_rect(center=(cx, ring_cy)))

        elapsed = _time.monotonic() - render_start
        if p >= 0.02:
            mins, secs = divmod(int(elapsed / p * (1.0 - p)), 60)
            eta_text = f"Estimated time left: {mins}:{secs:02d}"
        else:
            eta_text = "Estimated time left: calculating..."
        eta_surf = self.small_font.render(eta_text, True, self.DIM_COLOR)
        self.screen.blit(eta_surf, eta_surf.get_rect(center=(cx, int(self.HEIGHT * 0.62))))

        cancel_surf = self.small_font.render("Cancel (Esc)", True, self.DIM_COLOR)
        self.screen.blit(cancel_surf, cancel_surf.get_rect(center=(cx, int(self.HEIGHT * 0.72))))

        pygame.display.flip()

    def handle_event(self, event):
        """Handle pygame events."""
        if event.type == QUIT:
            self.running = False
            return

        if event.type == VIDEORESIZE:
            self.WIDTH, self.HEIGHT = event.w, event.h
            self.screen = pygame.display.set_mode((self.WIDTH, self.HEIGHT), pygame.RESIZABLE)
            self.buttons = self._create_buttons()
            self._rebuild_preview()
            return

        for button in self.buttons:
            if button.handle_event(event):
                return

        if event.type == KEYDOWN:
            if event.key == K_ESCAPE:
                self.running = False

            elif event.key == K_p:
                self.toggle_play()

            elif event.key == K_s:
                self.stop()

            elif event.key == K_LEFT:
                self.seek_back()

            elif event.key == K_RIGHT:
                self.seek_forward()

            elif event.key == K_q:
                self.cycle_quality()

            elif event.key == K_w:
                self.save()

            elif event.key == K_e:
                self.export_video()

    def draw(self):
        """Draw the UI."""
        self.screen.fill(self.BG_COLOR)

        # Preview, centred in the area left of the button panel
        state = self.preview.draw(self.preview_surface)
        area_w = self.WIDTH - self.BUTTON_PANEL_WIDTH
        area_h = self.HEIGHT - self.STATUS_HEIGHT
        px = (area_w - self.preview_surface.get_width()) // 2
        py = (area_h - self.preview_surface.get_height()) // 2
        self.screen.blit(self.preview_surface, (px, py))

        # Button panel
        panel_x = self.WIDTH - self.BUTTON_PANEL_WIDTH
        pygame.draw.rect(self.screen, self.PANEL_COLOR, (panel_x, 0, self.BUTTON_PANEL_WIDTH, self.HEIGHT))
        for button in self.buttons:
            button.draw(self.screen, self.button_font)

        # Status bar
        status_y = self.HEIGHT - self.STATUS_HEIGHT
        pygame.draw.rect(self.screen, self.PANEL_COLOR, (0, status_y, panel_x, self.STATUS_HEIGHT))

        info = status_line(state, self.preview.timeline, self.quality)
        info_surf = self.font.render(info, True, self.TEXT_COLOR)
        self.screen.blit(info_surf, (self.MARGIN, status_y + 8))

        if _time.monotonic() < self.status_time:
            status_surf = self.small_font.render(self.status_message, True, self.DIM_COLOR)
            self.screen.blit(status_surf, (self.MARGIN, status_y + 34))

        pygame.display.flip()

    def run(self):
        """Main loop."""
        try:
            while self.running:
                for event in pygame.event.get():
                    self.handle_event(event)

                self.draw()
                self.clock.tick(30)

        finally:
            self.preview.cleanup()
            pygame.quit()


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Check for command line argument (file to open)
    initial_file = None
    if len(sys.argv) > 1:
        initial_file = sys.argv[1]
        if not os.path.isabs(initial_file):
            initial_file = os.path.abspath(initial_file)

    app = LyricVideoCreator(initial_file)
    app.run()


if __name__ == '__main__':
    main()
