"""Video renderer: paints FrameState with PIL and encodes the frames with moviepy."""
import logging
import os
import tempfile
from typing import Callable, Optional

import numpy as np
from moviepy import AudioFileClip, VideoClip, afx
from PIL import Image, ImageDraw, ImageFont

from exceptions import AudioLoadError, ExportCancelled, ExportFailed
from frame_state import (
    FrameClock, FrameState, RenderPlan, TextRow, build_render_plan, compute_frame_state,
    fit_scale, highlight_band, highlight_span, row_left,
)
from project import CANVAS_SIZES, AudioSettings, VideoProject
from utils import find_font_path

logger = logging.getLogger(__name__)

# Export presets
QUALITY_SETTINGS = {
    "standard": {"bitrate": "8000k", "fps": 30},
    "hd": {"bitrate": "12000k", "fps": 30},
    "ultra": {"bitrate": "20000k", "fps": 60},
}

# Exported size per canvas format (width, height), whatever the preview size
EXPORT_RESOLUTIONS = {
    "vertical": (1080, 1920),
    "square": (1080, 1080),
    "horizontal": (1920, 1080),
    "tiktok": (1080, 1920),
    "youtube-shorts": (1080, 1920),
    "instagram-post": (1080, 1350),
    "twitter": (1280, 720),
}

AUDIO_FADE_OUT = 0.5  # Seconds


def export_size(canvas_format: str) -> tuple[int, int]:
    if canvas_format in EXPORT_RESOLUTIONS:
        return EXPORT_RESOLUTIONS[canvas_format]
    return CANVAS_SIZES.get(canvas_format, CANVAS_SIZES["vertical"])


class ExportSession:
    """
    Resources for one export job: the soundtrack clip and a temporary output file.

    Use as a context manager. On a clean exit the temporary file replaces the
    output path; on any exception it is deleted. Clips are closed either way.
    """

    def __init__(self, output_path: str, audio: AudioSettings, duration: float):
        self.output_path = output_path
        self.audio_settings = audio
        self.duration = duration
        self.temp_path = None
        self.temp_audio_path = None
        self.audio = None
        self._clips = []

    def __enter__(self):
        out_dir = os.path.dirname(os.path.abspath(self.output_path))
        suffix = os.path.splitext(self.output_path)[1] or ".mp4"
        fd, self.temp_path = tempfile.mkstemp(prefix=".export-", suffix=suffix, dir=out_dir)
        os.close(fd)
        # moviepy muxes the soundtrack from this file, by default it lands in the cwd
        fd, self.temp_audio_path = tempfile.mkstemp(prefix=".export-", suffix=".m4a", dir=out_dir)
        os.close(fd)
        try:
            self.audio = self._open_audio()
        except AudioLoadError:
            self._discard()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        if exc_type is None:
            os.replace(self.temp_path, self.output_path)
        else:
            self._discard()
        self._remove(self.temp_audio_path)
        return False

    def track(self, clip):
        """Close this clip when the session ends."""
        self._clips.append(clip)
        return clip

    def _open_audio(self):
        settings = self.audio_settings
        if not settings.file:
            return None

        try:
            source = self.track(AudioFileClip(settings.file))
        except (OSError, IOError, KeyError) as e:
            raise AudioLoadError(f"Could not open audio file {settings.file}: {e}") from e

        effects = [afx.MultiplyVolume(settings.volume / 100)]
        if settings.loop and source.duration < self.duration:
            effects.append(afx.AudioLoop(duration=self.duration))
        clip = source.with_effects(effects)

        if clip.duration > self.duration:
            clip = clip.subclipped(0, self.duration)
        if clip.duration > AUDIO_FADE_OUT:
            clip = clip.with_effects([afx.AudioFadeOut(AUDIO_FADE_OUT)])
        return clip

    def close(self):
        for clip in reversed(self._clips):
            clip.close()
        self._clips = []

    def _discard(self):
        self._remove(self.temp_path)
        self._remove(self.temp_audio_path)

    @staticmethod
    def _remove(path):
        if path and os.path.exists(path):
            os.remove(path)


class ExportRenderer:
    def __init__(self, project: VideoProject, quality: str = "hd", plan: Optional[RenderPlan] = None):
        self.project = project
        self.quality = QUALITY_SETTINGS.get(quality, QUALITY_SETTINGS["hd"])
        self.FPS = self.quality["fps"]
        self.WIDTH, self.HEIGHT = export_size(project.canvas_format)
        self.plan = plan or build_render_plan(project, self.WIDTH, self.HEIGHT)
        self._font_path, self._font_index = find_font_path()
        self._fonts = {}

    @property
    def timeline(self):
        return self.plan.timeline

    def frame_state_at(self, t: float) -> FrameState:
        return compute_frame_state(self.plan, t)

    def _get_font(self, size: int) -> ImageFont.FreeTypeFont:
        font = self._fonts.get(size)
        if font is not None:
            return font

        size = max(1, size)
        font = None
        if self._font_path:
            try:
                font = ImageFont.truetype(self._font_path, size, index=self._font_index or 0)
            except OSError as e:
                logger.warning("Could not load font %s: %s", self._font_path, e)
        if font is None:
            font = ImageFont.load_default(size)

        self._fonts[size] = font
        return font

    def _draw_row(self, img: Image.Image, row: TextRow, color) -> Image.Image:
        if not row.text or row.opacity <= 0:
            return img
        font = self._get_font(row.font_size)
        fill = tuple(color) + (int(255 * min(1.0, row.opacity)),)
        stroke = max(1, row.font_size // 40) if row.bold else 0

        width = font.getlength(row.text)
        scale = fit_scale(width, row.max_width)
        layer = Image.new("RGBA", img.size, (0, 0, 0, 0))

        if scale < 1.0:
            # Draw at full size, then squeeze horizontally into the container
            height = int(highlight_band(row)[1]) + stroke * 2
            text_img = Image.new("RGBA", (int(width) + stroke * 2 + 1, height), (0, 0, 0, 0))
            ImageDraw.Draw(text_img).text((stroke, height / 2), row.text, font=font, fill=fill,
                                          anchor="lm", stroke_width=stroke, stroke_fill=fill)
            squeezed_width = max(1, int(text_img.width * scale))
            text_img = text_img.resize((squeezed_width, height), Image.Resampling.LANCZOS)
            layer.paste(text_img, (round(row_left(row, squeezed_width)), round(row.y - height / 2)))
        else:
            ImageDraw.Draw(layer).text((row_left(row, width), row.y), row.text, font=font, fill=fill,
                                       anchor="lm", stroke_width=stroke, stroke_fill=fill)

        return Image.alpha_composite(img, layer)

    def _draw_highlight(self, img: Image.Image, state: FrameState) -> Image.Image:
        hl = state.highlight
        row = state.rows[hl.row]
        font = self._get_font(row.font_size)

        widths = [font.getlength(word) for word in hl.words]
        space = font.getlength(" ")
        scale = fit_scale(font.getlength(row.text), row.max_width)
        left, clip = highlight_span(widths, space, hl.progress, row, scale)
        top, band_height = highlight_band(row)
        if clip < 1:
            return img

        layer = Image.new("RGBA", img.size, (0, 0, 0, 0))
        ImageDraw.Draw(layer).rounded_rectangle(
            [left, top, left + clip, top + band_height],
            radius=8,
            fill=tuple(hl.color) + (int(255 * hl.opacity),),
        )
        return Image.alpha_composite(img, layer)

    def _draw_progress_bar(self, img: Image.Image, state: FrameState) -> Image.Image:
        bar = state.progress_bar
        layer = Image.new("RGBA", img.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        draw.rectangle(
            [bar.x, bar.y, bar.x + bar.width, bar.y + bar.height],
            fill=(255, 255, 255, int(255 * 0.2 * bar.opacity)),
        )

        fill_width = int(bar.width * bar.fraction)
        if fill_width > 0:
            draw.rectangle(
                [bar.x, bar.y, bar.x + fill_width, bar.y + bar.height],
                fill=tuple(bar.color) + (int(255 * bar.opacity),),
            )
        return Image.alpha_composite(img, layer)

    def paint(self, state: FrameState) -> Image.Image:
        img = Image.new("RGBA", (self.WIDTH, self.HEIGHT), tuple(state.background) + (255,))

        if state.highlight is not None:
            img = self._draw_highlight(img, state)

        for row in state.rows:
            img = self._draw_row(img, row, state.text_color)

        if state.progress_bar is not None:
            img = self._draw_progress_bar(img, state)

        for row in state.ending_rows:
            img = self._draw_row(img, row, state.text_color)

        return img

    def _render_frame(self, time: float) -> np.ndarray:
        """Render a single frame at the given time."""
        return np.array(self.paint(self.frame_state_at(time)).convert("RGB"))

    def render(self, output_path: str, progress_callback: Optional[Callable[[float], None]] = None,
               check_cancelled: Optional[Callable[[], bool]] = None) -> str:
        """
        Render the full video to output_path.

        progress_callback(fraction) is called once per frame and is the place
        for the caller to pump its UI events. check_cancelled() is polled once
        per frame; returning True aborts with ExportCancelled. Any other
        problem is raised as ExportFailed. Nothing is left at output_path
        unless the export finished.
        """
        total = self.timeline.total_duration
        clock = FrameClock(self.FPS, total)
        logger.info("Exporting %s: %dx%d, %d fps, %.1fs, %d frames",
                    output_path, self.WIDTH, self.HEIGHT, self.FPS, total, clock.frame_count)

        def make_frame(t):
            if check_cancelled and check_cancelled():
                raise ExportCancelled("Export cancelled")
            frame_time = clock.advance(t)
            frame = self._render_frame(frame_time)
            if progress_callback:
                progress_callback(frame_time / total if total > 0 else 1.0)
            return frame

        try:
            with ExportSession(output_path, self.project.audio, total) as session:
                video = session.track(VideoClip(make_frame, duration=total))
                if session.audio is not None:
                    video = session.track(video.with_audio(session.audio))

                video.write_videofile(
                    session.temp_path,
                    fps=self.FPS,
                    codec='libx264',
                    audio_codec='aac',
                    temp_audiofile=session.temp_audio_path,
                    bitrate=self.quality["bitrate"],
                    threads=4,
                    preset='medium',
                    logger=None
                )
        except ExportCancelled:
            logger.info("Export of %s cancelled", output_path)
            raise
        except AudioLoadError as e:
            raise ExportFailed(str(e)) from e
        except Exception as e:
            # moviepy/ffmpeg and the painters raise a wide range of types
            logger.exception("Export of %s failed", output_path)
            raise ExportFailed(f"Export failed: {e}") from e

        logger.info("Exported %s", output_path)
        return output_path
