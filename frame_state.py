"""
Per-frame visual state shared by the preview and the export renderer.

Both renderers build a RenderPlan once, then call compute_frame_state() for
every frame and only differ in how they paint the result. Every number that
ends up on screen (positions, font sizes, opacities, highlight progress) comes
from here, so a frame previewed at time t looks like the exported frame at t.
"""
import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

from karaoke_lrc import KaraokeLrc, detect_stanza_breaks, fit_karaoke_to_audio, parse_karaoke_lrc
from lyrics_timing import (
    KaraokeProgress, LineTiming, PageInfo, WordProgress,
    estimate_line_timing, get_page_info, resolve_progress, stanza_bounds,
)
from project import VideoProject, compute_project_timeline
from text_scaling import ScaledTextSettings, get_scaled_text_settings
from timeline import (
    ScrollState, TimelineState, TransitionOpacity,
    calculate_relative_font_size, calculate_transition_opacity, compute_scroll_state,
    count_words, scale_to_output, scroll_offset,
)
from utils import clamp, parse_hex_color

logger = logging.getLogger(__name__)

# Average glyph advance as a fraction of the font size, for width estimates
AVERAGE_GLYPH_WIDTH = 0.55

BACKGROUND_FALLBACK = (26, 26, 46)
TEXT_FALLBACK = (255, 255, 255)

# Relative sizes of lyric rows
BASE_ROW_SCALE = 0.9
ACTIVE_ROW_SCALE = 1.2
SIDE_ROW_SCALE = 0.7
LINES_MODE_BOOST = 1.04
FULL_MODE_LINES = 12
FULL_MODE_MIN_FIT = 0.55

PROGRESS_BAR_HEIGHT = 8  # At the reference height


@dataclass(frozen=True)
class RenderPlan:
    """Everything about a render that does not change from frame to frame."""
    project: VideoProject
    width: int
    height: int
    timeline: TimelineState
    scaled: ScaledTextSettings
    font_size: int
    padding_x: int
    padding_y: int
    line_height: float  # Pixels between scroll lines
    text_lines: tuple[str, ...]
    content_extent: float  # Size of the scrolling block along the scroll direction
    karaoke: Optional[KaraokeLrc] = None
    stanza_breaks: tuple[int, ...] = ()
    lyric_lines: tuple[str, ...] = ()
    line_timing: Optional[LineTiming] = None

    @property
    def container_width(self) -> float:
        return self.width * self.project.text.container_width / 100

    @property
    def anchor_x(self) -> float:
        """x the text is aligned to, honouring the container width and padding."""
        align = self.project.text.text_align
        if align == 'left':
            return (self.width - self.container_width) / 2 + self.padding_x
        if align == 'right':
            return (self.width + self.container_width) / 2 - self.padding_x
        return self.width / 2

    @property
    def center_y(self) -> float:
        safe_height = max(0, self.height - self.padding_y * 2)
        return self.padding_y + safe_height / 2


@dataclass(frozen=True)
class TextRow:
    """One line of text to paint, vertically centred on y."""
    text: str
    x: float
    y: float
    font_size: int
    opacity: float
    align: str = 'center'
    max_width: float = 0  # Squeeze horizontally beyond this width (0 = never)
    bold: bool = False


@dataclass(frozen=True)
class Highlight:
    """Sweep highlight behind the active lyric row."""
    row: int  # Index into FrameState.rows
    words: tuple[str, ...]
    progress: WordProgress
    color: tuple[int, int, int]
    opacity: float


@dataclass(frozen=True)
class ProgressBar:
    x: float
    y: float
    width: float
    height: float
    fraction: float
    opacity: float
    color: tuple[int, int, int]


@dataclass(frozen=True)
class FrameState:
    time: float
    scroll: ScrollState
    transition: TransitionOpacity
    background: tuple[int, int, int]
    text_color: tuple[int, int, int]
    rows: tuple[TextRow, ...] = ()
    ending_rows: tuple[TextRow, ...] = ()
    highlight: Optional[Highlight] = None
    progress_bar: Optional[ProgressBar] = None
    karaoke: Optional[KaraokeProgress] = None
    page: Optional[PageInfo] = None


def estimate_text_width(text: str, font_size: float) -> float:
    """Width guess that does not depend on any font backend."""
    return len(text or '') * font_size * AVERAGE_GLYPH_WIDTH


def effective_timeline(project: VideoProject, karaoke: Optional[KaraokeLrc],
                       audio_duration: Optional[float]) -> TimelineState:
    """Project timeline, with the content following the audio when lyrics are auto-fitted."""
    base = compute_project_timeline(project)
    if karaoke is not None and project.lyrics.auto_fit_lrc_to_audio and audio_duration and audio_duration > 0:
        return replace(base, content_duration=audio_duration, total_duration=audio_duration + base.ending_duration)
    return base


def build_render_plan(project: VideoProject, width: int, height: int,
                      audio_duration: Optional[float] = None) -> RenderPlan:
    """Resolve lyrics, timing and sizes for one output resolution."""
    if audio_duration is None:
        audio_duration = project.audio.duration

    karaoke = None
    stanza_breaks = ()
    if project.theme == 'lyrics' and project.uses_lrc:
        raw = parse_karaoke_lrc(project.lyrics.karaoke_lrc)
        if raw is None:
            logger.warning("No timed lines in lyric markup, using estimated pacing")
        else:
            karaoke = fit_karaoke_to_audio(raw, audio_duration) if project.lyrics.auto_fit_lrc_to_audio else raw
            stanza_breaks = detect_stanza_breaks(project.lyrics.karaoke_lrc)

    timeline = effective_timeline(project, karaoke, audio_duration)

    text = project.text
    word_count = count_words(karaoke.plain_text if karaoke else text.content)
    scaled = get_scaled_text_settings(text.font_size, text.line_height, text.letter_spacing,
                                      text.padding_x, text.padding_y, word_count, text.auto_scale_font)

    font_size = max(1, calculate_relative_font_size(scaled.font_size, height))
    padding_x = scale_to_output(scaled.padding_x, height)
    padding_y = scale_to_output(scaled.padding_y, height)
    line_height = font_size * scaled.line_height
    text_lines = tuple(text.content.split('\n'))

    if project.animation.direction == 'up':
        content_extent = len(text_lines) * line_height + padding_y * 2
    else:
        widest = max((estimate_text_width(line, font_size) for line in text_lines), default=0)
        content_extent = widest + padding_x * 2

    lyric_lines = ()
    line_timing = None
    if project.theme == 'lyrics':
        if karaoke is not None:
            lyric_lines = tuple(line.text for line in karaoke.lines)
        else:
            lyric_lines = text_lines
            lyrics = project.lyrics
            line_timing = estimate_line_timing(lyric_lines, timeline.content_duration, lyrics.pacing_source,
                                               lyrics.chars_per_second, lyrics.min_line_duration)

    return RenderPlan(
        project=project,
        width=width,
        height=height,
        timeline=timeline,
        scaled=scaled,
        font_size=font_size,
        padding_x=padding_x,
        padding_y=padding_y,
        line_height=line_height,
        text_lines=text_lines,
        content_extent=content_extent,
        karaoke=karaoke,
        stanza_breaks=stanza_breaks,
        lyric_lines=lyric_lines,
        line_timing=line_timing,
    )


def _scroll_rows(plan: RenderPlan, scroll: ScrollState, opacity: float) -> tuple[TextRow, ...]:
    project = plan.project
    direction = project.animation.direction
    rows = []

    if direction == 'up':
        top = scroll_offset('up', scroll.progress, plan.height, plan.content_extent)
        for i, line in enumerate(plan.text_lines):
            y = top + plan.padding_y + (i + 0.5) * plan.line_height
            if -plan.line_height < y < plan.height + plan.line_height:
                rows.append(TextRow(line, plan.anchor_x, y, plan.font_size, opacity,
                                    project.text.text_align, bold=project.text.is_bold))
        return tuple(rows)

    left = scroll_offset(direction, scroll.progress, plan.width, plan.content_extent)
    if left > plan.width or left + plan.content_extent < 0:
        return ()

    block_top = (plan.height - len(plan.text_lines) * plan.line_height) / 2
    for i, line in enumerate(plan.text_lines):
        y = block_top + (i + 0.5) * plan.line_height
        rows.append(TextRow(line, left + plan.padding_x, y, plan.font_size, opacity, 'left',
                            bold=project.text.is_bold))
    return tuple(rows)


def _visible_lyric_indices(plan: RenderPlan, line_index: int, page: PageInfo) -> list[int]:
    mode = plan.project.lyrics.display_mode
    if mode == 'pages':
        return list(range(page.page_start, page.page_end + 1))
    if mode == 'full':
        return list(range(len(plan.lyric_lines)))
    start, end = stanza_bounds(plan.lyric_lines, line_index, plan.stanza_breaks, plan.karaoke)
    return list(range(start, end + 1))


def _lyric_rows(plan: RenderPlan, progress: KaraokeProgress, page: PageInfo,
                opacity: float) -> tuple[tuple[TextRow, ...], int]:
    """Rows for the lyrics theme and the index of the active row (-1 if none)."""
    project = plan.project
    lyrics = project.lyrics
    lines = plan.lyric_lines
    line_index = progress.line_index

    lyrics_opacity = opacity * lyrics.text_opacity
    dim_opacity = lyrics_opacity * lyrics.unhighlighted_opacity
    x = plan.anchor_x
    align = project.text.text_align
    bold = project.text.is_bold
    max_width = plan.container_width

    base_font = plan.font_size * BASE_ROW_SCALE
    active_font = base_font * ACTIVE_ROW_SCALE

    if lyrics.display_mode == 'lines':
        current_font = int(round(active_font * LINES_MODE_BOOST))
        side_font = int(round(plan.font_size * SIDE_ROW_SCALE))
        gap = round(active_font * 1.05)
        rows = []
        if line_index > 0 and lines[line_index - 1]:
            rows.append(TextRow(lines[line_index - 1], x, plan.center_y - gap, side_font, dim_opacity,
                                align, max_width, bold))
        active_row = len(rows)
        current = lines[line_index] if line_index < len(lines) else ''
        rows.append(TextRow(current, x, plan.center_y, current_font, lyrics_opacity, align, max_width, bold))
        if line_index + 1 < len(lines) and lines[line_index + 1]:
            rows.append(TextRow(lines[line_index + 1], x, plan.center_y + gap, side_font, dim_opacity,
                                align, max_width, bold))
        return tuple(rows), active_row

    indices = _visible_lyric_indices(plan, line_index, page)
    if lyrics.display_mode == 'full':
        fit = max(FULL_MODE_MIN_FIT, min(1.0, FULL_MODE_LINES / max(FULL_MODE_LINES, len(indices))))
        base_font *= fit
        active_font *= fit

    line_gap = round(base_font * plan.scaled.line_height)
    top = plan.center_y - (len(indices) - 1) * line_gap / 2

    rows = []
    active_row = -1
    for i, idx in enumerate(indices):
        is_active = idx == line_index
        if is_active:
            active_row = i
        rows.append(TextRow(
            lines[idx] if idx < len(lines) else '',
            x,
            top + i * line_gap,
            int(round(active_font if is_active else base_font)),
            lyrics_opacity if is_active else dim_opacity,
            align,
            max_width,
            bold,
        ))
    return tuple(rows), active_row


def _highlight_words(plan: RenderPlan, line_index: int, row_text: str) -> tuple[str, ...]:
    if plan.karaoke is not None and line_index < len(plan.karaoke.lines):
        words = plan.karaoke.lines[line_index].words
        if words:
            return tuple(w.text for w in words)
    return tuple(row_text.split())


def _ending_rows(plan: RenderPlan, opacity: float) -> tuple[TextRow, ...]:
    ending = plan.project.ending
    if not ending.cta_text:
        return ()
    font_size = max(1, calculate_relative_font_size(ending.cta_font_size, plan.height))
    return (TextRow(ending.cta_text, plan.width / 2, plan.height / 2, font_size, opacity,
                    'center', plan.width * 0.9, True),)


def compute_frame_state(plan: RenderPlan, time: float) -> FrameState:
    """Visual state at a point in time. Pure: same plan and time, same result."""
    project = plan.project
    timeline = plan.timeline
    t = clamp(time, 0.0, timeline.total_duration)

    scroll = compute_scroll_state(t, timeline.content_duration, project.ending.enabled)
    transition = calculate_transition_opacity(t, timeline.content_duration, project.ending.enabled)

    rows = ()
    highlight = None
    progress_bar = None
    karaoke = None
    page = None

    if transition.content_opacity > 0:
        if project.theme == 'lyrics':
            lyrics = project.lyrics
            karaoke = resolve_progress(t, plan.karaoke, plan.lyric_lines, plan.line_timing,
                                       lyrics.lrc_offset_seconds, lyrics.highlight_lead_seconds)
            page = get_page_info(len(plan.lyric_lines), karaoke.line_index, lyrics.lines_per_page)
            rows, active_row = _lyric_rows(plan, karaoke, page, transition.content_opacity)

            if project.text.wave_animation and active_row >= 0 and rows[active_row].text.strip():
                highlight = Highlight(
                    row=active_row,
                    words=_highlight_words(plan, karaoke.line_index, rows[active_row].text),
                    progress=karaoke.word,
                    color=parse_hex_color(lyrics.highlight_bg_color),
                    opacity=transition.content_opacity * min(1.0, 0.12 + lyrics.highlight_intensity * 0.45),
                )

            if lyrics.show_progress_bar:
                bar_width = plan.width * 0.5
                bar_height = max(2, scale_to_output(PROGRESS_BAR_HEIGHT, plan.height))
                progress_bar = ProgressBar(
                    x=(plan.width - bar_width) / 2,
                    y=plan.height - plan.padding_y - bar_height,
                    width=bar_width,
                    height=bar_height,
                    fraction=clamp(t / max(0.000001, timeline.content_duration), 0.0, 1.0),
                    opacity=transition.content_opacity * lyrics.text_opacity * 0.85,
                    color=parse_hex_color(lyrics.highlight_bg_color),
                )
        else:
            rows = _scroll_rows(plan, scroll, transition.content_opacity)

    ending_rows = _ending_rows(plan, transition.ending_opacity) if transition.ending_opacity > 0 else ()

    return FrameState(
        time=t,
        scroll=scroll,
        transition=transition,
        background=parse_hex_color(project.background.color, BACKGROUND_FALLBACK),
        text_color=parse_hex_color(project.text.color, TEXT_FALLBACK),
        rows=rows,
        ending_rows=ending_rows,
        highlight=highlight,
        progress_bar=progress_bar,
        karaoke=karaoke,
        page=page,
    )


def fit_scale(measured_width: float, max_width: float) -> float:
    """Horizontal squeeze factor so a row fits its container."""
    if max_width <= 0 or measured_width <= 0:
        return 1.0
    return min(1.0, max_width / measured_width)


def row_left(row: TextRow, width: float) -> float:
    """Left edge of a row of the given painted width."""
    if row.align == 'center':
        return row.x - width / 2
    if row.align == 'right':
        return row.x - width
    return row.x


def highlight_span(word_widths, space_width: float, progress: WordProgress, row: TextRow,
                   scale: float = 1.0) -> tuple[float, float]:
    """
    (left x, width) of the highlight band, from the painter's own word widths.
    Covers every finished word plus the active word's within fraction.
    """
    if not word_widths:
        return row_left(row, 0), 0.0

    total = sum(word_widths) + space_width * (len(word_widths) - 1)
    idx = max(0, min(progress.word_index, len(word_widths) - 1))
    clip = sum(word_widths[i] + space_width for i in range(idx)) + progress.within * word_widths[idx]
    return row_left(row, total * scale), max(0.0, clip * scale)


def highlight_band(row: TextRow) -> tuple[float, float]:
    """(top y, height) of the highlight band behind a row."""
    return row.y - row.font_size * 0.6, row.font_size * 1.2


class FrameClock:
    """
    Synthetic export clock that never moves backward.

    There is no separate audio clock to follow during export: moviepy muxes the
    soundtrack against these same frame times, so frame time is the audio
    position.
    """

    def __init__(self, fps: int, total_duration: float):
        self.fps = fps
        self.total_duration = max(0.0, total_duration)
        self._last = 0.0

    @property
    def frame_count(self) -> int:
        return max(1, int(math.ceil(self.total_duration * self.fps)))

    def time_for_frame(self, frame_index: int) -> float:
        return frame_index / self.fps

    def advance(self, frame_time: float) -> float:
        t = clamp(max(frame_time, self._last), 0.0, self.total_duration)
        self._last = t
        return t
