"""
Timeline engine: the one place durations, scroll positions and fades are computed.

The preview and the export renderer both call these functions with the same
inputs, so they must stay pure.
"""
import math
from dataclasses import dataclass, field
from typing import Optional

# Reading speed presets (words per minute)
WPM_PRESETS = {
    'beginner': 150,
    'average': 225,
    'comfortable': 275,
    'fast': 400,
    'custom': 200,
}
DEFAULT_WPM = 150

MIN_CONTENT_SECONDS = 5
EMPTY_CONTENT_SECONDS = 10
EPSILON = 0.000001

# Cross-fade between content and ending card, centred on the boundary
TRANSITION_SECONDS = 0.5

# Font sizes and paddings are authored against this output height
REFERENCE_HEIGHT = 1920


@dataclass(frozen=True)
class TimelineState:
    word_count: int
    target_wpm: int
    content_duration: float  # Scrolling/lyrics body
    ending_duration: float  # 0 when the ending card is off
    total_duration: float


@dataclass(frozen=True)
class ScrollState:
    progress: float  # 0-1 through the content
    is_ending: bool


@dataclass(frozen=True)
class TransitionOpacity:
    content_opacity: float
    ending_opacity: float


@dataclass(frozen=True)
class TimelineValidation:
    is_valid: bool
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def count_words(text: str) -> int:
    return len((text or '').split())


def compute_timeline(text: str, wpm_preset: str, custom_duration: Optional[float],
                     ending_enabled: bool, ending_duration: float) -> TimelineState:
    """
    Compute content, ending and total duration.

    With wpm_preset == 'custom' and a custom_duration the override is used as
    given (the settings layer clamps it to 3-120s). Otherwise the duration comes
    from the word count at the preset's reading speed.
    """
    word_count = count_words(text)

    if wpm_preset == 'custom' and custom_duration is not None:
        if math.isfinite(custom_duration) and custom_duration > 0:
            content_duration = float(custom_duration)
        else:
            content_duration = float(EMPTY_CONTENT_SECONDS)
        target_wpm = calculate_wpm(word_count, content_duration)
    else:
        target_wpm = WPM_PRESETS.get(wpm_preset, DEFAULT_WPM)
        if word_count > 0 and target_wpm > 0:
            content_duration = float(max(MIN_CONTENT_SECONDS, math.ceil(word_count / target_wpm * 60)))
        else:
            content_duration = float(EMPTY_CONTENT_SECONDS)

    actual_ending = float(ending_duration) if ending_enabled else 0.0

    return TimelineState(
        word_count=word_count,
        target_wpm=target_wpm,
        content_duration=content_duration,
        ending_duration=actual_ending,
        total_duration=content_duration + actual_ending,
    )


def compute_scroll_state(current_time: float, content_duration: float, ending_enabled: bool) -> ScrollState:
    is_ending = bool(ending_enabled) and current_time >= content_duration
    if is_ending:
        progress = 1.0
    else:
        progress = current_time / max(EPSILON, content_duration)
    return ScrollState(progress=max(0.0, min(1.0, progress)), is_ending=is_ending)


def calculate_scroll_position(progress: float, container_extent: float, content_extent: float) -> float:
    """
    Position of the content's leading edge. Starts fully off one edge
    (-content_extent) and ends fully off the other (container_extent).
    """
    travel = container_extent + content_extent
    return -content_extent + progress * travel


def scroll_offset(direction: str, progress: float, container_extent: float, content_extent: float) -> float:
    """Scroll position for a direction: 'up' and 'left' travel the opposite way to 'right'."""
    position = calculate_scroll_position(progress, container_extent, content_extent)
    if direction == 'right':
        return position
    # Mirror: start at container_extent, end at -content_extent
    return container_extent - content_extent - position


def calculate_transition_opacity(current_time: float, content_duration: float,
                                 ending_enabled: bool) -> TransitionOpacity:
    if not ending_enabled:
        return TransitionOpacity(1.0, 0.0)

    fade_start = content_duration - TRANSITION_SECONDS / 2
    fade_end = content_duration + TRANSITION_SECONDS / 2

    if current_time < fade_start:
        return TransitionOpacity(1.0, 0.0)
    if current_time >= fade_end:
        return TransitionOpacity(0.0, 1.0)

    f = (current_time - fade_start) / TRANSITION_SECONDS
    return TransitionOpacity(1.0 - f, f)


def calculate_relative_font_size(base_font_size: float, output_height: float) -> int:
    """Rescale a size authored for a 1920px tall frame to the actual output height."""
    return int(round(base_font_size * output_height / REFERENCE_HEIGHT))


def scale_to_output(value: float, output_height: float) -> int:
    return int(round(value / REFERENCE_HEIGHT * output_height))


def calculate_wpm(word_count: int, duration: float) -> int:
    if duration <= 0 or word_count <= 0:
        return 0
    return int(round(word_count / duration * 60))


def wpm_level(wpm: int) -> str:
    """'good', 'warning' or 'danger' for display next to the reading speed."""
    if wpm <= 180:
        return 'good'
    if wpm <= 300:
        return 'warning'
    return 'danger'


def validate_timeline(timeline: TimelineState) -> TimelineValidation:
    warnings = []
    errors = []

    if timeline.word_count == 0:
        warnings.append('No text content - video will be empty')

    if timeline.target_wpm > 600:
        errors.append(f'Reading speed ({timeline.target_wpm} WPM) is too fast to read')
    elif timeline.target_wpm > 400:
        warnings.append(f'Reading speed ({timeline.target_wpm} WPM) may be too fast for most readers')

    if timeline.content_duration < 3:
        errors.append('Video is too short (minimum 3 seconds)')

    if timeline.total_duration > 120:
        warnings.append('Video is over 2 minutes - consider breaking into parts')

    return TimelineValidation(is_valid=not errors, warnings=warnings, errors=errors)
