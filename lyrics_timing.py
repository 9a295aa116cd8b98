"""Line/word progress for karaoke display, in exact (markup) or estimated mode."""
import math
import re
from dataclasses import dataclass
from typing import Optional

from karaoke_lrc import KaraokeLrc, find_active_line_index, find_word_progress

EPSILON = 0.000001
MIN_CHARS_PER_SECOND = 1.0
MIN_LINE_FLOOR = 0.2
# Gap between lyric lines that starts a new paragraph when no blank line says so
PARAGRAPH_GAP_SECONDS = 1.25


@dataclass(frozen=True)
class WordProgress:
    """Highlight state of the active line."""
    word_index: int = 0
    within: float = 0.0
    highlighted_words: tuple[int, ...] = ()


@dataclass(frozen=True)
class KaraokeProgress:
    line_index: int
    word: WordProgress


@dataclass(frozen=True)
class LineTiming:
    """Estimated start/duration of every line when there is no markup."""
    line_starts: tuple[float, ...]
    line_durations: tuple[float, ...]
    total_duration: float

    @property
    def total_lines(self) -> int:
        return len(self.line_starts)


@dataclass(frozen=True)
class PageInfo:
    page_start: int
    page_end: int
    current_page: int
    total_pages: int


def _highlighted(word_index: int, word_count: int) -> tuple[int, ...]:
    if word_count <= 0:
        return ()
    return tuple(range(word_index + 1))


def get_karaoke_progress(lrc: KaraokeLrc, current_time: float, offset: float = 0.0,
                         lead: float = 0.0) -> KaraokeProgress:
    """Exact mode: progress from parsed word timestamps."""
    cursor = current_time + offset
    line_index = find_active_line_index(lrc.lines, cursor)
    if not lrc.lines:
        return KaraokeProgress(line_index=0, word=WordProgress())

    line = lrc.lines[line_index]
    word_index, within = find_word_progress(line, cursor + lead)
    return KaraokeProgress(
        line_index=line_index,
        word=WordProgress(word_index, within, _highlighted(word_index, len(line.words))),
    )


def estimate_line_timing(lines, content_duration: float, pacing_source: str = 'chars',
                         chars_per_second: float = 12.0, min_line_duration: float = 0.8) -> LineTiming:
    """
    Estimate per-line timing from text length.
    Line durations are floored first, then all of them are rescaled so they
    add up to content_duration.
    """
    total_lines = max(1, len(lines))
    safe_duration = max(EPSILON, content_duration)

    if pacing_source == 'chars':
        cps = max(MIN_CHARS_PER_SECOND, chars_per_second)
        min_line = max(MIN_LINE_FLOOR, min_line_duration)
        durations = []
        for i in range(total_lines):
            text = lines[i] if i < len(lines) else ''
            chars = len(re.sub(r'\s+', ' ', text or '').strip())
            durations.append(max(min_line, chars / cps if chars > 0 else min_line))
    else:
        durations = [safe_duration / total_lines] * total_lines

    total = sum(durations)
    if total > 0:
        scale = safe_duration / total
        durations = [d * scale for d in durations]

    starts = []
    acc = 0.0
    for d in durations:
        starts.append(acc)
        acc += d

    return LineTiming(line_starts=tuple(starts), line_durations=tuple(durations), total_duration=safe_duration)


def find_estimated_line_index(timing: LineTiming, t: float) -> int:
    if timing.total_lines <= 1:
        return 0
    tt = min(max(0.0, t), timing.total_duration - EPSILON)
    for i in range(timing.total_lines - 1, -1, -1):
        if tt >= timing.line_starts[i]:
            return i
    return 0


def get_estimated_word_progress(line_text: str, line_duration: float, time_in_line: float,
                                lead: float = 0.0) -> WordProgress:
    """Estimated mode: spread the line's duration evenly over its words."""
    words = (line_text or '').split()
    if not words or line_duration <= 0:
        return WordProgress()

    word_duration = line_duration / len(words)
    lead = max(0.0, min(word_duration, lead))
    effective = max(0.0, min(line_duration, time_in_line + lead))

    word_index = min(len(words) - 1, int(math.floor(effective / word_duration)))
    within = max(0.0, min(1.0, (effective - word_index * word_duration) / word_duration))
    return WordProgress(word_index, within, _highlighted(word_index, len(words)))


def resolve_progress(current_time: float, lrc: Optional[KaraokeLrc], lines, timing: Optional[LineTiming],
                     offset: float = 0.0, lead: float = 0.0) -> KaraokeProgress:
    """Pick exact mode when markup was parsed, estimated mode otherwise."""
    if lrc is not None:
        return get_karaoke_progress(lrc, current_time, offset, lead)

    if timing is None or timing.total_lines == 0:
        return KaraokeProgress(line_index=0, word=WordProgress())

    line_index = find_estimated_line_index(timing, current_time)
    time_in_line = max(0.0, current_time - timing.line_starts[line_index])
    text = lines[line_index] if line_index < len(lines) else ''
    word = get_estimated_word_progress(text, timing.line_durations[line_index], time_in_line, lead)
    return KaraokeProgress(line_index=line_index, word=word)


def get_page_info(total_lines: int, active_index: int, lines_per_page: int) -> PageInfo:
    """Fixed pages of lines_per_page lines; the page holding the active line."""
    per_page = max(1, int(lines_per_page or 1))
    total = max(1, total_lines)
    active = max(0, min(total - 1, active_index))

    current_page = active // per_page
    page_start = current_page * per_page
    page_end = min(total - 1, page_start + per_page - 1)
    total_pages = int(math.ceil(total / per_page))
    return PageInfo(page_start, page_end, current_page, total_pages)


def stanza_bounds(lines, active_index: int, stanza_breaks=(), lrc: Optional[KaraokeLrc] = None) -> tuple[int, int]:
    """
    First and last line index of the paragraph holding the active line.
    Explicit stanza breaks win, then timing gaps, then blank text lines.
    """
    last = max(0, len(lines) - 1)
    active = max(0, min(last, active_index))

    if stanza_breaks:
        start = 0
        for b in stanza_breaks:
            if b <= active:
                start = b
            else:
                break
        end = last
        for b in stanza_breaks:
            if b > active:
                end = b - 1
                break
        return start, end

    if lrc is not None and lrc.lines:
        start = active
        while start > 0 and lrc.lines[start].start - lrc.lines[start - 1].end <= PARAGRAPH_GAP_SECONDS:
            start -= 1
        end = active
        while end < len(lrc.lines) - 1 and lrc.lines[end + 1].start - lrc.lines[end].end <= PARAGRAPH_GAP_SECONDS:
            end += 1
        return start, end

    start = active
    while start > 0 and (lines[start - 1] or '').strip():
        start -= 1
    end = active
    while end < last and (lines[end + 1] or '').strip():
        end += 1
    return start, end
