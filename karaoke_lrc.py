"""Word-timed lyric markup: parsing, rescaling and exact-mode lookups.

Markup looks like::

    [00:12.40]<00:12.40>Hello <00:12.90>world
    [00:14.00]Second line without word tags

A line tag ``[mm:ss.xx]`` (or ``[h:mm:ss.xx]``) starts each timed line, inline
``<mm:ss.xx>`` tags mark where each word starts. There is no escaping, so lyric
text that happens to look like a tag is read as a tag.
"""
import logging
import math
import re
from dataclasses import dataclass, replace
from typing import Optional

logger = logging.getLogger(__name__)

LINE_TAG_RE = re.compile(r'^\s*\[(\d{1,2}:\d{2}(?::\d{2})?(?:\.\d{1,3})?)\]\s*(.*)$')
WORD_TAG_RE = re.compile(r'<(\d{1,2}:\d{2}(?::\d{2})?(?:\.\d{1,3})?)>')

# End of the very last word when nothing follows it
LAST_WORD_SECONDS = 0.6
# End of the very last line when it has no words
LAST_LINE_SECONDS = 1.0
MIN_WORD_SPAN = 0.000001


@dataclass(frozen=True)
class KaraokeWord:
    """A single sung word."""
    text: str
    start: float
    end: float


@dataclass(frozen=True)
class KaraokeLine:
    """A timed lyric line. ``text`` has all tags removed."""
    start: float
    end: float
    text: str
    words: tuple[KaraokeWord, ...] = ()


@dataclass(frozen=True)
class KaraokeLrc:
    """Parsed lyric timing. Never mutated; rescaling returns a new instance."""
    lines: tuple[KaraokeLine, ...]
    duration: float
    plain_text: str


def _normalize(text: str) -> list[str]:
    return (text or '').replace('\r\n', '\n').replace('\r', '\n').split('\n')


def parse_timestamp(raw: str) -> Optional[float]:
    """Convert 'mm:ss.xx' or 'h:mm:ss.xx' to seconds. None if malformed."""
    parts = raw.strip().split(':')
    if len(parts) < 2 or len(parts) > 3:
        return None

    try:
        values = [float(p) for p in parts]
    except ValueError:
        return None

    if any(not math.isfinite(v) or v < 0 for v in values):
        return None

    if len(values) == 3:
        hours, minutes, seconds = values
    else:
        hours, (minutes, seconds) = 0.0, values
    return hours * 3600 + minutes * 60 + seconds


def _split_words(rest: str, line_start: float) -> list[tuple[float, str]]:
    """Cut the text after a line tag into (start, text) word segments."""
    segments = []
    current_start = None
    last_idx = 0

    for match in WORD_TAG_RE.finditer(rest):
        t = parse_timestamp(match.group(1))
        if t is None:
            continue

        if current_start is None:
            # Text before the first word tag belongs to the line timestamp
            segments.append((line_start, rest[:match.start()]))
        else:
            segments.append((current_start, rest[last_idx:match.start()]))

        current_start = t
        last_idx = match.end()

    if current_start is not None:
        segments.append((current_start, rest[last_idx:]))

    return [(start, text.strip()) for start, text in segments if text.strip()]


def parse_karaoke_lrc(text: str) -> Optional[KaraokeLrc]:
    """
    Parse lyric markup into a KaraokeLrc.
    Returns None when no timed line is found, so callers can fall back to
    estimated pacing.
    """
    parsed = []  # (start, plain text, [(word start, word text)])

    for raw_line in _normalize(text):
        m = LINE_TAG_RE.match(raw_line)
        if not m:
            continue

        start = parse_timestamp(m.group(1))
        if start is None:
            continue

        rest = m.group(2) or ''
        plain = WORD_TAG_RE.sub('', rest).rstrip()
        parsed.append((start, plain, _split_words(rest, start)))

    if not parsed:
        return None

    # Authors sometimes paste lines out of order
    parsed.sort(key=lambda p: p[0])

    lines = []
    for i, (line_start, plain, segments) in enumerate(parsed):
        next_line_start = parsed[i + 1][0] if i + 1 < len(parsed) else None

        words = []
        for w, (word_start, word_text) in enumerate(segments):
            if w + 1 < len(segments):
                end = segments[w + 1][0]
            elif next_line_start is not None:
                end = next_line_start
            else:
                end = word_start + LAST_WORD_SECONDS
            words.append(KaraokeWord(text=word_text, start=word_start, end=max(word_start, end)))

        if next_line_start is not None:
            line_end = next_line_start
        elif words:
            line_end = words[-1].end
        else:
            line_end = line_start + LAST_LINE_SECONDS

        lines.append(KaraokeLine(
            start=line_start,
            end=max(line_start, line_end),
            text=plain,
            words=tuple(words),
        ))

    return KaraokeLrc(
        lines=tuple(lines),
        duration=max(line.end for line in lines),
        plain_text='\n'.join(line.text for line in lines),
    )


def scale_karaoke_lrc(lrc: KaraokeLrc, ratio: float) -> KaraokeLrc:
    """Multiply every timestamp by ratio. Invalid ratios act as 1."""
    s = ratio if isinstance(ratio, (int, float)) and math.isfinite(ratio) and ratio > 0 else 1.0

    lines = tuple(
        replace(
            line,
            start=line.start * s,
            end=line.end * s,
            words=tuple(replace(w, start=w.start * s, end=w.end * s) for w in line.words),
        )
        for line in lrc.lines
    )
    return replace(lrc, lines=lines, duration=lrc.duration * s)


def fit_karaoke_to_audio(lrc: KaraokeLrc, audio_duration: Optional[float]) -> KaraokeLrc:
    """Stretch lyric timing so it spans the measured audio duration."""
    if not audio_duration or audio_duration <= 0 or lrc.duration <= 0:
        return lrc
    ratio = audio_duration / lrc.duration
    logger.debug("Auto-fitting lyrics %.2fs -> %.2fs (x%.3f)", lrc.duration, audio_duration, ratio)
    return scale_karaoke_lrc(lrc, ratio)


def detect_stanza_breaks(text: str) -> tuple[int, ...]:
    """Indices of timed lines that follow one or more blank lines."""
    breaks = []
    pending = False
    timed_index = 0

    for raw_line in _normalize(text):
        if not raw_line.strip():
            pending = True
            continue

        if not LINE_TAG_RE.match(raw_line):
            continue

        if pending and timed_index > 0:
            breaks.append(timed_index)
        pending = False
        timed_index += 1

    return tuple(breaks)


def find_active_line_index(lines, t: float) -> int:
    """Highest line whose start has been reached (0 before the first line)."""
    if len(lines) <= 1:
        return 0
    tt = max(0.0, t)

    for i in range(len(lines) - 1, -1, -1):
        if tt >= lines[i].start:
            return i
    return 0


def find_word_progress(line: KaraokeLine, t: float) -> tuple[int, float]:
    """Return (word index, progress 0-1 within that word) for a line."""
    if not line.words:
        return 0, 0.0

    tt = max(line.start, min(t, line.end))

    word_index = 0
    for i in range(len(line.words) - 1, -1, -1):
        if tt >= line.words[i].start:
            word_index = i
            break

    word = line.words[word_index]
    span = max(MIN_WORD_SPAN, word.end - word.start)
    within = max(0.0, min(1.0, (tt - word.start) / span))
    return word_index, within
