import pytest

from karaoke_lrc import KaraokeLine, KaraokeLrc, parse_karaoke_lrc
from lyrics_timing import (
    LineTiming, WordProgress, estimate_line_timing, find_estimated_line_index,
    get_estimated_word_progress, get_karaoke_progress, get_page_info, resolve_progress, stanza_bounds,
)


def test_estimated_timing_adds_up_to_content_duration():
    lines = ["a short one", "a considerably longer line of lyrics", "", "mid length line"]
    timing = estimate_line_timing(lines, 20.0)

    assert timing.total_lines == 4
    assert sum(timing.line_durations) == pytest.approx(20.0)
    assert timing.line_starts[0] == 0
    for i in range(1, 4):
        assert timing.line_starts[i] == pytest.approx(timing.line_starts[i - 1] + timing.line_durations[i - 1])
    # Longer text gets more time
    assert timing.line_durations[1] > timing.line_durations[0]


def test_floor_is_applied_before_rescale():
    # 'x' alone would get 1/12s; the 0.8s floor lifts it before everything is scaled to 10s
    timing = estimate_line_timing(["x", "abcdefghijklmnopqrstuvwx"], 10.0, chars_per_second=12, min_line_duration=0.8)

    raw = [0.8, 2.0]
    expected = [d * 10.0 / sum(raw) for d in raw]
    assert list(timing.line_durations) == pytest.approx(expected)


def test_wpm_pacing_splits_evenly():
    timing = estimate_line_timing(["one", "two words", "three more words"], 9.0, pacing_source="wpm")
    assert list(timing.line_durations) == pytest.approx([3.0, 3.0, 3.0])


def test_estimated_timing_of_no_lines():
    timing = estimate_line_timing([], 0)
    assert timing.total_lines == 1
    assert timing.total_duration > 0


def test_find_estimated_line_index():
    timing = LineTiming(line_starts=(0, 2, 5), line_durations=(2, 3, 1), total_duration=6)

    assert find_estimated_line_index(timing, -1) == 0
    assert find_estimated_line_index(timing, 1.99) == 0
    assert find_estimated_line_index(timing, 2) == 1
    assert find_estimated_line_index(timing, 5.5) == 2
    assert find_estimated_line_index(timing, 100) == 2


def test_estimated_word_progress():
    progress = get_estimated_word_progress("one two three four", 4.0, 2.5)

    assert progress.word_index == 2
    assert progress.within == pytest.approx(0.5)
    assert progress.highlighted_words == (0, 1, 2)


def test_estimated_word_progress_lead_is_capped_to_one_word():
    progress = get_estimated_word_progress("one two", 2.0, 0.0, lead=5.0)
    assert progress.word_index == 1
    assert progress.within == pytest.approx(0.0)


@pytest.mark.parametrize("text, duration", [("", 3.0), ("   ", 3.0), ("words here", 0)])
def test_estimated_word_progress_degenerate(text, duration):
    assert get_estimated_word_progress(text, duration, 1.0) == WordProgress()


def test_exact_progress_applies_offset_and_lead():
    lrc = parse_karaoke_lrc("[00:00.00]<00:00.00>Hello <00:00.50>world\n[00:02.00]<00:02.00>next <00:02.50>one")

    progress = get_karaoke_progress(lrc, 1.9, offset=0.2)
    assert progress.line_index == 1
    assert progress.word.word_index == 0

    progress = get_karaoke_progress(lrc, 0.45, lead=0.1)
    assert progress.line_index == 0
    assert progress.word.word_index == 1
    assert progress.word.highlighted_words == (0, 1)


def test_exact_progress_for_line_without_words():
    lrc = parse_karaoke_lrc("[00:00.00]plain line")
    progress = get_karaoke_progress(lrc, 0.5)
    assert progress.word == WordProgress()


def test_resolve_progress_picks_mode():
    lrc = parse_karaoke_lrc("[00:00.00]a\n[00:01.00]b")
    lines = ["first", "second"]
    timing = estimate_line_timing(lines, 10.0, pacing_source="wpm")

    assert resolve_progress(1.5, lrc, lines, timing).line_index == 1
    assert resolve_progress(1.5, None, lines, timing).line_index == 0
    assert resolve_progress(6.0, None, lines, timing).line_index == 1
    assert resolve_progress(6.0, None, [], None).line_index == 0


@pytest.mark.parametrize("total, per_page", [(1, 1), (7, 3), (9, 3), (10, 4), (5, 10)])
def test_page_contains_active_line(total, per_page):
    for active in range(total):
        page = get_page_info(total, active, per_page)
        assert page.page_start <= active <= page.page_end
        assert page.page_end - page.page_start + 1 <= per_page
        assert 0 <= page.current_page < page.total_pages


def test_page_info_values():
    assert get_page_info(7, 4, 3) == get_page_info(7, 3, 3)
    page = get_page_info(7, 6, 3)
    assert (page.page_start, page.page_end, page.current_page, page.total_pages) == (6, 6, 2, 3)


def test_page_info_degenerate_inputs():
    page = get_page_info(0, 5, 0)
    assert (page.page_start, page.page_end, page.total_pages) == (0, 0, 1)


def test_stanza_bounds_from_breaks():
    lines = ["a", "b", "c", "d", "e"]
    assert stanza_bounds(lines, 0, (2, 4)) == (0, 1)
    assert stanza_bounds(lines, 3, (2, 4)) == (2, 3)
    assert stanza_bounds(lines, 4, (2, 4)) == (4, 4)


def test_stanza_bounds_from_timing_gaps():
    lrc = KaraokeLrc(
        lines=(KaraokeLine(0, 1, "a"), KaraokeLine(1, 2, "b"), KaraokeLine(5, 6, "c"), KaraokeLine(6.5, 7, "d")),
        duration=7,
        plain_text="a\nb\nc\nd",
    )
    lines = [line.text for line in lrc.lines]
    assert stanza_bounds(lines, 0, (), lrc) == (0, 1)
    assert stanza_bounds(lines, 3, (), lrc) == (2, 3)


def test_parsed_lines_are_one_paragraph_without_breaks():
    # Parsed lines end where the next one starts, so there is never a timing gap
    lrc = parse_karaoke_lrc("[00:00.00]a\n[00:01.00]b\n[00:09.00]c")
    assert stanza_bounds([line.text for line in lrc.lines], 2, (), lrc) == (0, 2)


def test_stanza_bounds_from_blank_lines():
    lines = ["a", "b", "", "c", "d"]
    assert stanza_bounds(lines, 1, ()) == (0, 1)
    assert stanza_bounds(lines, 4, ()) == (3, 4)
