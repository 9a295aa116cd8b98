import random
from dataclasses import replace

import pytest

from frame_state import (
    FrameClock, TextRow, build_render_plan, compute_frame_state, effective_timeline,
    estimate_text_width, fit_scale, highlight_span, row_left,
)
from karaoke_lrc import parse_karaoke_lrc
from lyrics_timing import WordProgress
from preview import PreviewRenderer
from project import AnimationSettings, AudioSettings, EndingSettings, LyricsSettings
from video_renderer import ExportRenderer, export_size


def _projects(scroll_project, lyrics_project, estimated_lyrics_project):
    with_ending = replace(scroll_project, ending=EndingSettings(enabled=True, duration=2))
    sideways = replace(scroll_project, animation=AnimationSettings(direction="right"))
    lines_mode = replace(lyrics_project, lyrics=replace(lyrics_project.lyrics, display_mode="lines"))
    paragraph = replace(lyrics_project, lyrics=replace(lyrics_project.lyrics, display_mode="paragraph"))
    full = replace(estimated_lyrics_project,
                   lyrics=LyricsSettings(display_mode="full"), ending=EndingSettings(enabled=True))
    fitted = replace(lyrics_project, audio=AudioSettings(file="song.mp3", duration=20.0))
    return [scroll_project, with_ending, sideways, lyrics_project, lines_mode, paragraph,
            estimated_lyrics_project, full, fitted]


def test_preview_and_export_compute_identical_frames(scroll_project, lyrics_project, estimated_lyrics_project):
    rng = random.Random(1234)
    for project in _projects(scroll_project, lyrics_project, estimated_lyrics_project):
        exporter = ExportRenderer(project)
        preview = PreviewRenderer(project, export_size(project.canvas_format))

        assert preview.timeline == exporter.timeline
        total = exporter.timeline.total_duration
        for t in [0, total] + [rng.uniform(-1, total + 1) for _ in range(50)]:
            assert preview.frame_state_at(t) == exporter.frame_state_at(t)


def test_smaller_preview_keeps_timing(lyrics_project):
    exporter = ExportRenderer(lyrics_project)
    preview = PreviewRenderer(lyrics_project, (270, 480))

    for t in (0.2, 1.7, 3.3, 4.9):
        small = preview.frame_state_at(t)
        full = exporter.frame_state_at(t)
        assert small.scroll == full.scroll
        assert small.transition == full.transition
        assert small.karaoke == full.karaoke
        assert small.page == full.page
        assert [row.text for row in small.rows] == [row.text for row in full.rows]


def test_lyrics_page_and_highlight(lyrics_project):
    plan = build_render_plan(lyrics_project, 1080, 1920)
    state = compute_frame_state(plan, 1.7)

    assert state.karaoke.line_index == 1
    assert state.page.page_start == 0 and state.page.page_end == 1
    assert [row.text for row in state.rows] == ["Hello world", "second line here"]
    assert state.highlight.row == 1
    assert state.highlight.words == ("second", "line", "here")
    assert state.highlight.progress.word_index == 0
    assert state.progress_bar is not None
    # Active row is larger and brighter than the others
    assert state.rows[1].font_size > state.rows[0].font_size
    assert state.rows[1].opacity > state.rows[0].opacity


def test_no_highlight_when_wave_animation_is_off(lyrics_project):
    project = replace(lyrics_project, text=replace(lyrics_project.text, wave_animation=False))
    state = compute_frame_state(build_render_plan(project, 1080, 1920), 1.7)
    assert state.highlight is None


def test_markup_ignored_outside_lyrics_theme(lyrics_project):
    plan = build_render_plan(replace(lyrics_project, theme="vertical"), 1080, 1920)
    assert plan.karaoke is None
    assert plan.lyric_lines == ()


def test_bad_markup_falls_back_to_estimated_pacing(lyrics_project):
    project = replace(lyrics_project, lyrics=replace(lyrics_project.lyrics, karaoke_lrc="no timing here"))
    plan = build_render_plan(project, 1080, 1920)

    assert plan.karaoke is None
    assert plan.line_timing is not None
    assert compute_frame_state(plan, 1.0).karaoke is not None


def test_auto_fit_follows_audio_duration(lyrics_project):
    karaoke = parse_karaoke_lrc(lyrics_project.lyrics.karaoke_lrc)
    timeline = effective_timeline(lyrics_project, karaoke, 20.0)
    assert timeline.content_duration == 20.0

    plan = build_render_plan(lyrics_project, 1080, 1920, audio_duration=20.0)
    assert plan.karaoke.duration == pytest.approx(20.0)

    manual = replace(lyrics_project, lyrics=replace(lyrics_project.lyrics, auto_fit_lrc_to_audio=False))
    assert build_render_plan(manual, 1080, 1920, audio_duration=20.0).karaoke == karaoke


def test_scroll_up_enters_from_bottom_and_leaves_at_top(scroll_project):
    plan = build_render_plan(scroll_project, 1080, 1920)

    start = compute_frame_state(plan, 0)
    assert all(row.y > plan.height for row in start.rows)

    end = compute_frame_state(plan, plan.timeline.content_duration)
    assert all(row.y < 0 for row in end.rows)

    middle = compute_frame_state(plan, plan.timeline.content_duration / 2)
    assert middle.rows


def test_ending_card_replaces_content(scroll_project):
    project = replace(scroll_project, ending=EndingSettings(enabled=True, duration=3, cta_text="Bye"))
    plan = build_render_plan(project, 1080, 1920)
    state = compute_frame_state(plan, plan.timeline.total_duration - 0.1)

    assert state.scroll.is_ending
    assert state.rows == ()
    assert [row.text for row in state.ending_rows] == ["Bye"]
    assert state.ending_rows[0].opacity == 1


def test_frame_state_clamps_time(scroll_project):
    plan = build_render_plan(scroll_project, 1080, 1920)
    assert compute_frame_state(plan, -5) == compute_frame_state(plan, 0)
    assert compute_frame_state(plan, 1e9).time == plan.timeline.total_duration


def test_text_width_estimate():
    assert estimate_text_width("", 40) == 0
    assert estimate_text_width("abcd", 40) == pytest.approx(4 * 40 * 0.55)


def test_row_geometry_helpers():
    assert fit_scale(500, 1000) == 1.0
    assert fit_scale(2000, 1000) == 0.5
    assert fit_scale(2000, 0) == 1.0

    assert row_left(TextRow("x", 100, 0, 10, 1, "center"), 40) == 80
    assert row_left(TextRow("x", 100, 0, 10, 1, "right"), 40) == 60
    assert row_left(TextRow("x", 100, 0, 10, 1, "left"), 40) == 100


def test_highlight_span_covers_finished_words_and_part_of_active():
    row = TextRow("aa bbbb cccccc", 100, 50, 20, 1.0)
    progress = WordProgress(word_index=1, within=0.5, highlighted_words=(0, 1))

    left, width = highlight_span([10, 20, 30], 5, progress, row)
    assert left == pytest.approx(65)
    assert width == pytest.approx(25)

    left, width = highlight_span([10, 20, 30], 5, progress, row, scale=0.5)
    assert left == pytest.approx(82.5)
    assert width == pytest.approx(12.5)


def test_highlight_span_without_words():
    assert highlight_span([], 5, WordProgress(), TextRow("", 100, 0, 20, 1)) == (100, 0.0)


def test_frame_clock_is_monotonic_and_clamped():
    clock = FrameClock(30, 2.0)
    assert clock.frame_count == 60
    assert clock.time_for_frame(15) == pytest.approx(0.5)

    assert clock.advance(0.5) == 0.5
    assert clock.advance(0.4) == 0.5
    assert clock.advance(0.9) == 0.9
    assert clock.advance(5.0) == 2.0


def test_frame_clock_with_zero_duration():
    clock = FrameClock(30, 0)
    assert clock.frame_count == 1
    assert clock.advance(1.0) == 0
