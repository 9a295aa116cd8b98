import pytest

from text_scaling import content_length_category, get_scaled_text_settings, optimal_font_size
from timeline import (
    TimelineState, calculate_relative_font_size, calculate_scroll_position, calculate_transition_opacity,
    calculate_wpm, compute_scroll_state, compute_timeline, scale_to_output, scroll_offset,
    validate_timeline, wpm_level,
)


def test_short_text_gets_minimum_duration():
    timeline = compute_timeline("one two three four", "beginner", None, False, 3)

    assert timeline.word_count == 4
    assert timeline.target_wpm == 150
    assert timeline.content_duration == 5
    assert timeline.total_duration == 5


def test_duration_from_reading_speed():
    text = " ".join(["word"] * 300)
    timeline = compute_timeline(text, "average", None, True, 3)

    assert timeline.content_duration == 80  # ceil(300 / 225 * 60)
    assert timeline.ending_duration == 3
    assert timeline.total_duration == 83


@pytest.mark.parametrize("text", ["", "   \n\t "])
def test_empty_text_has_positive_duration(text):
    timeline = compute_timeline(text, "beginner", None, False, 0)
    assert timeline.word_count == 0
    assert timeline.content_duration > 0


def test_custom_duration_override():
    timeline = compute_timeline(" ".join(["w"] * 50), "custom", 30, False, 3)

    assert timeline.content_duration == 30
    assert timeline.target_wpm == 100


def test_custom_preset_without_override_uses_custom_wpm():
    timeline = compute_timeline(" ".join(["w"] * 100), "custom", None, False, 3)
    assert timeline.content_duration == 30  # 100 words at 200 WPM


def test_unknown_preset_falls_back_to_default_wpm():
    assert compute_timeline("a b c", "nonsense", None, False, 0).target_wpm == 150


@pytest.mark.parametrize("t", [0, 4.99, 5, 5.01, 9, 20])
def test_is_ending_follows_content_duration(t):
    assert compute_scroll_state(t, 5, True).is_ending == (t >= 5)
    assert compute_scroll_state(t, 5, False).is_ending is False


def test_scroll_progress_is_clamped():
    assert compute_scroll_state(-1, 10, False).progress == 0
    assert compute_scroll_state(5, 10, False).progress == pytest.approx(0.5)
    assert compute_scroll_state(50, 10, False).progress == 1
    assert compute_scroll_state(1, 0, False).progress == 1


@pytest.mark.parametrize("container, content", [(1920, 3000), (1080, 200), (720, 0)])
def test_scroll_position_endpoints(container, content):
    assert calculate_scroll_position(0, container, content) == pytest.approx(-content)
    assert calculate_scroll_position(1, container, content) == pytest.approx(container)


def test_scroll_offset_directions():
    # 'right' enters from the left edge, 'up' and 'left' enter from the far edge
    assert scroll_offset("right", 0, 1000, 400) == pytest.approx(-400)
    assert scroll_offset("right", 1, 1000, 400) == pytest.approx(1000)
    for direction in ("up", "left"):
        assert scroll_offset(direction, 0, 1000, 400) == pytest.approx(1000)
        assert scroll_offset(direction, 1, 1000, 400) == pytest.approx(-400)


def test_transition_inside_fade_window():
    scroll = compute_scroll_state(10.2, 10, True)
    opacity = calculate_transition_opacity(10.2, 10, True)

    assert scroll.is_ending
    assert 0 < opacity.content_opacity < 1
    assert 0 < opacity.ending_opacity < 1
    assert opacity.content_opacity + opacity.ending_opacity == pytest.approx(1)


@pytest.mark.parametrize("t, expected", [(0, (1, 0)), (9.7, (1, 0)), (10.25, (0, 1)), (12, (0, 1))])
def test_transition_outside_fade_window(t, expected):
    opacity = calculate_transition_opacity(t, 10, True)
    assert (opacity.content_opacity, opacity.ending_opacity) == expected


def test_no_transition_without_ending():
    opacity = calculate_transition_opacity(100, 10, False)
    assert (opacity.content_opacity, opacity.ending_opacity) == (1, 0)


def test_relative_sizes():
    assert calculate_relative_font_size(48, 1920) == 48
    assert calculate_relative_font_size(48, 960) == 24
    assert calculate_relative_font_size(48, 1080) == 27
    assert scale_to_output(40, 480) == 10


def test_wpm_helpers():
    assert calculate_wpm(100, 60) == 100
    assert calculate_wpm(0, 60) == 0
    assert calculate_wpm(10, 0) == 0
    assert [wpm_level(w) for w in (150, 250, 500)] == ["good", "warning", "danger"]


def test_validate_timeline():
    ok = validate_timeline(TimelineState(100, 150, 40, 0, 40))
    assert ok.is_valid and not ok.warnings

    too_fast = validate_timeline(TimelineState(700, 700, 60, 0, 60))
    assert not too_fast.is_valid

    empty_long = validate_timeline(TimelineState(0, 150, 10, 200, 210))
    assert empty_long.is_valid
    assert len(empty_long.warnings) == 2


def test_text_scaling_shrinks_long_content():
    assert optimal_font_size(48, 50, True) == 48
    assert optimal_font_size(48, 200, True) == 43
    assert optimal_font_size(48, 1000, True) == 29
    assert optimal_font_size(48, 1000, False) == 48

    scaled = get_scaled_text_settings(48, 1.6, 0, 18, 40, 400, True)
    assert scaled.line_height == pytest.approx(1.4)
    assert scaled.letter_spacing == -1
    assert scaled.padding_y == 20

    assert [content_length_category(n) for n in (10, 150, 400, 900)] == ["short", "medium", "long", "very-long"]
