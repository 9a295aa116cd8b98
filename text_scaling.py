"""Shrink type and spacing as the text gets longer so long pieces stay readable."""
from dataclasses import dataclass


@dataclass(frozen=True)
class ScaledTextSettings:
    font_size: int
    line_height: float
    letter_spacing: float
    padding_x: int
    padding_y: int


def optimal_font_size(base_font_size: float, word_count: int, auto_scale: bool) -> int:
    if not auto_scale or word_count < 100:
        return int(round(base_font_size))

    # Medium content - scale down 0-20%
    if word_count < 300:
        factor = 1 - ((word_count - 100) / 200) * 0.2
        return int(round(base_font_size * factor))

    # Long content - scale down 20-40%
    if word_count < 600:
        factor = 0.8 - ((word_count - 300) / 300) * 0.2
        return int(round(base_font_size * factor))

    return int(round(base_font_size * 0.6))


def optimal_line_height(base_line_height: float, word_count: int, auto_scale: bool) -> float:
    if not auto_scale or word_count < 100:
        return base_line_height
    if word_count < 300:
        return max(1.4, base_line_height - 0.1)
    return max(1.3, base_line_height - 0.2)


def optimal_letter_spacing(base_letter_spacing: float, word_count: int, auto_scale: bool) -> float:
    if not auto_scale or word_count < 100:
        return base_letter_spacing
    if word_count < 300:
        return max(-1.0, base_letter_spacing - 0.5)
    return max(-1.5, base_letter_spacing - 1)


def optimal_padding(base_padding: float, word_count: int, auto_scale: bool) -> int:
    if not auto_scale or word_count < 100:
        return int(base_padding)
    if word_count < 300:
        return int(max(20, base_padding - 10))
    return int(max(15, base_padding - 20))


def get_scaled_text_settings(font_size, line_height, letter_spacing, padding_x, padding_y,
                             word_count: int, auto_scale: bool) -> ScaledTextSettings:
    return ScaledTextSettings(
        font_size=optimal_font_size(font_size, word_count, auto_scale),
        line_height=optimal_line_height(line_height, word_count, auto_scale),
        letter_spacing=optimal_letter_spacing(letter_spacing, word_count, auto_scale),
        padding_x=optimal_padding(padding_x, word_count, auto_scale),
        padding_y=optimal_padding(padding_y, word_count, auto_scale),
    )


def content_length_category(word_count: int) -> str:
    """'short', 'medium', 'long' or 'very-long'."""
    if word_count < 100:
        return 'short'
    if word_count < 300:
        return 'medium'
    if word_count < 600:
        return 'long'
    return 'very-long'
