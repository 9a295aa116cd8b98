"""Small helpers shared by the renderers and the app shell."""
import os

# Bold sans-serif fonts, first match wins. (path, face index)
FONT_CANDIDATES = [
    ("/System/Library/Fonts/Supplemental/Arial Bold.ttf", None),
    ("/System/Library/Fonts/Helvetica.ttc", 1),
    ("/Library/Fonts/Arial Bold.ttf", None),
    ("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", None),
    ("/usr/share/fonts/TTF/DejaVuSans-Bold.ttf", None),
    ("C:/Windows/Fonts/arialbd.ttf", None),
]

DEFAULT_HIGHLIGHT_RGB = (255, 214, 10)


def find_font_path():
    """Return (path, index) of the first installed candidate font, or (None, None)."""
    for path, index in FONT_CANDIDATES:
        if os.path.exists(path):
            return path, index
    return None, None


def parse_hex_color(raw, fallback=DEFAULT_HIGHLIGHT_RGB) -> tuple[int, int, int]:
    """Parse '#RGB' or '#RRGGBB' into an RGB tuple."""
    value = (raw or '').strip()
    if value.startswith('#'):
        value = value[1:]
    if len(value) == 3:
        value = ''.join(ch * 2 for ch in value)
    if len(value) != 6:
        return fallback
    try:
        return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))
    except ValueError:
        return fallback


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def format_time(seconds: float) -> str:
    """Format seconds as m:ss.d"""
    seconds = max(0.0, seconds)
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    tenths = int((seconds % 1) * 10)
    return f"{mins}:{secs:02d}.{tenths}"
