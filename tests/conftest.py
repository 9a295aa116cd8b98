import os

# Headless pygame: must be set before pygame initialises a display or mixer
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pytest

from project import LyricsSettings, TextSettings, VideoProject

LYRICS_MARKUP = """[00:00.00]<00:00.00>Hello <00:00.50>world
[00:01.50]<00:01.50>second <00:02.00>line <00:02.40>here

[00:04.00]<00:04.00>new <00:04.60>stanza
[00:05.50]plain line
[00:07.00]<00:07.00>the <00:07.30>end"""


@pytest.fixture
def scroll_project():
    text = "\n".join(f"Line number {i} of the scrolling text" for i in range(12))
    return VideoProject(text=TextSettings(content=text))


@pytest.fixture
def lyrics_project():
    return VideoProject(
        theme="lyrics",
        text=TextSettings(content="unused when markup is present"),
        lyrics=LyricsSettings(timing_source="lrc", karaoke_lrc=LYRICS_MARKUP, lines_per_page=2),
    )


@pytest.fixture
def estimated_lyrics_project():
    text = "first line of the song\nsecond one\n\nafter the break\nlast"
    return VideoProject(theme="lyrics", text=TextSettings(content=text))
