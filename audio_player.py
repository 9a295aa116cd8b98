"""Preview audio playback using pygame mixer. Its position is the preview clock."""
import logging
from typing import Optional

import pygame
from moviepy import AudioFileClip

logger = logging.getLogger(__name__)


def probe_duration(file_path: str) -> Optional[float]:
    """
    Measure an audio file's duration with ffmpeg.
    Preview and export both use this value so auto-fitted lyrics line up the same.
    """
    try:
        with AudioFileClip(file_path) as clip:
            return float(clip.duration) if clip.duration else None
    except (OSError, IOError, KeyError, ValueError) as e:
        logger.warning("Could not measure audio duration of %s: %s", file_path, e)
        return None


class AudioPlayer:
    def __init__(self, volume: float = 1.0):
        if not pygame.mixer.get_init():
            pygame.mixer.init(frequency=44100, size=-16, channels=2, buffer=512)
        self.file_path = None
        self.duration = 0.0
        self.volume = max(0.0, min(1.0, volume))
        self._paused = False
        self._start_offset = 0.0
        self._pause_pos = 0.0

    def load(self, file_path: str) -> bool:
        """Load an audio file. Returns True on success."""
        try:
            pygame.mixer.music.load(file_path)
            pygame.mixer.music.set_volume(self.volume)
            sound = pygame.mixer.Sound(file_path)
            self.duration = sound.get_length()
            del sound
        except pygame.error as e:
            logger.warning("Error loading audio %s: %s", file_path, e)
            self.file_path = None
            return False

        self.file_path = file_path
        self._start_offset = 0.0
        self._pause_pos = 0.0
        self._paused = False
        return True

    @property
    def loaded(self) -> bool:
        return self.file_path is not None

    def play(self, start_pos: float = 0.0):
        """Start playback from position (in seconds)."""
        if self.file_path:
            self._start_offset = max(0.0, start_pos)
            pygame.mixer.music.play(start=self._start_offset)
            self._paused = False

    def pause(self):
        if pygame.mixer.music.get_busy():
            self._pause_pos = self.get_position()
            pygame.mixer.music.pause()
            self._paused = True

    def stop(self):
        pygame.mixer.music.stop()
        self._paused = False
        self._pause_pos = 0.0

    def get_position(self) -> float:
        """Current playback position in seconds."""
        if self._paused:
            return self._pause_pos
        if pygame.mixer.music.get_busy():
            # get_pos() counts milliseconds since the last play() call
            return self._start_offset + pygame.mixer.music.get_pos() / 1000.0
        return self._pause_pos

    def is_playing(self) -> bool:
        return pygame.mixer.music.get_busy() and not self._paused

    def cleanup(self):
        pygame.mixer.music.stop()
        pygame.mixer.music.unload()
