"""Project settings: immutable value objects, presets and JSON project files."""
import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Optional

from timeline import TimelineState, compute_timeline, validate_timeline
from utils import clamp

logger = logging.getLogger(__name__)

PROJECT_VERSION = 1
PROJECT_EXTENSION = '.lvproject'

# Canvas formats (width, height)
CANVAS_SIZES = {
    'vertical': (1080, 1920),
    'horizontal': (1920, 1080),
    'square': (1080, 1080),
    'tiktok': (1080, 1920),
    'youtube-shorts': (1080, 1920),
    'instagram-post': (1080, 1350),
    'twitter': (1280, 720),
    'facebook-cover': (820, 312),
}

THEMES = ('vertical', 'lyrics')
DIRECTIONS = ('up', 'left', 'right')
DISPLAY_MODES = ('lines', 'paragraph', 'pages', 'full')
TEXT_ALIGNS = ('left', 'center', 'right')

MIN_CUSTOM_DURATION = 3
MAX_CUSTOM_DURATION = 120
MAX_SYNC_OFFSET = 2.0
MAX_HIGHLIGHT_LEAD = 0.3


@dataclass(frozen=True)
class TextSettings:
    content: str = ('Enter your scrolling text here...\n\nAdd multiple lines for a longer scroll effect.'
                    '\n\nPerfect for social media reels and videos!')
    font_size: int = 48
    auto_scale_font: bool = True
    is_bold: bool = False
    line_height: float = 1.6
    letter_spacing: float = 0
    text_align: str = 'center'
    color: str = '#ffffff'
    padding_x: int = 18
    padding_y: int = 40
    container_width: float = 98  # Percent of the frame width
    wave_animation: bool = True  # Word sweep highlight in the lyrics theme

    def clamped(self) -> 'TextSettings':
        return replace(
            self,
            font_size=max(1, int(self.font_size)),
            text_align=self.text_align if self.text_align in TEXT_ALIGNS else 'center',
            container_width=clamp(self.container_width, 10, 100),
        )


@dataclass(frozen=True)
class AnimationSettings:
    direction: str = 'up'
    wpm_preset: str = 'beginner'
    duration: float = 15  # Only used with the 'custom' preset
    is_looping: bool = True

    def clamped(self) -> 'AnimationSettings':
        return replace(
            self,
            direction=self.direction if self.direction in DIRECTIONS else 'up',
            duration=clamp(float(self.duration), MIN_CUSTOM_DURATION, MAX_CUSTOM_DURATION),
        )


@dataclass(frozen=True)
class AudioSettings:
    file: Optional[str] = None
    duration: Optional[float] = None  # Measured once when the file is attached
    volume: float = 80
    loop: bool = True

    def clamped(self) -> 'AudioSettings':
        duration = self.duration if self.duration and self.duration > 0 else None
        return replace(self, volume=clamp(self.volume, 0, 100), duration=duration)


@dataclass(frozen=True)
class EndingSettings:
    enabled: bool = False
    duration: float = 3
    cta_text: str = 'Follow for more!'
    cta_font_size: int = 32

    def clamped(self) -> 'EndingSettings':
        return replace(self, duration=max(0.0, float(self.duration)))


@dataclass(frozen=True)
class LyricsSettings:
    timing_source: str = 'estimate'  # 'estimate' or 'lrc'
    karaoke_lrc: str = ''
    display_mode: str = 'pages'
    auto_fit_lrc_to_audio: bool = True
    lrc_offset_seconds: float = 0
    highlight_bg_color: str = '#FFD60A'
    pacing_source: str = 'chars'  # 'chars' or 'wpm'
    chars_per_second: float = 12
    min_line_duration: float = 0.8
    highlight_lead_seconds: float = 0.08
    text_opacity: float = 1
    unhighlighted_opacity: float = 0.4
    highlight_intensity: float = 0.85
    lines_per_page: int = 3
    show_progress_bar: bool = True

    def clamped(self) -> 'LyricsSettings':
        return replace(
            self,
            display_mode=self.display_mode if self.display_mode in DISPLAY_MODES else 'pages',
            lrc_offset_seconds=clamp(self.lrc_offset_seconds, -MAX_SYNC_OFFSET, MAX_SYNC_OFFSET),
            highlight_lead_seconds=clamp(self.highlight_lead_seconds, 0, MAX_HIGHLIGHT_LEAD),
            text_opacity=clamp(self.text_opacity, 0, 1),
            unhighlighted_opacity=clamp(self.unhighlighted_opacity, 0, 1),
            highlight_intensity=clamp(self.highlight_intensity, 0, 1),
            lines_per_page=max(1, int(self.lines_per_page)),
        )


@dataclass(frozen=True)
class BackgroundSettings:
    color: str = '#1a1a2e'

    def clamped(self) -> 'BackgroundSettings':
        return self


@dataclass(frozen=True)
class VideoProject:
    """Everything the renderers read. Changed with dataclasses.replace, never in place."""
    name: str = 'Untitled Project'
    theme: str = 'vertical'
    canvas_format: str = 'vertical'
    text: TextSettings = field(default_factory=TextSettings)
    animation: AnimationSettings = field(default_factory=AnimationSettings)
    audio: AudioSettings = field(default_factory=AudioSettings)
    ending: EndingSettings = field(default_factory=EndingSettings)
    lyrics: LyricsSettings = field(default_factory=LyricsSettings)
    background: BackgroundSettings = field(default_factory=BackgroundSettings)
    version: int = PROJECT_VERSION

    @property
    def canvas_size(self) -> tuple[int, int]:
        return CANVAS_SIZES.get(self.canvas_format, CANVAS_SIZES['vertical'])

    @property
    def custom_duration(self) -> Optional[float]:
        return self.animation.duration if self.animation.wpm_preset == 'custom' else None

    @property
    def uses_lrc(self) -> bool:
        return self.lyrics.timing_source == 'lrc' and bool(self.lyrics.karaoke_lrc.strip())


SECTIONS = {
    'text': TextSettings,
    'animation': AnimationSettings,
    'audio': AudioSettings,
    'ending': EndingSettings,
    'lyrics': LyricsSettings,
    'background': BackgroundSettings,
}


def _section_from_dict(cls, data):
    """Build a settings section, ignoring unknown keys and clamping values."""
    known = {f.name for f in fields(cls)}
    values = {k: v for k, v in (data or {}).items() if k in known}
    return cls(**values).clamped()


def project_from_dict(data: dict) -> VideoProject:
    version = int(data.get('version', PROJECT_VERSION))
    if version > PROJECT_VERSION:
        logger.warning("Project file version %d is newer than supported version %d", version, PROJECT_VERSION)

    sections = {name: _section_from_dict(cls, data.get(name)) for name, cls in SECTIONS.items()}
    theme = data.get('theme', 'vertical')
    canvas_format = data.get('canvas_format', 'vertical')

    return VideoProject(
        name=data.get('name', 'Untitled Project'),
        theme=theme if theme in THEMES else 'vertical',
        canvas_format=canvas_format if canvas_format in CANVAS_SIZES else 'vertical',
        version=PROJECT_VERSION,
        **sections,
    )


def project_to_dict(project: VideoProject) -> dict:
    return asdict(project)


def save_project(project: VideoProject, file_path: str):
    """Save project settings to a JSON file.

    The audio path is written relative to the project file and made absolute
    again by load_project.
    """
    audio_file = project.audio.file
    if audio_file and os.path.isabs(audio_file):
        base_dir = os.path.dirname(os.path.abspath(file_path))
        try:
            audio_file = os.path.relpath(audio_file, base_dir)
        except ValueError:
            # Different drive on Windows, keep it absolute
            pass
        project = replace(project, audio=replace(project.audio, file=audio_file))

    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(project_to_dict(project), f, indent=2, ensure_ascii=False)


def load_project(file_path: str) -> Optional[VideoProject]:
    """Load a project file. Returns None (and logs why) when it can't be read."""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        project = project_from_dict(data)
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.error("Error loading project %s: %s", file_path, e)
        return None

    audio_file = project.audio.file
    if audio_file and not os.path.isabs(audio_file):
        base_dir = os.path.dirname(os.path.abspath(file_path))
        audio_file = os.path.normpath(os.path.join(base_dir, audio_file))
        project = replace(project, audio=replace(project.audio, file=audio_file))
    return project


def compute_project_timeline(project: VideoProject) -> TimelineState:
    return compute_timeline(
        project.text.content,
        project.animation.wpm_preset,
        project.custom_duration,
        project.ending.enabled,
        project.ending.duration,
    )


@dataclass(frozen=True)
class ValidationCheck:
    id: str
    label: str
    status: str  # 'pass', 'warning' or 'error'
    message: str = ''


@dataclass(frozen=True)
class ValidationResult:
    is_ready: bool
    checks: tuple[ValidationCheck, ...]


def validate_project_for_export(project: VideoProject) -> ValidationResult:
    """Pre-export checks shown to the user before rendering starts."""
    timeline = compute_project_timeline(project)
    timeline_validation = validate_timeline(timeline)
    checks = []

    checks.append(ValidationCheck(
        'content', 'Text content',
        'pass' if timeline.word_count > 0 else 'warning',
        f'{timeline.word_count} words' if timeline.word_count > 0 else 'No text content',
    ))

    if timeline.target_wpm > 600:
        wpm_status, wpm_note = 'error', '(too fast!)'
    elif timeline.target_wpm > 400:
        wpm_status, wpm_note = 'warning', '(fast)'
    else:
        wpm_status, wpm_note = 'pass', '(comfortable)'
    checks.append(ValidationCheck('wpm', 'Reading speed', wpm_status, f'{timeline.target_wpm} WPM {wpm_note}'))

    in_range = 3 <= timeline.total_duration <= 120
    checks.append(ValidationCheck(
        'duration', 'Video duration',
        'pass' if in_range else 'warning',
        f'{timeline.total_duration:g}s total',
    ))

    has_audio = bool(project.audio.file)
    checks.append(ValidationCheck(
        'audio', 'Background audio',
        'pass' if has_audio else 'warning',
        'Will be included' if has_audio else 'No audio (silent video)',
    ))

    if project.ending.enabled:
        checks.append(ValidationCheck('ending', 'Ending card', 'pass', f'{project.ending.duration:g}s ending'))

    has_errors = any(c.status == 'error' for c in checks) or not timeline_validation.is_valid
    return ValidationResult(is_ready=not has_errors, checks=tuple(checks))
