from __future__ import annotations

import math
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Timeline scale and guards shared by the editor, the driver and the UI.
MIN_CLIP_DURATION = 0.5
TIMELINE_PX_PER_SEC = 40.0
MIN_CLIP_WIDTH = 20.0

# Used when reading media info fails; duration is advisory for layout only.
VIDEO_FALLBACK_DURATION = 8.0
AUDIO_FALLBACK_DURATION = 10.0

AUDIO_RESYNC_TOLERANCE = 0.3
CLIP_END_EPSILON = 0.05

PLAY_NONE = "none"
PLAY_VIDEO = "video"
PLAY_AUDIO = "audio"
PLAY_ALL = "all"
PLAY_MODES = (PLAY_NONE, PLAY_VIDEO, PLAY_AUDIO, PLAY_ALL)

TRANSITION_NONE = "none"
TRANSITION_OPTIONS: Tuple[Tuple[str, str], ...] = (
    ("none", "Cut"),
    ("fade", "Fade"),
    ("dissolve", "Dissolve"),
    ("wiperight", "Wipe right"),
    ("wipeleft", "Wipe left"),
    ("slideright", "Slide right"),
    ("slideleft", "Slide left"),
    ("circleopen", "Circle open"),
    ("circleclose", "Circle close"),
    ("zoom", "Zoom"),
)
TRANSITION_TYPES = tuple(t for t, _label in TRANSITION_OPTIONS)
TRANSITION_DURATION_OPTIONS = (0.3, 0.5, 1.0, 1.5, 2.0)


def new_id(prefix: str = "") -> str:
    """Generate a unique id for timeline entities."""
    raw = uuid.uuid4().hex
    return f"{prefix}-{raw[:12]}" if prefix else raw


def _float(raw: Any, default: float) -> float:
    try:
        v = float(raw)
    except Exception:
        return default
    if not math.isfinite(v):
        return default
    return v


def clamp_trim(
    trim_start: float,
    trim_end: float,
    original_duration: float,
    min_dur: float = MIN_CLIP_DURATION,
) -> Tuple[float, float]:
    """
    Clamp a trim window into [0, original_duration] keeping at least `min_dur`.

    Sources shorter than `min_dur` keep their full length.
    """
    total = max(0.0, float(original_duration))
    if total <= min_dur:
        return 0.0, total
    start = min(max(0.0, float(trim_start)), total - min_dur)
    end = max(min(float(trim_end), total), start + min_dur)
    return start, end


@dataclass(frozen=True)
class Transition:
    type: str = "fade"
    duration: float = 0.5

    @property
    def active(self) -> bool:
        return self.type != TRANSITION_NONE and self.duration > 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "duration": self.duration}

    @staticmethod
    def from_dict(d: Any) -> Optional["Transition"]:
        if not isinstance(d, dict):
            return None
        kind = str(d.get("type", d.get("kind", "fade")) or "fade").strip().lower()
        if kind in ("", TRANSITION_NONE, "off"):
            return None
        if kind not in TRANSITION_TYPES:
            kind = "fade"
        dur = max(0.0, _float(d.get("duration", 0.5), 0.5))
        if dur <= 0.0:
            return None
        return Transition(type=kind, duration=dur)


@dataclass(frozen=True)
class Clip:
    """
    Trimmed reference to a source video, placed in program order.

    Attributes:
        src: video URL or path; shared by both halves of a split
        original_duration: full source length, fixed at creation
        trim_start/trim_end: played window within the source (seconds)
        transition_out: blend into the next clip, None for a hard cut
    """

    id: str
    src: str
    original_duration: float
    trim_start: float
    trim_end: float
    muted: bool = False
    transition_out: Optional[Transition] = None
    scene_number: int = 0

    @property
    def dur(self) -> float:
        return max(0.0, self.trim_end - self.trim_start)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["transition_out"] = self.transition_out.to_dict() if self.transition_out else None
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Clip":
        original = max(0.0, _float(d.get("original_duration"), VIDEO_FALLBACK_DURATION))
        trim_start, trim_end = clamp_trim(
            _float(d.get("trim_start"), 0.0),
            _float(d.get("trim_end"), original),
            original,
        )
        try:
            scene = int(d.get("scene_number", 0) or 0)
        except Exception:
            scene = 0
        return Clip(
            id=str(d.get("id") or new_id("clip")),
            src=str(d["src"]),
            original_duration=original,
            trim_start=trim_start,
            trim_end=trim_end,
            muted=bool(d.get("muted", False)),
            transition_out=Transition.from_dict(d.get("transition_out")),
            scene_number=scene,
        )


@dataclass(frozen=True)
class AudioTrack:
    """Trimmed reference to an audio asset placed at an absolute timeline offset."""

    id: str
    src: str
    original_duration: float
    trim_start: float
    trim_end: float
    offset_sec: float = 0.0
    volume: float = 1.0
    name: str = ""

    @property
    def dur(self) -> float:
        return max(0.0, self.trim_end - self.trim_start)

    @property
    def end_sec(self) -> float:
        return self.offset_sec + self.dur

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "AudioTrack":
        original = max(0.0, _float(d.get("original_duration"), AUDIO_FALLBACK_DURATION))
        trim_start, trim_end = clamp_trim(
            _float(d.get("trim_start"), 0.0),
            _float(d.get("trim_end"), original),
            original,
        )
        return AudioTrack(
            id=str(d.get("id") or new_id("audio")),
            src=str(d["src"]),
            original_duration=original,
            trim_start=trim_start,
            trim_end=trim_end,
            offset_sec=max(0.0, _float(d.get("offset_sec"), 0.0)),
            volume=min(1.0, max(0.0, _float(d.get("volume"), 1.0))),
            name=str(d.get("name") or ""),
        )


@dataclass(frozen=True)
class EditorState:
    """
    Whole editing session state.

    Replaced as a unit on every change. `total_duration` is derived; use
    `editor.normalize_state` rather than setting it directly.
    """

    clips: List[Clip] = field(default_factory=list)
    audio_tracks: List[AudioTrack] = field(default_factory=list)
    current_time: float = 0.0
    is_playing: bool = False
    play_mode: str = PLAY_NONE
    selected_clip_id: Optional[str] = None
    selected_audio_id: Optional[str] = None
    total_duration: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.clips and not self.audio_tracks

    def find_clip(self, clip_id: Optional[str]) -> Optional[Clip]:
        for c in self.clips:
            if c.id == clip_id:
                return c
        return None

    def clip_index(self, clip_id: Optional[str]) -> int:
        for i, c in enumerate(self.clips):
            if c.id == clip_id:
                return i
        return -1

    def find_audio(self, track_id: Optional[str]) -> Optional[AudioTrack]:
        for t in self.audio_tracks:
            if t.id == track_id:
                return t
        return None


@dataclass
class ExportSettings:
    """
    Output encoding settings for the concatenation routine.

    Inputs are scaled and padded to width x height so clips from different
    generators join without a resolution change.
    """

    width: int = 1080
    height: int = 1920
    fps: int = 30
    pixel_format: str = "yuv420p"
    video_codec: str = "libx264"
    preset: str = "medium"
    crf: int = 23
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"
    format: str = "mp4"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ExportSettings":
        if not isinstance(d, dict):
            return ExportSettings()
        out = ExportSettings()
        try:
            out.width = max(16, int(d.get("width", out.width) or out.width))
        except Exception:
            out.width = 1080
        try:
            out.height = max(16, int(d.get("height", out.height) or out.height))
        except Exception:
            out.height = 1920
        try:
            out.fps = max(1, int(d.get("fps", out.fps) or out.fps))
        except Exception:
            out.fps = 30
        try:
            out.crf = int(d.get("crf", out.crf))
        except Exception:
            out.crf = 23
        out.pixel_format = str(d.get("pixel_format", out.pixel_format) or out.pixel_format)
        out.video_codec = str(d.get("video_codec", out.video_codec) or out.video_codec)
        out.preset = str(d.get("preset", out.preset) or out.preset)
        out.audio_codec = str(d.get("audio_codec", out.audio_codec) or out.audio_codec)
        out.audio_bitrate = str(d.get("audio_bitrate", out.audio_bitrate) or out.audio_bitrate)
        out.format = str(d.get("format", out.format) or out.format)
        return out
