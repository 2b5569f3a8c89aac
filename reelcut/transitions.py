from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .model import Clip
from .timeline import transition_duration

# Editor names that differ from ffmpeg's xfade transition names.
_XFADE_NAMES = {
    "zoom": "zoomin",
}


@dataclass(frozen=True)
class TransitionStyles:
    """Visual descriptors for the outgoing and incoming clip during a blend."""

    outgoing: Dict[str, Any] = field(default_factory=dict)
    incoming: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransitionPreview:
    type: str
    progress: float
    styles: TransitionStyles
    next_clip_id: str


def transition_styles(kind: str, progress: float) -> TransitionStyles:
    """
    Map a transition type and progress in [0, 1] to blend styles.

    Unknown types produce empty styles.
    """
    p = min(1.0, max(0.0, float(progress)))
    k = str(kind or "").strip().lower()

    if k in ("fade", "dissolve"):
        return TransitionStyles(outgoing={"opacity": 1.0 - p}, incoming={"opacity": p})
    if k == "wiperight":
        return TransitionStyles(incoming={"clip_path": f"inset(0 {100 - p * 100:g}% 0 0)"})
    if k == "wipeleft":
        return TransitionStyles(incoming={"clip_path": f"inset(0 0 0 {100 - p * 100:g}%)"})
    if k == "slideright":
        return TransitionStyles(incoming={"transform": f"translateX({(1 - p) * 100:g}%)", "offset_x": 1.0 - p})
    if k == "slideleft":
        return TransitionStyles(incoming={"transform": f"translateX({(1 - p) * -100:g}%)", "offset_x": p - 1.0})
    if k == "circleopen":
        return TransitionStyles(incoming={"clip_path": f"circle({p * 75:g}% at center)"})
    if k == "circleclose":
        return TransitionStyles(incoming={"clip_path": f"circle({(1 - p) * 75:g}% at center)"})
    if k == "zoom":
        scale = 1.0 + (1.0 - p) * 0.5
        return TransitionStyles(
            incoming={"transform": f"scale({scale:g})", "scale": scale, "transform_origin": "center"}
        )
    return TransitionStyles()


def transition_progress(clip: Clip, source_time: float, duration: Optional[float] = None) -> Optional[float]:
    """
    Progress of the clip's outgoing transition at a source-media time.

    The window is [trim_end - d, trim_end); outside it (or with no
    transition) the result is None. `duration` overrides the configured d
    with the overlap the neighbours leave room for.
    """
    d = transition_duration(clip) if duration is None else float(duration)
    if d <= 0.0:
        return None
    start = clip.trim_end - d
    t = float(source_time)
    if t < start or t >= clip.trim_end:
        return None
    return min(1.0, (t - start) / d)


def ffmpeg_xfade_name(kind: str) -> str:
    k = str(kind or "fade").strip().lower() or "fade"
    return _XFADE_NAMES.get(k, k)
