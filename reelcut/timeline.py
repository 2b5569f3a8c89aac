from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .model import MIN_CLIP_DURATION, MIN_CLIP_WIDTH, TIMELINE_PX_PER_SEC, AudioTrack, Clip


def clip_duration(clip: Clip) -> float:
    return max(0.0, clip.trim_end - clip.trim_start)


def transition_duration(clip: Clip) -> float:
    """Overlap the user configured on the clip; 0 for a hard cut."""
    t = clip.transition_out
    if t is None or not t.active:
        return 0.0
    return float(t.duration)


def timeline_offset(clips: Sequence[Clip], index: int) -> float:
    """
    Program time where clip `index` starts.

    A transition of duration d between clip k and k+1 pulls clip k+1 in by d,
    so the two overlap instead of adding runtime. d is the usable overlap
    from `allowed_transition_durations`, not the configured one.
    """
    overlaps = allowed_transition_durations(clips)
    offset = 0.0
    for i in range(min(index, len(clips))):
        offset += clip_duration(clips[i]) - overlaps[i]
    return offset


def clip_width_px(duration: float) -> float:
    return max(MIN_CLIP_WIDTH, float(duration) * TIMELINE_PX_PER_SEC)


def px_to_sec(delta_px: float) -> float:
    return float(delta_px) / TIMELINE_PX_PER_SEC


def video_duration(clips: Sequence[Clip]) -> float:
    total = sum(clip_duration(c) for c in clips) - sum(allowed_transition_durations(clips))
    return max(0.0, total)


def audio_duration(audio_tracks: Sequence[AudioTrack]) -> float:
    end = 0.0
    for t in audio_tracks:
        end = max(end, t.offset_sec + max(0.0, t.trim_end - t.trim_start))
    return end


def total_media_duration(clips: Sequence[Clip], audio_tracks: Sequence[AudioTrack]) -> float:
    """Program length: the longer of the video sequence and the furthest audio end."""
    return max(video_duration(clips), audio_duration(audio_tracks))


def allowed_transition_durations(clips: Sequence[Clip], min_remaining_sec: float = MIN_CLIP_DURATION) -> List[float]:
    """
    Largest usable overlap for each clip's outgoing transition.

    Walks left to right so a clip blended on both sides still keeps
    `min_remaining_sec` of its own. The last clip has nothing to blend into.
    """
    out: List[float] = []
    incoming = 0.0
    for i, c in enumerate(clips):
        if i == len(clips) - 1:
            out.append(0.0)
            break
        nxt = clips[i + 1]
        limit = min(clip_duration(c) - incoming, clip_duration(nxt)) - float(min_remaining_sec)
        allowed = max(0.0, min(transition_duration(c), limit))
        out.append(allowed)
        incoming = allowed
    return out


def effective_transition_duration(clips: Sequence[Clip], index: int) -> float:
    """Overlap clip `index` actually gets with its current neighbours."""
    if index < 0 or index >= len(clips):
        return 0.0
    return allowed_transition_durations(clips)[index]


def clip_spans(clips: Sequence[Clip]) -> List[Tuple[float, float]]:
    spans: List[Tuple[float, float]] = []
    start = 0.0
    for c, overlap in zip(clips, allowed_transition_durations(clips)):
        end = start + clip_duration(c)
        spans.append((start, end))
        start = end - overlap
    return spans


def clip_at_time(clips: Sequence[Clip], t: float) -> Optional[Tuple[int, float]]:
    """
    Locate the clip under program time `t`.

    Returns (index, seconds from the clip's trimmed start). Inside a
    transition overlap the outgoing clip wins.
    """
    t = float(t)
    for i, (start, end) in enumerate(clip_spans(clips)):
        if start <= t < end:
            return i, t - start
    return None


def audio_track_at_time(audio_tracks: Sequence[AudioTrack], t: float) -> Optional[Tuple[int, float]]:
    t = float(t)
    for i, track in enumerate(audio_tracks):
        if track.offset_sec <= t < track.end_sec:
            return i, t - track.offset_sec
    return None


def timeline_to_source(clip: Clip, local_sec: float) -> float:
    rel = max(0.0, min(clip_duration(clip), float(local_sec)))
    return clip.trim_start + rel


def source_to_timeline(clips: Sequence[Clip], index: int, source_sec: float) -> float:
    clip = clips[index]
    local = max(0.0, float(source_sec) - clip.trim_start)
    return timeline_offset(clips, index) + local


def audio_source_time(track: AudioTrack, program_sec: float) -> float:
    """Position inside the audio source for program time, clamped to the trim window."""
    local = track.trim_start + (float(program_sec) - track.offset_sec)
    return max(track.trim_start, min(track.trim_end, local))


def format_time(sec: float) -> str:
    sec = max(0.0, float(sec))
    m = int(sec // 60)
    s = int(sec % 60)
    tenths = int((sec % 1) * 10)
    return f"{m}:{s:02d}.{tenths}"
