from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from .model import (
    MIN_CLIP_DURATION,
    PLAY_ALL,
    PLAY_AUDIO,
    PLAY_NONE,
    PLAY_VIDEO,
    TRANSITION_NONE,
    AudioTrack,
    Clip,
    EditorState,
    Transition,
    clamp_trim,
    new_id,
)
from .timeline import (
    audio_track_at_time,
    clip_at_time,
    clip_duration,
    px_to_sec,
    timeline_offset,
    total_media_duration,
)

SIDE_START = "start"
SIDE_END = "end"


def new_state() -> EditorState:
    return EditorState()


def normalize_state(state: EditorState) -> EditorState:
    """
    Re-derive total_duration and clamp the playhead.

    Every reducer returns through here so the derived fields never drift.
    """
    total = total_media_duration(state.clips, state.audio_tracks)
    current = min(max(0.0, float(state.current_time)), total)
    return replace(state, total_duration=total, current_time=current)


def _trim_window(
    side: str,
    start_trim_start: float,
    start_trim_end: float,
    original_duration: float,
    delta_sec: float,
) -> Tuple[float, float]:
    trim_start = float(start_trim_start)
    trim_end = float(start_trim_end)
    if side == SIDE_START:
        trim_start = min(trim_start + delta_sec, trim_end - MIN_CLIP_DURATION)
    else:
        trim_end = max(trim_end + delta_sec, trim_start + MIN_CLIP_DURATION)
    # Sources shorter than the minimum stay pinned to their full length.
    return clamp_trim(trim_start, trim_end, original_duration)


# ---------- clips ----------


def add_clip(state: EditorState, src: str, duration: float, scene_number: int = 0) -> EditorState:
    """Append a full-length clip to the end of the program."""
    dur = max(0.0, float(duration))
    clip = Clip(
        id=new_id("clip"),
        src=src,
        original_duration=dur,
        trim_start=0.0,
        trim_end=dur,
        scene_number=int(scene_number),
    )
    return normalize_state(replace(state, clips=[*state.clips, clip]))


def trim_clip(
    state: EditorState,
    clip_id: str,
    side: str,
    start_trim_start: float,
    start_trim_end: float,
    delta_px: float,
) -> EditorState:
    """
    Move one trim edge by a pointer delta measured from the drag origin.

    The edge is clamped so the clip stays inside its source and never drops
    below MIN_CLIP_DURATION.
    """
    idx = state.clip_index(clip_id)
    if idx < 0:
        return state
    clip = state.clips[idx]
    trim_start, trim_end = _trim_window(
        side, start_trim_start, start_trim_end, clip.original_duration, px_to_sec(delta_px)
    )
    clips = list(state.clips)
    clips[idx] = replace(clip, trim_start=trim_start, trim_end=trim_end)
    return normalize_state(replace(state, clips=clips))


def split_clip_at_playhead(state: EditorState) -> Tuple[EditorState, str]:
    """
    Split the clip under the playhead into two adjacent clips.

    Returns (new_state, message). The state is unchanged when nothing is under
    the playhead or when either piece would be shorter than MIN_CLIP_DURATION.
    """
    hit = clip_at_time(state.clips, state.current_time)
    if hit is None:
        return state, ""
    idx, local = hit
    clip = state.clips[idx]
    if local < MIN_CLIP_DURATION or clip_duration(clip) - local < MIN_CLIP_DURATION:
        return state, f"Clip must keep at least {MIN_CLIP_DURATION}s on each side of the cut"

    mid = clip.trim_start + local
    left = replace(clip, id=new_id("clip"), trim_end=mid, transition_out=None)
    right = replace(clip, id=new_id("clip"), trim_start=mid)
    clips = list(state.clips)
    clips[idx : idx + 1] = [left, right]
    out = replace(state, clips=clips, selected_clip_id=right.id)
    return normalize_state(out), "Split"


def reorder_clip(state: EditorState, moving_id: str, target_id: str) -> EditorState:
    """Move `moving_id` into the position currently held by `target_id`."""
    if moving_id == target_id:
        return state
    src_idx = state.clip_index(moving_id)
    dst_idx = state.clip_index(target_id)
    if src_idx < 0 or dst_idx < 0:
        return state
    clips = list(state.clips)
    moving = clips.pop(src_idx)
    clips.insert(dst_idx, moving)
    return normalize_state(replace(state, clips=clips))


def delete_clip(state: EditorState, clip_id: str) -> EditorState:
    idx = state.clip_index(clip_id)
    if idx < 0:
        return state
    clips = list(state.clips)
    del clips[idx]
    # The transition that blended into the removed clip goes with it.
    if idx > 0 and clips[idx - 1].transition_out is not None:
        clips[idx - 1] = replace(clips[idx - 1], transition_out=None)
    selected = None if state.selected_clip_id == clip_id else state.selected_clip_id
    return normalize_state(replace(state, clips=clips, selected_clip_id=selected))


def toggle_clip_mute(state: EditorState, clip_id: str) -> EditorState:
    idx = state.clip_index(clip_id)
    if idx < 0:
        return state
    clips = list(state.clips)
    clips[idx] = replace(clips[idx], muted=not clips[idx].muted)
    return replace(state, clips=clips)


def set_transition(state: EditorState, clip_id: str, kind: str, duration: float) -> EditorState:
    idx = state.clip_index(clip_id)
    if idx < 0:
        return state
    k = str(kind or "").strip().lower()
    transition: Optional[Transition] = None
    if k and k != TRANSITION_NONE:
        transition = Transition.from_dict({"type": k, "duration": duration})
    clips = list(state.clips)
    clips[idx] = replace(clips[idx], transition_out=transition)
    return normalize_state(replace(state, clips=clips))


def select_clip(state: EditorState, clip_id: str) -> EditorState:
    """Toggle clip selection and move the playhead to the clip's start."""
    idx = state.clip_index(clip_id)
    if idx < 0:
        return state
    selected = None if state.selected_clip_id == clip_id else clip_id
    out = replace(
        state,
        selected_clip_id=selected,
        selected_audio_id=None,
        current_time=timeline_offset(state.clips, idx),
    )
    return normalize_state(out)


# ---------- audio ----------


def add_audio_track(state: EditorState, src: str, duration: float, name: str = "") -> EditorState:
    dur = max(0.0, float(duration))
    track = AudioTrack(
        id=new_id("audio"),
        src=src,
        original_duration=dur,
        trim_start=0.0,
        trim_end=dur,
        offset_sec=0.0,
        volume=1.0,
        name=str(name or ""),
    )
    return normalize_state(replace(state, audio_tracks=[*state.audio_tracks, track]))


def _replace_track(state: EditorState, track_id: str, **changes) -> Optional[EditorState]:
    tracks = list(state.audio_tracks)
    for i, t in enumerate(tracks):
        if t.id == track_id:
            tracks[i] = replace(t, **changes)
            return replace(state, audio_tracks=tracks)
    return None


def trim_audio_track(
    state: EditorState,
    track_id: str,
    side: str,
    start_trim_start: float,
    start_trim_end: float,
    delta_px: float,
) -> EditorState:
    track = state.find_audio(track_id)
    if track is None:
        return state
    trim_start, trim_end = _trim_window(
        side, start_trim_start, start_trim_end, track.original_duration, px_to_sec(delta_px)
    )
    out = _replace_track(state, track_id, trim_start=trim_start, trim_end=trim_end)
    return normalize_state(out) if out is not None else state


def move_audio_track(state: EditorState, track_id: str, start_offset: float, delta_px: float) -> EditorState:
    offset = max(0.0, float(start_offset) + px_to_sec(delta_px))
    out = _replace_track(state, track_id, offset_sec=offset)
    return normalize_state(out) if out is not None else state


def set_audio_volume(state: EditorState, track_id: str, volume: float) -> EditorState:
    out = _replace_track(state, track_id, volume=max(0.0, min(1.0, float(volume))))
    return out if out is not None else state


def split_audio_at_playhead(state: EditorState) -> Tuple[EditorState, str]:
    hit = audio_track_at_time(state.audio_tracks, state.current_time)
    if hit is None:
        return state, ""
    idx, local = hit
    track = state.audio_tracks[idx]
    if local < MIN_CLIP_DURATION or track.dur - local < MIN_CLIP_DURATION:
        return state, f"Audio must keep at least {MIN_CLIP_DURATION}s on each side of the cut"

    mid = track.trim_start + local
    left = replace(track, id=new_id("audio"), trim_end=mid)
    right = replace(track, id=new_id("audio"), trim_start=mid, offset_sec=track.offset_sec + local)
    tracks = list(state.audio_tracks)
    tracks[idx : idx + 1] = [left, right]
    out = replace(state, audio_tracks=tracks, selected_audio_id=right.id)
    return normalize_state(out), "Split"


def delete_audio_track(state: EditorState, track_id: str) -> EditorState:
    tracks = [t for t in state.audio_tracks if t.id != track_id]
    if len(tracks) == len(state.audio_tracks):
        return state
    selected = None if state.selected_audio_id == track_id else state.selected_audio_id
    return normalize_state(replace(state, audio_tracks=tracks, selected_audio_id=selected))


def select_audio(state: EditorState, track_id: str) -> EditorState:
    if state.find_audio(track_id) is None:
        return state
    selected = None if state.selected_audio_id == track_id else track_id
    return replace(state, selected_audio_id=selected, selected_clip_id=None)


# ---------- playhead / transport ----------


def seek(state: EditorState, t: float) -> EditorState:
    """User seek: clamp to the program and focus the clip under the playhead."""
    out = normalize_state(replace(state, current_time=float(t)))
    hit = clip_at_time(out.clips, out.current_time)
    if hit is not None:
        out = replace(out, selected_clip_id=out.clips[hit[0]].id)
    return out


def set_current_time(state: EditorState, t: float) -> EditorState:
    """Playback commit; no selection side effects."""
    current = min(max(0.0, float(t)), state.total_duration)
    if abs(current - state.current_time) < 1e-9:
        return state
    return replace(state, current_time=current)


def enter_clip(state: EditorState, clip_id: str, t: float) -> EditorState:
    """Playback crossed into `clip_id`; it becomes the active clip."""
    if state.find_clip(clip_id) is None:
        return state
    return set_current_time(replace(state, selected_clip_id=clip_id), t)


def finish_playback(state: EditorState, at: Optional[float] = None) -> EditorState:
    """Media ran out: stop and park the playhead at `at` (default: program end)."""
    end = state.total_duration if at is None else at
    return set_current_time(stop(state), end)


def active_clip_position(state: EditorState) -> Optional[Tuple[int, float]]:
    """
    Clip and local offset where video playback starts.

    The selected clip (or the first one) is the active clip; a playhead
    outside it restarts that clip from its beginning.
    """
    if not state.clips:
        return None
    idx = state.clip_index(state.selected_clip_id) if state.selected_clip_id else 0
    if idx < 0:
        idx = 0
    clip = state.clips[idx]
    local = state.current_time - timeline_offset(state.clips, idx)
    if local < 0.0 or local > clip_duration(clip):
        local = 0.0
    return idx, local


def stop(state: EditorState) -> EditorState:
    if not state.is_playing and state.play_mode == PLAY_NONE:
        return state
    return replace(state, is_playing=False, play_mode=PLAY_NONE)


def play(state: EditorState, mode: str) -> EditorState:
    """
    Start playback in `mode`; invoking the mode that is already playing stops.
    """
    if mode not in (PLAY_VIDEO, PLAY_AUDIO, PLAY_ALL):
        return stop(state)
    if state.is_playing and state.play_mode == mode:
        return stop(state)
    if mode == PLAY_VIDEO and not state.clips:
        return state
    if mode == PLAY_AUDIO and not state.audio_tracks:
        return state
    if mode == PLAY_ALL and state.is_empty:
        return state

    out = replace(state, is_playing=True, play_mode=mode)
    if mode in (PLAY_VIDEO, PLAY_ALL):
        pos = active_clip_position(state)
        if pos is not None:
            idx, local = pos
            out = replace(
                out,
                selected_clip_id=state.clips[idx].id,
                current_time=timeline_offset(state.clips, idx) + local,
            )
    return normalize_state(out)
