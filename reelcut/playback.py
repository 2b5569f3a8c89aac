from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol

from . import editor
from .model import (
    AUDIO_RESYNC_TOLERANCE,
    CLIP_END_EPSILON,
    PLAY_ALL,
    PLAY_AUDIO,
    PLAY_VIDEO,
    AudioTrack,
    Clip,
    EditorState,
)
from .session import EditorSession
from .timeline import (
    audio_duration,
    audio_source_time,
    audio_track_at_time,
    clip_at_time,
    clip_duration,
    effective_transition_duration,
    timeline_offset,
    timeline_to_source,
    video_duration,
)
from .transitions import TransitionPreview, transition_progress, transition_styles

log = logging.getLogger(__name__)


class MediaSink(Protocol):
    """One media element (video or audio) the driver owns exclusively."""

    src: Optional[str]
    paused: bool

    async def load(self, src: str) -> None:
        """Swap the source; returns once the new media can play."""
        ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def seek(self, sec: float) -> None: ...

    async def position(self) -> Optional[float]:
        """Current position in source seconds, or None if unknown."""
        ...

    async def set_muted(self, muted: bool) -> None: ...

    async def set_volume(self, volume: float) -> None: ...


def _audio_track_from(tracks: List[AudioTrack], t: float) -> Optional[AudioTrack]:
    """Track under `t`, else the next one starting after it."""
    hit = audio_track_at_time(tracks, t)
    if hit is not None:
        return tracks[hit[0]]
    later = [tr for tr in tracks if tr.offset_sec >= t and tr.dur > 0.0]
    if not later:
        return None
    return min(later, key=lambda tr: tr.offset_sec)


class PlaybackDriver:
    """
    Frame-driven playback over a video sink and an audio sink.

    The driver never blocks. Each `tick()` polls the sinks, issues
    play/pause/seek calls as needed and commits at most one playhead update to
    the session. In "all" mode the video is the timing master and the audio is
    re-seeked only when it drifts more than AUDIO_RESYNC_TOLERANCE.

    Every `start()`/`stop()` bumps a generation counter; work started under an
    older generation drops its results after each await, so no stale loop can
    touch the sinks or the state after cancellation.
    """

    def __init__(
        self,
        session: EditorSession,
        video: Optional[MediaSink] = None,
        audio: Optional[MediaSink] = None,
    ) -> None:
        self.session = session
        self.video = video
        self.audio = audio
        self.preview: Optional[TransitionPreview] = None
        self._generation = 0
        self._clip_id: Optional[str] = None
        self._audio_track_id: Optional[str] = None
        self._video_done = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def active_clip_id(self) -> Optional[str]:
        return self._clip_id

    def _stale(self, gen: int) -> bool:
        return gen != self._generation

    def _commit(self, gen: int, reducer, *args) -> None:
        if self._stale(gen):
            return
        self.session.dispatch(reducer, *args)

    # ---------- transport ----------

    async def start(self, mode: str) -> bool:
        """
        Play in `mode`, or stop if that mode is already playing.

        Returns True when playback is running afterwards.
        """
        self._generation += 1
        gen = self._generation
        state = self.session.dispatch(editor.play, mode)
        if not state.is_playing:
            await self._pause_all()
            return False

        self.preview = None
        self._video_done = False
        self._audio_track_id = None

        if state.play_mode == PLAY_ALL and not state.clips:
            # Audio-only program: the audio lane runs until its own end.
            if self.audio is None:
                log.warning("no audio sink; cannot play an audio-only timeline")
                self.session.dispatch(editor.stop)
                return False
            if self.video is not None and not self.video.paused:
                await self.video.pause()
            self._clip_id = None
            self._video_done = True
            await self._sync_audio(state, state.current_time, gen, force=True)
        elif state.play_mode in (PLAY_VIDEO, PLAY_ALL):
            if self.video is None:
                log.warning("no video sink; cannot play %s", state.play_mode)
                self.session.dispatch(editor.stop)
                return False
            if state.play_mode == PLAY_VIDEO and self.audio is not None and not self.audio.paused:
                await self.audio.pause()
            pos = editor.active_clip_position(state)
            if pos is None:
                self.session.dispatch(editor.stop)
                return False
            idx, local = pos
            clip = state.clips[idx]
            if not await self._enter_clip(clip, timeline_to_source(clip, local), gen):
                return False
            if state.play_mode == PLAY_ALL:
                await self._sync_audio(self.session.state, self.session.state.current_time, gen, force=True)
        else:
            if self.video is not None and not self.video.paused:
                await self.video.pause()
            self._clip_id = None
        return not self._stale(gen) and self.session.state.is_playing

    async def stop(self) -> None:
        self._generation += 1
        self.session.dispatch(editor.stop)
        await self._pause_all()

    async def _pause_all(self) -> None:
        self.preview = None
        self._video_done = False
        self._audio_track_id = None
        for sink in (self.video, self.audio):
            if sink is not None and not sink.paused:
                await sink.pause()

    async def _finish(self, gen: int, at: Optional[float] = None) -> None:
        if self._stale(gen):
            return
        self.preview = None
        if self.audio is not None and not self.audio.paused:
            await self.audio.pause()
        if self.video is not None and not self.video.paused:
            await self.video.pause()
        self._commit(gen, editor.finish_playback, at)
        self._video_done = False
        self._audio_track_id = None

    # ---------- sink helpers ----------

    async def _enter_clip(self, clip: Clip, source_sec: float, gen: int) -> bool:
        """Load (if needed), seek, then play; a new source is never seeked before it is ready."""
        v = self.video
        if v.src != clip.src:
            await v.load(clip.src)
            if self._stale(gen):
                return False
        await v.seek(source_sec)
        await v.set_muted(clip.muted)
        if self._stale(gen):
            return False
        await v.play()
        self._clip_id = clip.id
        return True

    async def _sync_audio(self, state: EditorState, program_sec: float, gen: int, force: bool = False) -> None:
        a = self.audio
        if a is None:
            return
        hit = audio_track_at_time(state.audio_tracks, program_sec)
        if hit is None:
            if not a.paused:
                await a.pause()
            self._audio_track_id = None
            return
        track = state.audio_tracks[hit[0]]
        target = audio_source_time(track, program_sec)

        if a.src != track.src:
            await a.load(track.src)
            if self._stale(gen):
                return
            force = True
        elif self._audio_track_id != track.id:
            force = True
        self._audio_track_id = track.id

        if not force:
            pos = await a.position()
            if self._stale(gen):
                return
            force = pos is None or abs(pos - target) > AUDIO_RESYNC_TOLERANCE
        if force:
            await a.seek(target)
        if force or a.paused:
            await a.set_volume(track.volume)
        if a.paused:
            await a.play()

    def _transition_preview(self, state: EditorState, idx: int, source_pos: float) -> Optional[TransitionPreview]:
        if idx + 1 >= len(state.clips):
            return None
        clip = state.clips[idx]
        progress = transition_progress(clip, source_pos, effective_transition_duration(state.clips, idx))
        if progress is None:
            return None
        kind = clip.transition_out.type
        return TransitionPreview(
            type=kind,
            progress=progress,
            styles=transition_styles(kind, progress),
            next_clip_id=state.clips[idx + 1].id,
        )

    # ---------- frame ----------

    async def tick(self) -> bool:
        """Run one frame. Returns False once playback is no longer running."""
        gen = self._generation
        state = self.session.state
        if not state.is_playing:
            await self._pause_all()
            return False

        if state.play_mode == PLAY_AUDIO:
            await self._tick_audio(state, gen, finish_at_end=False)
        elif self._video_done:
            await self._tick_audio(state, gen, finish_at_end=True)
        else:
            await self._tick_video(state, gen)
        return not self._stale(gen) and self.session.state.is_playing

    async def _tick_video(self, state: EditorState, gen: int) -> None:
        v = self.video
        idx = state.clip_index(self._clip_id) if self._clip_id else -1
        if v is None or idx < 0:
            # Active clip was deleted under the playhead.
            await self.stop()
            return

        if state.selected_clip_id and state.selected_clip_id != self._clip_id:
            # User picked another clip mid-play; continue from there.
            pos = editor.active_clip_position(state)
            if pos is not None:
                jump_idx, local = pos
                clip = state.clips[jump_idx]
                self.preview = None
                await self._enter_clip(clip, timeline_to_source(clip, local), gen)
            return

        clip = state.clips[idx]
        pos = await v.position()
        if self._stale(gen) or pos is None:
            return

        self.preview = self._transition_preview(state, idx, pos)

        if pos >= clip.trim_end - CLIP_END_EPSILON:
            await self._advance(state, idx, gen)
            return

        program = timeline_offset(state.clips, idx) + max(0.0, pos - clip.trim_start)
        if state.play_mode == PLAY_ALL:
            await self._sync_audio(state, program, gen)
        self._commit(gen, editor.set_current_time, program)

    async def _advance(self, state: EditorState, idx: int, gen: int) -> None:
        nxt_idx = idx + 1
        self.preview = None
        if nxt_idx < len(state.clips):
            nxt = state.clips[nxt_idx]
            # The overlap was already shown on the outgoing clip's tail.
            overlap = min(effective_transition_duration(state.clips, idx), clip_duration(nxt))
            if not await self._enter_clip(nxt, nxt.trim_start + overlap, gen):
                return
            self._commit(gen, editor.enter_clip, nxt.id, timeline_offset(state.clips, nxt_idx) + overlap)
            return

        await self.video.pause()
        video_end = video_duration(state.clips)
        if (
            state.play_mode == PLAY_ALL
            and self.audio is not None
            and audio_duration(state.audio_tracks) > video_end + 1e-6
        ):
            # Audio outlasts the video: keep it going until its own end.
            self._video_done = True
            await self._sync_audio(state, video_end, gen)
            self._commit(gen, editor.set_current_time, video_end)
            return

        await self._finish(gen, None if state.play_mode == PLAY_ALL else video_end)

    async def _tick_audio(self, state: EditorState, gen: int, finish_at_end: bool) -> None:
        a = self.audio
        if a is None:
            await self._finish(gen, None if finish_at_end else state.current_time)
            return

        track = state.find_audio(self._audio_track_id) if self._audio_track_id else None
        if track is None or a.paused:
            nxt = _audio_track_from(state.audio_tracks, state.current_time)
            if nxt is None:
                await self._finish(gen, None if finish_at_end else state.current_time)
                return
            start = max(state.current_time, nxt.offset_sec)
            await self._sync_audio(state, start, gen, force=True)
            self._commit(gen, editor.set_current_time, start)
            return

        pos = await a.position()
        if self._stale(gen) or pos is None:
            return

        if pos >= track.trim_end - CLIP_END_EPSILON:
            await a.pause()
            self._audio_track_id = None
            end = track.end_sec
            if _audio_track_from(state.audio_tracks, end) is None:
                await self._finish(gen, None if finish_at_end else end)
            else:
                self._commit(gen, editor.set_current_time, end)
            return

        program = track.offset_sec + (pos - track.trim_start)
        self._commit(gen, editor.set_current_time, program)

    # ---------- idle ----------

    async def sync_to_playhead(self) -> None:
        """Park both sinks on the playhead without starting playback."""
        state = self.session.state
        if state.is_playing:
            return
        gen = self._generation
        await self._park_video(state, gen)
        if not self._stale(gen):
            await self._park_audio(state, gen)

    async def _park_video(self, state: EditorState, gen: int) -> None:
        v = self.video
        if v is None:
            return
        hit = clip_at_time(state.clips, state.current_time)
        if hit is None:
            return
        idx, local = hit
        clip = state.clips[idx]
        if v.src != clip.src:
            await v.load(clip.src)
            if self._stale(gen):
                return
        if not v.paused:
            await v.pause()
        await v.seek(timeline_to_source(clip, local))
        await v.set_muted(clip.muted)
        self._clip_id = clip.id

    async def _park_audio(self, state: EditorState, gen: int) -> None:
        a = self.audio
        if a is None:
            return
        hit = audio_track_at_time(state.audio_tracks, state.current_time)
        if hit is None:
            return
        track = state.audio_tracks[hit[0]]
        if a.src != track.src:
            await a.load(track.src)
            if self._stale(gen):
                return
        if not a.paused:
            await a.pause()
        await a.seek(audio_source_time(track, state.current_time))
        await a.set_volume(track.volume)
        self._audio_track_id = track.id

    async def run(self, frame_interval: float = 0.04) -> None:
        """Per-frame loop for the current generation; exits when playback stops."""
        gen = self._generation
        while not self._stale(gen):
            try:
                alive = await self.tick()
            except Exception:
                log.exception("playback frame failed")
                await self.stop()
                break
            if not alive:
                break
            await asyncio.sleep(frame_interval)
