from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional

from . import editor
from .media import KIND_AUDIO, KIND_VIDEO, DurationResolver, fallback_duration
from .model import EditorState
from .timeline import px_to_sec

log = logging.getLogger(__name__)

DRAG_TRIM = "trim"
DRAG_AUDIO_TRIM = "audio_trim"
DRAG_AUDIO_MOVE = "audio_move"
DRAG_PLAYHEAD = "playhead"

Listener = Callable[[EditorState], None]


@dataclass(frozen=True)
class DragSession:
    """
    One pointer gesture, from press to release.

    `start_a`/`start_b` hold the values captured at press time (trim window,
    audio offset, or playhead time) so every move is computed from the origin
    rather than accumulated.
    """

    kind: str
    target_id: Optional[str]
    start_x: float
    start_a: float = 0.0
    start_b: float = 0.0
    side: str = editor.SIDE_END


class EditorSession:
    """
    Owner of the EditorState for one editing session.

    All changes go through `dispatch`, which swaps the whole state and
    notifies listeners (UI refresh, draft auto-save, playback driver).
    """

    def __init__(self, state: Optional[EditorState] = None, resolver: Optional[DurationResolver] = None) -> None:
        self.state: EditorState = editor.normalize_state(state or editor.new_state())
        self.resolver = resolver
        self.drag: Optional[DragSession] = None
        self.last_message: str = ""
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set_state(self, new_state: EditorState) -> EditorState:
        if new_state is self.state:
            return self.state
        self.state = new_state
        for fn in list(self._listeners):
            try:
                fn(new_state)
            except Exception:
                log.exception("editor listener failed")
        return self.state

    def dispatch(self, reducer: Callable[..., Any], *args: Any, **kwargs: Any) -> EditorState:
        """Apply a reducer from `editor` to the current state."""
        result = reducer(self.state, *args, **kwargs)
        if isinstance(result, tuple):
            new_state, msg = result
            if msg:
                self.last_message = str(msg)
        else:
            new_state = result
        return self.set_state(new_state)

    def reset(self, state: Optional[EditorState] = None) -> EditorState:
        self.drag = None
        return self.set_state(editor.normalize_state(state or editor.new_state()))

    # ---------- async adds ----------

    async def _duration(self, src: str, kind: str) -> float:
        if self.resolver is None:
            return fallback_duration(kind)
        return await self.resolver.resolve(src, kind)

    async def add_clip(self, src: str, scene_number: int = 0) -> EditorState:
        duration = await self._duration(src, KIND_VIDEO)
        # Merged into whatever the state is once the lookup finishes.
        return self.dispatch(editor.add_clip, src, duration, scene_number)

    async def add_audio_track(self, src: str, name: str = "") -> EditorState:
        duration = await self._duration(src, KIND_AUDIO)
        return self.dispatch(editor.add_audio_track, src, duration, name)

    # ---------- drag gestures ----------

    def begin_trim_drag(self, clip_id: str, side: str, x: float) -> Optional[DragSession]:
        clip = self.state.find_clip(clip_id)
        if clip is None:
            return None
        self.drag = DragSession(DRAG_TRIM, clip_id, float(x), clip.trim_start, clip.trim_end, side)
        self.set_state(replace(self.state, selected_clip_id=clip_id))
        return self.drag

    def begin_audio_trim_drag(self, track_id: str, side: str, x: float) -> Optional[DragSession]:
        track = self.state.find_audio(track_id)
        if track is None:
            return None
        self.drag = DragSession(DRAG_AUDIO_TRIM, track_id, float(x), track.trim_start, track.trim_end, side)
        return self.drag

    def begin_audio_move_drag(self, track_id: str, x: float) -> Optional[DragSession]:
        track = self.state.find_audio(track_id)
        if track is None:
            return None
        self.drag = DragSession(DRAG_AUDIO_MOVE, track_id, float(x), track.offset_sec)
        return self.drag

    def begin_playhead_drag(self, x: float) -> DragSession:
        if self.state.is_playing:
            self.dispatch(editor.stop)
        self.drag = DragSession(DRAG_PLAYHEAD, None, float(x), self.state.current_time)
        return self.drag

    def drag_to(self, x: float) -> EditorState:
        d = self.drag
        if d is None:
            return self.state
        delta_px = float(x) - d.start_x
        if d.kind == DRAG_TRIM:
            return self.dispatch(editor.trim_clip, d.target_id, d.side, d.start_a, d.start_b, delta_px)
        if d.kind == DRAG_AUDIO_TRIM:
            return self.dispatch(editor.trim_audio_track, d.target_id, d.side, d.start_a, d.start_b, delta_px)
        if d.kind == DRAG_AUDIO_MOVE:
            return self.dispatch(editor.move_audio_track, d.target_id, d.start_a, delta_px)
        if d.kind == DRAG_PLAYHEAD:
            return self.dispatch(editor.seek, d.start_a + px_to_sec(delta_px))
        return self.state

    def end_drag(self) -> None:
        self.drag = None
