from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .editor import normalize_state
from .jsonio import read_json, write_json_atomic
from .model import PLAY_NONE, AudioTrack, Clip, EditorState

log = logging.getLogger(__name__)

DRAFT_KEY_PREFIX = "editor-draft"


def _now_iso() -> str:
    return datetime.now(timezone.utc).astimezone().isoformat()


def draft_key(campaign: Optional[str] = None) -> str:
    c = str(campaign or "").strip()
    return f"{DRAFT_KEY_PREFIX}-{c}" if c else DRAFT_KEY_PREFIX


def state_to_draft(state: EditorState) -> Dict[str, Any]:
    return {
        "clips": [c.to_dict() for c in state.clips],
        "audio_tracks": [t.to_dict() for t in state.audio_tracks],
        "current_time": state.current_time,
        "selected_clip_id": state.selected_clip_id,
        "selected_audio_id": state.selected_audio_id,
        "total_duration": state.total_duration,
        "saved_at": _now_iso(),
    }


def state_from_draft(data: Dict[str, Any]) -> EditorState:
    """
    Rebuild a state from a saved draft.

    Entries that can't be parsed are dropped; total_duration is recomputed
    rather than trusted and playback always restarts stopped.
    """
    clips: List[Clip] = []
    for raw in data.get("clips", []) or []:
        try:
            clips.append(Clip.from_dict(raw))
        except (KeyError, TypeError, AttributeError):
            log.warning("dropping unreadable clip in draft: %r", raw)
    tracks: List[AudioTrack] = []
    for raw in data.get("audio_tracks", []) or []:
        try:
            tracks.append(AudioTrack.from_dict(raw))
        except (KeyError, TypeError, AttributeError):
            log.warning("dropping unreadable audio track in draft: %r", raw)

    try:
        current = float(data.get("current_time", 0.0) or 0.0)
    except (TypeError, ValueError):
        current = 0.0
    state = EditorState(clips=clips, audio_tracks=tracks, current_time=current)
    sel_clip = data.get("selected_clip_id")
    sel_audio = data.get("selected_audio_id")
    state = replace(
        state,
        selected_clip_id=sel_clip if state.find_clip(sel_clip) else None,
        selected_audio_id=sel_audio if state.find_audio(sel_audio) else None,
        is_playing=False,
        play_mode=PLAY_NONE,
    )
    return normalize_state(state)


class DraftStore:
    """One JSON draft per campaign under `root_dir`."""

    def __init__(self, root_dir: Path, campaign: Optional[str] = None) -> None:
        self.root_dir = Path(root_dir)
        self.key = draft_key(campaign)
        self.path = self.root_dir / f"{self.key}.json"

    def has_draft(self) -> bool:
        return self.path.exists()

    def save(self, state: EditorState) -> bool:
        if state.is_empty:
            return False
        write_json_atomic(self.path, state_to_draft(state))
        return True

    def restore(self) -> Optional[EditorState]:
        if not self.path.exists():
            return None
        try:
            data = read_json(self.path)
        except (OSError, ValueError) as ex:
            log.warning("draft %s is unreadable: %s", self.path, ex)
            return None
        if not isinstance(data, dict):
            log.warning("draft %s has unexpected shape", self.path)
            return None
        state = state_from_draft(data)
        return None if state.is_empty else state

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class DraftAutoSaver:
    """
    Debounced draft writer; subscribe it to an EditorSession.

    Each change restarts the timer, so a draft is written only once edits
    settle. Save failures are logged and editing carries on in memory.
    """

    def __init__(self, store: DraftStore, delay: float = 0.5) -> None:
        self.store = store
        self.delay = max(0.0, float(delay))
        self._pending: Optional[EditorState] = None
        self._task: Optional["asyncio.Task[None]"] = None

    def __call__(self, state: EditorState) -> None:
        self.schedule(state)

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, state: EditorState) -> None:
        self._pending = state
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._save_later())

    def cancel(self) -> None:
        self._pending = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _save_later(self) -> None:
        await asyncio.sleep(self.delay)
        await self.flush()

    async def flush(self) -> None:
        state, self._pending = self._pending, None
        if state is None:
            return
        try:
            await asyncio.to_thread(self.store.save, state)
        except Exception:
            log.exception("draft save failed")
