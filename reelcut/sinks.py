from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import flet_audio as fta
import flet_video as ftv

log = logging.getLogger(__name__)

LOAD_TIMEOUT_SEC = 5.0
LOAD_POLL_SEC = 0.05


def to_seconds(raw: Any) -> Optional[float]:
    """Flet reports positions as a Duration or as integer milliseconds."""
    if raw is None:
        return None
    try:
        if hasattr(raw, "in_milliseconds"):
            return max(0.0, float(raw.in_milliseconds) / 1000.0)
        if isinstance(raw, (int, float)):
            return max(0.0, float(raw) / 1000.0)
    except (TypeError, ValueError):
        return None
    return None


class _FletSink(ABC):
    """Shared bookkeeping for Flet media controls; methods are awaited on the page loop."""

    def __init__(self, control: Any) -> None:
        self.control = control
        self.src: Optional[str] = None
        self.paused = True

    @abstractmethod
    def _set_source(self, src: str) -> None: ...

    @abstractmethod
    async def set_muted(self, muted: bool) -> None: ...

    @abstractmethod
    async def set_volume(self, volume: float) -> None: ...

    async def load(self, src: str) -> None:
        self.paused = True
        self._set_source(src)
        self.src = src
        self.control.update()
        # No "can play" event is exposed; wait until the backend reports a duration.
        deadline = time.perf_counter() + LOAD_TIMEOUT_SEC
        while time.perf_counter() < deadline:
            try:
                dur = to_seconds(await self.control.get_duration())
            except Exception:
                dur = None
            if dur:
                return
            await asyncio.sleep(LOAD_POLL_SEC)
        log.warning("media not ready after %.1fs: %s", LOAD_TIMEOUT_SEC, src)

    async def play(self) -> None:
        await self.control.play()
        self.paused = False

    async def pause(self) -> None:
        self.paused = True
        await self.control.pause()

    async def seek(self, sec: float) -> None:
        await self.control.seek(int(max(0.0, float(sec)) * 1000))

    async def position(self) -> Optional[float]:
        try:
            raw = await self.control.get_current_position()
        except Exception:
            return None
        return to_seconds(raw)


class FletVideoSink(_FletSink):
    def __init__(self, control: "ftv.Video") -> None:
        super().__init__(control)

    def _set_source(self, src: str) -> None:
        self.control.playlist = [ftv.VideoMedia(src)]

    async def set_muted(self, muted: bool) -> None:
        if bool(self.control.muted) == bool(muted):
            return
        self.control.muted = bool(muted)
        self.control.update()

    async def set_volume(self, volume: float) -> None:
        # flet_video volume is 0..100
        self.control.volume = max(0.0, min(1.0, float(volume))) * 100.0
        self.control.update()


class FletAudioSink(_FletSink):
    def __init__(self, control: "fta.Audio") -> None:
        super().__init__(control)

    def _set_source(self, src: str) -> None:
        self.control.src = src

    async def set_muted(self, muted: bool) -> None:
        await self.set_volume(0.0 if muted else 1.0)

    async def set_volume(self, volume: float) -> None:
        self.control.volume = max(0.0, min(1.0, float(volume)))
        self.control.update()
