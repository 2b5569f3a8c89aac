from __future__ import annotations

import asyncio
import json
import logging
import math
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from .model import AUDIO_FALLBACK_DURATION, VIDEO_FALLBACK_DURATION

log = logging.getLogger(__name__)

KIND_VIDEO = "video"
KIND_AUDIO = "audio"


@dataclass(frozen=True)
class MediaInfo:
    duration: float
    has_video: bool
    has_audio: bool


class FFmpegNotFound(RuntimeError):
    """Raised when ffmpeg/ffprobe cannot be located."""
    pass


def _which(name: str, local_bin: Path) -> Optional[str]:
    local = local_bin / name
    if local.exists():
        return str(local)
    return shutil.which(name)


def resolve_ffmpeg_bins(project_root: Path) -> Tuple[str, str]:
    """Return (ffmpeg_path, ffprobe_path). Prefer ./bin, fallback to PATH."""
    local_bin = Path(project_root) / "bin"
    if os.name == "nt":
        ffmpeg = _which("ffmpeg.exe", local_bin) or _which("ffmpeg", local_bin)
        ffprobe = _which("ffprobe.exe", local_bin) or _which("ffprobe", local_bin)
    else:
        ffmpeg = _which("ffmpeg", local_bin)
        ffprobe = _which("ffprobe", local_bin)

    if not ffmpeg or not ffprobe:
        raise FFmpegNotFound(f"ffmpeg/ffprobe not found in {local_bin} or on PATH")
    return ffmpeg, ffprobe


def probe_media(ffprobe_path: str, src: str) -> MediaInfo:
    """Use ffprobe to get duration and whether streams exist."""
    cmd = [
        ffprobe_path,
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        src,
    ]
    p = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(p.stdout)

    fmt = data.get("format", {}) or {}
    dur = float(fmt.get("duration", 0.0) or 0.0)

    streams = data.get("streams", []) or []
    has_v = any(s.get("codec_type") == "video" for s in streams)
    has_a = any(s.get("codec_type") == "audio" for s in streams)

    return MediaInfo(duration=dur, has_video=has_v, has_audio=has_a)


def fallback_duration(kind: str) -> float:
    return AUDIO_FALLBACK_DURATION if kind == KIND_AUDIO else VIDEO_FALLBACK_DURATION


class DurationResolver:
    """
    Resolve media durations out-of-band.

    Concurrent requests for one URL share a single lookup. Failures resolve to
    a fixed fallback (8s video, 10s audio) and are not cached, so a later
    request probes again.
    """

    def __init__(self, ffprobe_path: Optional[str]) -> None:
        self.ffprobe_path = ffprobe_path
        self._cache: Dict[str, float] = {}
        self._inflight: Dict[str, "asyncio.Future[Optional[float]]"] = {}

    def cached(self, url: str) -> Optional[float]:
        return self._cache.get(url)

    def in_flight(self, url: str) -> bool:
        return url in self._inflight

    async def resolve(self, url: str, kind: str = KIND_VIDEO) -> float:
        if url in self._cache:
            return self._cache[url]

        fut = self._inflight.get(url)
        if fut is None:
            fut = asyncio.ensure_future(self._lookup(url))
            self._inflight[url] = fut
            fut.add_done_callback(lambda _f, u=url: self._inflight.pop(u, None))

        # Shield so one cancelled caller doesn't cancel the lookup for the others.
        dur = await asyncio.shield(fut)
        if dur is None:
            return fallback_duration(kind)
        return dur

    async def _lookup(self, url: str) -> Optional[float]:
        if not self.ffprobe_path:
            log.warning("no ffprobe available; using fallback duration for %s", url)
            return None
        try:
            info = await asyncio.to_thread(probe_media, self.ffprobe_path, url)
        except Exception as ex:
            log.warning("duration lookup failed for %s: %s", url, ex)
            return None
        dur = float(info.duration)
        if not math.isfinite(dur) or dur <= 0.0:
            log.warning("duration lookup returned %r for %s", info.duration, url)
            return None
        self._cache[url] = dur
        return dur
