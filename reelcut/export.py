from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .assets import AssetUploader, GalleryRecord
from .drafts import DraftStore
from .ffmpeg import (
    PHASE_COMPLETE,
    PHASE_ERROR,
    PHASE_FINALIZING,
    PHASE_LOADING,
    AudioInput,
    ExportError,
    ExportProgress,
    VideoInput,
    concatenate_videos,
)
from .model import EditorState, ExportSettings, Transition
from .timeline import allowed_transition_durations, video_duration

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportRequest:
    videos: List[VideoInput] = field(default_factory=list)
    audio: Optional[AudioInput] = None
    remove_silence: bool = False


@dataclass(frozen=True)
class ExportResult:
    output_path: str
    asset_url: Optional[str] = None


def build_export_request(state: EditorState, remove_silence: bool = False) -> ExportRequest:
    """
    Serialize the timeline for the concatenation routine.

    Clips keep program order through `scene_number`; transitions carry the
    overlap that fits their neighbours. Only the first audio track is
    overlaid.
    """
    overlaps = allowed_transition_durations(state.clips)
    videos: List[VideoInput] = []
    for i, (c, overlap) in enumerate(zip(state.clips, overlaps)):
        transition: Optional[Transition] = None
        if overlap > 0.0:
            transition = Transition(type=c.transition_out.type, duration=overlap)
        videos.append(
            VideoInput(
                url=c.src,
                scene_number=i + 1,
                trim_start=c.trim_start,
                trim_end=c.trim_end,
                mute=bool(c.muted),
                transition_out=transition,
                source_duration=c.original_duration,
            )
        )
    audio: Optional[AudioInput] = None
    if state.audio_tracks:
        t = state.audio_tracks[0]
        audio = AudioInput(
            url=t.src,
            offset_ms=int(round(t.offset_sec * 1000)),
            volume=t.volume,
            trim_start=t.trim_start,
            trim_end=t.trim_end if t.trim_end < t.original_duration else None,
        )
    return ExportRequest(videos=videos, audio=audio, remove_silence=bool(remove_silence))


class ExportPipeline:
    """
    Export one EditorState: join, store in the gallery, drop the draft.

    A failed join reports the error phase and persists nothing; it is never
    retried. A failed upload is logged and the local output is still returned.
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str],
        out_dir: Path,
        uploader: Optional[AssetUploader] = None,
        drafts: Optional[DraftStore] = None,
        settings: Optional[ExportSettings] = None,
        video_script_id: Optional[str] = None,
        on_progress: Optional[Callable[[ExportProgress], None]] = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.out_dir = Path(out_dir)
        self.uploader = uploader
        self.drafts = drafts
        self.settings = settings or ExportSettings()
        self.video_script_id = video_script_id
        self.on_progress = on_progress
        self.progress: Optional[ExportProgress] = None
        self.running = False

    def _report(self, progress: ExportProgress) -> None:
        self.progress = progress
        if self.on_progress:
            try:
                self.on_progress(progress)
            except Exception:
                log.exception("export progress callback failed")

    def _fail(self, message: str) -> ExportError:
        if self.progress is None or self.progress.phase != PHASE_ERROR:
            self._report(ExportProgress(PHASE_ERROR, 0, message))
        log.error("export failed: %s", message)
        return ExportError(message)

    async def run(self, state: EditorState, remove_silence: bool = False) -> ExportResult:
        if self.running:
            raise ExportError("An export is already running")
        if not state.clips:
            raise ExportError("No clips to export")
        self.running = True
        self.progress = None
        try:
            return await self._run(state, remove_silence)
        finally:
            self.running = False

    async def _run(self, state: EditorState, remove_silence: bool) -> ExportResult:
        self._report(ExportProgress(PHASE_LOADING, 0, "Loading ffmpeg..."))
        if not self.ffmpeg_path:
            raise self._fail("ffmpeg is not available")

        request = build_export_request(state, remove_silence=remove_silence)
        out_path = self.out_dir / f"video-final-{int(time.time() * 1000)}.{self.settings.format}"
        self.out_dir.mkdir(parents=True, exist_ok=True)

        loop = asyncio.get_running_loop()

        def _from_worker(p: ExportProgress) -> None:
            # The pipeline reports completion itself, after storage.
            if p.phase == PHASE_COMPLETE:
                return
            loop.call_soon_threadsafe(self._report, p)

        log.info("export started: %d clip(s)", len(request.videos))
        try:
            await asyncio.to_thread(
                concatenate_videos,
                self.ffmpeg_path,
                request.videos,
                str(out_path),
                audio=request.audio,
                remove_silence=request.remove_silence,
                settings=self.settings,
                on_progress=_from_worker,
            )
        except ExportError as ex:
            # Let queued worker reports land before the error is final.
            await asyncio.sleep(0)
            raise self._fail(str(ex)) from ex

        asset_url: Optional[str] = None
        if self.uploader is not None:
            self._report(ExportProgress(PHASE_FINALIZING, 95, "Saving to gallery..."))
            try:
                asset_url = await asyncio.to_thread(self.uploader.upload, str(out_path), out_path.name)
                record = GalleryRecord(
                    src=asset_url,
                    prompt=f"Video edited with {len(state.clips)} scenes",
                    duration=video_duration(state.clips),
                    video_script_id=self.video_script_id,
                )
                await asyncio.to_thread(self.uploader.record, record)
            except Exception:
                log.exception("failed to store export in gallery; keeping %s", out_path)
                asset_url = None

        if self.drafts is not None:
            try:
                self.drafts.clear()
            except OSError:
                log.exception("failed to clear draft after export")

        self._report(ExportProgress(PHASE_COMPLETE, 100, "Export complete"))
        log.info("export finished: %s", out_path)
        return ExportResult(output_path=str(out_path), asset_url=asset_url)
