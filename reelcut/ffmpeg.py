from __future__ import annotations

import logging
import os
import re
import subprocess
import tempfile
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Sequence, Tuple

from .model import ExportSettings, Transition
from .transitions import ffmpeg_xfade_name

log = logging.getLogger(__name__)

PHASE_LOADING = "loading"
PHASE_PREPARING = "preparing"
PHASE_CONCATENATING = "concatenating"
PHASE_FINALIZING = "finalizing"
PHASE_COMPLETE = "complete"
PHASE_ERROR = "error"

SILENCE_FILTER = "silenceremove=1:0:-50dB"

_TIME_RE = re.compile(r"time=(\d+):(\d+):(\d+(?:\.\d+)?)")


class ExportError(RuntimeError):
    """Concatenation failed; the message is safe to show to the user."""
    pass


@dataclass(frozen=True)
class VideoInput:
    url: str
    scene_number: int
    trim_start: float
    trim_end: float
    mute: bool = False
    transition_out: Optional[Transition] = None
    source_duration: float = 0.0

    @property
    def dur(self) -> float:
        return max(0.0, self.trim_end - self.trim_start)


@dataclass(frozen=True)
class AudioInput:
    url: str
    offset_ms: int = 0
    volume: float = 1.0
    trim_start: float = 0.0
    trim_end: Optional[float] = None


@dataclass(frozen=True)
class ExportProgress:
    phase: str
    progress: int
    message: str = ""


ProgressCallback = Callable[[ExportProgress], None]


def parse_ffmpeg_progress_seconds(line: str) -> Optional[float]:
    """Extract the output position from one `-progress` or stats line."""
    s = (line or "").strip()
    if not s:
        return None
    if s.startswith("out_time_us=") or s.startswith("out_time_ms="):
        # ffmpeg reports both keys in microseconds.
        raw = s.split("=", 1)[1].strip()
        try:
            return max(0.0, int(raw) / 1_000_000.0)
        except ValueError:
            return None
    m = _TIME_RE.search(s)
    if m:
        h, mi, sec = m.groups()
        return int(h) * 3600 + int(mi) * 60 + float(sec)
    return None


def _fmt(v: float) -> str:
    return f"{float(v):.3f}"


def normalize_filter(settings: ExportSettings) -> str:
    w, h = settings.width, settings.height
    return (
        f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:black,"
        f"fps={settings.fps},format={settings.pixel_format},setsar=1"
    )


def has_trim(videos: Sequence[VideoInput]) -> bool:
    for v in videos:
        if v.trim_start > 0.0:
            return True
        # Unknown source length counts as trimmed.
        if v.source_duration <= 0.0 or v.trim_end < v.source_duration - 1e-3:
            return True
    return False


def has_transitions(videos: Sequence[VideoInput]) -> bool:
    return any(v.transition_out is not None and v.transition_out.active for v in videos[:-1])


def crossfade_durations(videos: Sequence[VideoInput]) -> List[float]:
    """Blend length at each join; 0 marks a hard cut."""
    out: List[float] = []
    for i in range(len(videos) - 1):
        t = videos[i].transition_out
        if t is None or not t.active:
            out.append(0.0)
            continue
        out.append(max(0.0, min(float(t.duration), videos[i].dur, videos[i + 1].dur)))
    return out


def output_duration(videos: Sequence[VideoInput]) -> float:
    return max(0.0, sum(v.dur for v in videos) - sum(crossfade_durations(videos)))


def build_concat_filter(
    videos: Sequence[VideoInput],
    settings: ExportSettings,
    remove_silence: bool = False,
) -> Tuple[str, str, str]:
    """
    Build the filter graph joining trimmed inputs.

    Returns (filter_complex, video_label, audio_label). Joins with a
    transition become xfade/acrossfade; the rest are plain concats.
    """
    parts: List[str] = []
    norm = normalize_filter(settings)
    for i, v in enumerate(videos):
        ts, te = _fmt(max(0.0, v.trim_start)), _fmt(v.trim_end)
        parts.append(f"[{i}:v]trim={ts}:{te},setpts=PTS-STARTPTS,{norm}[v{i}]")
        audio = f"[{i}:a]atrim={ts}:{te},asetpts=PTS-STARTPTS"
        if v.mute:
            audio += ",volume=0"
        elif remove_silence:
            audio += f",{SILENCE_FILTER}"
        parts.append(f"{audio}[a{i}]")

    if len(videos) == 1:
        return ";".join(parts), "[v0]", "[a0]"

    if not has_transitions(videos):
        labels = "".join(f"[v{i}][a{i}]" for i in range(len(videos)))
        parts.append(f"{labels}concat=n={len(videos)}:v=1:a=1[vfinal][afinal]")
        return ";".join(parts), "[vfinal]", "[afinal]"

    fades = crossfade_durations(videos)
    length = videos[0].dur
    last = len(videos) - 2
    for i, d in enumerate(fades):
        v_in = "[v0]" if i == 0 else f"[vt{i - 1}]"
        a_in = "[a0]" if i == 0 else f"[at{i - 1}]"
        v_out = "[vfinal]" if i == last else f"[vt{i}]"
        a_out = "[afinal]" if i == last else f"[at{i}]"
        if d > 0.0:
            kind = ffmpeg_xfade_name(videos[i].transition_out.type)
            offset = length - d
            parts.append(f"{v_in}[v{i + 1}]xfade=transition={kind}:duration={_fmt(d)}:offset={_fmt(offset)}{v_out}")
            parts.append(f"{a_in}[a{i + 1}]acrossfade=d={_fmt(d)}:c1=exp:c2=exp{a_out}")
        else:
            parts.append(f"{v_in}[v{i + 1}]concat=n=2:v=1:a=0{v_out}")
            parts.append(f"{a_in}[a{i + 1}]concat=n=2:v=0:a=1{a_out}")
        length += videos[i + 1].dur - d
    return ";".join(parts), "[vfinal]", "[afinal]"


def _encode_args(settings: ExportSettings) -> List[str]:
    return [
        "-c:v",
        settings.video_codec,
        "-preset",
        settings.preset,
        "-crf",
        str(settings.crf),
        "-c:a",
        settings.audio_codec,
        "-b:a",
        settings.audio_bitrate,
        "-movflags",
        "+faststart",
        "-pix_fmt",
        settings.pixel_format,
    ]


def build_concat_command(
    ffmpeg_path: str,
    videos: Sequence[VideoInput],
    out_path: str,
    settings: Optional[ExportSettings] = None,
    remove_silence: bool = False,
) -> List[str]:
    if not videos:
        raise ValueError("No clips to export")
    settings = settings or ExportSettings()

    # A single untouched clip is copied as-is.
    untouched = not (has_trim(videos) or remove_silence or any(v.mute for v in videos))
    if len(videos) == 1 and untouched:
        return [ffmpeg_path, "-y", "-i", videos[0].url, "-c", "copy", out_path]

    args: List[str] = [ffmpeg_path, "-y"]
    for v in videos:
        args += ["-i", v.url]
    filter_complex, v_label, a_label = build_concat_filter(videos, settings, remove_silence=remove_silence)
    args += ["-filter_complex", filter_complex, "-map", v_label, "-map", a_label]
    args += _encode_args(settings)
    args.append(out_path)
    return args


def build_audio_mix_command(
    ffmpeg_path: str,
    video_path: str,
    audio: AudioInput,
    out_path: str,
    settings: Optional[ExportSettings] = None,
) -> List[str]:
    """Overlay one audio input onto the joined video, delayed by its offset."""
    settings = settings or ExportSettings()
    delay_ms = max(0, int(round(audio.offset_ms or 0)))
    volume = audio.volume if audio.volume is not None else 1.0
    trim = ""
    if audio.trim_start > 0.0 or audio.trim_end is not None:
        end = f":{_fmt(audio.trim_end)}" if audio.trim_end is not None else ""
        trim = f"atrim={_fmt(max(0.0, audio.trim_start))}{end},asetpts=PTS-STARTPTS,"
    mix = (
        f"[1:a]{trim}adelay={delay_ms}:all=1,volume={float(volume):g}[audio];"
        f"[0:a][audio]amix=inputs=2:duration=first:dropout_transition=0[aout]"
    )
    return [
        ffmpeg_path,
        "-y",
        "-i",
        video_path,
        "-i",
        audio.url,
        "-filter_complex",
        mix,
        "-map",
        "0:v",
        "-map",
        "[aout]",
        "-c:v",
        "copy",
        "-c:a",
        settings.audio_codec,
        "-b:a",
        settings.audio_bitrate,
        out_path,
    ]


def run_ffmpeg_with_progress(
    cmd: List[str],
    total_sec: float,
    on_progress: Optional[Callable[[float, float], None]] = None,
) -> None:
    """
    Run ffmpeg with machine-readable progress on stderr.

    Raises subprocess.CalledProcessError on a non-zero exit; the tail of stderr
    is attached as `stderr`.
    """
    full = [cmd[0], "-progress", "pipe:2", "-nostats", *cmd[1:]]
    total = max(0.0, float(total_sec))
    tail: Deque[str] = deque(maxlen=20)

    proc = subprocess.Popen(
        full,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    if on_progress:
        on_progress(0.0, total)
    last = 0.0
    for line in proc.stderr:
        tail.append(line.rstrip())
        sec = parse_ffmpeg_progress_seconds(line)
        if sec is None:
            continue
        cur = min(total, sec) if total > 0 else sec
        if cur > last:
            last = cur
            if on_progress:
                on_progress(cur, total)
    rc = proc.wait()
    if rc != 0:
        raise subprocess.CalledProcessError(rc, full, stderr="\n".join(tail))
    if on_progress and total > 0 and last < total:
        on_progress(total, total)


def _failure_message(ex: BaseException) -> str:
    if isinstance(ex, subprocess.CalledProcessError):
        lines = [ln for ln in str(ex.stderr or "").splitlines() if ln and "=" not in ln]
        detail = lines[-1] if lines else f"exit code {ex.returncode}"
        return f"ffmpeg failed: {detail}"
    return f"ffmpeg failed: {ex}"


def _discard(path: str) -> None:
    # A failed run must not leave a half-written file behind.
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError:
        log.warning("could not remove partial output %s", path)


def concatenate_videos(
    ffmpeg_path: str,
    videos: Sequence[VideoInput],
    out_path: str,
    audio: Optional[AudioInput] = None,
    remove_silence: bool = False,
    settings: Optional[ExportSettings] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> str:
    """
    Join `videos` (ordered by scene number) into `out_path`.

    Blocking; run it off the UI loop. Reports ExportProgress through
    `on_progress` and raises ExportError on failure after reporting the
    error phase. A failed audio overlay keeps the joined video without it.
    """
    settings = settings or ExportSettings()

    def emit(phase: str, progress: int, message: str = "") -> None:
        if on_progress:
            on_progress(ExportProgress(phase=phase, progress=int(progress), message=message))

    if not videos:
        emit(PHASE_ERROR, 0, "No clips to export")
        raise ExportError("No clips to export")

    ordered = sorted(videos, key=lambda v: v.scene_number)
    joined = out_path
    try:
        for i, v in enumerate(ordered):
            emit(PHASE_PREPARING, round((i + 1) / len(ordered) * 40), f"Loading scene {v.scene_number}...")
            if "://" not in v.url and not os.path.exists(v.url):
                raise ExportError(f"Missing source for scene {v.scene_number}: {v.url}")

        emit(PHASE_CONCATENATING, 45, "Applying transitions...")
        if audio is not None:
            fd, joined = tempfile.mkstemp(suffix=f".{settings.format}", prefix="reelcut-join-")
            os.close(fd)

        cmd = build_concat_command(ffmpeg_path, ordered, joined, settings, remove_silence=remove_silence)
        total = output_duration(ordered)

        def _on_concat(cur: float, tot: float) -> None:
            ratio = min(1.0, max(0.0, cur / tot)) if tot > 0 else 0.0
            emit(PHASE_CONCATENATING, 45 + round(ratio * 45), "Applying transitions...")

        log.info("concatenating %d clip(s) into %s", len(ordered), out_path)
        run_ffmpeg_with_progress(cmd, total, _on_concat)

        if audio is not None:
            emit(PHASE_FINALIZING, 90, "Mixing audio...")
            try:
                mix_cmd = build_audio_mix_command(ffmpeg_path, joined, audio, out_path, settings)
                run_ffmpeg_with_progress(mix_cmd, total)
            except (subprocess.CalledProcessError, OSError) as ex:
                log.warning("audio mix failed, keeping video without overlay: %s", _failure_message(ex))
                os.replace(joined, out_path)

        emit(PHASE_FINALIZING, 92, "Finalizing...")
        if not os.path.exists(out_path) or os.path.getsize(out_path) == 0:
            raise ExportError("ffmpeg produced an empty output file")
    except ExportError as ex:
        _discard(out_path)
        emit(PHASE_ERROR, 0, str(ex))
        raise
    except (subprocess.CalledProcessError, OSError, ValueError) as ex:
        _discard(out_path)
        msg = _failure_message(ex)
        emit(PHASE_ERROR, 0, msg)
        raise ExportError(msg) from ex
    finally:
        if joined != out_path and os.path.exists(joined):
            os.remove(joined)

    emit(PHASE_COMPLETE, 100, "Export complete")
    return out_path
