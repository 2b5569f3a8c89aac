from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import flet as ft
import flet_audio as fta
import flet_video as ftv

from reelcut import editor
from reelcut.assets import LocalAssetStore
from reelcut.config import ConfigStore
from reelcut.drafts import DraftAutoSaver, DraftStore
from reelcut.export import ExportPipeline
from reelcut.ffmpeg import PHASE_COMPLETE, PHASE_ERROR, ExportError, ExportProgress
from reelcut.media import DurationResolver, FFmpegNotFound, resolve_ffmpeg_bins
from reelcut.model import (
    PLAY_ALL,
    PLAY_AUDIO,
    PLAY_VIDEO,
    TIMELINE_PX_PER_SEC,
    TRANSITION_DURATION_OPTIONS,
    TRANSITION_NONE,
    TRANSITION_OPTIONS,
    AudioTrack,
    Clip,
    EditorState,
)
from reelcut.playback import PlaybackDriver
from reelcut.session import EditorSession
from reelcut.shortcuts import (
    ACTION_DELETE,
    ACTION_EXPORT,
    ACTION_SHOW_SHORTCUTS,
    ACTION_SPLIT,
    ACTION_STOP,
    ACTION_TOGGLE_PLAY_ALL,
    ACTION_TOGGLE_PLAY_AUDIO,
    ACTION_TOGGLE_PLAY_VIDEO,
    resolve_shortcut_action,
    shortcut_legend,
)
from reelcut.sinks import FletAudioSink, FletVideoSink
from reelcut.timeline import clip_width_px, effective_transition_duration, format_time

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("reelcut")

VIDEO_EXTENSIONS = ["mp4", "mov", "mkv", "webm", "m4v"]
AUDIO_EXTENSIONS = ["mp3", "wav", "m4a", "aac", "ogg", "flac"]

LANE_LABEL_W = 64.0
HANDLE_W = 8.0
CLIP_LANE_H = 56.0
AUDIO_LANE_H = 40.0


def _event_global_x(e: Any) -> Optional[float]:
    try:
        return float(e.global_position.x)
    except Exception:
        pass
    try:
        return float(getattr(e, "global_x", None))
    except Exception:
        return None


def _event_local_x(e: Any) -> float:
    try:
        return float(e.local_position.x)
    except Exception:
        pass
    try:
        return float(getattr(e, "local_x", 0.0) or 0.0)
    except Exception:
        return 0.0


def main(page: ft.Page) -> None:
    page.title = "Reelcut"
    _platform = str(getattr(page, "platform", "") or "").lower()
    is_web = bool(getattr(page, "web", False)) or ("web" in _platform)
    if not is_web:
        page.window.width = 1100
        page.window.height = 760
    page.theme_mode = ft.ThemeMode.DARK
    page.padding = 10

    root = Path(__file__).resolve().parent
    cfg = ConfigStore.default()

    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    try:
        ffmpeg_path, ffprobe_path = resolve_ffmpeg_bins(root)
    except FFmpegNotFound as ex:
        log.warning("%s; durations fall back to defaults and export is disabled", ex)

    campaign = os.environ.get("REELCUT_CAMPAIGN", "").strip() or None
    drafts = DraftStore(cfg.drafts_dir(), campaign)
    autosaver = DraftAutoSaver(drafts, cfg.draft_debounce_sec())
    library = LocalAssetStore(cfg.library_dir())
    session = EditorSession(resolver=DurationResolver(ffprobe_path))

    # Some Flet clients ship without the audio extension and fail with
    # "Unknown control: Audio"; REELCUT_AUDIO_PREVIEW=0 turns the sink off.
    audio_preview_enabled = os.environ.get("REELCUT_AUDIO_PREVIEW", "1") != "0"

    preview_video = ftv.Video(
        expand=True,
        playlist=[],
        autoplay=False,
        muted=False,
        show_controls=False,
    )
    audio_control: Optional[fta.Audio] = None
    if audio_preview_enabled:
        audio_control = fta.Audio(volume=1.0)
        page.overlay.append(audio_control)

    driver = PlaybackDriver(
        session,
        FletVideoSink(preview_video),
        FletAudioSink(audio_control) if audio_control is not None else None,
    )
    file_picker = ft.FilePicker()
    typing_shortcuts_blocked = False
    export_running = False
    layout_key: Optional[tuple] = None

    # ---------- helpers ----------
    def snack(msg: str) -> None:
        page.show_dialog(ft.SnackBar(ft.Text(msg)))

    def show_message() -> None:
        msg = session.last_message
        if msg:
            session.last_message = ""
            snack(msg)

    async def start_playback(mode: str) -> None:
        try:
            running = await driver.start(mode)
        except Exception:
            log.exception("failed to start playback")
            await driver.stop()
            return
        if running:
            page.run_task(driver.run, cfg.frame_interval_sec())

    async def stop_playback(_e=None) -> None:
        try:
            await driver.stop()
        except Exception:
            log.exception("failed to stop playback")

    async def sync_preview() -> None:
        try:
            await driver.sync_to_playhead()
        except Exception:
            log.exception("preview seek failed")

    # ---------- preview ----------
    preview_hint = ft.Text("Add clips to start editing", color=ft.Colors.WHITE70)
    transition_badge = ft.Container(
        visible=False,
        padding=6,
        border_radius=6,
        bgcolor=ft.Colors.BLACK54,
        right=8,
        top=8,
        content=ft.Text("", size=11),
    )
    preview_host = ft.Container(
        height=360,
        border_radius=12,
        bgcolor=ft.Colors.BLACK,
        alignment=ft.Alignment(0, 0),
        content=ft.Stack(
            [
                preview_video,
                ft.Container(alignment=ft.Alignment(0, 0), content=preview_hint),
                transition_badge,
            ],
            expand=True,
        ),
    )
    time_label = ft.Text("0:00.0 / 0:00.0", size=13)

    def update_preview_overlay(state: EditorState) -> None:
        preview_hint.visible = not state.clips
        tp = driver.preview
        if tp is None:
            transition_badge.visible = False
            preview_video.opacity = 1.0
            preview_video.offset = None
            return
        out_style = tp.styles.outgoing
        in_style = tp.styles.incoming
        preview_video.opacity = float(out_style.get("opacity", 1.0))
        if "offset_x" in in_style:
            preview_video.offset = ft.Offset(-float(tp.progress), 0)
        transition_badge.visible = True
        transition_badge.content.value = f"{tp.type} {int(tp.progress * 100)}%"

    # ---------- inspector ----------
    selected_title = ft.Text("No clip selected", weight=ft.FontWeight.BOLD)
    selected_range = ft.Text("", size=12, color=ft.Colors.WHITE70)
    mute_checkbox = ft.Checkbox(label="Mute", value=False)
    transition_kind = ft.Dropdown(
        width=170,
        dense=True,
        label="Transition out",
        value=TRANSITION_NONE,
        options=[ft.dropdown.Option(key=k, text=label) for k, label in TRANSITION_OPTIONS],
    )
    transition_dur = ft.Dropdown(
        width=110,
        dense=True,
        label="Duration",
        value="0.5",
        options=[ft.dropdown.Option(key=f"{d:g}", text=f"{d:g}s") for d in TRANSITION_DURATION_OPTIONS],
    )
    clip_panel = ft.Column([ft.Row([mute_checkbox]), ft.Row([transition_kind, transition_dur], wrap=True)], visible=False)

    volume_value = ft.Text("100%", size=12, color=ft.Colors.WHITE70)
    volume_slider = ft.Slider(min=0.0, max=1.0, value=1.0, divisions=100, round=2)
    audio_panel = ft.Column(
        [
            ft.Row([ft.Text("Volume", size=12), ft.Container(expand=True), volume_value], tight=True),
            volume_slider,
        ],
        visible=False,
    )

    def update_inspector(state: EditorState) -> None:
        clip = state.find_clip(state.selected_clip_id)
        track = state.find_audio(state.selected_audio_id)
        clip_panel.visible = clip is not None
        audio_panel.visible = track is not None
        if clip is not None:
            selected_title.value = f"Clip {state.clip_index(clip.id) + 1}: {Path(clip.src).name}"
            selected_range.value = (
                f"{format_time(clip.trim_start)} - {format_time(clip.trim_end)} ({clip.dur:.1f}s)"
            )
            mute_checkbox.value = bool(clip.muted)
            last = state.clip_index(clip.id) == len(state.clips) - 1
            transition_kind.disabled = last
            transition_dur.disabled = last
            t = clip.transition_out
            transition_kind.value = t.type if t is not None else TRANSITION_NONE
            if t is not None:
                transition_dur.value = f"{t.duration:g}"
        elif track is not None:
            selected_title.value = f"Audio: {track.name or Path(track.src).name}"
            selected_range.value = (
                f"at {format_time(track.offset_sec)}, {format_time(track.trim_start)} - "
                f"{format_time(track.trim_end)} ({track.dur:.1f}s)"
            )
            volume_slider.value = track.volume
            volume_value.value = f"{int(round(track.volume * 100))}%"
        else:
            selected_title.value = "No clip selected"
            selected_range.value = ""

    def on_mute_change(_e) -> None:
        if session.state.selected_clip_id:
            session.dispatch(editor.toggle_clip_mute, session.state.selected_clip_id)

    def on_transition_change(_e) -> None:
        clip_id = session.state.selected_clip_id
        if not clip_id:
            return
        try:
            dur = float(transition_dur.value or 0.5)
        except ValueError:
            dur = 0.5
        session.dispatch(editor.set_transition, clip_id, str(transition_kind.value or TRANSITION_NONE), dur)
        state = session.state
        idx = state.clip_index(clip_id)
        fits = effective_transition_duration(state.clips, idx)
        if idx >= 0 and state.clips[idx].transition_out is not None and fits < dur:
            snack(f"Only {fits:.2f}s of the transition fits between these clips")

    def on_volume_change(e) -> None:
        track_id = session.state.selected_audio_id
        if track_id:
            session.dispatch(editor.set_audio_volume, track_id, float(e.control.value))

    mute_checkbox.on_change = on_mute_change
    transition_kind.on_change = on_transition_change
    transition_dur.on_change = on_transition_change
    volume_slider.on_change = on_volume_change

    # ---------- timeline ----------
    clip_row = ft.Row(spacing=0, scroll=ft.ScrollMode.AUTO)
    audio_lane = ft.Stack(height=AUDIO_LANE_H)
    playhead = ft.Container(left=LANE_LABEL_W, top=0, width=2, height=CLIP_LANE_H + AUDIO_LANE_H + 24, bgcolor=ft.Colors.RED_400)
    playhead_handle = ft.GestureDetector(
        mouse_cursor=ft.MouseCursor.GRAB,
        drag_interval=0,
        left=LANE_LABEL_W - 6,
        top=0,
        content=ft.Container(width=14, height=14, border_radius=7, bgcolor=ft.Colors.RED_300),
    )

    def _trim_handle(on_start, side: str) -> ft.GestureDetector:
        def _start(e) -> None:
            x = _event_global_x(e)
            if x is not None:
                on_start(side, x)

        def _update(e) -> None:
            x = _event_global_x(e)
            if x is not None:
                session.drag_to(x)

        def _end(_e) -> None:
            session.end_drag()

        return ft.GestureDetector(
            mouse_cursor=ft.MouseCursor.RESIZE_LEFT_RIGHT,
            drag_interval=0,
            on_horizontal_drag_start=_start,
            on_horizontal_drag_update=_update,
            on_horizontal_drag_end=_end,
            content=ft.Container(width=HANDLE_W, bgcolor=ft.Colors.WHITE38, border_radius=3),
        )

    def _payload(e) -> Any:
        return getattr(getattr(e, "src", None), "data", None)

    def clip_block(state: EditorState, clip: Clip) -> ft.Control:
        selected = clip.id == state.selected_clip_id
        width = clip_width_px(clip.dur)
        label = f"{Path(clip.src).name}\n{clip.dur:.1f}s{' M' if clip.muted else ''}"

        def _select(_e, clip_id=clip.id) -> None:
            session.dispatch(editor.select_clip, clip_id)
            page.run_task(sync_preview)

        def _accept(e, target_id=clip.id) -> None:
            moving = _payload(e)
            if isinstance(moving, str):
                session.dispatch(editor.reorder_clip, moving, target_id)

        body = ft.Container(
            expand=True,
            padding=4,
            border_radius=6,
            bgcolor=ft.Colors.AMBER_800 if selected else ft.Colors.BLUE_GREY_700,
            border=ft.Border.all(2, ft.Colors.AMBER_200) if selected else None,
            on_click=_select,
            content=ft.Text(label, size=10, no_wrap=False, max_lines=2),
        )
        handles = ft.Row(
            [
                _trim_handle(lambda side, x, cid=clip.id: session.begin_trim_drag(cid, side, x), editor.SIDE_START),
                body,
                _trim_handle(lambda side, x, cid=clip.id: session.begin_trim_drag(cid, side, x), editor.SIDE_END),
            ],
            spacing=0,
            width=width,
            height=CLIP_LANE_H,
        )
        return ft.DragTarget(
            group="clips",
            on_accept=_accept,
            content=ft.Draggable(
                group="clips",
                data=clip.id,
                axis=ft.Axis.HORIZONTAL,
                content=handles,
                content_feedback=ft.Container(width=80, height=22, bgcolor=ft.Colors.WHITE24, border_radius=8),
            ),
        )

    def transition_marker(state: EditorState, index: int) -> ft.Control:
        clip = state.clips[index]
        d = effective_transition_duration(state.clips, index)
        if d <= 0.0:
            return ft.Container(width=2, height=CLIP_LANE_H, bgcolor=ft.Colors.WHITE12)
        return ft.Container(
            width=14,
            height=CLIP_LANE_H,
            alignment=ft.Alignment(0, 0),
            tooltip=f"{clip.transition_out.type} {d:.2f}s",
            content=ft.Icon(ft.Icons.COMPARE_ARROWS, size=12, color=ft.Colors.AMBER_200),
        )

    def audio_block(state: EditorState, track: AudioTrack) -> ft.Control:
        selected = track.id == state.selected_audio_id
        width = clip_width_px(track.dur)

        def _select(_e, track_id=track.id) -> None:
            session.dispatch(editor.select_audio, track_id)

        def _move_start(e, track_id=track.id) -> None:
            x = _event_global_x(e)
            if x is not None:
                session.begin_audio_move_drag(track_id, x)

        def _move_update(e) -> None:
            x = _event_global_x(e)
            if x is not None:
                session.drag_to(x)

        body = ft.GestureDetector(
            mouse_cursor=ft.MouseCursor.MOVE,
            drag_interval=0,
            expand=True,
            on_tap=_select,
            on_horizontal_drag_start=_move_start,
            on_horizontal_drag_update=_move_update,
            on_horizontal_drag_end=lambda _e: session.end_drag(),
            content=ft.Container(
                padding=4,
                border_radius=6,
                bgcolor=ft.Colors.GREEN_700 if selected else ft.Colors.GREEN_900,
                content=ft.Text(f"{track.name or Path(track.src).name} {int(track.volume * 100)}%", size=10, no_wrap=True),
            ),
        )
        return ft.Container(
            left=track.offset_sec * TIMELINE_PX_PER_SEC,
            top=0,
            width=width,
            height=AUDIO_LANE_H,
            content=ft.Row(
                [
                    _trim_handle(lambda side, x, tid=track.id: session.begin_audio_trim_drag(tid, side, x), editor.SIDE_START),
                    body,
                    _trim_handle(lambda side, x, tid=track.id: session.begin_audio_trim_drag(tid, side, x), editor.SIDE_END),
                ],
                spacing=0,
            ),
        )

    def refresh_timeline(state: EditorState) -> None:
        clip_row.controls.clear()
        for i, c in enumerate(state.clips):
            clip_row.controls.append(clip_block(state, c))
            if i < len(state.clips) - 1:
                clip_row.controls.append(transition_marker(state, i))
        audio_lane.controls.clear()
        for t in state.audio_tracks:
            audio_lane.controls.append(audio_block(state, t))
        audio_lane.width = max(200.0, state.total_duration * TIMELINE_PX_PER_SEC + 40)
        ruler.content.width = LANE_LABEL_W + audio_lane.width

    def update_playhead(state: EditorState) -> None:
        x = LANE_LABEL_W + state.current_time * TIMELINE_PX_PER_SEC
        playhead.left = x
        playhead_handle.left = x - 6
        time_label.value = f"{format_time(state.current_time)} / {format_time(state.total_duration)}"

    def on_state(state: EditorState) -> None:
        nonlocal layout_key
        key = (id(state.clips), id(state.audio_tracks), state.selected_clip_id, state.selected_audio_id)
        if key != layout_key:
            layout_key = key
            refresh_timeline(state)
            update_inspector(state)
        update_playhead(state)
        update_preview_overlay(state)
        update_transport(state)
        try:
            page.update()
        except Exception:
            # Controls can be disposed mid-frame while the page closes.
            log.debug("page update skipped", exc_info=True)

    def _seek_to_x(local_x: float) -> None:
        sec = max(0.0, (local_x - LANE_LABEL_W) / TIMELINE_PX_PER_SEC)
        session.dispatch(editor.seek, sec)
        page.run_task(sync_preview)

    def on_ruler_tap(e) -> None:
        if session.state.is_playing:
            page.run_task(stop_playback)
        _seek_to_x(_event_local_x(e))

    def on_playhead_drag_start(e) -> None:
        x = _event_global_x(e)
        if x is None:
            return
        was_playing = session.state.is_playing
        session.begin_playhead_drag(x)
        if was_playing:
            page.run_task(stop_playback)

    def on_playhead_drag_update(e) -> None:
        x = _event_global_x(e)
        if x is not None:
            session.drag_to(x)

    def on_playhead_drag_end(_e) -> None:
        session.end_drag()
        page.run_task(sync_preview)

    playhead_handle.on_horizontal_drag_start = on_playhead_drag_start
    playhead_handle.on_horizontal_drag_update = on_playhead_drag_update
    playhead_handle.on_horizontal_drag_end = on_playhead_drag_end

    ruler = ft.GestureDetector(
        on_tap_down=on_ruler_tap,
        content=ft.Container(height=16, bgcolor=ft.Colors.BLUE_GREY_800, border_radius=4),
    )
    timeline_surface = ft.Stack(
        [
            ft.Column(
                [
                    ruler,
                    ft.Row([ft.Container(width=LANE_LABEL_W, content=ft.Text("Video", size=12)), clip_row], spacing=0),
                    ft.Row([ft.Container(width=LANE_LABEL_W, content=ft.Text("Audio", size=12)), audio_lane], spacing=0),
                ],
                spacing=4,
            ),
            playhead,
            playhead_handle,
        ],
    )

    # ---------- actions ----------
    async def add_clips_click(_e) -> None:
        picked = await file_picker.pick_files(
            allow_multiple=True,
            file_type=ft.FilePickerFileType.CUSTOM,
            allowed_extensions=VIDEO_EXTENSIONS,
        )
        for f in picked or []:
            if f.path:
                await session.add_clip(f.path, scene_number=len(session.state.clips) + 1)

    async def add_audio_click(_e) -> None:
        picked = await file_picker.pick_files(
            allow_multiple=True,
            file_type=ft.FilePickerFileType.CUSTOM,
            allowed_extensions=AUDIO_EXTENSIONS,
        )
        for f in picked or []:
            if f.path:
                await session.add_audio_track(f.path, name=Path(f.path).stem)

    def split_click(_e=None) -> None:
        state = session.state
        if state.selected_audio_id:
            session.dispatch(editor.split_audio_at_playhead)
        else:
            session.dispatch(editor.split_clip_at_playhead)
        show_message()

    async def delete_click(_e=None) -> None:
        state = session.state
        if not state.selected_clip_id and not state.selected_audio_id:
            snack("Select a clip or audio track first")
            return
        if state.is_playing:
            await stop_playback()
        if state.selected_clip_id:
            session.dispatch(editor.delete_clip, state.selected_clip_id)
        else:
            session.dispatch(editor.delete_audio_track, state.selected_audio_id)

    def show_shortcuts_dialog() -> None:
        rows = [
            ft.Row([ft.Text(keys, weight=ft.FontWeight.BOLD, width=180), ft.Text(desc)])
            for keys, desc in shortcut_legend()
        ]
        dlg = ft.AlertDialog(
            modal=True,
            title=ft.Text("Keyboard Shortcuts"),
            content=ft.Container(width=460, content=ft.Column(rows, tight=True, spacing=6)),
            actions=[ft.TextButton("Close", on_click=lambda _e: page.pop_dialog())],
        )
        page.show_dialog(dlg)

    async def export_click(_e=None) -> None:
        nonlocal export_running
        if export_running:
            snack("Export is already running")
            return
        state = session.state
        if not state.clips:
            snack("Timeline is empty")
            return
        if not ffmpeg_path:
            snack("ffmpeg not found; export is unavailable")
            return
        if state.is_playing:
            await stop_playback()

        progress_label = ft.Text("Preparing export...", size=12)
        progress_bar = ft.ProgressBar(value=0.0, width=420)
        close_btn = ft.TextButton("Close", disabled=True, on_click=lambda _e: page.pop_dialog())
        page.show_dialog(
            ft.AlertDialog(
                modal=True,
                title=ft.Text("Exporting"),
                content=ft.Column([progress_label, progress_bar], tight=True, spacing=8, width=460),
                actions=[close_btn],
            )
        )

        def on_progress(p: ExportProgress) -> None:
            progress_bar.value = max(0.0, min(1.0, p.progress / 100.0))
            progress_label.value = f"{p.message} ({p.progress}%)" if p.phase != PHASE_ERROR else p.message
            if p.phase in (PHASE_COMPLETE, PHASE_ERROR):
                close_btn.disabled = False
            try:
                page.update()
            except Exception:
                log.debug("progress update skipped", exc_info=True)

        out_dir = Path(cfg.last_export_dir() or (cfg.root_dir / "exports"))
        pipeline = ExportPipeline(
            ffmpeg_path,
            out_dir,
            uploader=library,
            drafts=drafts,
            settings=cfg.export_settings(),
            video_script_id=campaign,
            on_progress=on_progress,
        )
        export_running = True
        try:
            autosaver.cancel()
            result = await pipeline.run(state, remove_silence=cfg.remove_silence())
        except ExportError as ex:
            snack(f"Export failed: {ex}")
            return
        finally:
            export_running = False

        page.pop_dialog()
        snack(f"Export done: {Path(result.asset_url or result.output_path).name}")
        session.reset()

    async def on_keyboard(e: ft.KeyboardEvent) -> None:
        ev_type = str(getattr(e, "type", "") or "").strip().lower().replace("_", "")
        if ev_type and ev_type != "keydown":
            return
        action = resolve_shortcut_action(
            key=str(getattr(e, "key", "") or ""),
            ctrl=bool(getattr(e, "ctrl", False)),
            shift=bool(getattr(e, "shift", False)),
            alt=bool(getattr(e, "alt", False)),
            meta=bool(getattr(e, "meta", False)),
            typing_focus=bool(typing_shortcuts_blocked),
        )
        if not action:
            return
        if action == ACTION_DELETE:
            await delete_click()
        elif action == ACTION_SPLIT:
            split_click()
        elif action == ACTION_TOGGLE_PLAY_ALL:
            await start_playback(PLAY_ALL)
        elif action == ACTION_TOGGLE_PLAY_VIDEO:
            await start_playback(PLAY_VIDEO)
        elif action == ACTION_TOGGLE_PLAY_AUDIO:
            await start_playback(PLAY_AUDIO)
        elif action == ACTION_STOP:
            await stop_playback()
        elif action == ACTION_EXPORT:
            await export_click()
        elif action == ACTION_SHOW_SHORTCUTS:
            show_shortcuts_dialog()

    page.on_keyboard_event = on_keyboard

    def _text_input_focus_on(_e) -> None:
        nonlocal typing_shortcuts_blocked
        typing_shortcuts_blocked = True

    def _text_input_focus_off(_e) -> None:
        nonlocal typing_shortcuts_blocked
        typing_shortcuts_blocked = False

    for dd in (transition_kind, transition_dur):
        dd.on_focus = _text_input_focus_on
        dd.on_blur = _text_input_focus_off

    # ---------- transport ----------
    play_all_btn = ft.ElevatedButton("Play all", icon=ft.Icons.PLAY_ARROW)
    play_video_btn = ft.OutlinedButton("Video", icon=ft.Icons.MOVIE)
    play_audio_btn = ft.OutlinedButton("Audio", icon=ft.Icons.AUDIOTRACK, disabled=driver.audio is None)
    play_all_btn.on_click = lambda _e: page.run_task(start_playback, PLAY_ALL)
    play_video_btn.on_click = lambda _e: page.run_task(start_playback, PLAY_VIDEO)
    play_audio_btn.on_click = lambda _e: page.run_task(start_playback, PLAY_AUDIO)

    def update_transport(state: EditorState) -> None:
        for btn, mode, idle_icon in (
            (play_all_btn, PLAY_ALL, ft.Icons.PLAY_ARROW),
            (play_video_btn, PLAY_VIDEO, ft.Icons.MOVIE),
            (play_audio_btn, PLAY_AUDIO, ft.Icons.AUDIOTRACK),
        ):
            active = state.is_playing and state.play_mode == mode
            btn.icon = ft.Icons.PAUSE if active else idle_icon

    toolbar = ft.Row(
        [
            ft.ElevatedButton("Add clips", icon=ft.Icons.VIDEO_LIBRARY, on_click=add_clips_click),
            ft.OutlinedButton("Add audio", icon=ft.Icons.LIBRARY_MUSIC, on_click=add_audio_click),
            ft.VerticalDivider(width=12),
            play_all_btn,
            play_video_btn,
            play_audio_btn,
            ft.OutlinedButton("Stop", icon=ft.Icons.STOP, on_click=stop_playback),
            ft.VerticalDivider(width=12),
            ft.OutlinedButton("Split", icon=ft.Icons.CONTENT_CUT, on_click=split_click),
            ft.OutlinedButton("Delete", icon=ft.Icons.DELETE_OUTLINE, on_click=delete_click),
            ft.Container(expand=True),
            time_label,
            ft.IconButton(ft.Icons.KEYBOARD, tooltip="Shortcuts (F1)", on_click=lambda _e: show_shortcuts_dialog()),
            ft.ElevatedButton("Export", icon=ft.Icons.IOS_SHARE, on_click=export_click),
        ],
        wrap=True,
        spacing=6,
    )

    inspector = ft.Container(
        padding=10,
        border_radius=12,
        bgcolor=ft.Colors.BLUE_GREY_900,
        width=320,
        content=ft.Column(
            [ft.Text("Inspector", weight=ft.FontWeight.BOLD), selected_title, selected_range, clip_panel, audio_panel],
            spacing=6,
        ),
    )
    timeline = ft.Container(
        padding=10,
        border_radius=12,
        bgcolor=ft.Colors.BLUE_GREY_900,
        content=ft.Row([timeline_surface], scroll=ft.ScrollMode.AUTO),
    )

    page.add(
        ft.Column(
            [toolbar, ft.Row([ft.Container(expand=True, content=preview_host), inspector]), timeline],
            expand=True,
            spacing=10,
        )
    )

    session.subscribe(on_state)
    session.subscribe(autosaver)
    on_state(session.state)

    # ---------- draft restore ----------
    restored = drafts.restore()
    if restored is not None:

        def _restore(_e) -> None:
            page.pop_dialog()
            session.reset(restored)
            page.run_task(sync_preview)

        def _start_fresh(_e) -> None:
            page.pop_dialog()
            drafts.clear()

        page.show_dialog(
            ft.AlertDialog(
                modal=True,
                title=ft.Text("Restore draft?"),
                content=ft.Text(
                    f"{len(restored.clips)} clip(s), {len(restored.audio_tracks)} audio track(s), "
                    f"{format_time(restored.total_duration)}"
                ),
                actions=[
                    ft.TextButton("Start fresh", on_click=_start_fresh),
                    ft.ElevatedButton("Restore", on_click=_restore),
                ],
            )
        )


if __name__ == "__main__":
    ft.app(target=main)
