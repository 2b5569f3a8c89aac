from __future__ import annotations

from typing import List, Optional, Tuple


# Shortcut action ids used by app.py dispatcher.
ACTION_DELETE = "delete"
ACTION_SPLIT = "split"
ACTION_TOGGLE_PLAY_ALL = "toggle_play_all"
ACTION_TOGGLE_PLAY_VIDEO = "toggle_play_video"
ACTION_TOGGLE_PLAY_AUDIO = "toggle_play_audio"
ACTION_STOP = "stop"
ACTION_EXPORT = "export"
ACTION_SHOW_SHORTCUTS = "show_shortcuts"


def _normalize_key(key: str) -> str:
    raw = str(key or "")
    if raw == " ":
        return "space"
    k = raw.strip().lower().replace(" ", "")
    aliases = {
        "spacebar": "space",
        "del": "delete",
        "esc": "escape",
    }
    return aliases.get(k, k)


def resolve_shortcut_action(
    *,
    key: str,
    ctrl: bool = False,
    shift: bool = False,
    alt: bool = False,
    meta: bool = False,
    typing_focus: bool = False,
) -> Optional[str]:
    """
    Resolve a keyboard event into an editor action.

    `typing_focus=True` blocks plain editing shortcuts so Delete/Backspace and
    Space keep working inside text fields.
    """
    k = _normalize_key(key)
    if not k:
        return None

    if k == "f1" or k == "?" or (k == "/" and bool(shift)):
        return ACTION_SHOW_SHORTCUTS

    if bool(alt):
        return None

    primary_mod = bool(ctrl or meta)
    if primary_mod and k == "e":
        return ACTION_EXPORT
    if primary_mod:
        return None

    if typing_focus:
        return None

    if k in ("delete", "backspace"):
        return ACTION_DELETE
    if k == "s":
        return ACTION_SPLIT
    if k == "space":
        return ACTION_TOGGLE_PLAY_ALL
    if k == "v":
        return ACTION_TOGGLE_PLAY_VIDEO
    if k == "a":
        return ACTION_TOGGLE_PLAY_AUDIO
    if k == "escape":
        return ACTION_STOP
    return None


def shortcut_legend() -> List[Tuple[str, str]]:
    """Human-readable shortcuts list for the in-app help dialog."""
    return [
        ("Delete / Backspace", "Delete selected clip or audio track"),
        ("S", "Split at playhead"),
        ("Space", "Play/Pause everything"),
        ("V", "Play/Pause video only"),
        ("A", "Play/Pause audio only"),
        ("Esc", "Stop"),
        ("Ctrl/Cmd + E", "Export"),
        ("F1 or ?", "Show shortcuts help"),
    ]
