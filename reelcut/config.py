from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .model import ExportSettings


def _clamped_int(raw: Any, default: int, lo: int, hi: int) -> int:
    try:
        v = int(raw)
    except Exception:
        v = default
    return max(lo, min(hi, v))


class ConfigStore:
    """
    Simple JSON config store.

    Default location: ~/.reelcut/config.json
    """

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = Path(root_dir)
        self.path = self.root_dir / "config.json"

    @staticmethod
    def default() -> "ConfigStore":
        return ConfigStore(Path.home() / ".reelcut")

    def load(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return {**self.default_config(), **data}
        except FileNotFoundError:
            return self.default_config()
        except Exception:
            # Corrupted file; don't crash the app.
            return self.default_config()
        return self.default_config()

    def save(self, data: Dict[str, Any]) -> None:
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def set(self, key: str, value: Any) -> None:
        cfg = self.load()
        cfg[key] = value
        self.save(cfg)

    def default_config(self) -> Dict[str, Any]:
        return {
            "drafts_dir": "",
            "library_dir": "",
            "last_export_dir": "",
            "draft_debounce_ms": 500,
            "remove_silence": False,
            "frame_interval_ms": 40,
            "export": ExportSettings().to_dict(),
        }

    def _dir(self, key: str, fallback: str) -> Path:
        raw = str(self.load().get(key) or "").strip()
        return Path(raw).expanduser() if raw else self.root_dir / fallback

    def drafts_dir(self) -> Path:
        return self._dir("drafts_dir", "drafts")

    def library_dir(self) -> Path:
        return self._dir("library_dir", "library")

    def last_export_dir(self) -> str:
        return str(self.load().get("last_export_dir") or "")

    def draft_debounce_sec(self) -> float:
        return _clamped_int(self.load().get("draft_debounce_ms", 500), 500, 100, 10000) / 1000.0

    def frame_interval_sec(self) -> float:
        # 16ms is one frame at 60Hz; slower than 250ms makes the playhead stutter.
        return _clamped_int(self.load().get("frame_interval_ms", 40), 40, 16, 250) / 1000.0

    def remove_silence(self) -> bool:
        raw = self.load().get("remove_silence", False)
        if isinstance(raw, str):
            return raw.strip().lower() in ("1", "true", "yes", "on")
        return bool(raw)

    def export_settings(self) -> ExportSettings:
        return ExportSettings.from_dict(self.load().get("export"))
