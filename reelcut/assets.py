from __future__ import annotations

import logging
import shutil
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .jsonio import read_json, write_json_atomic

log = logging.getLogger(__name__)

GALLERY_SOURCE = "Video Final"
MEDIA_TYPE_VIDEO = "video"


def _now_iso() -> str:
    return datetime.now(timezone.utc).astimezone().isoformat()


@dataclass(frozen=True)
class GalleryRecord:
    src: str
    prompt: str
    duration: float
    video_script_id: Optional[str] = None
    source: str = GALLERY_SOURCE
    media_type: str = MEDIA_TYPE_VIDEO
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> Optional["GalleryRecord"]:
        try:
            src = str(d.get("src", "")).strip()
            if not src:
                return None
            return GalleryRecord(
                src=src,
                prompt=str(d.get("prompt") or ""),
                duration=float(d.get("duration", 0.0) or 0.0),
                video_script_id=d.get("video_script_id"),
                source=str(d.get("source") or GALLERY_SOURCE),
                media_type=str(d.get("media_type") or MEDIA_TYPE_VIDEO),
                created_at=str(d.get("created_at") or ""),
            )
        except Exception:
            return None


class AssetUploader(Protocol):
    def upload(self, local_path: str, filename: str) -> str:
        """Store the file durably and return its stable URL/path."""
        ...

    def record(self, record: GalleryRecord) -> None: ...


class LocalAssetStore:
    """
    Library directory plus a JSON gallery index.

    Layout: <root>/<filename> for media, <root>/gallery.json for records
    (newest first).
    """

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = Path(root_dir)
        self.index_path = self.root_dir / "gallery.json"

    def upload(self, local_path: str, filename: str) -> str:
        self.root_dir.mkdir(parents=True, exist_ok=True)
        dest = self.root_dir / Path(filename).name
        shutil.copyfile(local_path, dest)
        log.info("stored %s in library", dest.name)
        return str(dest)

    def records(self) -> List[GalleryRecord]:
        try:
            data = read_json(self.index_path)
        except FileNotFoundError:
            return []
        except (OSError, ValueError):
            log.warning("gallery index %s is unreadable; starting fresh", self.index_path)
            return []
        out: List[GalleryRecord] = []
        if isinstance(data, list):
            for it in data:
                if not isinstance(it, dict):
                    continue
                rec = GalleryRecord.from_dict(it)
                if rec:
                    out.append(rec)
        return out

    def record(self, record: GalleryRecord) -> None:
        if not record.created_at:
            record = GalleryRecord(**{**record.to_dict(), "created_at": _now_iso()})
        items = [record, *self.records()]
        write_json_atomic(self.index_path, [r.to_dict() for r in items])
