"""Canvas save/load — .tfc format (JSON + gzip)."""

from __future__ import annotations

import gzip
import json
import logging
from pathlib import Path

from .model import Canvas
from .schema import canvas_from_dict

log = logging.getLogger(__name__)

_AUTOSAVE_DIR = Path.home() / ".tabforge"
_AUTOSAVE_FILE = _AUTOSAVE_DIR / "autosave.tfc"


def save(path: str | Path, canvas: Canvas) -> None:
    """Save a canvas to a .tfc file (gzipped JSON)."""
    raw = json.dumps(canvas.to_dict(), ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(path, "wb") as f:
        f.write(raw)
    log.info("Saved canvas %s (v%d) to %s", canvas.id, canvas.version, path)


def load(path: str | Path) -> Canvas:
    """Load a canvas from a .tfc file, migrating older snapshots."""
    path = Path(path)
    with gzip.open(path, "rb") as f:
        raw = f.read()
    data = json.loads(raw.decode("utf-8"))
    return canvas_from_dict(data, path.stem)


def autosave(canvas: Canvas) -> None:
    save(_AUTOSAVE_FILE, canvas)


def load_autosave() -> Canvas | None:
    """Load autosave if it exists and is readable, else return None."""
    if not _AUTOSAVE_FILE.exists():
        return None
    try:
        return load(_AUTOSAVE_FILE)
    except (OSError, ValueError, EOFError):
        log.warning("Ignoring unreadable autosave %s", _AUTOSAVE_FILE, exc_info=True)
        return None


def get_autosave_path() -> Path:
    return _AUTOSAVE_FILE
