"""On-disk layout for generated tags files and their persisted index state."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path(os.path.expanduser("~")) / ".tagkeeper"
CACHE_DIR = DEFAULT_CACHE_DIR
_CACHE_DIR_OVERRIDE: ContextVar[Path | None] = ContextVar(
    "tagkeeper_cache_dir_override",
    default=None,
)
CACHE_VERSION = 1
INDEX_DIRNAME = "tags"
TAGS_FILENAME = "TAGS"
STATE_FILENAME = "state.json"


@dataclass(slots=True)
class IndexState:
    """Tracking record for the index generated for one project root."""

    root: Path
    tags_path: Path
    last_build: float
    pending_rebuild: bool = False
    generated_at: str | None = None
    version: int = CACHE_VERSION

    def to_json(self) -> dict[str, object]:
        return {
            "root": str(self.root),
            "tags_path": str(self.tags_path),
            "last_build": self.last_build,
            "pending_rebuild": self.pending_rebuild,
            "generated_at": self.generated_at,
            "version": self.version,
        }

    @classmethod
    def from_json(cls, raw: dict[str, object]) -> "IndexState":
        return cls(
            root=Path(str(raw["root"])),
            tags_path=Path(str(raw["tags_path"])),
            last_build=float(raw["last_build"]),  # type: ignore[arg-type]
            pending_rebuild=bool(raw.get("pending_rebuild", False)),
            generated_at=(str(raw["generated_at"]) if raw.get("generated_at") else None),
            version=int(raw.get("version", 0) or 0),  # type: ignore[arg-type]
        )


def _cache_key(root: Path) -> str:
    return hashlib.sha1(str(root.resolve()).encode("utf-8")).hexdigest()


def _resolve_cache_dir() -> Path:
    override = _CACHE_DIR_OVERRIDE.get()
    return override if override is not None else CACHE_DIR


def current_cache_dir() -> Path:
    """Return the cache directory in effect for the current context."""
    return _resolve_cache_dir()


@contextmanager
def cache_dir_context(path: Path | str | None):
    """Temporarily override the cache directory for the current context."""

    if path is None:
        yield
        return
    dir_path = Path(path).expanduser().resolve()
    if dir_path.exists() and not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    token = _CACHE_DIR_OVERRIDE.set(dir_path)
    try:
        yield
    finally:
        _CACHE_DIR_OVERRIDE.reset(token)


def ensure_cache_dir() -> Path:
    cache_dir = _resolve_cache_dir()
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def set_cache_dir(path: Path | str | None) -> None:
    global CACHE_DIR
    if path is None:
        CACHE_DIR = DEFAULT_CACHE_DIR
        return
    dir_path = Path(path).expanduser().resolve()
    if dir_path.exists() and not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    CACHE_DIR = dir_path


def index_dir(root: Path) -> Path:
    return _resolve_cache_dir() / INDEX_DIRNAME / _cache_key(root)


def tags_path_for(root: Path) -> Path:
    """Return where the generated TAGS file for *root* lives."""
    return index_dir(root) / TAGS_FILENAME


def _state_path_for(root: Path) -> Path:
    return index_dir(root) / STATE_FILENAME


def new_state(root: Path, last_build: float) -> IndexState:
    return IndexState(
        root=root,
        tags_path=tags_path_for(root),
        last_build=last_build,
        generated_at=datetime.now(timezone.utc).isoformat(),
    )


def load_state(root: Path) -> IndexState | None:
    """Return the persisted state for *root*, or None when absent or unusable."""
    state_path = _state_path_for(root)
    try:
        raw = json.loads(state_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable index state %s: %s", state_path, exc)
        return None
    try:
        state = IndexState.from_json(raw)
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Ignoring malformed index state %s: %s", state_path, exc)
        return None
    if state.version != CACHE_VERSION:
        logger.info("Index state %s has version %s; rebuilding", state_path, state.version)
        return None
    if not state.tags_path.exists():
        return None
    return state


def save_state(state: IndexState) -> Path:
    state_path = _state_path_for(state.root)
    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_text(
        json.dumps(state.to_json(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return state_path


def delete_index(root: Path) -> bool:
    """Remove the generated TAGS file and state for *root*."""
    target = index_dir(root)
    if not target.exists():
        return False
    shutil.rmtree(target)
    return True


def list_cache_entries() -> list[dict[str, object]]:
    """Return persisted index states for every generated tags file."""
    base = _resolve_cache_dir() / INDEX_DIRNAME
    if not base.is_dir():
        return []
    entries: list[dict[str, object]] = []
    for state_path in sorted(base.glob(f"*/{STATE_FILENAME}")):
        try:
            raw = json.loads(state_path.read_text(encoding="utf-8"))
            state = IndexState.from_json(raw)
        except (OSError, KeyError, TypeError, ValueError):
            continue
        entry = state.to_json()
        entry["tags_size"] = state.tags_path.stat().st_size if state.tags_path.exists() else 0
        entries.append(entry)
    return entries


def clear_all_cache() -> int:
    """Delete every generated tags file and return how many were removed."""
    base = _resolve_cache_dir() / INDEX_DIRNAME
    if not base.is_dir():
        return 0
    removed = 0
    for child in base.iterdir():
        if child.is_dir():
            shutil.rmtree(child)
            removed += 1
    return removed
