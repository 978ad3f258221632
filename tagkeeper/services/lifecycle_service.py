"""Inactive/Active state machine deciding between build, refresh and teardown."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Sequence

from .indexer_service import CtagsIndexer, Indexer
from .update_service import (
    REASON_CORRUPT,
    IndexStatus,
    UpdateResult,
    rebuild_index,
    refresh_index,
)
from ..cache import (
    IndexState,
    delete_index,
    load_state,
    new_state,
    save_state,
    tags_path_for,
)
from ..config import Config
from ..errors import DiscoveryError, StoreCorruption, TagkeeperError
from ..store import TagStore
from ..utils import collect_files, find_project_root, relative_posix

logger = logging.getLogger(__name__)

EXTERNAL_TAGS_FILENAME = "TAGS"


def list_tracked_files(root: Path, config: Config) -> list[str]:
    """Enumerate indexable files under *root* as POSIX paths relative to it."""
    try:
        files = collect_files(
            root,
            extensions=config.extensions,
            ignore_globs=config.ignore_globs,
            respect_gitignore=config.respect_gitignore,
        )
    except OSError as exc:
        raise DiscoveryError(f"Cannot enumerate files under {root}: {exc}") from exc
    return [relative_posix(path, root) for path in files]


def find_external_index(root: Path, config: Config) -> Path | None:
    """Return a user maintained tags file covering *root*, if there is one."""
    local = root / EXTERNAL_TAGS_FILENAME
    if local.is_file():
        return local
    for raw in config.external_tags:
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = root / candidate
        candidate = candidate.resolve()
        if not candidate.is_file():
            continue
        scope = candidate.parent
        if root == scope or scope in root.parents:
            return candidate
    return None


class IndexController:
    """Owns the index state for at most one project root at a time.

    Public operations are serialized by a per-instance lock, so a controller
    can be driven from a watcher thread and foreground callers alike.
    """

    def __init__(
        self,
        config: Config,
        *,
        indexer: Indexer | None = None,
        state: IndexState | None = None,
        store_locator: Callable[[Path], Path] = tags_path_for,
        file_lister: Callable[[Path, Config], Sequence[str]] = list_tracked_files,
        now: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.indexer: Indexer = indexer or CtagsIndexer(
            config.ctags_program, timeout=config.indexer_timeout
        )
        self.state = state
        self.enabled = config.auto_generate
        self._store_locator = store_locator
        self._file_lister = file_lister
        self._now = now
        self._store: TagStore | None = None
        self._lock = threading.Lock()

    @property
    def active_root(self) -> Path | None:
        return self.state.root if self.state is not None else None

    def ensure_index(self, location: Path | str) -> UpdateResult:
        """Make sure the project containing *location* has a current index."""
        root = find_project_root(location)
        with self._lock:
            if not self.enabled:
                self._teardown_locked()
                return UpdateResult(status=IndexStatus.DISABLED)
            external = find_external_index(root, self.config)
            if external is not None:
                return UpdateResult(status=IndexStatus.EXTERNAL, tags_path=external)
            if self.state is not None and self.state.root != root:
                logger.info("Leaving %s for %s", self.state.root, root)
                self._teardown_locked()
            if self.state is None:
                return self._build_locked(root)
            return self._refresh_locked()

    def build(self, root: Path | str) -> UpdateResult:
        """Generate a fresh index for *root* and make it the active one."""
        root_path = Path(root).expanduser().resolve()
        with self._lock:
            if self.state is not None and self.state.root != root_path:
                self._teardown_locked()
            return self._build_locked(root_path)

    def refresh(self) -> UpdateResult | None:
        """Patch the active index; None while inactive."""
        with self._lock:
            if self.state is None:
                return None
            return self._refresh_locked()

    def mark_dirty(self) -> bool:
        """Record that files were created or renamed since the last build."""
        with self._lock:
            if self.state is None:
                return False
            self.state.pending_rebuild = True
            save_state(self.state)
            return True

    def notify_saved(self, path: Path | str) -> UpdateResult | None:
        """Refresh after *path* was written, when it can affect the index."""
        with self._lock:
            if self.state is None:
                return None
            try:
                rel = relative_posix(Path(path).expanduser().resolve(), self.state.root)
            except ValueError:
                return None
            store = self._load_store()
            if store is not None and store.has_block(rel):
                return self._refresh_locked()
            if self.state.pending_rebuild:
                return self._refresh_locked()
            logger.debug("Ignoring save of untracked file %s", rel)
            return None

    def set_enabled(self, flag: bool) -> None:
        with self._lock:
            self.enabled = flag
            if not flag:
                self._teardown_locked()

    def teardown(self) -> bool:
        """Delete the active index and return to the inactive state."""
        with self._lock:
            return self._teardown_locked()

    def resume(self, root: Path | str) -> bool:
        """Adopt the index persisted for *root* by an earlier process."""
        root_path = Path(root).expanduser().resolve()
        with self._lock:
            if self.state is not None and self.state.root == root_path:
                return True
            state = load_state(root_path)
            if state is None:
                return False
            if self.state is not None:
                self._teardown_locked()
            self.state = state
            self._store = None
            return True

    def recorded_files(self) -> list[str]:
        with self._lock:
            store = self._load_store()
            return store.recorded_files() if store is not None else []

    def symbol_names(self) -> list[str]:
        with self._lock:
            store = self._load_store()
            return store.symbol_names() if store is not None else []

    def _load_store(self) -> TagStore | None:
        if self.state is None:
            return None
        return self._store_for(self.state)

    def _store_for(self, state: IndexState) -> TagStore:
        if self._store is None or self._store.path != state.tags_path:
            self._store = TagStore.load(state.tags_path)
        return self._store

    def _build_locked(self, root: Path) -> UpdateResult:
        files = self._file_lister(root, self.config)
        if self.state is not None and self.state.root == root:
            state = self.state
        else:
            state = new_state(root, last_build=0.0)
            state.tags_path = self._store_locator(root)
        store = TagStore(state.tags_path)
        result = rebuild_index(state, store, files, self.config, self.indexer, now=self._now)
        if result.status is IndexStatus.STALE:
            return result
        self.state = state
        self._store = store
        save_state(state)
        return result

    def _refresh_locked(self) -> UpdateResult:
        state = self.state
        if state is None:
            raise TagkeeperError("No active tags index to refresh")
        files = self._file_lister(state.root, self.config)
        try:
            store = self._store_for(state)
        except StoreCorruption as exc:
            logger.warning("Discarding corrupt tags file %s: %s", state.tags_path, exc)
            store = TagStore(state.tags_path)
            result = rebuild_index(
                state,
                store,
                files,
                self.config,
                self.indexer,
                now=self._now,
                reason=REASON_CORRUPT,
            )
            if result.status is not IndexStatus.STALE:
                self._store = store
        else:
            result = refresh_index(
                state,
                store,
                files,
                self.config,
                self.indexer,
                now=self._now,
            )
        save_state(state)
        return result

    def _teardown_locked(self) -> bool:
        state = self.state
        if state is None:
            return False
        state.tags_path.unlink(missing_ok=True)
        delete_index(state.root)
        logger.info("Removed tags index for %s", state.root)
        self.state = None
        self._store = None
        return True
