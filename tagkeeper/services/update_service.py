"""Incremental refresh and full rebuild of a project's tags file."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

from .diff_service import ChangeSet, diff_snapshot
from .indexer_service import Indexer, build_extraction_options
from .snapshot_service import snapshot_mtimes
from ..cache import IndexState
from ..config import Config
from ..errors import IndexerError, StoreCorruption
from ..store import TagStore

logger = logging.getLogger(__name__)

REASON_THRESHOLD = "threshold"
REASON_CORRUPT = "corrupt"


class IndexStatus(str, Enum):
    EMPTY = "empty"
    UP_TO_DATE = "up_to_date"
    PATCHED = "patched"
    REBUILT = "rebuilt"
    STALE = "stale"
    DISABLED = "disabled"
    EXTERNAL = "external"


@dataclass(slots=True)
class UpdateResult:
    status: IndexStatus
    tags_path: Path | None = None
    changes: ChangeSet = field(default_factory=ChangeSet)
    files_indexed: int = 0
    reason: str | None = None


def _options_for(config: Config) -> list[str]:
    return build_extraction_options(config.language_patterns, config.extra_options)


def _mark_built(state: IndexState, started: float) -> None:
    state.last_build = started
    state.pending_rebuild = False


def refresh_index(
    state: IndexState,
    store: TagStore,
    files: Sequence[str],
    config: Config,
    indexer: Indexer,
    *,
    now: Callable[[], float] = time.time,
) -> UpdateResult:
    """Bring *store* up to date with the files currently on disk.

    Small change sets are patched in place: stale blocks are removed and the
    indexer runs once for every added or changed file. Change sets larger than
    ``config.rescan_threshold`` fall back to a full rebuild. An indexer failure
    leaves the removals in effect and reports ``STALE`` without advancing
    ``state.last_build``.
    """
    started = now()
    snapshot = snapshot_mtimes(state.root, files, backend=config.snapshot_backend)
    changes = diff_snapshot(store.recorded_files(), state.last_build, snapshot)
    logger.debug(
        "Diff for %s: %d added, %d changed, %d removed",
        state.root,
        len(changes.added),
        len(changes.changed),
        len(changes.removed),
    )

    if changes.total > config.rescan_threshold:
        logger.info(
            "%d changes exceed the rescan threshold of %d; rebuilding %s",
            changes.total,
            config.rescan_threshold,
            state.root,
        )
        result = _rebuild(
            state,
            store,
            sorted(snapshot),
            config,
            indexer,
            started=started,
            reason=REASON_THRESHOLD,
        )
        result.changes = changes
        return result

    if changes.is_noop:
        _mark_built(state, started)
        return UpdateResult(status=IndexStatus.UP_TO_DATE, tags_path=state.tags_path)

    for path in changes.to_remove():
        store.remove_block(path)

    targets = changes.to_index()
    try:
        if targets:
            data = indexer.append(state.root, targets, _options_for(config))
            store.append_raw(data)
    except (IndexerError, StoreCorruption) as exc:
        store.save(state.tags_path)
        logger.warning("Indexer failed while patching %s: %s", state.root, exc)
        return UpdateResult(
            status=IndexStatus.STALE,
            tags_path=state.tags_path,
            changes=changes,
            reason=str(exc),
        )

    store.save(state.tags_path)
    _mark_built(state, started)
    logger.info(
        "Patched %s: %d added, %d changed, %d removed",
        state.tags_path,
        len(changes.added),
        len(changes.changed),
        len(changes.removed),
    )
    return UpdateResult(
        status=IndexStatus.PATCHED,
        tags_path=state.tags_path,
        changes=changes,
        files_indexed=len(targets),
    )


def rebuild_index(
    state: IndexState,
    store: TagStore,
    files: Sequence[str],
    config: Config,
    indexer: Indexer,
    *,
    now: Callable[[], float] = time.time,
    reason: str | None = None,
) -> UpdateResult:
    """Regenerate the whole store; the previous content survives a failure."""
    return _rebuild(state, store, files, config, indexer, started=now(), reason=reason)


def _rebuild(
    state: IndexState,
    store: TagStore,
    files: Sequence[str],
    config: Config,
    indexer: Indexer,
    *,
    started: float,
    reason: str | None,
) -> UpdateResult:
    try:
        data = indexer.generate(state.root, files, _options_for(config))
        store.rebuild_fresh(data)
    except (IndexerError, StoreCorruption) as exc:
        logger.warning("Indexer failed while rebuilding %s: %s", state.root, exc)
        return UpdateResult(
            status=IndexStatus.STALE,
            tags_path=state.tags_path,
            reason=str(exc),
        )
    store.save(state.tags_path)
    _mark_built(state, started)
    status = IndexStatus.REBUILT if len(store) else IndexStatus.EMPTY
    logger.info("Rebuilt %s with %d file blocks", state.tags_path, len(store))
    return UpdateResult(
        status=status,
        tags_path=state.tags_path,
        files_indexed=len(store),
        reason=reason,
    )
