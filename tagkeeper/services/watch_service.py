"""File watcher that keeps the active index current while files change."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from watchfiles import Change

from .lifecycle_service import IndexController
from .update_service import UpdateResult

DEFAULT_DEBOUNCE_MS = 500


@dataclass(frozen=True)
class WatchEvent:
    """A debounced batch of relevant changes and the refresh it triggered."""

    files_changed: int
    structural: bool
    result: UpdateResult | None


def _filter_relevant(
    changes: Iterable[tuple[Change, str]],
    root: Path,
    extensions: Iterable[str],
) -> list[tuple[Change, str]]:
    """Keep changes to indexable files, ignoring hidden and temp files."""
    allowed = tuple(extensions)
    result: list[tuple[Change, str]] = []
    for change, path_str in changes:
        path = Path(path_str)
        if path.name.startswith("~") or path.name.endswith(".tmp"):
            continue
        if allowed and not path.name.lower().endswith(allowed):
            continue
        try:
            rel = path.relative_to(root)
        except ValueError:
            continue
        if any(part.startswith(".") for part in rel.parts):
            continue
        result.append((change, path_str))
    return result


def handle_batch(
    controller: IndexController,
    changes: Iterable[tuple[Change, str]],
) -> WatchEvent | None:
    """Translate one watch batch into controller calls.

    Created files set the pending-rebuild flag. Creations and deletions lead to
    a single refresh; plain modifications go through ``notify_saved`` until one
    of them refreshes, since a refresh picks up every newer mtime at once.
    """
    root = controller.active_root
    if root is None:
        return None
    relevant = _filter_relevant(changes, root, controller.config.extensions)
    if not relevant:
        return None

    added = [path for change, path in relevant if change == Change.added]
    deleted = [path for change, path in relevant if change == Change.deleted]
    modified = sorted(
        {path for change, path in relevant if change == Change.modified}
    )

    if added:
        controller.mark_dirty()

    result: UpdateResult | None = None
    structural = bool(added or deleted)
    if structural:
        result = controller.refresh()
    else:
        for path in modified:
            result = controller.notify_saved(path)
            if result is not None:
                break
    return WatchEvent(files_changed=len(relevant), structural=structural, result=result)


def watch_project(
    controller: IndexController,
    *,
    debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    callback: Callable[[WatchEvent], None] | None = None,
    stop_event: threading.Event | None = None,
) -> None:
    """Block and refresh the controller's active index on every change batch."""
    from watchfiles import watch as fs_watch

    root = controller.active_root
    if root is None:
        raise ValueError("No active index to watch")
    for batch in fs_watch(root, debounce=debounce_ms, stop_event=stop_event):
        event = handle_batch(controller, batch)
        if event is not None and callback is not None:
            callback(event)
