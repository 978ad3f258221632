"""Classify tracked files into added, changed and removed sets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping


@dataclass(slots=True)
class ChangeSet:
    """Disjoint sets of relative paths describing drift since the last build."""

    added: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.changed) + len(self.removed)

    @property
    def is_noop(self) -> bool:
        return self.total == 0

    def to_remove(self) -> list[str]:
        """Files whose existing blocks must be dropped before re-indexing."""
        return self.removed + self.changed

    def to_index(self) -> list[str]:
        """Files the indexer has to (re)generate."""
        return self.added + self.changed


def diff_snapshot(
    recorded_files: Iterable[str],
    last_build: float,
    snapshot: Mapping[str, float],
) -> ChangeSet:
    """Compare the files recorded in the store against an mtime *snapshot*.

    A recorded file missing from *snapshot* is removed. One whose mtime is
    newer than *last_build* is changed. Snapshot entries not recorded at all
    are added. *snapshot* itself is left untouched.
    """
    remaining = dict(snapshot)
    changed: list[str] = []
    removed: list[str] = []
    for path in dict.fromkeys(recorded_files):
        mtime = remaining.pop(path, None)
        if mtime is None:
            removed.append(path)
        elif mtime > last_build:
            changed.append(path)
    return ChangeSet(
        added=sorted(remaining),
        changed=sorted(changed),
        removed=sorted(removed),
    )
