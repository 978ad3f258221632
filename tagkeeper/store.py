"""In-memory model of an etags ``TAGS`` file as an ordered list of per-file blocks."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from .errors import StoreCorruption

logger = logging.getLogger(__name__)

BLOCK_MARKER = b"\x0c\n"
_NAME_SEPARATOR = b"\x7f"
_EXPLICIT_NAME_SEPARATOR = b"\x01"
_IMPLICIT_NAME_RE = re.compile(rb"([^\s(),;=\[\]{}]+)[\s(),;=\[\]{}]*$")


@dataclass(slots=True)
class TagBlock:
    """All tag records for one file: marker, ``path,size`` header and tag lines."""

    path: str
    data: bytes

    def tag_lines(self) -> list[bytes]:
        _, _, body = self.data[len(BLOCK_MARKER) :].partition(b"\n")
        return [line for line in body.split(b"\n") if line]


def _marker_offsets(data: bytes) -> list[int]:
    # A marker only counts at the start of the data or right after a newline.
    offsets: list[int] = []
    if data.startswith(BLOCK_MARKER):
        offsets.append(0)
    needle = b"\n" + BLOCK_MARKER
    start = 0
    while True:
        found = data.find(needle, start)
        if found < 0:
            break
        offsets.append(found + 1)
        start = found + 1
    return offsets


def _header_path(block: bytes) -> str:
    header, newline, _ = block[len(BLOCK_MARKER) :].partition(b"\n")
    name, comma, _size = header.rpartition(b",")
    if not newline or not comma or not name:
        raise StoreCorruption(f"Malformed block header: {header[:80]!r}")
    return os.fsdecode(name)


def split_blocks(data: bytes) -> tuple[bytes, list[TagBlock]]:
    """Split raw TAGS bytes into ``(preamble, blocks)``.

    Every block spans from its delimiter marker up to (not including) the next
    marker, or the end of *data*. Joining the preamble and block bytes gives
    back *data* unchanged.
    """
    offsets = _marker_offsets(data)
    if not offsets:
        return data, []
    preamble = data[: offsets[0]]
    blocks: list[TagBlock] = []
    bounds = offsets[1:] + [len(data)]
    for start, end in zip(offsets, bounds):
        chunk = data[start:end]
        blocks.append(TagBlock(path=_header_path(chunk), data=chunk))
    return preamble, blocks


def _implicit_tag_name(pattern: bytes) -> str | None:
    match = _IMPLICIT_NAME_RE.search(pattern)
    if match is None:
        return None
    return match.group(1).decode("utf-8", errors="replace")


def iter_tag_names(lines: Iterable[bytes]) -> Iterator[str]:
    for line in lines:
        pattern, sep, rest = line.partition(_NAME_SEPARATOR)
        if not sep:
            continue
        name, explicit, _ = rest.partition(_EXPLICIT_NAME_SEPARATOR)
        if explicit and name:
            yield name.decode("utf-8", errors="replace")
            continue
        implicit = _implicit_tag_name(pattern)
        if implicit:
            yield implicit


class TagStore:
    """Ordered per-file tag blocks backed by a TAGS file on disk."""

    def __init__(
        self,
        path: Path | None = None,
        *,
        preamble: bytes = b"",
        blocks: Iterable[TagBlock] | None = None,
    ) -> None:
        self.path = path
        self._preamble = preamble
        self._blocks: list[TagBlock] = list(blocks or ())
        self._symbol_names: list[str] | None = None
        self._modified = False

    @classmethod
    def load(cls, path: Path) -> "TagStore":
        """Read *path*; a missing file yields an empty store."""
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return cls(path)
        preamble, blocks = split_blocks(data)
        if preamble.strip():
            raise StoreCorruption(f"{path} does not start with a tag block marker")
        return cls(path, preamble=preamble, blocks=blocks)

    @property
    def modified(self) -> bool:
        """True while in-memory changes have not been written to disk."""
        return self._modified

    def __len__(self) -> int:
        return len(self._blocks)

    def recorded_files(self) -> list[str]:
        return [block.path for block in self._blocks]

    def has_block(self, path: str) -> bool:
        return any(block.path == path for block in self._blocks)

    def remove_block(self, path: str) -> bool:
        """Drop the block recorded for *path*; False when there is none."""
        kept = [block for block in self._blocks if block.path != path]
        if len(kept) == len(self._blocks):
            return False
        self._blocks = kept
        self._touch()
        return True

    def append_raw(self, data: bytes) -> int:
        """Append indexer output verbatim and return the number of blocks added."""
        if not data:
            return 0
        preamble, blocks = split_blocks(data)
        if preamble.strip():
            raise StoreCorruption("Appended data does not start with a tag block marker")
        if self._blocks and not self._blocks[-1].data.endswith(b"\n"):
            last = self._blocks[-1]
            self._blocks[-1] = TagBlock(path=last.path, data=last.data + b"\n")
        self._blocks.extend(blocks)
        self._touch()
        return len(blocks)

    def rebuild_fresh(self, data: bytes) -> None:
        """Replace the whole store with freshly generated TAGS bytes."""
        preamble, blocks = split_blocks(data)
        if preamble.strip():
            raise StoreCorruption("Generated data does not start with a tag block marker")
        self._preamble = preamble
        self._blocks = blocks
        self._touch()

    def to_bytes(self) -> bytes:
        return self._preamble + b"".join(block.data for block in self._blocks)

    def save(self, path: Path | None = None) -> Path:
        """Atomically write the store and clear the modified flag."""
        target = path or self.path
        if target is None:
            raise ValueError("TagStore has no backing path")
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".TAGS.", dir=target.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(self.to_bytes())
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self.path = target
        self._modified = False
        logger.debug("Wrote %d tag blocks to %s", len(self._blocks), target)
        return target

    def symbol_names(self) -> list[str]:
        """Sorted tag names, cached until the next mutation."""
        if self._symbol_names is None:
            names: set[str] = set()
            for block in self._blocks:
                names.update(iter_tag_names(block.tag_lines()))
            self._symbol_names = sorted(names)
        return list(self._symbol_names)

    def _touch(self) -> None:
        self._symbol_names = None
        self._modified = True
