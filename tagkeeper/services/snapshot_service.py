"""Batched modification-time snapshots for tracked files."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections import defaultdict
from pathlib import Path
from typing import Iterable

from ..config import DEFAULT_SNAPSHOT_BACKEND, SUPPORTED_SNAPSHOT_BACKENDS
from ..errors import DiscoveryError

logger = logging.getLogger(__name__)

FIND_TIMEOUT = 120.0
FIND_BATCH_SIZE = 512


def _resolve_snapshot_backend(value: str | None) -> str:
    normalized = (value or DEFAULT_SNAPSHOT_BACKEND).strip().lower()
    if normalized not in SUPPORTED_SNAPSHOT_BACKENDS:
        normalized = DEFAULT_SNAPSHOT_BACKEND
    if normalized == "auto":
        return "scandir"
    return normalized


def snapshot_mtimes(
    root: Path,
    paths: Iterable[str],
    *,
    backend: str | None = None,
) -> dict[str, float]:
    """Return ``{relative_path: mtime}`` for every candidate that currently exists.

    *paths* are POSIX paths relative to *root*. Missing files are left out of
    the result. Raises :class:`DiscoveryError` if the batch itself cannot run.
    """
    candidates = list(dict.fromkeys(paths))
    if not root.is_dir():
        raise DiscoveryError(f"Project root is not a directory: {root}")
    if not candidates:
        return {}
    effective = _resolve_snapshot_backend(backend)
    if effective == "find":
        snapshot = _snapshot_with_find(root, candidates)
    else:
        snapshot = _snapshot_with_scandir(root, candidates)
    logger.debug(
        "Snapshot of %d/%d files under %s via %s",
        len(snapshot),
        len(candidates),
        root,
        effective,
    )
    return snapshot


def _snapshot_with_scandir(root: Path, candidates: list[str]) -> dict[str, float]:
    by_dir: dict[str, dict[str, str]] = defaultdict(dict)
    for rel in candidates:
        parent, _, name = rel.rpartition("/")
        by_dir[parent][name] = rel

    snapshot: dict[str, float] = {}
    for parent, names in by_dir.items():
        directory = root / parent if parent else root
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    rel = names.get(entry.name)
                    if rel is None:
                        continue
                    try:
                        if not entry.is_file():
                            continue
                        snapshot[rel] = entry.stat().st_mtime
                    except FileNotFoundError:
                        continue
        except (FileNotFoundError, NotADirectoryError):
            continue
        except PermissionError as exc:
            if not parent:
                raise DiscoveryError(f"Cannot read {directory}: {exc}") from exc
            logger.warning("Skipping unreadable directory %s", directory)
    return snapshot


def _snapshot_with_find(root: Path, candidates: list[str]) -> dict[str, float]:
    program = shutil.which("find")
    if program is None:
        raise DiscoveryError("The find program is not available on PATH")
    wanted = set(candidates)
    # Only the candidates' own directories are listed, so ignored trees are never walked.
    directories = sorted(
        {
            parent
            for parent in (rel.rpartition("/")[0] for rel in candidates)
            if (root / parent).is_dir()
        }
    )
    snapshot: dict[str, float] = {}
    for start in range(0, len(directories), FIND_BATCH_SIZE):
        batch = directories[start : start + FIND_BATCH_SIZE]
        output = _run_find(program, root, batch)
        for record in output.split(b"\0"):
            if not record:
                continue
            stamp, sep, raw_path = record.partition(b"\t")
            if not sep:
                continue
            rel = os.fsdecode(raw_path).removeprefix("./")
            if rel not in wanted:
                continue
            try:
                snapshot[rel] = float(stamp)
            except ValueError:
                continue
    return snapshot


def _run_find(program: str, root: Path, directories: list[str]) -> bytes:
    # -L follows symlinks so linked files count as regular files, as with scandir.
    start_points = [f"./{parent}" if parent else "." for parent in directories]
    command = [
        program,
        "-L",
        *start_points,
        "-maxdepth",
        "1",
        "-type",
        "f",
        "-printf",
        "%T@\\t%p\\0",
    ]
    try:
        completed = subprocess.run(
            command,
            cwd=root,
            check=False,
            capture_output=True,
            timeout=FIND_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise DiscoveryError(f"find failed to run under {root}: {exc}") from exc
    if completed.returncode == 0:
        return completed.stdout
    message = completed.stderr.decode("utf-8", errors="replace").strip() or "no output"
    if not completed.stdout:
        raise DiscoveryError(
            f"find exited with code {completed.returncode} (GNU find is required): {message}"
        )
    logger.warning("find reported errors under %s: %s", root, message)
    return completed.stdout
