"""Build and run the external ctags invocation in etags mode."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from ..config import DEFAULT_CTAGS_PROGRAM, DEFAULT_INDEXER_TIMEOUT
from ..errors import IndexerError
from ..store import BLOCK_MARKER

logger = logging.getLogger(__name__)

_STDERR_LIMIT = 2000


class Indexer(Protocol):
    """Protocol describing a producer of etags-format tag data."""

    def generate(self, root: Path, files: Sequence[str], options: Sequence[str]) -> bytes:
        """Return a complete TAGS file covering *files*."""
        raise NotImplementedError  # pragma: no cover

    def append(self, root: Path, files: Sequence[str], options: Sequence[str]) -> bytes:
        """Return tag blocks for *files* suitable for appending to a store."""
        raise NotImplementedError  # pragma: no cover


def build_extraction_options(
    language_patterns: Mapping[str, Sequence[str]] | None,
    extra_options: Sequence[str] | None,
) -> list[str]:
    """Return ctags flags for custom regex patterns plus passthrough options."""
    options: list[str] = []
    for language, patterns in (language_patterns or {}).items():
        for pattern in patterns:
            options.append(f"--regex-{language}={pattern}")
    options.extend(extra_options or ())
    return options


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in command)


def _file_list_payload(files: Sequence[str]) -> bytes:
    lines: list[str] = []
    for rel in files:
        if "\n" in rel or "\r" in rel:
            logger.warning("Skipping file with a newline in its name: %r", rel)
            continue
        lines.append(rel)
    if not lines:
        return b""
    return os.fsencode("\n".join(lines) + "\n")


def _validate_output(data: bytes, command: Sequence[str]) -> bytes:
    if not data.strip():
        raise IndexerError(f"{format_command(command)} produced no tags")
    if not data.startswith(BLOCK_MARKER):
        raise IndexerError(f"{format_command(command)} produced output that is not etags data")
    return data


class CtagsIndexer:
    """Run ``ctags -e`` with the file list fed through standard input."""

    def __init__(
        self,
        program: str = DEFAULT_CTAGS_PROGRAM,
        *,
        timeout: float = DEFAULT_INDEXER_TIMEOUT,
    ) -> None:
        self.program = program
        self.timeout = timeout

    def command(self, options: Sequence[str], output: str) -> list[str]:
        # Paths are recorded as given, not relative to the output file.
        return [self.program, "-e", "--tag-relative=no", *options, "-f", output, "-L", "-"]

    def generate(self, root: Path, files: Sequence[str], options: Sequence[str]) -> bytes:
        payload = _file_list_payload(files)
        if not payload:
            return b""
        fd, tmp_name = tempfile.mkstemp(prefix="tagkeeper-", suffix=".TAGS")
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            command = self.command(options, str(tmp_path))
            self._run(root, command, payload)
            try:
                data = tmp_path.read_bytes()
            except OSError as exc:
                raise IndexerError(f"Cannot read indexer output {tmp_path}: {exc}") from exc
            return _validate_output(data, command)
        finally:
            tmp_path.unlink(missing_ok=True)

    def append(self, root: Path, files: Sequence[str], options: Sequence[str]) -> bytes:
        payload = _file_list_payload(files)
        if not payload:
            return b""
        command = self.command(options, "-")
        completed = self._run(root, command, payload)
        return _validate_output(completed.stdout, command)

    def _run(
        self,
        root: Path,
        command: Sequence[str],
        payload: bytes,
    ) -> subprocess.CompletedProcess[bytes]:
        logger.debug("Running %s in %s", format_command(command), root)
        try:
            completed = subprocess.run(
                list(command),
                cwd=root,
                input=payload,
                capture_output=True,
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise IndexerError(f"Indexer program not found: {self.program}") from exc
        except subprocess.TimeoutExpired as exc:
            raise IndexerError(
                f"{format_command(command)} timed out after {self.timeout:g}s"
            ) from exc
        except OSError as exc:
            raise IndexerError(f"Cannot run {self.program}: {exc}") from exc
        if completed.returncode != 0:
            stderr = (completed.stderr or b"").decode("utf-8", errors="replace").strip()
            raise IndexerError(
                f"{format_command(command)} exited with code {completed.returncode}",
                returncode=completed.returncode,
                stderr=stderr[:_STDERR_LIMIT],
            )
        return completed
