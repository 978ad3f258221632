from __future__ import annotations

import os
from pathlib import Path

import pytest

from tagkeeper.errors import IndexerError


def etags_block(rel: str, names: list[str]) -> bytes:
    body = "".join(f"def {name}\x7f{name}\x01{line},0\n" for line, name in enumerate(names, 1))
    payload = body.encode("utf-8")
    return b"\x0c\n" + rel.encode("utf-8") + b"," + str(len(payload)).encode() + b"\n" + payload


class FakeIndexer:
    """Emit one etags block per file, tagging every ``def NAME`` line."""

    def __init__(self, *args, **kwargs) -> None:
        self.calls: list[tuple[str, list[str], list[str]]] = []
        self.fail_generate = False
        self.fail_append = False

    def _emit(self, root: Path, files) -> bytes:
        chunks: list[bytes] = []
        for rel in files:
            try:
                text = (root / rel).read_text(encoding="utf-8")
            except OSError:
                continue
            names = [
                line.split()[1].split("(")[0]
                for line in text.splitlines()
                if line.startswith("def ") and len(line.split()) > 1
            ]
            chunks.append(etags_block(rel, names))
        return b"".join(chunks)

    def generate(self, root, files, options) -> bytes:
        self.calls.append(("generate", list(files), list(options)))
        if self.fail_generate:
            raise IndexerError("ctags exited with code 1")
        return self._emit(root, files)

    def append(self, root, files, options) -> bytes:
        self.calls.append(("append", list(files), list(options)))
        if self.fail_append:
            raise IndexerError("ctags exited with code 1")
        return self._emit(root, files)


def write_source(path: Path, names: list[str], *, mtime: float) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"def {name}():\n    pass\n" for name in names), encoding="utf-8")
    os.utime(path, (mtime, mtime))
    return path


class Clock:
    def __init__(self, value: float = 1000.0) -> None:
        self.value = value

    def __call__(self) -> float:
        return self.value


@pytest.fixture(autouse=True)
def isolated_data_dirs(tmp_path, monkeypatch):
    data_dir = tmp_path / "tagkeeper-home"
    monkeypatch.setattr("tagkeeper.config.CONFIG_DIR", data_dir)
    monkeypatch.setattr("tagkeeper.config.CONFIG_FILE", data_dir / "config.json")
    monkeypatch.setattr("tagkeeper.cache.CACHE_DIR", data_dir)
    return data_dir


@pytest.fixture
def fake_indexer() -> FakeIndexer:
    return FakeIndexer()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def project(tmp_path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    (root / ".git").mkdir()
    return root.resolve()
