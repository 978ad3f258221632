from __future__ import annotations

import os
import subprocess
from types import SimpleNamespace

import pytest

from tagkeeper.errors import DiscoveryError
from tagkeeper.services import snapshot_service


def _touch(path, mtime):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("x", encoding="utf-8")
    os.utime(path, (mtime, mtime))


def test_scandir_snapshot_reports_existing_files(tmp_path):
    _touch(tmp_path / "a.py", 100.0)
    _touch(tmp_path / "pkg" / "b.py", 200.0)
    (tmp_path / "pkg" / "sub").mkdir()

    snapshot = snapshot_service.snapshot_mtimes(
        tmp_path,
        ["a.py", "pkg/b.py", "pkg/missing.py", "gone/c.py", "pkg/sub"],
    )

    assert snapshot == {"a.py": 100.0, "pkg/b.py": 200.0}


def test_snapshot_scans_each_directory_once(tmp_path, monkeypatch):
    for name in ("a.py", "b.py", "c.py"):
        _touch(tmp_path / "src" / name, 10.0)
    scanned = []
    real_scandir = os.scandir

    def counting_scandir(path):
        scanned.append(str(path))
        return real_scandir(path)

    monkeypatch.setattr(snapshot_service.os, "scandir", counting_scandir)

    snapshot = snapshot_service.snapshot_mtimes(tmp_path, ["src/a.py", "src/b.py", "src/c.py"])

    assert len(snapshot) == 3
    assert scanned == [str(tmp_path / "src")]


def test_snapshot_empty_candidates_short_circuit(tmp_path):
    assert snapshot_service.snapshot_mtimes(tmp_path, []) == {}


def test_snapshot_missing_root_raises(tmp_path):
    with pytest.raises(DiscoveryError):
        snapshot_service.snapshot_mtimes(tmp_path / "nope", ["a.py"])


def test_unknown_backend_falls_back_to_scandir(tmp_path):
    _touch(tmp_path / "a.py", 5.0)

    snapshot = snapshot_service.snapshot_mtimes(tmp_path, ["a.py"], backend="bogus")

    assert snapshot == {"a.py": 5.0}


def test_find_backend_parses_printf_output(tmp_path, monkeypatch):
    (tmp_path / "pkg").mkdir()
    captured = {}

    def fake_run(cmd, **kwargs):
        captured["cmd"] = cmd
        captured["cwd"] = kwargs.get("cwd")
        stdout = b"100.5\t./a.py\x00300.0\t./other.txt\x00200.25\t./pkg/b.py\x00"
        return SimpleNamespace(returncode=0, stdout=stdout, stderr=b"")

    monkeypatch.setattr(snapshot_service.shutil, "which", lambda name: "/usr/bin/find")
    monkeypatch.setattr(snapshot_service.subprocess, "run", fake_run)

    snapshot = snapshot_service.snapshot_mtimes(
        tmp_path, ["a.py", "pkg/b.py", "missing.py"], backend="find"
    )

    assert snapshot == {"a.py": 100.5, "pkg/b.py": 200.25}
    assert captured["cmd"][0] == "/usr/bin/find"
    assert captured["cmd"][1] == "-L"
    assert "-printf" in captured["cmd"]
    assert captured["cwd"] == tmp_path


def test_find_backend_failure_raises(tmp_path, monkeypatch):
    def fake_run(cmd, **kwargs):
        return SimpleNamespace(returncode=1, stdout=b"", stderr=b"find: permission denied")

    monkeypatch.setattr(snapshot_service.shutil, "which", lambda name: "/usr/bin/find")
    monkeypatch.setattr(snapshot_service.subprocess, "run", fake_run)

    with pytest.raises(DiscoveryError, match="permission denied"):
        snapshot_service.snapshot_mtimes(tmp_path, ["a.py"], backend="find")


def test_find_backend_timeout_raises(tmp_path, monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

    monkeypatch.setattr(snapshot_service.shutil, "which", lambda name: "/usr/bin/find")
    monkeypatch.setattr(snapshot_service.subprocess, "run", fake_run)

    with pytest.raises(DiscoveryError):
        snapshot_service.snapshot_mtimes(tmp_path, ["a.py"], backend="find")


def test_find_backend_requires_program(tmp_path, monkeypatch):
    monkeypatch.setattr(snapshot_service.shutil, "which", lambda name: None)

    with pytest.raises(DiscoveryError):
        snapshot_service.snapshot_mtimes(tmp_path, ["a.py"], backend="find")


def test_find_backend_lists_only_candidate_directories(tmp_path, monkeypatch):
    (tmp_path / "src" / "deep").mkdir(parents=True)
    (tmp_path / "node_modules").mkdir()
    commands = []

    def fake_run(cmd, **kwargs):
        commands.append(cmd)
        return SimpleNamespace(returncode=0, stdout=b"", stderr=b"")

    monkeypatch.setattr(snapshot_service.shutil, "which", lambda name: "/usr/bin/find")
    monkeypatch.setattr(snapshot_service.subprocess, "run", fake_run)

    snapshot_service.snapshot_mtimes(
        tmp_path,
        ["a.py", "src/b.py", "src/deep/c.py", "gone/d.py"],
        backend="find",
    )

    assert len(commands) == 1
    cmd = commands[0]
    assert cmd[1:cmd.index("-maxdepth")] == ["-L", ".", "./src", "./src/deep"]
    assert cmd[cmd.index("-maxdepth") + 1] == "1"


def test_find_backend_splits_many_directories_into_batches(tmp_path, monkeypatch):
    names = [f"d{index:04d}" for index in range(snapshot_service.FIND_BATCH_SIZE + 3)]
    for name in names:
        (tmp_path / name).mkdir()
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return SimpleNamespace(returncode=0, stdout=b"", stderr=b"")

    monkeypatch.setattr(snapshot_service.shutil, "which", lambda name: "/usr/bin/find")
    monkeypatch.setattr(snapshot_service.subprocess, "run", fake_run)

    snapshot_service.snapshot_mtimes(tmp_path, [f"{name}/m.py" for name in names], backend="find")

    assert len(calls) == 2


def test_find_backend_keeps_partial_output_on_errors(tmp_path, monkeypatch, caplog):
    def fake_run(cmd, **kwargs):
        return SimpleNamespace(
            returncode=1,
            stdout=b"100.0\t./a.py\x00",
            stderr=b"find: './cache': Permission denied",
        )

    monkeypatch.setattr(snapshot_service.shutil, "which", lambda name: "/usr/bin/find")
    monkeypatch.setattr(snapshot_service.subprocess, "run", fake_run)

    with caplog.at_level("WARNING", logger="tagkeeper"):
        snapshot = snapshot_service.snapshot_mtimes(tmp_path, ["a.py"], backend="find")

    assert snapshot == {"a.py": 100.0}
    assert "Permission denied" in caplog.text


@pytest.mark.skipif(
    snapshot_service.shutil.which("find") is None or not hasattr(os, "symlink"),
    reason="find and symlinks are required",
)
def test_backends_agree_on_symlinked_files(tmp_path):
    root = tmp_path / "project"
    outside = tmp_path / "outside"
    _touch(root / "a.py", 100.0)
    _touch(root / "pkg" / "b.py", 150.0)
    _touch(outside / "real.py", 200.0)
    os.symlink(outside / "real.py", root / "link.py")
    os.symlink(outside / "missing.py", root / "dangling.py")
    candidates = ["a.py", "pkg/b.py", "link.py", "dangling.py"]

    try:
        via_find = snapshot_service.snapshot_mtimes(root, candidates, backend="find")
    except DiscoveryError:
        pytest.skip("GNU find is required")
    via_scandir = snapshot_service.snapshot_mtimes(root, candidates, backend="scandir")

    assert via_scandir == {"a.py": 100.0, "pkg/b.py": 150.0, "link.py": 200.0}
    assert via_find == via_scandir
