import json
import re

import pytest
from typer.testing import CliRunner

from conftest import FakeIndexer, write_source
from tagkeeper import __version__
from tagkeeper.cache import load_state, tags_path_for
from tagkeeper.cli import app
from tagkeeper.services.system_service import DoctorCheckResult


ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    return ANSI_RE.sub("", text)


def plain(text: str) -> str:
    """Strip colors and collapse the line wrapping rich applies to long paths."""
    return " ".join(strip_ansi(text).split())


@pytest.fixture
def indexer(monkeypatch):
    fake = FakeIndexer()
    monkeypatch.setattr(
        "tagkeeper.services.lifecycle_service.CtagsIndexer",
        lambda *args, **kwargs: fake,
    )
    return fake


@pytest.fixture
def runner():
    return CliRunner()


def _sample_project(project):
    write_source(project / "a.py", ["alpha"], mtime=500.0)
    write_source(project / "pkg" / "b.py", ["beta"], mtime=500.0)
    return project


def test_version_flag(runner):
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"tagkeeper v{__version__}" in result.stdout


def test_generate_builds_index(runner, project, indexer):
    _sample_project(project)

    result = runner.invoke(app, ["generate", "--path", str(project)])

    assert result.exit_code == 0
    assert "Indexed 2 files into" in plain(result.stdout)
    assert tags_path_for(project).exists()
    assert indexer.calls[0][0] == "generate"


def test_refresh_reports_up_to_date_then_patch(runner, project, indexer):
    _sample_project(project)
    runner.invoke(app, ["generate", "--path", str(project)])

    unchanged = runner.invoke(app, ["refresh", "--path", str(project / "pkg")])
    assert unchanged.exit_code == 0
    assert "already matches the project" in plain(unchanged.stdout)

    write_source(project / "a.py", ["alpha", "gamma"], mtime=4_000_000_000.0)
    patched = runner.invoke(app, ["refresh", "--path", str(project)])

    assert patched.exit_code == 0
    assert "0 added, 1 changed, 0 removed" in plain(patched.stdout)
    assert indexer.calls[-1] == ("append", ["a.py"], [])


def test_refresh_builds_missing_index(runner, project, indexer):
    _sample_project(project)

    result = runner.invoke(app, ["refresh", "--path", str(project / "a.py")])

    assert result.exit_code == 0
    assert "Indexed 2 files" in plain(result.stdout)
    assert load_state(project) is not None


def test_refresh_with_failing_indexer_warns(runner, project, indexer):
    _sample_project(project)
    runner.invoke(app, ["generate", "--path", str(project)])
    write_source(project / "a.py", ["alpha2"], mtime=4_000_000_000.0)
    indexer.fail_append = True

    result = runner.invoke(app, ["refresh", "--path", str(project)])

    assert result.exit_code == 0
    assert "may be stale" in plain(result.stdout)


def test_refresh_leaves_project_tags_file_alone(runner, project, indexer):
    _sample_project(project)
    (project / "TAGS").write_bytes(b"")

    result = runner.invoke(app, ["refresh", "--path", str(project)])

    assert result.exit_code == 0
    assert "Using existing tags file" in plain(result.stdout)
    assert indexer.calls == []


def test_refresh_disabled(runner, project, indexer):
    _sample_project(project)
    runner.invoke(app, ["config", "--set-auto-generate", "off"])

    result = runner.invoke(app, ["refresh", "--path", str(project)])

    assert result.exit_code == 0
    assert "Automatic generation is disabled." in plain(result.stdout)
    assert indexer.calls == []


def test_discovery_failure_exits_with_error(runner, project, indexer, monkeypatch):
    def boom(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("tagkeeper.services.lifecycle_service.collect_files", boom)

    result = runner.invoke(app, ["generate", "--path", str(project)])

    assert result.exit_code == 1
    assert "Could not enumerate files" in plain(result.stdout)


def test_missing_path_is_rejected(runner, tmp_path, indexer):
    result = runner.invoke(app, ["generate", "--path", str(tmp_path / "missing")])

    assert result.exit_code != 0


def test_status_and_files(runner, project, indexer):
    _sample_project(project)

    missing = runner.invoke(app, ["status", "--path", str(project)])
    assert "No generated tags index" in plain(missing.stdout)

    runner.invoke(app, ["generate", "--path", str(project)])

    status = runner.invoke(app, ["status", "--path", str(project)])
    assert status.exit_code == 0
    assert "Tags index for" in plain(status.stdout)

    listing = runner.invoke(app, ["files", "--path", str(project)])
    assert listing.exit_code == 0
    assert strip_ansi(listing.stdout).splitlines() == ["a.py", "pkg/b.py"]


def test_status_all_lists_every_index(runner, tmp_path, indexer):
    empty = runner.invoke(app, ["status", "--all"])
    assert "No generated tags indexes found." in plain(empty.stdout)

    for name in ("one", "two"):
        root = tmp_path / name
        (root / ".git").mkdir(parents=True)
        write_source(root / "m.py", [name], mtime=500.0)
        runner.invoke(app, ["generate", "--path", str(root)])

    result = runner.invoke(app, ["status", "--all"])

    assert result.exit_code == 0
    assert "Generated tags indexes" in plain(result.stdout)


def test_clear_and_clear_all(runner, project, indexer):
    _sample_project(project)
    runner.invoke(app, ["generate", "--path", str(project)])

    cleared = runner.invoke(app, ["clear", "--path", str(project)])
    assert cleared.exit_code == 0
    assert "Removed the tags index" in plain(cleared.stdout)
    assert not tags_path_for(project).exists()

    again = runner.invoke(app, ["clear", "--path", str(project)])
    assert "No generated tags index" in plain(again.stdout)

    runner.invoke(app, ["generate", "--path", str(project)])
    all_cleared = runner.invoke(app, ["clear", "--all"])
    assert "Removed 1 tags index." in plain(all_cleared.stdout)


def test_watch_refuses_when_disabled(runner, project, indexer):
    runner.invoke(app, ["config", "--set-auto-generate", "false"])

    result = runner.invoke(app, ["watch", "--path", str(project)])

    assert result.exit_code == 1
    assert "nothing to watch" in plain(result.stdout)


def test_watch_builds_then_stops_on_interrupt(runner, project, indexer, monkeypatch):
    _sample_project(project)
    seen = {}

    def fake_watch(controller, *, debounce_ms, callback):
        seen["root"] = controller.active_root
        seen["debounce"] = debounce_ms
        raise KeyboardInterrupt

    monkeypatch.setattr("tagkeeper.cli.watch_project", fake_watch)

    result = runner.invoke(app, ["watch", "--path", str(project), "--debounce", "250"])

    assert result.exit_code == 0
    assert seen == {"root": project, "debounce": 250}
    output = plain(result.stdout)
    assert "Indexed 2 files" in output
    assert "Watch stopped." in output


def test_config_updates_and_show(runner, isolated_data_dirs):
    result = runner.invoke(
        app,
        [
            "config",
            "--add-ext",
            ".zig",
            "--add-regex",
            "lisp=/(defq ([a-z]+)/\\1/",
            "--add-option",
            "--fields=+n",
            "--set-threshold",
            "25",
            "--set-snapshot-backend",
            "find",
            "--show",
        ],
    )

    assert result.exit_code == 0
    output = plain(result.stdout)
    assert "Added extensions: .zig." in output
    assert "Added regex rule for lisp." in output
    assert "Rescan threshold: 25" in output
    assert "Snapshot backend: find" in output

    saved = json.loads((isolated_data_dirs / "config.json").read_text(encoding="utf-8"))
    assert saved["rescan_threshold"] == 25
    assert saved["extra_options"] == ["--fields=+n"]


@pytest.mark.parametrize(
    "args",
    [
        ["config", "--set-threshold", "0"],
        ["config", "--set-snapshot-backend", "inotify"],
        ["config", "--set-auto-generate", "maybe"],
        ["config", "--add-regex", "no-equals-sign"],
    ],
)
def test_config_rejects_invalid_values(runner, args):
    result = runner.invoke(app, args)

    assert result.exit_code == 2


def test_config_without_options_opens_editor(runner, monkeypatch, isolated_data_dirs):
    launched = {}
    monkeypatch.setattr("tagkeeper.cli.resolve_editor_command", lambda: ("myeditor",))

    def fake_run(cmd, check):
        launched["cmd"] = cmd

    monkeypatch.setattr("tagkeeper.cli.subprocess.run", fake_run)

    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert launched["cmd"] == ["myeditor", str(isolated_data_dirs / "config.json")]
    assert (isolated_data_dirs / "config.json").read_text(encoding="utf-8") == "{}\n"


def test_doctor_reports_failures(runner, monkeypatch):
    monkeypatch.setattr(
        "tagkeeper.cli.run_all_doctor_checks",
        lambda program: [
            DoctorCheckResult(name="ctags", passed=False, message=f"{program} missing"),
            DoctorCheckResult(name="Config", passed=True, message="defaults"),
        ],
    )

    result = runner.invoke(app, ["doctor"])

    assert result.exit_code == 1
    assert "ctags missing" in plain(result.stdout)
    assert "Some checks failed." in plain(result.stdout)


def test_doctor_all_passed(runner, monkeypatch):
    monkeypatch.setattr(
        "tagkeeper.cli.run_all_doctor_checks",
        lambda program: [DoctorCheckResult(name="ctags", passed=True, message="ok")],
    )

    result = runner.invoke(app, ["doctor"])

    assert result.exit_code == 0
    assert "All checks passed." in plain(result.stdout)
