"""Command line interface for tagkeeper."""

from __future__ import annotations

import json
import shlex
import subprocess
from datetime import datetime
from pathlib import Path
from typing import NoReturn, Sequence

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, config as config_module
from .cache import clear_all_cache, delete_index, list_cache_entries, load_state
from .config import (
    SUPPORTED_SNAPSHOT_BACKENDS,
    Config,
    load_config,
)
from .errors import DiscoveryError, StoreCorruption
from .logs import configure_logging
from .output import format_size, format_status_icon, format_timestamp
from .services.config_service import apply_config_updates, get_config_snapshot
from .services.lifecycle_service import IndexController
from .services.system_service import (
    DoctorCheckResult,
    resolve_editor_command,
    run_all_doctor_checks,
)
from .services.update_service import (
    REASON_CORRUPT,
    REASON_THRESHOLD,
    IndexStatus,
    UpdateResult,
)
from .services.watch_service import DEFAULT_DEBOUNCE_MS, WatchEvent, watch_project
from .store import TagStore
from .text import Messages, Styles
from .utils import find_project_root

console = Console()

app = typer.Typer(
    help=Messages.APP_HELP,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"tagkeeper v{__version__}")
        raise typer.Exit()


def _parse_boolean(value: str) -> bool:
    token = value.strip().lower()
    if token in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if token in {"0", "false", "f", "no", "n", "off"}:
        return False
    raise ValueError(Messages.ERROR_BOOLEAN_INVALID.format(value=value))


def _format_list_display(values: Sequence[str] | None, empty: str = "none") -> str:
    if not values:
        return empty
    return ", ".join(values)


def _format_regex_display(patterns: dict[str, list[str]]) -> str:
    if not patterns:
        return "none"
    return "; ".join(
        f"{lang}: {', '.join(items)}" for lang, items in sorted(patterns.items())
    )


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help=Messages.HELP_VERSION,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help=Messages.HELP_VERBOSE,
    ),
) -> None:
    """Global Typer callback for shared options."""
    configure_logging(verbose)


@app.command(help=Messages.HELP_GENERATE)
def generate(
    path: Path = typer.Option(
        Path("."),
        "--path",
        "-p",
        help=Messages.HELP_PATH,
    ),
) -> None:
    """Build the tags index for the project from scratch."""
    config = _load_config_or_exit()
    location = _resolve_location(path)
    root = find_project_root(location)
    controller = IndexController(config)
    console.print(_styled(Messages.INFO_GENERATE_RUNNING.format(path=root), Styles.INFO))
    try:
        result = controller.build(root)
    except DiscoveryError as exc:
        _exit_discovery_error(root, exc)
    _report_result(result, config, root)


@app.command(help=Messages.HELP_REFRESH)
def refresh(
    path: Path = typer.Option(
        Path("."),
        "--path",
        "-p",
        help=Messages.HELP_PATH,
    ),
) -> None:
    """Bring the tags index up to date, building it if needed."""
    config = _load_config_or_exit()
    location = _resolve_location(path)
    root = find_project_root(location)
    controller = IndexController(config)
    console.print(_styled(Messages.INFO_REFRESH_RUNNING.format(path=root), Styles.INFO))
    try:
        controller.resume(root)
        result = controller.ensure_index(location)
    except DiscoveryError as exc:
        _exit_discovery_error(root, exc)
    _report_result(result, config, root)


@app.command(help=Messages.HELP_STATUS)
def status(
    path: Path = typer.Option(
        Path("."),
        "--path",
        "-p",
        help=Messages.HELP_PATH,
    ),
    show_all: bool = typer.Option(
        False,
        "--all",
        help=Messages.HELP_STATUS_ALL,
    ),
) -> None:
    """Show the tracked index for the project."""
    if show_all:
        _render_all_entries()
        return

    root = find_project_root(_resolve_location(path))
    state = load_state(root)
    if state is None:
        console.print(_styled(Messages.INFO_INDEX_MISSING.format(path=root), Styles.INFO))
        return

    try:
        file_count = str(len(TagStore.load(state.tags_path)))
    except StoreCorruption:
        file_count = "?"
    size = state.tags_path.stat().st_size if state.tags_path.exists() else 0

    console.print(_styled(Messages.INFO_STATUS_HEADER.format(path=root), Styles.TITLE))
    table = Table(show_header=True, header_style=Styles.TABLE_HEADER)
    table.add_column(Messages.TABLE_STATUS_TAGS, overflow="fold")
    table.add_column(Messages.TABLE_STATUS_FILES, justify="right")
    table.add_column(Messages.TABLE_STATUS_SIZE, justify="right")
    table.add_column(Messages.TABLE_STATUS_LAST_BUILD, no_wrap=True)
    table.add_column(Messages.TABLE_STATUS_GENERATED, overflow="fold")
    table.add_column(Messages.TABLE_STATUS_PENDING, justify="center")
    table.add_row(
        str(state.tags_path),
        file_count,
        format_size(size),
        format_timestamp(state.last_build),
        str(state.generated_at or "-"),
        "yes" if state.pending_rebuild else "no",
    )
    console.print(table)


@app.command(help=Messages.HELP_FILES)
def files(
    path: Path = typer.Option(
        Path("."),
        "--path",
        "-p",
        help=Messages.HELP_PATH,
    ),
) -> None:
    """List the files recorded in the project's tags index."""
    config = _load_config_or_exit()
    root = find_project_root(_resolve_location(path))
    controller = IndexController(config)
    if not controller.resume(root):
        console.print(_styled(Messages.INFO_INDEX_MISSING.format(path=root), Styles.INFO))
        return
    try:
        recorded = controller.recorded_files()
    except StoreCorruption as exc:
        console.print(_styled(str(exc), Styles.ERROR))
        raise typer.Exit(code=1)
    for rel in recorded:
        console.print(rel, markup=False, highlight=False)


@app.command(help=Messages.HELP_CLEAR)
def clear(
    path: Path = typer.Option(
        Path("."),
        "--path",
        "-p",
        help=Messages.HELP_PATH,
    ),
    clear_all: bool = typer.Option(
        False,
        "--all",
        help=Messages.HELP_CLEAR_ALL,
    ),
) -> None:
    """Delete the generated tags index for the project."""
    if clear_all:
        removed = clear_all_cache()
        if removed:
            plural = "es" if removed > 1 else ""
            console.print(
                _styled(
                    Messages.INFO_INDEX_ALL_CLEARED.format(count=removed, plural=plural),
                    Styles.SUCCESS,
                )
            )
        else:
            console.print(_styled(Messages.INFO_INDEX_ALL_CLEAR_NONE, Styles.INFO))
        return

    root = find_project_root(_resolve_location(path))
    if delete_index(root):
        console.print(_styled(Messages.INFO_INDEX_CLEARED.format(path=root), Styles.SUCCESS))
    else:
        console.print(_styled(Messages.INFO_INDEX_MISSING.format(path=root), Styles.INFO))


@app.command(help=Messages.HELP_WATCH)
def watch(
    path: Path = typer.Option(
        Path("."),
        "--path",
        "-p",
        help=Messages.HELP_PATH,
    ),
    debounce: int = typer.Option(
        DEFAULT_DEBOUNCE_MS,
        "--debounce",
        min=0,
        help=Messages.HELP_WATCH_DEBOUNCE,
    ),
) -> None:
    """Watch the project and refresh the index when files change."""
    config = _load_config_or_exit()
    location = _resolve_location(path)
    root = find_project_root(location)
    controller = IndexController(config)
    if not controller.enabled:
        console.print(_styled(Messages.ERROR_WATCH_NO_INDEX.format(path=root), Styles.ERROR))
        raise typer.Exit(code=1)
    try:
        controller.resume(root)
        result = controller.ensure_index(location)
    except DiscoveryError as exc:
        _exit_discovery_error(root, exc)
    _report_result(result, config, root)
    if result.status == IndexStatus.EXTERNAL:
        return
    if controller.active_root is None:
        raise typer.Exit(code=1)

    def _on_event(event: WatchEvent) -> None:
        label = event.result.status.value if event.result is not None else "ignored"
        console.print(
            _styled(
                Messages.INFO_WATCH_EVENT.format(
                    time=datetime.now().strftime("%H:%M:%S"),
                    status=label,
                    count=event.files_changed,
                    plural="" if event.files_changed == 1 else "s",
                ),
                Styles.INFO,
            )
        )
        if event.result is not None and event.result.status == IndexStatus.STALE:
            _report_result(event.result, config, root)

    console.print(
        _styled(Messages.INFO_WATCH_START.format(path=root, debounce=debounce), Styles.TITLE)
    )
    try:
        watch_project(controller, debounce_ms=debounce, callback=_on_event)
    except KeyboardInterrupt:
        console.print(_styled(Messages.INFO_WATCH_STOPPED, Styles.WARNING))
    except DiscoveryError as exc:
        _exit_discovery_error(root, exc)


@app.command(help=Messages.HELP_CONFIG)
def config(
    add_ext: list[str] | None = typer.Option(
        None,
        "--add-ext",
        help=Messages.HELP_ADD_EXT,
    ),
    remove_ext: list[str] | None = typer.Option(
        None,
        "--remove-ext",
        help=Messages.HELP_REMOVE_EXT,
    ),
    add_ignore: list[str] | None = typer.Option(
        None,
        "--add-ignore",
        help=Messages.HELP_ADD_IGNORE,
    ),
    remove_ignore: list[str] | None = typer.Option(
        None,
        "--remove-ignore",
        help=Messages.HELP_REMOVE_IGNORE,
    ),
    add_regex: list[str] | None = typer.Option(
        None,
        "--add-regex",
        help=Messages.HELP_ADD_REGEX,
    ),
    clear_regex: list[str] | None = typer.Option(
        None,
        "--clear-regex",
        help=Messages.HELP_CLEAR_REGEX,
    ),
    add_option: list[str] | None = typer.Option(
        None,
        "--add-option",
        help=Messages.HELP_ADD_OPTION,
    ),
    clear_options: bool = typer.Option(
        False,
        "--clear-options",
        help=Messages.HELP_CLEAR_OPTIONS,
    ),
    set_threshold_option: int | None = typer.Option(
        None,
        "--set-threshold",
        help=Messages.HELP_SET_THRESHOLD,
    ),
    set_ctags_option: str | None = typer.Option(
        None,
        "--set-ctags",
        help=Messages.HELP_SET_CTAGS,
    ),
    set_snapshot_backend_option: str | None = typer.Option(
        None,
        "--set-snapshot-backend",
        help=Messages.HELP_SET_SNAPSHOT_BACKEND,
    ),
    set_auto_generate_option: str | None = typer.Option(
        None,
        "--set-auto-generate",
        help=Messages.HELP_SET_AUTO_GENERATE,
    ),
    set_respect_gitignore_option: str | None = typer.Option(
        None,
        "--set-respect-gitignore",
        help=Messages.HELP_SET_RESPECT_GITIGNORE,
    ),
    show: bool = typer.Option(
        False,
        "--show",
        help=Messages.HELP_SHOW_CONFIG,
    ),
) -> None:
    """Manage tagkeeper configuration stored in ~/.tagkeeper/config.json."""
    if set_threshold_option is not None and set_threshold_option < 1:
        raise typer.BadParameter(Messages.ERROR_THRESHOLD_INVALID)
    if set_snapshot_backend_option is not None:
        normalized_backend = set_snapshot_backend_option.strip().lower()
        if normalized_backend not in SUPPORTED_SNAPSHOT_BACKENDS:
            allowed = ", ".join(SUPPORTED_SNAPSHOT_BACKENDS)
            raise typer.BadParameter(
                Messages.ERROR_SNAPSHOT_BACKEND_INVALID.format(
                    value=set_snapshot_backend_option, allowed=allowed
                )
            )
        set_snapshot_backend_option = normalized_backend

    auto_generate_value: bool | None = None
    respect_gitignore_value: bool | None = None
    try:
        if set_auto_generate_option is not None:
            auto_generate_value = _parse_boolean(set_auto_generate_option)
        if set_respect_gitignore_option is not None:
            respect_gitignore_value = _parse_boolean(set_respect_gitignore_option)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        updates = apply_config_updates(
            add_extensions=add_ext,
            remove_extensions=remove_ext,
            add_ignore=add_ignore,
            remove_ignore=remove_ignore,
            add_regex=add_regex,
            clear_regex=clear_regex,
            add_options=add_option,
            clear_options=clear_options,
            rescan_threshold=set_threshold_option,
            ctags_program=set_ctags_option,
            snapshot_backend=set_snapshot_backend_option,
            auto_generate=auto_generate_value,
            respect_gitignore=respect_gitignore_value,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if updates.extensions_added:
        console.print(
            _styled(
                Messages.INFO_EXT_ADDED.format(value=", ".join(updates.extensions_added)),
                Styles.SUCCESS,
            )
        )
    if updates.extensions_removed:
        console.print(
            _styled(
                Messages.INFO_EXT_REMOVED.format(value=", ".join(updates.extensions_removed)),
                Styles.SUCCESS,
            )
        )
    if updates.ignore_added:
        console.print(
            _styled(
                Messages.INFO_IGNORE_ADDED.format(value=", ".join(updates.ignore_added)),
                Styles.SUCCESS,
            )
        )
    if updates.ignore_removed:
        console.print(
            _styled(
                Messages.INFO_IGNORE_REMOVED.format(value=", ".join(updates.ignore_removed)),
                Styles.SUCCESS,
            )
        )
    for lang in updates.regex_cleared:
        console.print(_styled(Messages.INFO_REGEX_CLEARED.format(lang=lang), Styles.SUCCESS))
    for lang in updates.regex_added:
        console.print(_styled(Messages.INFO_REGEX_ADDED.format(lang=lang), Styles.SUCCESS))
    if updates.options_cleared:
        console.print(_styled(Messages.INFO_OPTIONS_CLEARED, Styles.SUCCESS))
    for option in updates.options_added:
        console.print(_styled(Messages.INFO_OPTION_ADDED.format(value=option), Styles.SUCCESS))
    if updates.threshold_set and set_threshold_option is not None:
        console.print(
            _styled(Messages.INFO_THRESHOLD_SET.format(value=set_threshold_option), Styles.SUCCESS)
        )
    if updates.ctags_set and set_ctags_option is not None:
        console.print(
            _styled(Messages.INFO_CTAGS_SET.format(value=set_ctags_option.strip()), Styles.SUCCESS)
        )
    if updates.snapshot_backend_set and set_snapshot_backend_option is not None:
        console.print(
            _styled(
                Messages.INFO_SNAPSHOT_BACKEND_SET.format(value=set_snapshot_backend_option),
                Styles.SUCCESS,
            )
        )
    if updates.auto_generate_set and auto_generate_value is not None:
        console.print(
            _styled(
                Messages.INFO_AUTO_GENERATE_SET.format(
                    value="enabled" if auto_generate_value else "disabled"
                ),
                Styles.SUCCESS,
            )
        )
    if updates.respect_gitignore_set and respect_gitignore_value is not None:
        console.print(
            _styled(
                Messages.INFO_RESPECT_GITIGNORE_SET.format(
                    value="enabled" if respect_gitignore_value else "disabled"
                ),
                Styles.SUCCESS,
            )
        )

    if not updates.changed and not show:
        _edit_config_file()
        return

    if show:
        cfg = _config_snapshot_or_exit()
        console.print(
            _styled(
                Messages.INFO_CONFIG_SUMMARY.format(
                    ctags=cfg.ctags_program,
                    extensions=_format_list_display(cfg.extensions, empty="all"),
                    ignore_globs=_format_list_display(cfg.ignore_globs),
                    respect_gitignore="yes" if cfg.respect_gitignore else "no",
                    regex=_format_regex_display(cfg.language_patterns),
                    options=_format_list_display(cfg.extra_options),
                    threshold=cfg.rescan_threshold,
                    snapshot_backend=cfg.snapshot_backend,
                    auto_generate="yes" if cfg.auto_generate else "no",
                    external=_format_list_display(cfg.external_tags),
                ),
                Styles.INFO,
            ),
            highlight=False,
        )


@app.command(help=Messages.HELP_DOCTOR)
def doctor() -> None:
    """Run diagnostic checks for ctags and the tagkeeper data directory."""
    console.print(_styled(Messages.DOCTOR_TITLE.format(version=__version__), Styles.TITLE))
    console.print()

    config_load_error: DoctorCheckResult | None = None
    try:
        cfg = load_config()
    except (json.JSONDecodeError, OSError, UnicodeDecodeError, ValueError) as exc:
        cfg = Config()
        config_load_error = DoctorCheckResult(
            name="Config JSON",
            passed=False,
            message=Messages.DOCTOR_CONFIG_INVALID.format(path=config_module.config_file_path()),
            detail=str(exc),
        )

    results: list[DoctorCheckResult] = []
    if config_load_error is not None:
        results.append(config_load_error)
    results.extend(run_all_doctor_checks(cfg.ctags_program))

    has_failure = False
    for result in results:
        icon = format_status_icon(result.passed, console=console)
        if not result.passed:
            has_failure = True

        console.print(f"  {icon} [bold]{result.name}:[/bold] {result.message}")
        if result.detail:
            console.print(f"      [dim]{result.detail}[/dim]")

    console.print()
    if has_failure:
        console.print(_styled(Messages.DOCTOR_SOME_FAILED, Styles.WARNING))
        raise typer.Exit(code=1)
    console.print(_styled(Messages.DOCTOR_ALL_PASSED, Styles.SUCCESS))


def _render_all_entries() -> None:
    entries = list_cache_entries()
    if not entries:
        console.print(_styled(Messages.INFO_INDEX_ALL_EMPTY, Styles.INFO))
        return
    console.print(_styled(Messages.INFO_INDEX_ALL_HEADER, Styles.TITLE))
    table = Table(show_header=True, header_style=Styles.TABLE_HEADER)
    table.add_column(Messages.TABLE_STATUS_ROOT, overflow="fold")
    table.add_column(Messages.TABLE_STATUS_SIZE, justify="right")
    table.add_column(Messages.TABLE_STATUS_LAST_BUILD, no_wrap=True)
    table.add_column(Messages.TABLE_STATUS_PENDING, justify="center")
    for entry in entries:
        table.add_row(
            str(entry["root"]),
            format_size(int(entry.get("tags_size") or 0)),
            format_timestamp(float(entry.get("last_build") or 0.0)),
            "yes" if entry.get("pending_rebuild") else "no",
        )
    console.print(table)


def _report_result(result: UpdateResult, config: Config, root: Path) -> None:
    target = result.tags_path or root
    if result.status == IndexStatus.EMPTY:
        console.print(_styled(Messages.INFO_NO_FILES, Styles.WARNING))
    elif result.status == IndexStatus.UP_TO_DATE:
        console.print(_styled(Messages.INFO_INDEX_UP_TO_DATE, Styles.INFO))
    elif result.status == IndexStatus.PATCHED:
        console.print(
            _styled(
                Messages.INFO_INDEX_PATCHED.format(
                    path=target,
                    added=len(result.changes.added),
                    changed=len(result.changes.changed),
                    removed=len(result.changes.removed),
                ),
                Styles.SUCCESS,
            )
        )
    elif result.status == IndexStatus.REBUILT and result.reason == REASON_THRESHOLD:
        console.print(
            _styled(
                Messages.INFO_INDEX_REBUILT_THRESHOLD.format(
                    changes=result.changes.total,
                    threshold=config.rescan_threshold,
                    path=target,
                ),
                Styles.SUCCESS,
            )
        )
    elif result.status == IndexStatus.REBUILT and result.reason == REASON_CORRUPT:
        console.print(
            _styled(Messages.INFO_INDEX_REBUILT_CORRUPT.format(path=target), Styles.SUCCESS)
        )
    elif result.status == IndexStatus.REBUILT:
        console.print(
            _styled(
                Messages.INFO_INDEX_BUILT.format(
                    files=result.files_indexed,
                    plural="" if result.files_indexed == 1 else "s",
                    path=target,
                ),
                Styles.SUCCESS,
            )
        )
    elif result.status == IndexStatus.STALE:
        console.print(
            _styled(
                Messages.WARNING_INDEX_STALE.format(path=root, reason=result.reason or "unknown"),
                Styles.WARNING,
            ),
            highlight=False,
        )
    elif result.status == IndexStatus.DISABLED:
        console.print(_styled(Messages.INFO_INDEX_DISABLED, Styles.INFO))
    elif result.status == IndexStatus.EXTERNAL:
        console.print(_styled(Messages.INFO_INDEX_EXTERNAL.format(path=target), Styles.INFO))


def _exit_discovery_error(root: Path, exc: DiscoveryError) -> NoReturn:
    console.print(
        _styled(Messages.ERROR_DISCOVERY.format(path=root, reason=str(exc)), Styles.ERROR),
        highlight=False,
    )
    raise typer.Exit(code=1)


def _resolve_location(path: Path) -> Path:
    location = path.expanduser().resolve()
    if not location.exists():
        raise typer.BadParameter(f"Path does not exist: {location}")
    return location


def _load_config_or_exit() -> Config:
    try:
        return load_config()
    except (OSError, ValueError) as exc:
        console.print(_styled(str(exc), Styles.ERROR))
        raise typer.Exit(code=1)


def _config_snapshot_or_exit() -> Config:
    try:
        return get_config_snapshot()
    except (OSError, ValueError) as exc:
        console.print(_styled(str(exc), Styles.ERROR))
        raise typer.Exit(code=1)


def _styled(text: str, style: str) -> str:
    return f"[{style}]{text}[/{style}]"


def run(argv: list[str] | None = None) -> None:
    """Entry point wrapper allowing optional argument override."""
    if argv is None:
        app()
    else:
        app(args=list(argv))


def _format_command(parts: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in parts)


def _ensure_config_file() -> Path:
    config_path = config_module.config_file_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    if not config_path.exists():
        config_path.write_text("{}\n", encoding="utf-8")
    return config_path


def _edit_config_file() -> None:
    command = resolve_editor_command()
    if not command:
        console.print(_styled(Messages.ERROR_CONFIG_EDITOR_NOT_FOUND, Styles.ERROR))
        raise typer.Exit(code=1)

    cmd_list = list(command)
    config_path = _ensure_config_file()
    console.print(
        _styled(
            Messages.INFO_CONFIG_EDITING.format(
                path=config_path,
                editor=_format_command(cmd_list),
            ),
            Styles.INFO,
        )
    )
    try:
        subprocess.run(cmd_list + [str(config_path)], check=True)
    except FileNotFoundError as exc:
        console.print(
            _styled(
                Messages.ERROR_CONFIG_EDITOR_LAUNCH.format(reason=str(exc)),
                Styles.ERROR,
            )
        )
        raise typer.Exit(code=1)
    except subprocess.CalledProcessError as exc:
        code = exc.returncode if exc.returncode is not None else 1
        console.print(
            _styled(
                Messages.ERROR_CONFIG_EDITOR_FAILED.format(code=code),
                Styles.ERROR,
            )
        )
        raise typer.Exit(code=code)
