"""Logic helpers for diagnostics and editor discovery."""

from __future__ import annotations

import os
import re
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from ..text import Messages

EDITOR_FALLBACKS = ("nano", "vi", "notepad", "notepad.exe")
_CTAGS_FLAVOR_RE = re.compile(r"\b(Universal|Exuberant) Ctags\b", re.IGNORECASE)


@dataclass
class DoctorCheckResult:
    """Result of a single doctor check."""

    name: str
    passed: bool
    message: str
    detail: str | None = None


def check_ctags_on_path(program: str) -> DoctorCheckResult:
    """Check that the configured ctags executable can be found."""
    path = find_command_on_path(program)
    if path:
        return DoctorCheckResult(
            name="ctags",
            passed=True,
            message=Messages.DOCTOR_CTAGS_FOUND.format(program=program, path=path),
        )
    return DoctorCheckResult(
        name="ctags",
        passed=False,
        message=Messages.DOCTOR_CTAGS_MISSING.format(program=program),
        detail=Messages.DOCTOR_CTAGS_MISSING_DETAIL,
    )


def detect_ctags_flavor(program: str, *, timeout: float = 10.0) -> str | None:
    """Return "Universal Ctags" or "Exuberant Ctags" from ``--version`` output."""
    try:
        completed = subprocess.run(
            [program, "--version"],
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    match = _CTAGS_FLAVOR_RE.search(completed.stdout or "")
    if match is None:
        return None
    return f"{match.group(1).capitalize()} Ctags"


def check_ctags_flavor(program: str) -> DoctorCheckResult:
    """Check that ctags is a flavor able to write etags output."""
    flavor = detect_ctags_flavor(program)
    if flavor:
        return DoctorCheckResult(
            name="etags",
            passed=True,
            message=Messages.DOCTOR_CTAGS_FLAVOR_OK.format(flavor=flavor),
        )
    return DoctorCheckResult(
        name="etags",
        passed=False,
        message=Messages.DOCTOR_CTAGS_FLAVOR_UNKNOWN,
        detail=Messages.DOCTOR_CTAGS_FLAVOR_DETAIL,
    )


def check_config_exists() -> DoctorCheckResult:
    """Check if config file exists."""
    from ..config import config_file_path

    config_file = config_file_path()
    if config_file.exists():
        return DoctorCheckResult(
            name="Config",
            passed=True,
            message=Messages.DOCTOR_CONFIG_EXISTS.format(path=config_file),
        )
    return DoctorCheckResult(
        name="Config",
        passed=True,
        message=Messages.DOCTOR_CONFIG_MISSING,
        detail=str(config_file),
    )


def check_cache_directory() -> DoctorCheckResult:
    """Check if the tags cache directory exists and is writable."""
    from ..cache import current_cache_dir, ensure_cache_dir

    cache_dir = current_cache_dir()
    if not cache_dir.exists():
        try:
            ensure_cache_dir()
            return DoctorCheckResult(
                name="Cache Dir",
                passed=True,
                message=Messages.DOCTOR_CACHE_CREATED.format(path=cache_dir),
            )
        except OSError as exc:
            return DoctorCheckResult(
                name="Cache Dir",
                passed=False,
                message=Messages.DOCTOR_CACHE_CANNOT_CREATE.format(path=cache_dir),
                detail=str(exc),
            )

    test_file = cache_dir / ".doctor_test"
    try:
        test_file.write_text("test", encoding="utf-8")
        test_file.unlink()
        return DoctorCheckResult(
            name="Cache Dir",
            passed=True,
            message=Messages.DOCTOR_CACHE_WRITABLE.format(path=cache_dir),
        )
    except OSError as exc:
        return DoctorCheckResult(
            name="Cache Dir",
            passed=False,
            message=Messages.DOCTOR_CACHE_NOT_WRITABLE.format(path=cache_dir),
            detail=str(exc),
        )


def run_all_doctor_checks(ctags_program: str) -> list[DoctorCheckResult]:
    """Run all doctor checks and return results."""
    on_path = check_ctags_on_path(ctags_program)
    results = [on_path]
    if on_path.passed:
        results.append(check_ctags_flavor(ctags_program))
    results.extend([check_config_exists(), check_cache_directory()])
    return results


def find_command_on_path(command: str) -> Optional[str]:
    """Return the resolved path for *command* if present on PATH."""

    return shutil.which(command)


def resolve_editor_command() -> Optional[Sequence[str]]:
    """Return the preferred editor command as a tokenized sequence."""

    for env_var in ("VISUAL", "EDITOR"):
        value = os.environ.get(env_var)
        if value:
            return tuple(shlex.split(value))

    for candidate in EDITOR_FALLBACKS:
        path = shutil.which(candidate)
        if path:
            return (path,)

    return None
