"""Global configuration management for tagkeeper."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from .text import Messages
from .utils import normalize_extensions, normalize_ignore_globs

DEFAULT_CONFIG_DIR = Path(os.path.expanduser("~")) / ".tagkeeper"
CONFIG_DIR = DEFAULT_CONFIG_DIR
CONFIG_FILE = CONFIG_DIR / "config.json"
_CONFIG_DIR_OVERRIDE: ContextVar[Path | None] = ContextVar(
    "tagkeeper_config_dir_override",
    default=None,
)
DEFAULT_CTAGS_PROGRAM = "ctags"
DEFAULT_RESCAN_THRESHOLD = 100
DEFAULT_INDEXER_TIMEOUT = 300.0
DEFAULT_SNAPSHOT_BACKEND = "auto"
SUPPORTED_SNAPSHOT_BACKENDS: tuple[str, ...] = ("auto", "scandir", "find")
DEFAULT_EXTENSIONS: tuple[str, ...] = (
    ".c",
    ".cc",
    ".cpp",
    ".cs",
    ".el",
    ".go",
    ".h",
    ".hpp",
    ".java",
    ".js",
    ".jsx",
    ".kt",
    ".lua",
    ".php",
    ".pl",
    ".py",
    ".rb",
    ".rs",
    ".scala",
    ".sh",
    ".swift",
    ".ts",
    ".tsx",
)
DEFAULT_IGNORE_GLOBS: tuple[str, ...] = (
    "node_modules/",
    "*.min.js",
    "*.min.css",
    "__pycache__/",
    "build/",
    "dist/",
    "TAGS",
    "tags",
)


@dataclass
class Config:
    ctags_program: str = DEFAULT_CTAGS_PROGRAM
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    ignore_globs: tuple[str, ...] = DEFAULT_IGNORE_GLOBS
    respect_gitignore: bool = True
    language_patterns: dict[str, list[str]] = field(default_factory=dict)
    extra_options: list[str] = field(default_factory=list)
    rescan_threshold: int = DEFAULT_RESCAN_THRESHOLD
    indexer_timeout: float = DEFAULT_INDEXER_TIMEOUT
    snapshot_backend: str = DEFAULT_SNAPSHOT_BACKEND
    auto_generate: bool = True
    external_tags: list[str] = field(default_factory=list)


def _resolve_config_dir() -> Path:
    override = _CONFIG_DIR_OVERRIDE.get()
    return override if override is not None else CONFIG_DIR


def _resolve_config_file() -> Path:
    override = _CONFIG_DIR_OVERRIDE.get()
    if override is not None:
        return override / "config.json"
    return CONFIG_FILE


def config_file_path() -> Path:
    """Return the config file currently in effect."""
    return _resolve_config_file()


@contextmanager
def config_dir_context(path: Path | str | None):
    """Temporarily override the config directory for the current context."""

    if path is None:
        yield
        return
    dir_path = Path(path).expanduser().resolve()
    if dir_path.exists() and not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    token = _CONFIG_DIR_OVERRIDE.set(dir_path)
    try:
        yield
    finally:
        _CONFIG_DIR_OVERRIDE.reset(token)


def load_config() -> Config:
    config_file = _resolve_config_file()
    if not config_file.exists():
        return Config()
    raw = json.loads(config_file.read_text(encoding="utf-8"))
    if not isinstance(raw, Mapping):
        raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID)
    config = Config()
    _apply_config_payload(config, raw)
    return config


def save_config(config: Config) -> None:
    config_dir = _resolve_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    data: Dict[str, Any] = {}
    if config.ctags_program:
        data["ctags_program"] = config.ctags_program
    data["extensions"] = list(config.extensions)
    data["ignore_globs"] = list(config.ignore_globs)
    data["respect_gitignore"] = bool(config.respect_gitignore)
    if config.language_patterns:
        data["language_patterns"] = {
            lang: list(patterns) for lang, patterns in config.language_patterns.items()
        }
    if config.extra_options:
        data["extra_options"] = list(config.extra_options)
    data["rescan_threshold"] = config.rescan_threshold
    data["indexer_timeout"] = config.indexer_timeout
    data["snapshot_backend"] = config.snapshot_backend
    data["auto_generate"] = bool(config.auto_generate)
    if config.external_tags:
        data["external_tags"] = list(config.external_tags)
    config_file = _resolve_config_file()
    config_file.write_text(
        json.dumps(data, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def set_config_dir(path: Path | str | None) -> None:
    global CONFIG_DIR, CONFIG_FILE
    if path is None:
        CONFIG_DIR = DEFAULT_CONFIG_DIR
    else:
        dir_path = Path(path).expanduser().resolve()
        if dir_path.exists() and not dir_path.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {dir_path}")
        CONFIG_DIR = dir_path
    CONFIG_FILE = CONFIG_DIR / "config.json"


def config_from_json(
    payload: str | Mapping[str, object], *, base: Config | None = None
) -> Config:
    """Return a Config from a JSON string or mapping without saving it."""
    data = _coerce_config_payload(payload)
    config = Config() if base is None else _clone_config(base)
    _apply_config_payload(config, data)
    return config


def update_config_from_json(
    payload: str | Mapping[str, object], *, replace: bool = False
) -> Config:
    """Update config from a JSON string or mapping and persist it."""
    base = None if replace else load_config()
    config = config_from_json(payload, base=base)
    save_config(config)
    return config


def set_ctags_program(value: str) -> None:
    config = load_config()
    config.ctags_program = _coerce_required_str(value, "ctags_program", DEFAULT_CTAGS_PROGRAM)
    save_config(config)


def set_extensions(values: tuple[str, ...]) -> None:
    config = load_config()
    config.extensions = tuple(values)
    save_config(config)


def set_ignore_globs(values: tuple[str, ...]) -> None:
    config = load_config()
    config.ignore_globs = tuple(values)
    save_config(config)


def set_respect_gitignore(value: bool) -> None:
    config = load_config()
    config.respect_gitignore = bool(value)
    save_config(config)


def add_language_pattern(language: str, pattern: str) -> None:
    config = load_config()
    lang = _coerce_required_str(language, "language_patterns", "")
    if not lang:
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field="language_patterns"))
    patterns = config.language_patterns.setdefault(lang, [])
    if pattern not in patterns:
        patterns.append(pattern)
    save_config(config)


def clear_language_patterns(language: str) -> bool:
    config = load_config()
    removed = config.language_patterns.pop(language.strip(), None) is not None
    save_config(config)
    return removed


def add_extra_option(value: str) -> None:
    config = load_config()
    cleaned = value.strip()
    if cleaned and cleaned not in config.extra_options:
        config.extra_options.append(cleaned)
    save_config(config)


def clear_extra_options() -> None:
    config = load_config()
    config.extra_options = []
    save_config(config)


def set_rescan_threshold(value: int) -> None:
    config = load_config()
    config.rescan_threshold = _coerce_threshold(value)
    save_config(config)


def set_snapshot_backend(value: str) -> None:
    config = load_config()
    config.snapshot_backend = _normalize_snapshot_backend(value)
    save_config(config)


def set_auto_generate(value: bool) -> None:
    config = load_config()
    config.auto_generate = bool(value)
    save_config(config)


def _coerce_config_payload(payload: str | Mapping[str, object]) -> Mapping[str, object]:
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID) from exc
    elif isinstance(payload, Mapping):
        data = dict(payload)
    else:
        raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID)
    if not isinstance(data, Mapping):
        raise ValueError(Messages.ERROR_CONFIG_JSON_INVALID)
    return data


def _clone_config(config: Config) -> Config:
    return Config(
        ctags_program=config.ctags_program,
        extensions=tuple(config.extensions),
        ignore_globs=tuple(config.ignore_globs),
        respect_gitignore=config.respect_gitignore,
        language_patterns={
            lang: list(patterns) for lang, patterns in config.language_patterns.items()
        },
        extra_options=list(config.extra_options),
        rescan_threshold=config.rescan_threshold,
        indexer_timeout=config.indexer_timeout,
        snapshot_backend=config.snapshot_backend,
        auto_generate=config.auto_generate,
        external_tags=list(config.external_tags),
    )


def _apply_config_payload(config: Config, payload: Mapping[str, object]) -> None:
    if "ctags_program" in payload:
        config.ctags_program = _coerce_required_str(
            payload["ctags_program"], "ctags_program", DEFAULT_CTAGS_PROGRAM
        )
    if "extensions" in payload:
        config.extensions = normalize_extensions(
            _coerce_str_list(payload["extensions"], "extensions")
        )
    if "ignore_globs" in payload:
        config.ignore_globs = normalize_ignore_globs(
            _coerce_str_list(payload["ignore_globs"], "ignore_globs")
        )
    if "respect_gitignore" in payload:
        config.respect_gitignore = _coerce_bool(
            payload["respect_gitignore"], "respect_gitignore"
        )
    if "language_patterns" in payload:
        config.language_patterns = _coerce_language_patterns(payload["language_patterns"])
    if "extra_options" in payload:
        config.extra_options = list(
            _coerce_str_list(payload["extra_options"], "extra_options")
        )
    if "rescan_threshold" in payload:
        config.rescan_threshold = _coerce_threshold(payload["rescan_threshold"])
    if "indexer_timeout" in payload:
        config.indexer_timeout = _coerce_timeout(payload["indexer_timeout"])
    if "snapshot_backend" in payload:
        config.snapshot_backend = _normalize_snapshot_backend(payload["snapshot_backend"])
    if "auto_generate" in payload:
        config.auto_generate = _coerce_bool(payload["auto_generate"], "auto_generate")
    if "external_tags" in payload:
        config.external_tags = list(
            _coerce_str_list(payload["external_tags"], "external_tags")
        )


def _coerce_required_str(value: object, field: str, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, str):
        cleaned = value.strip()
        return cleaned or default
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))


def _coerce_str_list(value: object, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    cleaned: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
        token = item.strip()
        if token:
            cleaned.append(token)
    return tuple(cleaned)


def _coerce_language_patterns(value: object) -> dict[str, list[str]]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field="language_patterns"))
    patterns: dict[str, list[str]] = {}
    for lang, raw in value.items():
        if not isinstance(lang, str) or not lang.strip():
            raise ValueError(
                Messages.ERROR_CONFIG_VALUE_INVALID.format(field="language_patterns")
            )
        items = _coerce_str_list(raw, "language_patterns")
        if items:
            patterns[lang.strip()] = list(items)
    return patterns


def _coerce_int(value: object, field: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return default
        try:
            return int(cleaned)
        except ValueError as exc:
            raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field)) from exc
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))


def _coerce_threshold(value: object) -> int:
    threshold = _coerce_int(value, "rescan_threshold", DEFAULT_RESCAN_THRESHOLD)
    if threshold < 1:
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field="rescan_threshold"))
    return threshold


def _coerce_timeout(value: object) -> float:
    if value is None:
        return DEFAULT_INDEXER_TIMEOUT
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field="indexer_timeout"))
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ValueError(
            Messages.ERROR_CONFIG_VALUE_INVALID.format(field="indexer_timeout")
        ) from exc
    if timeout <= 0:
        raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field="indexer_timeout"))
    return timeout


def _coerce_bool(value: object, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        cleaned = value.strip().lower()
        if cleaned in {"true", "1", "yes", "on"}:
            return True
        if cleaned in {"false", "0", "no", "off"}:
            return False
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))


def _normalize_snapshot_backend(value: object) -> str:
    if value is None:
        return DEFAULT_SNAPSHOT_BACKEND
    if isinstance(value, str):
        normalized = value.strip().lower() or DEFAULT_SNAPSHOT_BACKEND
        if normalized in SUPPORTED_SNAPSHOT_BACKENDS:
            return normalized
    raise ValueError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field="snapshot_backend"))
