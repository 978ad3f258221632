"""Logic helpers for the `tagkeeper config` command."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..config import (
    Config,
    add_extra_option,
    add_language_pattern,
    clear_extra_options,
    clear_language_patterns,
    load_config,
    set_auto_generate,
    set_ctags_program,
    set_extensions,
    set_ignore_globs,
    set_rescan_threshold,
    set_respect_gitignore,
    set_snapshot_backend,
)
from ..text import Messages
from ..utils import normalize_extensions, normalize_ignore_globs


@dataclass(slots=True)
class ConfigUpdateResult:
    extensions_added: tuple[str, ...] = ()
    extensions_removed: tuple[str, ...] = ()
    ignore_added: tuple[str, ...] = ()
    ignore_removed: tuple[str, ...] = ()
    regex_added: tuple[str, ...] = ()
    regex_cleared: tuple[str, ...] = ()
    options_added: tuple[str, ...] = ()
    options_cleared: bool = False
    threshold_set: bool = False
    ctags_set: bool = False
    snapshot_backend_set: bool = False
    auto_generate_set: bool = False
    respect_gitignore_set: bool = False

    @property
    def changed(self) -> bool:
        return any(
            (
                self.extensions_added,
                self.extensions_removed,
                self.ignore_added,
                self.ignore_removed,
                self.regex_added,
                self.regex_cleared,
                self.options_added,
                self.options_cleared,
                self.threshold_set,
                self.ctags_set,
                self.snapshot_backend_set,
                self.auto_generate_set,
                self.respect_gitignore_set,
            )
        )


def parse_regex_rule(value: str) -> tuple[str, str]:
    """Split ``LANG=PATTERN`` into its language and pattern parts."""
    language, sep, pattern = value.partition("=")
    language = language.strip()
    if not sep or not language or not pattern:
        raise ValueError(Messages.ERROR_REGEX_INVALID.format(value=value))
    return language, pattern


def apply_config_updates(
    *,
    add_extensions: Sequence[str] | None = None,
    remove_extensions: Sequence[str] | None = None,
    add_ignore: Sequence[str] | None = None,
    remove_ignore: Sequence[str] | None = None,
    add_regex: Sequence[str] | None = None,
    clear_regex: Sequence[str] | None = None,
    add_options: Sequence[str] | None = None,
    clear_options: bool = False,
    rescan_threshold: int | None = None,
    ctags_program: str | None = None,
    snapshot_backend: str | None = None,
    auto_generate: bool | None = None,
    respect_gitignore: bool | None = None,
) -> ConfigUpdateResult:
    """Apply config mutations and report which fields were updated."""

    result = ConfigUpdateResult()
    rules = [parse_regex_rule(value) for value in add_regex or ()]

    if add_extensions or remove_extensions:
        current = load_config().extensions
        added = normalize_extensions(add_extensions)
        removed = normalize_extensions(remove_extensions)
        if (add_extensions and not added) or (remove_extensions and not removed):
            raise ValueError(Messages.ERROR_EXTENSIONS_EMPTY)
        merged = normalize_extensions([*current, *added])
        remaining = tuple(ext for ext in merged if ext not in removed)
        set_extensions(remaining)
        result.extensions_added = added
        result.extensions_removed = tuple(ext for ext in removed if ext in current or ext in added)
    if add_ignore or remove_ignore:
        current_globs = load_config().ignore_globs
        added_globs = normalize_ignore_globs(add_ignore)
        removed_globs = normalize_ignore_globs(remove_ignore)
        merged_globs = normalize_ignore_globs([*current_globs, *added_globs])
        set_ignore_globs(tuple(glob for glob in merged_globs if glob not in removed_globs))
        result.ignore_added = added_globs
        result.ignore_removed = tuple(glob for glob in removed_globs if glob in merged_globs)
    for language in clear_regex or ():
        if clear_language_patterns(language):
            result.regex_cleared += (language.strip(),)
    for language, pattern in rules:
        add_language_pattern(language, pattern)
        result.regex_added += (language,)
    if clear_options:
        clear_extra_options()
        result.options_cleared = True
    for option in add_options or ():
        add_extra_option(option)
        result.options_added += (option.strip(),)
    if rescan_threshold is not None:
        set_rescan_threshold(rescan_threshold)
        result.threshold_set = True
    if ctags_program is not None:
        set_ctags_program(ctags_program)
        result.ctags_set = True
    if snapshot_backend is not None:
        set_snapshot_backend(snapshot_backend)
        result.snapshot_backend_set = True
    if auto_generate is not None:
        set_auto_generate(auto_generate)
        result.auto_generate_set = True
    if respect_gitignore is not None:
        set_respect_gitignore(respect_gitignore)
        result.respect_gitignore_set = True
    return result


def get_config_snapshot() -> Config:
    """Return the current configuration."""

    return load_config()
