from __future__ import annotations

import pytest

from tagkeeper.config import load_config
from tagkeeper.services.config_service import (
    apply_config_updates,
    get_config_snapshot,
    parse_regex_rule,
)


def test_parse_regex_rule_splits_on_first_equals():
    assert parse_regex_rule("python=/^X = (.*)/\\1/") == ("python", "/^X = (.*)/\\1/")


@pytest.mark.parametrize("value", ["python", "=/x/", "python="])
def test_parse_regex_rule_rejects_malformed(value):
    with pytest.raises(ValueError, match="LANG=PATTERN"):
        parse_regex_rule(value)


def test_add_and_remove_extensions():
    result = apply_config_updates(add_extensions=["EL", ".zig"], remove_extensions=[".py"])

    cfg = load_config()
    assert ".el" in cfg.extensions
    assert ".zig" in cfg.extensions
    assert ".py" not in cfg.extensions
    assert result.extensions_added == (".el", ".zig")
    assert result.extensions_removed == (".py",)
    assert result.changed is True


def test_blank_extensions_rejected():
    with pytest.raises(ValueError):
        apply_config_updates(add_extensions=[" , "])


def test_ignore_globs_update():
    result = apply_config_updates(add_ignore=["third_party/"], remove_ignore=["dist/"])

    cfg = load_config()
    assert "third_party/" in cfg.ignore_globs
    assert "dist/" not in cfg.ignore_globs
    assert result.ignore_removed == ("dist/",)


def test_regex_and_option_updates():
    result = apply_config_updates(
        add_regex=["lisp=/(defq ([a-z]+)/\\1/"],
        add_options=["--fields=+n"],
    )

    cfg = load_config()
    assert cfg.language_patterns == {"lisp": ["/(defq ([a-z]+)/\\1/"]}
    assert cfg.extra_options == ["--fields=+n"]
    assert result.regex_added == ("lisp",)

    cleared = apply_config_updates(clear_regex=["lisp", "nope"], clear_options=True)

    cfg = load_config()
    assert cfg.language_patterns == {}
    assert cfg.extra_options == []
    assert cleared.regex_cleared == ("lisp",)
    assert cleared.options_cleared is True


def test_invalid_regex_rule_applies_nothing():
    with pytest.raises(ValueError):
        apply_config_updates(add_extensions=[".zig"], add_regex=["broken"])

    assert ".zig" not in load_config().extensions


def test_scalar_updates():
    result = apply_config_updates(
        rescan_threshold=10,
        ctags_program="uctags",
        snapshot_backend="scandir",
        auto_generate=False,
        respect_gitignore=False,
    )

    cfg = get_config_snapshot()
    assert cfg.rescan_threshold == 10
    assert cfg.ctags_program == "uctags"
    assert cfg.snapshot_backend == "scandir"
    assert cfg.auto_generate is False
    assert cfg.respect_gitignore is False
    assert result.threshold_set and result.ctags_set and result.auto_generate_set


def test_no_updates_reports_unchanged():
    assert apply_config_updates().changed is False
