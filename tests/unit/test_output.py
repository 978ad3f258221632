from __future__ import annotations

import logging
from datetime import datetime

from rich.logging import RichHandler

from tagkeeper import logs, output


class _FakeConsole:
    def __init__(self, encoding):
        self.encoding = encoding


def test_status_icon_ascii_fallback(monkeypatch):
    monkeypatch.setattr(output.sys, "stdout", _FakeConsole("ascii"))

    assert output.format_status_icon(True, _FakeConsole("ascii")) == "[green]OK[/green]"
    assert output.format_status_icon(False, _FakeConsole(None)) == "[red]X[/red]"


def test_status_icon_unicode():
    assert "✓" in output.format_status_icon(True, _FakeConsole("utf-8"))


def test_format_timestamp():
    assert output.format_timestamp(None) == "never"
    assert output.format_timestamp(0.0) == "never"
    stamp = datetime(2024, 5, 1, 12, 30, 0).timestamp()
    assert output.format_timestamp(stamp) == "2024-05-01 12:30:00"


def test_format_size():
    assert output.format_size(5) == "5 B"
    assert output.format_size(1536) == "1.5 KiB"
    assert output.format_size(3 * 1024 * 1024) == "3.0 MiB"


def test_configure_logging_installs_single_rich_handler():
    logger = logs.configure_logging()
    logs.configure_logging(verbose=True)

    assert logger.name == "tagkeeper"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], RichHandler)

    logs.configure_logging()
    assert logger.level == logging.WARNING
