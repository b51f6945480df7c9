"""Tests for output formatting and log setup.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline and quiet/verbose rules
- print_table and format_response in each mode
- Rich markup escaping of user-supplied text
- setup_logging handler installation
"""

from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler

from shokolat.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
    setup_logging,
)


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("shokolat.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("shokolat.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStreams:
    def test_data_goes_to_stdout(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("hello")
        captured = capsys.readouterr()
        assert captured.out == "hello\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error"])
    def test_diagnostics_go_to_stderr(self, capsys, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("diagnostic")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "diagnostic" in captured.err

    def test_quiet_hides_info_but_not_errors(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden too")
        mgr.warning("shown")
        mgr.error("also shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "Warning: shown" in err
        assert "Error: also shown" in err

    def test_debug_needs_verbose(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("quiet")
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("loud")
        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "[debug] loud" in err

    def test_rich_messages_keep_brackets(self, capsys, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.RICH)
        mgr.error("bad pattern '[a-z]'")
        assert "bad pattern '[a-z]'" in capsys.readouterr().err


class TestFormatting:
    def test_json_response(self, capsys):
        OutputManager(format=OutputFormat.JSON).format_response({"verdict": "serve", "line": 3})
        assert json.loads(capsys.readouterr().out) == {"verdict": "serve", "line": 3}

    def test_plain_response(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response(
            {"verdict": "forbid", "cached": False}
        )
        assert capsys.readouterr().out == "verdict\tforbid\ncached\tFalse\n"

    def test_json_table(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_table(
            ["URL", "Outcome"], [["http://a/x.png", "stored"]], title="Cache warm"
        )
        assert json.loads(capsys.readouterr().out) == [
            {"URL": "http://a/x.png", "Outcome": "stored"}
        ]

    def test_plain_table(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_table(
            ["Line", "Pattern"], [["1", r"\.png$"], ["3", r"\.gif$"]]
        )
        assert capsys.readouterr().out == "Line\tPattern\n1\t\\.png$\n3\t\\.gif$\n"


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert get_output() is get_output()

    def test_set_output(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr


class TestSetupLogging:
    def test_installs_single_rich_handler(self, quiet_output):
        setup_logging()
        logger = setup_logging(verbose=False)
        assert logger.name == "shokolat"
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)
        assert logger.level == logging.INFO
        assert logger.propagate is False

    def test_verbose_enables_debug(self, quiet_output):
        assert setup_logging(verbose=True).level == logging.DEBUG
