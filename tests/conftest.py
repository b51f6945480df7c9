"""Shared test fixtures for shokolat.

Provides reusable fixtures for isolated config environments, cache lists,
cache roots, output state, and running CLI commands.  These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import pytest

from shokolat.cache import CacheKeyResolver, CacheStore
from shokolat.models import KeyPolicy
from shokolat.output import OutputFormat, OutputManager, reset_output, set_output
from shokolat.patterns import PatternSet, parse_patterns


# ---------------------------------------------------------------------------
# Auto-reset global output and logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and package logger after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; when Typer's CliRunner swaps those streams the cached
    references go stale.  ``setup_logging`` also detaches the package
    logger from the root logger, which would hide records from ``caplog``.
    """
    yield
    reset_output()
    logger = logging.getLogger("shokolat")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Cache list and mirror fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def write_cache_list(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing cache-list lines to a file and returning its path."""

    def _write(*lines: str, name: str = "cachelist.txt") -> Path:
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def png_patterns() -> PatternSet:
    """A pattern set mirroring PNG images only."""
    return parse_patterns([r"\.png$"])


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    """An existing, empty cache root."""
    root = tmp_path / "mirror"
    root.mkdir()
    return root


@pytest.fixture
def resolver(cache_root: Path) -> CacheKeyResolver:
    """Full-path resolver over :func:`cache_root`."""
    return CacheKeyResolver(cache_root, KeyPolicy.FULL_PATH)


@pytest.fixture
def store() -> CacheStore:
    return CacheStore()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every settings and mirror directory at tmp_path.

    XDG_CONFIG_HOME, XDG_CACHE_HOME and XDG_DATA_HOME become
    subdirectories of tmp_path, SHOKOLAT_* variables are removed, and
    tmp_path becomes the working directory, so a test can drop a
    ``shokolat.json`` or cache list next to it.

    Returns:
        tmp_path.
    """
    monkeypatch.setattr("shokolat.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "SHOKOLAT_CACHE_ROOT",
        "SHOKOLAT_LISTEN",
        "SHOKOLAT_CACHE_LIST",
        "SHOKOLAT_VERBOSE",
        "SHOKOLAT_KEY_POLICY",
        "SHOKOLAT_WRITE_BACK",
        "SHOKOLAT_INTERCEPT_TLS",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, PLAIN-format OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
