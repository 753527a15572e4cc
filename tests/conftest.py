"""
Shared test fixtures for handlr tests.
"""

import logging
import subprocess
from pathlib import Path

import pytest
import structlog

from handlr.core import command as command_mod
from handlr.core import desktop_entry
from handlr.core import registry as registry_mod
from handlr.core.config import Config
from handlr.core.registry import MimeRegistry
from handlr.core.resolver import Resolver
from handlr.core.system import SystemCatalog

DESKTOP_FILES = {
    "mpv.desktop": """\
[Desktop Entry]
Type=Application
Name=mpv Media Player
Exec=mpv --player-operation-mode=pseudo-gui -- %U
MimeType=video/mp4;video/webm;audio/ogg;
""",
    "helix.desktop": """\
[Desktop Entry]
Type=Application
Name=Helix
Exec=hx %F
Terminal=true
MimeType=text/plain;
""",
    "nvim.desktop": """\
[Desktop Entry]
Type=Application
Name=Neovim
Exec=nvim %F
Terminal=true
MimeType=text/plain;
""",
    "firefox.desktop": """\
[Desktop Entry]
Type=Application
Name=Firefox
Exec=firefox %u
MimeType=text/html;x-scheme-handler/http;x-scheme-handler/https;
""",
    "wezterm.desktop": """\
[Desktop Entry]
Type=Application
Name=WezTerm
Exec=wezterm start --cwd .
Categories=System;TerminalEmulator;
""",
    "calculator.desktop": """\
[Desktop Entry]
Type=Application
Name=Calculator
Exec=gnome-calculator
Categories=Utility;
""",
    "broken.desktop": """\
[Desktop Entry]
Type=Application
Name=Broken
""",
}


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep structlog output out of captured stdout."""
    structlog.configure(
        processors=[structlog.processors.JSONRenderer()],
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def apps_dir(tmp_path, monkeypatch) -> Path:
    """An applications dir with sample desktop entries, used for all lookups."""
    path = tmp_path / "applications"
    path.mkdir()
    for name, text in DESKTOP_FILES.items():
        (path / name).write_text(text)
    monkeypatch.setattr(desktop_entry, "application_dirs", lambda: [path])
    return path


@pytest.fixture
def registry_path(tmp_path, monkeypatch) -> Path:
    """mimeapps.list location, redirected into tmp_path."""
    path = tmp_path / "config" / "mimeapps.list"
    monkeypatch.setattr(registry_mod, "default_path", lambda: path)
    return path


class Recorder:
    """Callable stand-in that records its calls and returns canned values."""

    def __init__(self, result=None):
        self.calls = []
        self.result = result

    def __call__(self, *args, **kwargs):
        self.calls.append(args + tuple(kwargs.values()))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def make_resolver(registry_path):
    """Factory for a Resolver with in-memory state and fake collaborators."""

    def _make(
        registry: MimeRegistry | None = None,
        catalog: SystemCatalog | None = None,
        config: Config | None = None,
        running_in_terminal: bool = False,
        select=None,
        notify=None,
    ) -> Resolver:
        if registry is None:
            registry = MimeRegistry()
        registry.path = registry_path
        return Resolver(
            registry=registry,
            catalog=catalog or SystemCatalog(),
            config=config or Config(),
            running_in_terminal=running_in_terminal,
            select=select or Recorder(""),
            notify=notify or Recorder(),
        )

    return _make


class FakeSubprocess:
    """Stands in for the subprocess module inside handlr.core.command."""

    DEVNULL = subprocess.DEVNULL

    def __init__(self):
        self.calls = []

    def Popen(self, argv, **kwargs):  # noqa: N802
        self.calls.append(("popen", argv))

    def run(self, argv, **kwargs):
        self.calls.append(("run", argv))


@pytest.fixture
def spawned(monkeypatch):
    """Record ("popen" | "run", argv) for every handler spawn instead of running it.

    Only handler execution is faked; the selector still runs real processes.
    """
    fake = FakeSubprocess()
    monkeypatch.setattr(command_mod, "subprocess", fake)
    return fake.calls
