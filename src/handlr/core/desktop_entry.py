"""Desktop entry reading and installed-application discovery (via pyxdg)."""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import structlog
import xdg.BaseDirectory
import xdg.DesktopEntry
import xdg.Exceptions

from handlr.core.errors import BadEntry, BadMimeType, NotFound
from handlr.core.handler import DesktopHandler, Handler, RegexHandler
from handlr.core.mime import MimeType

log = structlog.get_logger(__name__)

APP_DIR = "applications"
DESKTOP_EXTENSION = ".desktop"
TERMINAL_EMULATOR_CATEGORY = "TerminalEmulator"


@dataclass
class DesktopEntry:
    """The parts of a desktop entry handlr cares about."""

    name: str
    exec: str
    file_name: str = ""
    terminal: bool = False
    mime_types: list[MimeType] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)

    def is_terminal_emulator(self) -> bool:
        return TERMINAL_EMULATOR_CATEGORY in self.categories


def application_dirs() -> list[Path]:
    """Existing ``applications`` data dirs, user dir first."""
    return [Path(d) for d in xdg.BaseDirectory.load_data_paths(APP_DIR)]


def read_entry(path: Path) -> DesktopEntry:
    """Parse a desktop entry file. Raises BadEntry if unusable."""
    try:
        de = xdg.DesktopEntry.DesktopEntry(str(path))
    except xdg.Exceptions.Error as e:
        log.debug("entry_parse_failed", path=str(path), error=str(e))
        raise BadEntry(str(path), "Desktop Entry") from None

    name = de.getName()
    if not name:
        raise BadEntry(str(path), "Name")
    exec_ = de.getExec()
    if not exec_:
        raise BadEntry(str(path), "Exec")

    mime_types = []
    for raw in de.getMimeTypes():
        try:
            mime_types.append(MimeType.parse(raw))
        except BadMimeType:
            log.debug("entry_bad_mime", path=str(path), mime=raw)

    return DesktopEntry(
        name=name,
        exec=exec_,
        file_name=path.name,
        terminal=bool(de.getTerminal()),
        mime_types=mime_types,
        categories=list(de.getCategories()),
    )


def find_entry_path(name: str) -> Path:
    """Locate an installed desktop entry by file name. Raises NotFound."""
    for app_dir in application_dirs():
        candidate = app_dir / name
        if candidate.is_file():
            return candidate
    if os.path.isabs(name) and Path(name).is_file():
        return Path(name)
    raise NotFound(name)


def iter_entries() -> Iterator[tuple[str, DesktopEntry]]:
    """Yield (file name, entry) for every readable installed entry.

    A file name found in an earlier (higher priority) dir shadows the same
    name in later dirs. Unreadable entries are skipped.
    """
    seen: set[str] = set()
    for app_dir in application_dirs():
        for path in sorted(app_dir.glob(f"*{DESKTOP_EXTENSION}")):
            if path.name in seen:
                continue
            seen.add(path.name)
            try:
                yield path.name, read_entry(path)
            except BadEntry as e:
                log.debug("entry_skipped", path=str(path), reason=str(e))


def get_entry(handler: Handler) -> DesktopEntry:
    """Resolve a handler to the entry whose Exec will be run."""
    match handler:
        case DesktopHandler(name=name):
            return read_entry(find_entry_path(name))
        case RegexHandler():
            return DesktopEntry(
                name="", exec=handler.exec, terminal=handler.terminal
            )
    raise TypeError(f"not a handler: {handler!r}")
