"""Installed applications indexed by MIME type.

Built once per run from the installed desktop entries, read-only after.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import structlog

from handlr.core.desktop_entry import DesktopEntry, get_entry, iter_entries
from handlr.core.errors import HandlrError
from handlr.core.handler import DesktopHandler
from handlr.core.mime import MimeType

log = structlog.get_logger(__name__)


@dataclass
class SystemCatalog:
    associations: dict[MimeType, list[DesktopHandler]] = field(default_factory=dict)
    """MIME -> installed handlers declaring it, in discovery order."""

    unassociated: list[DesktopHandler] = field(default_factory=list)
    """Installed handlers that declare no MIME types (e.g. terminals)."""

    @classmethod
    def populate(
        cls,
        entries: Callable[[], Iterable[tuple[str, DesktopEntry]]] = iter_entries,
    ) -> SystemCatalog:
        catalog = cls()
        for file_name, entry in entries():
            handler = DesktopHandler(file_name)
            if not entry.mime_types:
                catalog.unassociated.append(handler)
                continue
            for mime in entry.mime_types:
                handlers = catalog.associations.setdefault(mime, [])
                if handler not in handlers:
                    handlers.append(handler)
        log.debug(
            "catalog_built",
            mimes=len(catalog.associations),
            unassociated=len(catalog.unassociated),
        )
        return catalog

    def get_handler(self, mime: MimeType) -> DesktopHandler | None:
        """Primary installed handler for mime, if any."""
        handlers = self.associations.get(mime)
        if not handlers:
            log.debug("catalog_miss", mime=str(mime))
            return None
        log.debug("catalog_hit", mime=str(mime), handler=str(handlers[0]))
        return handlers[0]

    def terminal_emulator(self) -> tuple[DesktopHandler, DesktopEntry] | None:
        """First unassociated entry categorized as a terminal emulator."""
        for handler in self.unassociated:
            try:
                entry = get_entry(handler)
            except HandlrError:
                continue
            if entry.is_terminal_emulator():
                return handler, entry
        return None
