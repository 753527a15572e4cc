"""User MIME associations, persisted as mimeapps.list.

Two independent namespaces, both MIME -> ordered handler list:

- default_apps ("Default Applications"): set by the user via handlr,
  consulted first during resolution.
- added_associations ("Added Associations"): lower precedence, usually
  written by other tools (and by handlr when it guesses a terminal).

The first handler of a list is the primary one. Lists never hold the
same handler twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog
import xdg.BaseDirectory

from handlr.core.errors import BadMimeType
from handlr.core.handler import DesktopHandler
from handlr.core.mime import MimeType

log = structlog.get_logger(__name__)

MIMEAPPS_LIST_FILE = "mimeapps.list"
ADDED_ASSOCIATIONS_SECTION = "Added Associations"
DEFAULT_APPLICATIONS_SECTION = "Default Applications"

HandlerList = list[DesktopHandler]


def default_path() -> Path:
    return Path(xdg.BaseDirectory.xdg_config_home) / MIMEAPPS_LIST_FILE


@dataclass
class MimeRegistry:
    """Parsed mimeapps.list."""

    default_apps: dict[MimeType, HandlerList] = field(default_factory=dict)
    added_associations: dict[MimeType, HandlerList] = field(default_factory=dict)
    path: Path | None = field(default=None, compare=False)

    # === Default Applications ===

    def add_handler(self, mime: MimeType, handler: DesktopHandler) -> None:
        """Append handler to mime's list. The primary handler is unchanged."""
        handlers = self.default_apps.setdefault(mime, [])
        if handler not in handlers:
            handlers.append(handler)

    def set_handler(self, mime: MimeType, handler: DesktopHandler) -> None:
        """Replace mime's whole list with just handler."""
        self.default_apps[mime] = [handler]

    def unset_handler(self, mime: MimeType) -> bool:
        """Drop mime from default apps. Returns whether anything changed."""
        return self.default_apps.pop(mime, None) is not None

    def remove_handler(self, mime: MimeType, handler: DesktopHandler) -> bool:
        """Remove one handler from mime's list. Returns whether anything changed.

        An emptied list is dropped so lookups fall through to later sources.
        """
        handlers = self.default_apps.get(mime)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del self.default_apps[mime]
        return True

    # === Added Associations ===

    def add_association(self, mime: MimeType, handler: DesktopHandler) -> None:
        handlers = self.added_associations.setdefault(mime, [])
        if handler not in handlers:
            handlers.append(handler)

    # === Persistence ===

    def save(self) -> None:
        """Rewrite the whole file. Last writer wins; there is no locking."""
        path = self.path or default_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(serialize_registry(self))
        log.info("registry_saved", path=str(path))


def _parse_handlers(value: str) -> HandlerList:
    handlers: HandlerList = []
    for token in value.split(";"):
        if not token:
            continue
        try:
            handler = DesktopHandler.parse(token)
        except ValueError:
            continue
        if handler not in handlers:
            handlers.append(handler)
    return handlers


def parse_registry(text: str, path: Path | None = None) -> MimeRegistry:
    """Parse mimeapps.list text.

    Lenient: unknown sections, malformed lines,
    bad MIME keys, and empty handler lists are skipped, never fatal.
    """
    registry = MimeRegistry(path=path)
    sections = {
        ADDED_ASSOCIATIONS_SECTION: registry.added_associations,
        DEFAULT_APPLICATIONS_SECTION: registry.default_apps,
    }
    current: dict[MimeType, HandlerList] | None = None

    for lineno, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("[") and line.endswith("]"):
            current = sections.get(line[1:-1].strip())
            continue

        if current is None or "=" not in line:
            continue

        key, value = line.split("=", 1)
        try:
            mime = MimeType.parse(key)
        except BadMimeType:
            log.debug("registry_bad_mime", line=lineno, key=key)
            continue

        handlers = _parse_handlers(value.strip())
        if handlers:
            current[mime] = handlers

    return registry


def _serialize_section(name: str, entries: dict[MimeType, HandlerList]) -> str:
    lines = [f"[{name}]"]
    for mime in sorted(entries):
        joined = ";".join(str(h) for h in entries[mime])
        lines.append(f"{mime}={joined};")
    return "\n".join(lines) + "\n"


def serialize_registry(registry: MimeRegistry) -> str:
    """Render both sections, MIME keys sorted ascending."""
    return (
        _serialize_section(ADDED_ASSOCIATIONS_SECTION, registry.added_associations)
        + "\n"
        + _serialize_section(DEFAULT_APPLICATIONS_SECTION, registry.default_apps)
    )


def load_registry(path: Path | None = None) -> MimeRegistry:
    """Read mimeapps.list. A missing file is an empty registry."""
    path = path or default_path()
    if not path.is_file():
        log.debug("registry_missing", path=str(path))
        return MimeRegistry(path=path)
    return parse_registry(path.read_text(), path=path)
