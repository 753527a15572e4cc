"""Handler resolution.

Which handler opens a MIME type, first success wins:

1. default_apps[mime] (the selector may pick among several)
2. default_apps[type/*] (one wildcard level only)
3. added_associations[mime]
4. installed applications declaring mime
5. NotFound

For a path or URL, the config's regex handlers are tried before any of
that, against the path's string form, and win outright.

All state (registry, catalog, config, terminal flag) lives on the
Resolver, built once per run by the entry point.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from functools import cached_property

import structlog

from handlr.core import notify as notify_mod
from handlr.core import selector as selector_mod
from handlr.core.command import CommandBuilder, ExecMode
from handlr.core.config import Config
from handlr.core.desktop_entry import get_entry
from handlr.core.errors import (
    Cancelled,
    HandlrError,
    NoTerminal,
    NotFound,
    UnknownChoice,
)
from handlr.core.handler import DesktopHandler, Handler
from handlr.core.mime import MimeType, UserPath
from handlr.core.registry import MimeRegistry
from handlr.core.system import SystemCatalog

log = structlog.get_logger(__name__)

TERMINAL_MIME = MimeType("x-scheme-handler/terminal")
GUESSED_TERMINAL_BODY = (
    "Guessed terminal emulator: {}.\n\n"
    "If this is wrong, use `handlr set x-scheme-handler/terminal` to update it."
)


@dataclass
class Resolver:
    registry: MimeRegistry
    catalog: SystemCatalog
    config: Config = field(default_factory=Config)
    running_in_terminal: bool = False
    select: Callable[[str, Iterable[str]], str] = selector_mod.select
    notify: Callable[[str, str], None] = notify_mod.notify
    _terminal: str | None = field(default=None, init=False, repr=False)

    @cached_property
    def commands(self) -> CommandBuilder:
        return CommandBuilder(
            running_in_terminal=self.running_in_terminal,
            terminal_command=self.ensure_terminal_configured,
        )

    # === Resolution ===

    def _from_defaults(self, mime: MimeType) -> DesktopHandler:
        """Look up default_apps[mime]. Raises NotFound, or a selector outcome."""
        handlers = self.registry.default_apps.get(mime)
        if not handlers:
            raise NotFound(str(mime))
        if self.config.enable_selector and len(handlers) > 1:
            return self._choose(handlers)
        return handlers[0]

    def _choose(self, handlers: list[DesktopHandler]) -> DesktopHandler:
        labeled: list[tuple[str, DesktopHandler]] = []
        for handler in handlers:
            try:
                label = get_entry(handler).name
            except HandlrError as e:
                log.warning("entry_unreadable", handler=str(handler), error=str(e))
                label = str(handler)
            labeled.append((label, handler))

        choice = self.select(self.config.selector, [label for label, _ in labeled])
        for label, handler in labeled:
            if label == choice:
                return handler
        raise UnknownChoice(choice)

    def resolve(self, mime: MimeType) -> DesktopHandler:
        """Resolve mime to a handler. Raises NotFound, or Cancelled or
        UnknownChoice from the selector (neither falls through to later
        sources).
        """
        try:
            handler = self._from_defaults(mime)
            log.info("handler_found", source="default_apps", mime=str(mime))
            return handler
        except NotFound:
            pass

        wildcard = mime.wildcard()
        if wildcard != mime:
            try:
                handler = self._from_defaults(wildcard)
                log.info("handler_found", source="default_apps", mime=str(wildcard))
                return handler
            except NotFound:
                pass

        added = self.registry.added_associations.get(mime)
        if added:
            log.info("handler_found", source="added_associations", mime=str(mime))
            return added[0]

        handler = self.catalog.get_handler(mime)
        if handler is not None:
            log.info("handler_found", source="system", mime=str(mime))
            return handler

        log.info("handler_not_found", mime=str(mime))
        raise NotFound(str(mime))

    def resolve_path(self, path: UserPath) -> Handler:
        """Regex handlers first, then resolve by the path's MIME type."""
        try:
            handler = self.config.router.get_handler(str(path))
            log.info("handler_found", source="regex", path=str(path))
            return handler
        except NotFound:
            log.debug("no_regex_match", path=str(path))
        return self.resolve(path.get_mime())

    def assign_files_to_handlers(
        self, paths: Iterable[UserPath]
    ) -> dict[Handler, list[str]]:
        """Group paths by handler. Handlers keep first-appearance order,
        paths keep input order within each group.
        """
        groups: dict[Handler, list[str]] = {}
        for path in paths:
            groups.setdefault(self.resolve_path(path), []).append(str(path))
        return groups

    # === Terminal ===

    def ensure_terminal_configured(self) -> str:
        """Command prefix that runs a program in a new terminal window.

        Uses the x-scheme-handler/terminal handler. Without one, the first
        installed terminal emulator is guessed, saved as an added
        association, and announced once; later runs find the association.
        Cached for the rest of the process.
        """
        if self._terminal is not None:
            return self._terminal

        entry = None
        try:
            entry = get_entry(self.resolve(TERMINAL_MIME))
        except (Cancelled, UnknownChoice):
            raise
        except HandlrError as e:
            log.info("terminal_not_configured", reason=str(e))

        if entry is None:
            found = self.catalog.terminal_emulator()
            if found is None:
                raise NoTerminal()
            handler, entry = found
            self.registry.add_association(TERMINAL_MIME, handler)
            self.registry.save()
            log.warning("terminal_guessed", handler=str(handler))
            self.notify("handlr", GUESSED_TERMINAL_BODY.format(handler))

        command = entry.exec
        if self.config.term_exec_args:
            command = f"{command} {self.config.term_exec_args}"
        self._terminal = command
        return command

    # === Operations ===

    def get_command(self, handler: Handler, args: list[str]) -> str:
        return self.commands.get_command(handler, args)

    def open_paths(self, paths: Iterable[UserPath]) -> None:
        """Open each path with its handler, one invocation per handler.

        The first failing invocation aborts the rest.
        """
        for handler, args in self.assign_files_to_handlers(paths).items():
            log.debug("opening", handler=str(handler), paths=args)
            self.commands.execute(handler, ExecMode.OPEN, args)
        log.info("opened")

    def launch(self, mime: MimeType, args: list[str]) -> None:
        log.info("launching", mime=str(mime), args=args)
        self.commands.execute(self.resolve(mime), ExecMode.LAUNCH, args)

    def show_handler(self, mime: MimeType, output_json: bool = False) -> str:
        handler = self.resolve(mime)
        if not output_json:
            return str(handler)
        entry = get_entry(handler)
        return json.dumps(
            {
                "handler": str(handler),
                "name": entry.name,
                "cmd": self.commands.build(entry, []),
            }
        )

    def set_handler(self, mime: MimeType, handler: DesktopHandler) -> None:
        log.info("set_handler", mime=str(mime), handler=str(handler))
        self.registry.set_handler(mime, handler)
        self.registry.save()

    def add_handler(self, mime: MimeType, handler: DesktopHandler) -> None:
        log.info("add_handler", mime=str(mime), handler=str(handler))
        self.registry.add_handler(mime, handler)
        self.registry.save()

    def remove_handler(self, mime: MimeType, handler: DesktopHandler) -> None:
        log.info("remove_handler", mime=str(mime), handler=str(handler))
        if self.registry.remove_handler(mime, handler):
            self.registry.save()

    def unset_handler(self, mime: MimeType) -> None:
        log.info("unset_handler", mime=str(mime))
        if self.registry.unset_handler(mime):
            self.registry.save()
