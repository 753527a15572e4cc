"""handlr exception hierarchy.

Every resolution, build, and config failure derives from HandlrError so
the entry point can catch one type and apply the exit/notify policy.
"""

from __future__ import annotations


class HandlrError(Exception):
    """Base for all handlr-specific errors."""


class NotFound(HandlrError):  # noqa: N818 - mirrors the resolution outcome
    """No handler is configured or installed for a key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"No handlers found for '{key}'")


class AmbiguousExtension(HandlrError):  # noqa: N818
    """A path or extension could not be classified into a MIME type."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Could not find a mimetype associated with the file extension: '{name}'"
        )


class BadMimeType(HandlrError):
    """Text that is not a valid ``type/subtype`` MIME string."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Bad mime: {text}")


class BadEntry(HandlrError):
    """A desktop entry is unreadable or lacks a required field."""

    def __init__(self, path: str, field: str = "Exec") -> None:
        self.path = path
        self.field = field
        super().__init__(
            f"The desktop entry at '{path}' lacks a valid '{field}' field"
        )


class BadPath(HandlrError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Bad path: {path}")


class SelectorError(HandlrError):
    """The interactive selector process could not be spawned or read."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"Error spawning selector process '{command}'")


class Cancelled(HandlrError):  # noqa: N818
    """The user dismissed the selector without choosing.

    Not a failure: the entry point logs it instead of notifying.
    """

    def __init__(self) -> None:
        super().__init__("Selection cancelled")


class NoTerminal(HandlrError):  # noqa: N818
    def __init__(self) -> None:
        super().__init__(
            "Please specify the default terminal with handlr set x-scheme-handler/terminal"
        )


class ConfigError(HandlrError):
    """The handlr config file has an invalid key or value."""


class UnknownChoice(HandlrError):  # noqa: N818
    """The selector printed something that is not one of the offered handlers.

    Like Cancelled, this ends resolution instead of falling through.
    """

    def __init__(self, choice: str) -> None:
        self.choice = choice
        super().__init__(f"Selected handler '{choice}' is not one of the options")
