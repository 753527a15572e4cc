"""Handler identities and the regex router.

A handler is one of exactly two things:

- DesktopHandler: the file name of an installed desktop entry, e.g.
  ``mpv.desktop``. Not validated until the entry is actually read.
- RegexHandler: an inline command from the config file, selected when a
  path or URL matches one of its patterns.

Callers dispatch on the type with ``match``; there is no shared base
class beyond the ``Handler`` alias.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog

from handlr.core.errors import NotFound

log = structlog.get_logger(__name__)


@dataclass(frozen=True, order=True)
class DesktopHandler:
    """Reference to an installed desktop entry by file name."""

    name: str

    @classmethod
    def parse(cls, text: str) -> DesktopHandler:
        """Build a handler from a mimeapps.list token or CLI argument.

        Raises ValueError for blank tokens. Existence is checked lazily.
        """
        name = text.strip()
        if not name:
            raise ValueError("empty handler name")
        return cls(name)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class RegexHandler:
    """Inline command selected by matching a path or URL string.

    Equality and hashing use the pattern source text, so two rules with
    identically worded patterns are the same rule.
    """

    exec: str
    terminal: bool = False
    patterns: tuple[re.Pattern, ...] = field(default=())

    @classmethod
    def from_sources(
        cls, exec: str, sources: list[str], terminal: bool = False
    ) -> RegexHandler:
        """Compile pattern sources. Raises re.error on a bad pattern."""
        seen: dict[str, re.Pattern] = {}
        for source in sources:
            if source not in seen:
                seen[source] = re.compile(source)
        return cls(exec=exec, terminal=terminal, patterns=tuple(seen.values()))

    @property
    def sources(self) -> tuple[str, ...]:
        return tuple(p.pattern for p in self.patterns)

    def is_match(self, text: str) -> bool:
        """True if any pattern matches anywhere in text."""
        return any(p.search(text) for p in self.patterns)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegexHandler):
            return NotImplemented
        return (self.exec, self.terminal, self.sources) == (
            other.exec,
            other.terminal,
            other.sources,
        )

    def __hash__(self) -> int:
        return hash((self.exec, self.terminal, self.sources))

    def __str__(self) -> str:
        return self.exec


Handler = DesktopHandler | RegexHandler


@dataclass(frozen=True)
class RegexRouter:
    """Ordered regex rules. First match wins; there is no specificity."""

    rules: tuple[RegexHandler, ...] = ()

    def get_handler(self, text: str) -> RegexHandler:
        """Return the first rule matching text. Raises NotFound otherwise."""
        for rule in self.rules:
            if rule.is_match(text):
                log.debug("regex_match", path=text, patterns=list(rule.sources))
                return rule
        raise NotFound(text)
