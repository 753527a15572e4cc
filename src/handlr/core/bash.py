"""Turning command strings into argv, with bashlex as the parsing authority."""

from __future__ import annotations

import bashlex
import bashlex.errors


def _simple_words(node) -> list[str] | None:
    """Words of a plain command node, or None if it is anything else."""
    if getattr(node, "kind", None) != "command":
        return None
    words = []
    for part in node.parts:
        if part.kind != "word":
            # Redirects, assignments, etc. need a real shell
            return None
        if getattr(part, "parts", None):
            # $VAR, $(...), ~ and friends only expand in a shell
            return None
        words.append(part.word)
    return words


def split_words(command: str) -> list[str] | None:
    """Split a single simple command into words, quotes removed.

    Returns None when the command needs a shell: pipelines, lists,
    redirects, expansions, or syntax bashlex rejects.
    """
    command = command.strip()
    if not command:
        return []
    try:
        nodes = bashlex.parse(command)
    except (bashlex.errors.ParsingError, NotImplementedError):
        return None
    if len(nodes) != 1:
        return None
    return _simple_words(nodes[0]) or None


def split_command(command: str) -> list[str]:
    """Split a command string into argv.

    A single simple command is split the way bash would. Anything else
    is handed to ``sh -c`` verbatim.
    """
    command = command.strip()
    words = split_words(command)
    if words is None:
        return ["sh", "-c", command]
    return words
