"""Interactive selection through an external menu program (rofi, fzf, ...)."""

from __future__ import annotations

import subprocess
from collections.abc import Iterable

import structlog

from handlr.core.bash import split_command
from handlr.core.errors import Cancelled, SelectorError

log = structlog.get_logger(__name__)


def select(command: str, options: Iterable[str]) -> str:
    """Pipe options (one per line) to the selector and return its choice.

    Blocks until the selector closes its stdout; there is no timeout.
    Empty output means the user cancelled and raises Cancelled.
    """
    argv = split_command(command)
    if not argv:
        raise SelectorError(command)
    try:
        process = subprocess.Popen(
            argv,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        log.error("selector_spawn_failed", command=command, error=str(e))
        raise SelectorError(command) from e

    output, _ = process.communicate("\n".join(options))
    choice = (output or "").rstrip()
    if not choice:
        raise Cancelled()
    log.info("selected", choice=choice)
    return choice
