"""Tables and JSON for ``list`` and ``mime``.

On a terminal, tables are drawn by rich with box borders and may hold
multi-line cells. When piped, rows are tab-separated so they are easy
to cut/awk.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any, TextIO

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text


def print_table(
    out: TextIO,
    headers: Sequence[str],
    rows: list[list[str]],
    terminal_output: bool,
) -> None:
    if not terminal_output:
        for row in [list(headers), *rows]:
            print("\t".join(row), file=out)
        return

    table = Table(box=box.SQUARE, show_lines=True)
    for header in headers:
        table.add_column(header)
    for row in rows:
        # Text, not str: MIME types and paths are not rich markup
        table.add_row(*(Text(cell) for cell in row))
    Console(file=out, highlight=False).print(table)


def render_json(data: Any) -> str:
    return json.dumps(data)
