"""handlr command line entry point.

Parses arguments, builds the per-run state (config, mimeapps.list,
installed application catalog), dispatches the subcommand, and applies
the error policy:

- success: exit 0
- selection cancelled: logged, exit 1
- any other failure: logged (echoed to stderr), and shown as a desktop
  notification when stdout is not a terminal, since nobody would see
  stderr then; exit 1
"""

from __future__ import annotations

import argparse
import sys
import tomllib
from collections.abc import Callable
from dataclasses import dataclass
from functools import cached_property
from typing import TextIO

import structlog

from handlr import __version__
from handlr.core.config import Config, configure_logging, load_config
from handlr.core.desktop_entry import iter_entries
from handlr.core.errors import Cancelled, HandlrError
from handlr.core.handler import DesktopHandler
from handlr.core.mime import MimeType, UserPath, known_mimes, mime_or_extension
from handlr.core.notify import notify
from handlr.core.registry import load_registry
from handlr.core.resolver import Resolver
from handlr.core.system import SystemCatalog
from handlr.core.table import print_table, render_json

log = structlog.get_logger(__name__)


@dataclass
class Context:
    """Per-invocation state handed to subcommands."""

    args: argparse.Namespace
    out: TextIO
    terminal_output: bool

    @cached_property
    def config(self) -> Config:
        config = load_config()
        return config.override_selector(
            getattr(self.args, "selector", None),
            getattr(self.args, "enable_selector", None),
        )

    @cached_property
    def resolver(self) -> Resolver:
        return Resolver(
            registry=load_registry(),
            catalog=SystemCatalog.populate(),
            config=self.config,
            running_in_terminal=self.terminal_output,
        )

    def write(self, text: str) -> None:
        print(text, file=self.out)


# === Subcommands ===


def _rows(mapping: dict[MimeType, list], separator: str) -> list[list[str]]:
    return [
        [str(mime), separator.join(str(h) for h in handlers)]
        for mime, handlers in sorted(mapping.items())
    ]


def _json_rows(mapping: dict[MimeType, list]) -> list[dict]:
    return [
        {"mime": str(mime), "handlers": [str(h) for h in handlers]}
        for mime, handlers in sorted(mapping.items())
    ]


def cmd_list(ctx: Context) -> None:
    resolver = ctx.resolver
    registry = resolver.registry
    headers = ["mime", "handlers"]

    if ctx.args.json:
        if ctx.args.all:
            ctx.write(
                render_json(
                    {
                        "added_associations": _json_rows(registry.added_associations),
                        "default_apps": _json_rows(registry.default_apps),
                        "system_apps": _json_rows(resolver.catalog.associations),
                    }
                )
            )
        else:
            ctx.write(render_json(_json_rows(registry.default_apps)))
        return

    # Readable on a terminal, parseable when piped
    separator = ",\n" if ctx.terminal_output else ", "

    def table(mapping: dict[MimeType, list]) -> None:
        print_table(ctx.out, headers, _rows(mapping, separator), ctx.terminal_output)

    if not ctx.args.all:
        table(registry.default_apps)
        return
    ctx.write("Default Apps")
    table(registry.default_apps)
    if registry.added_associations:
        ctx.write("Added associations")
        table(registry.added_associations)
    ctx.write("System Apps")
    table(resolver.catalog.associations)


def cmd_open(ctx: Context) -> None:
    ctx.resolver.open_paths([UserPath.parse(p) for p in ctx.args.paths])


def cmd_set(ctx: Context) -> None:
    ctx.resolver.set_handler(
        mime_or_extension(ctx.args.mime), DesktopHandler.parse(ctx.args.handler)
    )


def cmd_unset(ctx: Context) -> None:
    ctx.resolver.unset_handler(mime_or_extension(ctx.args.mime))


def cmd_launch(ctx: Context) -> None:
    ctx.resolver.launch(mime_or_extension(ctx.args.mime), list(ctx.args.args))


def cmd_get(ctx: Context) -> None:
    ctx.write(ctx.resolver.show_handler(mime_or_extension(ctx.args.mime), ctx.args.json))


def cmd_add(ctx: Context) -> None:
    ctx.resolver.add_handler(
        mime_or_extension(ctx.args.mime), DesktopHandler.parse(ctx.args.handler)
    )


def cmd_remove(ctx: Context) -> None:
    ctx.resolver.remove_handler(
        mime_or_extension(ctx.args.mime), DesktopHandler.parse(ctx.args.handler)
    )


def cmd_mime(ctx: Context) -> None:
    paths = [UserPath.parse(p) for p in ctx.args.paths]
    rows = [[str(p), str(p.get_mime())] for p in paths]
    if ctx.args.json:
        ctx.write(render_json([{"path": path, "mime": mime} for path, mime in rows]))
    else:
        print_table(ctx.out, ["path", "mime"], rows, ctx.terminal_output)


def cmd_autocomplete(ctx: Context) -> None:
    if ctx.args.desktop_files:
        for file_name, entry in iter_entries():
            ctx.write(f"{file_name}\t{entry.name}")
    elif ctx.args.mimes:
        for mimetype in known_mimes():
            ctx.write(mimetype)


COMMANDS: dict[str, Callable[[Context], None]] = {
    "list": cmd_list,
    "open": cmd_open,
    "set": cmd_set,
    "unset": cmd_unset,
    "launch": cmd_launch,
    "get": cmd_get,
    "add": cmd_add,
    "remove": cmd_remove,
    "mime": cmd_mime,
    "autocomplete": cmd_autocomplete,
}


# === Argument parsing ===


def _selector_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--selector", help="Override the configured selector command")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--enable-selector",
        dest="enable_selector",
        action="store_const",
        const=True,
        help="Choose among multiple default handlers interactively",
    )
    group.add_argument(
        "--disable-selector",
        dest="enable_selector",
        action="store_const",
        const=False,
        help="Always use the first default handler",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="handlr", description="Manage and use default applications"
    )
    parser.add_argument("--version", action="version", version=f"handlr {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More log output"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    sub = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    p = sub.add_parser("list", help="List default apps and their handlers")
    p.add_argument("-a", "--all", action="store_true", help="Include system apps")
    p.add_argument("--json", action="store_true")

    p = sub.add_parser("open", help="Open paths/URLs with their default handlers")
    p.add_argument("paths", nargs="+")
    _selector_args(p)

    p = sub.add_parser("set", help="Set the default handler for a mime/extension")
    p.add_argument("mime")
    p.add_argument("handler")

    p = sub.add_parser("unset", help="Unset the default handler for a mime/extension")
    p.add_argument("mime")

    p = sub.add_parser("launch", help="Launch the handler for a mime/extension")
    p.add_argument("mime")
    p.add_argument("args", nargs=argparse.REMAINDER)
    _selector_args(p)

    p = sub.add_parser("get", help="Show the handler for a mime/extension")
    p.add_argument("mime")
    p.add_argument("--json", action="store_true")
    _selector_args(p)

    p = sub.add_parser(
        "add", help="Add a handler for a mime/extension (the first one is default)"
    )
    p.add_argument("mime")
    p.add_argument("handler")

    p = sub.add_parser("remove", help="Remove a handler from a mime/extension")
    p.add_argument("mime")
    p.add_argument("handler")

    p = sub.add_parser("mime", help="Show the mime type of paths/URLs")
    p.add_argument("paths", nargs="+")
    p.add_argument("--json", action="store_true")

    p = sub.add_parser("autocomplete", help=argparse.SUPPRESS)
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("-d", "--desktop-files", action="store_true")
    group.add_argument("-m", "--mimes", action="store_true")

    return parser


# === Entry point ===


def main(argv: list[str] | None = None, out: TextIO | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(-1 if args.quiet else args.verbose)

    out = out or sys.stdout
    terminal_output = out.isatty()
    ctx = Context(args=args, out=out, terminal_output=terminal_output)

    try:
        COMMANDS[args.command](ctx)
    except Cancelled as e:
        log.info(str(e))
        return 1
    except (HandlrError, OSError, tomllib.TOMLDecodeError) as e:
        log.error(str(e))
        if not terminal_output:
            notify("handlr error", str(e), urgency="critical")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
