"""
handlr - Open files and URLs with the right program.

Resolves default applications from mimeapps.list, regex rules, and the
installed desktop entries, then builds and runs the command line.
"""

from __future__ import annotations

__version__ = "0.11.0"

from handlr.core.resolver import Resolver

__all__ = ["Resolver", "__version__"]
