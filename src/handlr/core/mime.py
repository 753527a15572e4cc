"""MIME types and path classification.

A MimeType is the key of every association map. UserPath is what the
user hands to ``open``/``mime``: either a URL (classified by scheme) or
a file (classified by content, then by name).
"""

from __future__ import annotations

import mimetypes
import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit
from urllib.request import url2pathname

import structlog
import xdg.Mime

from handlr.core.errors import AmbiguousExtension, BadMimeType, BadPath

log = structlog.get_logger(__name__)

_TOKEN = r"[a-z0-9!#$&^_.+-]+"
_MIME_RE = re.compile(rf"^({_TOKEN})/([a-z0-9!#$&^_.+*-]+)$")

DIRECTORY = "inode/directory"
OCTET_STREAM = "application/octet-stream"
SCHEME_FMT = "x-scheme-handler/{}"


@dataclass(frozen=True, order=True)
class MimeType:
    """A normalized ``type/subtype`` essence, ordered by its text."""

    essence: str

    @classmethod
    def parse(cls, text: str) -> MimeType:
        """Parse and normalize a MIME string. Parameters after ``;`` are dropped.

        Raises BadMimeType if the text is not ``type/subtype``.
        """
        essence = text.split(";", 1)[0].strip().lower()
        if not _MIME_RE.match(essence):
            raise BadMimeType(text)
        return cls(essence)

    @property
    def type(self) -> str:
        return self.essence.split("/", 1)[0]

    @property
    def subtype(self) -> str:
        return self.essence.split("/", 1)[1]

    def wildcard(self) -> MimeType:
        """The ``type/*`` form of this MIME."""
        return MimeType(f"{self.type}/*")

    def is_wildcard(self) -> bool:
        return self.subtype.endswith("*")

    def __str__(self) -> str:
        return self.essence


def _xdg_name(mt) -> str | None:
    if not mt:
        return None
    return f"{mt.media}/{mt.subtype}"


def mime_by_name(path: str) -> str | None:
    """Guess a MIME type from a file name alone."""
    mimetype = _xdg_name(xdg.Mime.get_type_by_name(path))
    if not mimetype:
        mimetype = mimetypes.guess_type(path, strict=False)[0]
    return mimetype


def mime_by_content(path: str) -> str | None:
    """Sniff the MIME type of an existing regular file from its contents."""
    return _xdg_name(xdg.Mime.get_type_by_contents(path))


def classify_file(path: str) -> MimeType:
    """Classify a local path.

    Directories map to inode/directory. Existing files are sniffed first,
    with a generic octet-stream sniff yielding to a name-based guess.
    Missing files are classified by name only.
    """
    try:
        mode = os.stat(path).st_mode
    except FileNotFoundError:
        mode = None
    except PermissionError as e:
        log.warning("stat_failed", path=path, error=str(e))
        mode = None

    if mode is not None and stat.S_ISDIR(mode):
        return MimeType(DIRECTORY)

    candidates: list[str | None] = []
    if mode is not None and stat.S_ISREG(mode):
        sniffed = mime_by_content(path)
        if sniffed == OCTET_STREAM:
            candidates = [mime_by_name(path), sniffed]
        else:
            candidates = [sniffed, mime_by_name(path)]
    else:
        candidates = [mime_by_name(path)]

    for candidate in candidates:
        if candidate:
            log.debug("classified", path=path, mime=candidate)
            return MimeType.parse(candidate)

    raise AmbiguousExtension(Path(path).suffix or Path(path).name)


def mime_or_extension(text: str) -> MimeType:
    """Accept either a MIME string or a file extension like ``.pdf``."""
    if text.startswith("."):
        mimetype = mime_by_name(f"file{text}")
        if not mimetype:
            raise AmbiguousExtension(text)
        return MimeType.parse(mimetype)
    return MimeType.parse(text)


def _normalize_url(text: str, parts) -> str:
    """Lowercase scheme and host; a bare host gets the root path.

    Regex handlers and selectors see this form, so ``HTTPS://Example.COM``
    and ``https://example.com/`` match the same rules.
    """
    if not parts.netloc:
        return f"{parts.scheme}:{text.partition(':')[2]}"
    userinfo, at, host = parts.netloc.rpartition("@")
    return urlunsplit(
        (parts.scheme, userinfo + at + host.lower(), parts.path or "/", parts.query, parts.fragment)
    )


@dataclass(frozen=True)
class UserPath:
    """A path or URL given on the command line."""

    value: str
    scheme: str | None = None  # None for local files

    @classmethod
    def parse(cls, text: str) -> UserPath:
        """Split URLs from local paths. ``file://`` URLs become local paths."""
        parts = urlsplit(text)
        # Single letters are drive names, not schemes
        if len(parts.scheme) <= 1:
            return cls(text)
        if parts.scheme == "file":
            if parts.netloc not in ("", "localhost") or not parts.path:
                raise BadPath(parts.path or text)
            return cls(url2pathname(parts.path))
        return cls(_normalize_url(text, parts), parts.scheme)

    @property
    def is_url(self) -> bool:
        return self.scheme is not None

    def get_mime(self) -> MimeType:
        if self.scheme is not None:
            return MimeType(SCHEME_FMT.format(self.scheme))
        return classify_file(self.value)

    def __str__(self) -> str:
        return self.value


# Not in the mimetypes database, but handlers commonly claim them
EXTRA_MIMES = (
    DIRECTORY,
    "x-scheme-handler/http",
    "x-scheme-handler/https",
    "x-scheme-handler/terminal",
)


def known_mimes() -> list[str]:
    """MIME types offered for shell completion, extras first."""
    mimetypes.init()
    result = list(EXTRA_MIMES)
    seen = set(result)
    known = set(mimetypes.types_map.values()) | set(mimetypes.common_types.values())
    for mimetype in sorted(known):
        if mimetype not in seen:
            seen.add(mimetype)
            result.append(mimetype)
    return result
