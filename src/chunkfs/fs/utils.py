"""Path utilities, mimetype detection, directory emulation."""

from __future__ import annotations

import mimetypes
import posixpath
from typing import TYPE_CHECKING

from chunkfs.models.paths import TYPE_DIRECTORY

from .types import FileMetadata

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_MIME_TYPE = "text/plain"
BINARY_MIME_TYPE = "application/octet-stream"

# Leading-byte signatures checked when the extension gives no answer
MAGIC_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"%PDF-", "application/pdf"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b", "application/gzip"),
    (b"BM", "image/bmp"),
    (b"RIFF", "audio/x-wav"),
    (b"<?xml", "text/xml"),
    (b"{\\rtf", "text/rtf"),
]

SNIFF_SIZE = 4096
"""How many leading bytes of in-memory content are kept for sniffing."""


# =============================================================================
# Path Utilities
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalize a virtual file system path.

    - Ensures leading /
    - Resolves .. and . references
    - Removes double slashes
    - Removes trailing slash (except for root)

    Examples:
        normalize_path("foo.txt") -> "/foo.txt"
        normalize_path("/foo//bar.txt") -> "/foo/bar.txt"
        normalize_path("/foo/../bar.txt") -> "/bar.txt"
        normalize_path("/foo/") -> "/foo"
        normalize_path("") -> "/"
    """
    if not path:
        return "/"

    path = path.strip()

    if not path.startswith("/"):
        path = "/" + path

    path = posixpath.normpath(path)

    # posixpath keeps a leading "//" as-is
    if path.startswith("//"):
        path = "/" + path.lstrip("/")

    if path != "/" and path.endswith("/"):
        path = path[:-1]

    return path


def split_path(path: str) -> tuple[str, str]:
    """Split path into (parent_dir, filename).

    Examples:
        split_path("/foo/bar.txt") -> ("/foo", "bar.txt")
        split_path("/foo.txt") -> ("/", "foo.txt")
        split_path("/") -> ("/", "")
    """
    path = normalize_path(path)
    if path == "/":
        return "/", ""
    return posixpath.split(path)


def validate_path(path: str) -> tuple[bool, str]:
    """Validate a path for characters and length the store cannot hold.

    Returns:
        (is_valid, error_message) - error_message is empty if valid
    """
    if "\x00" in path:
        return False, "Path contains null bytes"

    for ch in path:
        code = ord(ch)
        if 0x01 <= code <= 0x1F and ch not in ("\t", "\n", "\r"):
            return False, f"Path contains control character: 0x{code:02x}"

    if len(path) > 4096:
        return False, "Path too long (max 4096 characters)"

    if normalize_path(path) == "/":
        return False, "Path must name an entry below the root"

    return True, ""


def escape_like(value: str) -> str:
    """Escape LIKE wildcards in *value* (escape character is backslash)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def replace_prefix(path: str, old_prefix: str, new_prefix: str) -> str:
    """Swap the leading *old_prefix* of *path* for *new_prefix*."""
    return new_prefix + path[len(old_prefix):]


# =============================================================================
# Mimetype Detection
# =============================================================================


def sniff_mime_type(sample: bytes) -> str:
    """Guess a mimetype from the leading bytes of some content.

    Known signatures first, then a text/binary heuristic: null bytes or
    more than 30% non-printable control characters means binary.
    """
    if not sample:
        return DEFAULT_MIME_TYPE

    for signature, mime_type in MAGIC_SIGNATURES:
        if sample.startswith(signature):
            return mime_type

    if b"\x00" in sample:
        return BINARY_MIME_TYPE

    non_printable = sum(1 for byte in sample if byte < 9 or (13 < byte < 32))
    if (non_printable / len(sample)) > 0.3:
        return BINARY_MIME_TYPE
    return DEFAULT_MIME_TYPE


def guess_mime_type(path: str, sample: bytes | None = None) -> str:
    """Guess the mimetype of an entry by extension, then by content.

    *sample* is only supplied for in-memory content; streamed content is
    typed by extension alone.
    """
    mime_type, _ = mimetypes.guess_type(path)
    if mime_type:
        return mime_type
    if sample is not None:
        return sniff_mime_type(sample[:SNIFF_SIZE])
    return DEFAULT_MIME_TYPE


# =============================================================================
# Directory Emulation
# =============================================================================


def emulate_directories(entries: Iterable[FileMetadata], base: str) -> list[FileMetadata]:
    """Add directory entries implied by *entries* but missing from them.

    Only directories strictly below *base* are synthesized; *base* itself
    is listed only when it has a row of its own.  Synthesized entries
    carry no ``path_id``.
    """
    listing = list(entries)
    base = normalize_path(base)
    floor = "/" if base == "/" else base + "/"

    listed_dirs = {e.path for e in listing if e.type == TYPE_DIRECTORY}
    implied: list[str] = []
    seen: set[str] = set()

    for entry in listing:
        parent, _ = split_path(entry.path)
        while parent != "/" and parent.startswith(floor) and parent not in seen:
            seen.add(parent)
            implied.append(parent)
            parent, _ = split_path(parent)

    listing.extend(
        FileMetadata(path=d, type=TYPE_DIRECTORY) for d in implied if d not in listed_dirs
    )
    return listing
