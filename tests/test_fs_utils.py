"""Tests for fs/utils.py — path helpers, mimetype detection, directory emulation."""

from __future__ import annotations

import pytest

from chunkfs.fs.types import FileMetadata
from chunkfs.fs.utils import (
    BINARY_MIME_TYPE,
    DEFAULT_MIME_TYPE,
    emulate_directories,
    escape_like,
    guess_mime_type,
    normalize_path,
    replace_prefix,
    sniff_mime_type,
    split_path,
    validate_path,
)

# ---------------------------------------------------------------------------
# Path Utilities
# ---------------------------------------------------------------------------


class TestNormalizePath:
    @pytest.mark.parametrize(
        ("input_path", "expected"),
        [
            pytest.param("", "/", id="empty"),
            pytest.param("foo.txt", "/foo.txt", id="no-leading-slash"),
            pytest.param("/foo//bar.txt", "/foo/bar.txt", id="double-slashes"),
            pytest.param("//foo", "/foo", id="leading-double-slash"),
            pytest.param("/foo/../bar.txt", "/bar.txt", id="dotdot"),
            pytest.param("/foo/", "/foo", id="trailing-slash"),
            pytest.param("some/dir", "/some/dir", id="relative-dir"),
            pytest.param("/", "/", id="root"),
        ],
    )
    def test_normalize(self, input_path: str, expected: str):
        assert normalize_path(input_path) == expected


class TestSplitPath:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            pytest.param("/foo/bar.txt", ("/foo", "bar.txt"), id="nested-file"),
            pytest.param("/foo.txt", ("/", "foo.txt"), id="root-file"),
            pytest.param("/", ("/", ""), id="root"),
        ],
    )
    def test_split(self, path: str, expected: tuple[str, str]):
        assert split_path(path) == expected


class TestValidatePath:
    def test_valid(self):
        assert validate_path("/a/b.txt") == (True, "")

    @pytest.mark.parametrize(
        "path",
        [
            pytest.param("/a\x00b", id="null-byte"),
            pytest.param("/a\x07b", id="control-char"),
            pytest.param("/" + "a" * 5000, id="too-long"),
            pytest.param("/", id="root"),
            pytest.param("", id="empty"),
        ],
    )
    def test_invalid(self, path: str):
        valid, message = validate_path(path)
        assert valid is False
        assert message


class TestLikeHelpers:
    def test_escape_like(self):
        assert escape_like("/a_b%c\\d") == "/a\\_b\\%c\\\\d"

    def test_replace_prefix(self):
        assert replace_prefix("/d/sub/a.txt", "/d", "/e") == "/e/sub/a.txt"


# ---------------------------------------------------------------------------
# Mimetypes
# ---------------------------------------------------------------------------


class TestGuessMimeType:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            pytest.param("/a/file.txt", "text/plain", id="txt"),
            pytest.param("/data.json", "application/json", id="json"),
            pytest.param("/img.png", "image/png", id="png"),
        ],
    )
    def test_by_extension(self, path: str, expected: str):
        assert guess_mime_type(path) == expected

    def test_extension_wins_over_content(self):
        assert guess_mime_type("/a.txt", b"\x89PNG\r\n\x1a\n...") == "text/plain"

    def test_unknown_extension_without_sample(self):
        assert guess_mime_type("/blob.xyz123") == DEFAULT_MIME_TYPE

    def test_unknown_extension_sniffs_sample(self):
        assert guess_mime_type("/blob.xyz123", b"%PDF-1.7 ...") == "application/pdf"


class TestSniffMimeType:
    @pytest.mark.parametrize(
        ("sample", "expected"),
        [
            pytest.param(b"", DEFAULT_MIME_TYPE, id="empty"),
            pytest.param(b"plain words\n", DEFAULT_MIME_TYPE, id="text"),
            pytest.param(b"\x89PNG\r\n\x1a\nrest", "image/png", id="png"),
            pytest.param(b"GIF89a....", "image/gif", id="gif"),
            pytest.param(b"\xff\xd8\xff\xe0", "image/jpeg", id="jpeg"),
            pytest.param(b"PK\x03\x04zip", "application/zip", id="zip"),
            pytest.param(b"abc\x00def", BINARY_MIME_TYPE, id="null-byte"),
            pytest.param(bytes(range(1, 9)) * 10, BINARY_MIME_TYPE, id="control-chars"),
        ],
    )
    def test_sniff(self, sample: bytes, expected: str):
        assert sniff_mime_type(sample) == expected


# ---------------------------------------------------------------------------
# Directory Emulation
# ---------------------------------------------------------------------------


def _file(path: str) -> FileMetadata:
    return FileMetadata(path=path, type="file", path_id=1)


def _dir(path: str) -> FileMetadata:
    return FileMetadata(path=path, type="dir", path_id=2)


class TestEmulateDirectories:
    def test_adds_missing_intermediate_dirs(self):
        listing = emulate_directories([_file("/test/a/b/c.txt")], "/test")
        paths = sorted(e.path for e in listing)
        assert paths == ["/test/a", "/test/a/b", "/test/a/b/c.txt"]

    def test_synthesized_dirs_have_no_id(self):
        listing = emulate_directories([_file("/test/a/c.txt")], "/test")
        synthesized = [e for e in listing if e.path == "/test/a"]
        assert len(synthesized) == 1
        assert synthesized[0].path_id is None
        assert synthesized[0].is_directory

    def test_base_not_synthesized(self):
        listing = emulate_directories([_file("/test/file1.txt")], "/test")
        assert [e.path for e in listing] == ["/test/file1.txt"]

    def test_existing_dirs_not_duplicated(self):
        listing = emulate_directories([_dir("/test/sub"), _file("/test/sub/f.txt")], "/test")
        assert sorted(e.path for e in listing) == ["/test/sub", "/test/sub/f.txt"]

    def test_root_base(self):
        listing = emulate_directories([_file("/x/y.txt")], "/")
        assert sorted(e.path for e in listing) == ["/x", "/x/y.txt"]

    def test_empty(self):
        assert emulate_directories([], "/test") == []
