"""Tests for storage key normalization."""

import pytest

from cdn_gateway.errors import InvalidPathError
from cdn_gateway.paths import (
    base_name,
    get_extension,
    is_allowed_extension,
    join_path,
    normalize_path,
    parent_path,
    supports_thumbnail,
)


class TestNormalizePath:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("", ""),
            ("/", ""),
            (".", ""),
            ("./", ""),
            ("images", "images"),
            ("/images/", "images"),
            ("images//cats///a.png", "images/cats/a.png"),
            ("images/./a.png", "images/a.png"),
            ("images/cats/../a.png", "images/a.png"),
            ("images\\cats\\a.png", "images/cats/a.png"),
            ("a/..", ""),
        ],
    )
    def test_normalizes(self, raw, expected):
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            "..",
            "../etc/passwd",
            "/../etc/passwd",
            "images/../../secret",
            "..\\..\\windows",
            "a/b/../../../c",
        ],
    )
    def test_rejects_traversal(self, raw):
        with pytest.raises(InvalidPathError) as exc_info:
            normalize_path(raw)
        assert exc_info.value.status_code == 400

    def test_rejects_nul_byte(self):
        with pytest.raises(InvalidPathError):
            normalize_path("images/a.png\x00.txt")

    def test_result_is_stable(self):
        for raw in ["/a/./b//c/", "x\\y", "p/q/../r"]:
            once = normalize_path(raw)
            assert normalize_path(once) == once
            assert not once.startswith("/") and not once.endswith("/")
            assert "\\" not in once


class TestPathHelpers:
    def test_join_path_normalizes(self):
        assert join_path("", "a.png") == "a.png"
        assert join_path("images/", "/a.png") == "images/a.png"

    def test_join_path_rejects_escape(self):
        with pytest.raises(InvalidPathError):
            join_path("images", "../../a.png")

    def test_parent_and_base_name(self):
        assert parent_path("a/b/c.png") == "a/b"
        assert parent_path("c.png") == ""
        assert base_name("a/b/c.png") == "c.png"
        assert base_name("c.png") == "c.png"

    def test_extensions_are_case_insensitive(self):
        assert get_extension("Photo.JPG") == ".jpg"
        assert get_extension("README") == ""
        assert is_allowed_extension("logo.SVG")
        assert is_allowed_extension("a.jpeg")
        assert not is_allowed_extension("notes.txt")
        assert not is_allowed_extension("archive.png.exe")

    def test_thumbnail_support_excludes_svg(self):
        assert supports_thumbnail("a.png")
        assert supports_thumbnail("a.JPEG")
        assert not supports_thumbnail("a.svg")
