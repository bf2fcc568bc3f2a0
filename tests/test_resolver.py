import os
from pathlib import Path

import pytest

from markdown_packer.models import AssetKind
from markdown_packer.resolver import (
    classify,
    decode_file_url,
    extract_path,
    is_external,
    resolve_image_path,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("./img/a.png", "./img/a.png"),
        ('  ./img/a.png "A title"  ', "./img/a.png"),
        ("./img/a.png 'single'", "./img/a.png"),
        ("./img/a.png (paren title)", "./img/a.png"),
        ("<./img/my photo.png>", "./img/my photo.png"),
        ('<./img/my photo.png> "title"', "./img/my photo.png"),
        ("", ""),
    ],
)
def test_extract_path(raw: str, expected: str) -> None:
    assert extract_path(raw) == expected


@pytest.mark.parametrize(
    "path",
    ["http://a.com/b.png", "HTTPS://a.com/b.png", "data:image/png;base64,xx", "blob:abc", "//cdn/x.png", "  "],
)
def test_is_external(path: str) -> None:
    assert is_external(path)


def test_local_paths_are_not_external() -> None:
    assert not is_external("./img/a.png")
    assert not is_external("file:///tmp/a.png")


def test_decode_file_url() -> None:
    assert decode_file_url("file:///tmp/my%20pic.png") == "/tmp/my pic.png"
    assert decode_file_url("file:///C:/pics/a.png") == "C:/pics/a.png"
    assert decode_file_url("./a.png") == "./a.png"


def test_resolve_relative_and_absolute(tmp_path: Path) -> None:
    doc_dir = tmp_path / "docs"
    assert resolve_image_path(doc_dir, "./img/../img/a.png") == doc_dir / "img" / "a.png"
    absolute = tmp_path / "elsewhere" / "b.png"
    assert resolve_image_path(doc_dir, str(absolute)) == absolute
    assert resolve_image_path(doc_dir, absolute.as_uri()) == absolute


def test_resolve_drive_letter_path_is_absolute(tmp_path: Path) -> None:
    resolved = resolve_image_path(tmp_path, "C:/pics/a.png")
    assert resolved == Path(os.path.normpath("C:/pics/a.png"))


def test_resolve_does_not_touch_filesystem(tmp_path: Path) -> None:
    resolved = resolve_image_path(tmp_path, "missing/none.png")
    assert resolved == tmp_path / "missing" / "none.png"
    assert not (tmp_path / "missing").exists()


def test_classify(tmp_path: Path) -> None:
    image = tmp_path / "a.png"
    image.write_bytes(b"img")
    (tmp_path / "folder.png").mkdir()
    assert classify(tmp_path, "http://a.com/b.png").kind is AssetKind.EXTERNAL
    assert classify(tmp_path, "nope.png").kind is AssetKind.MISSING
    assert classify(tmp_path, "folder.png").kind is AssetKind.MISSING
    local = classify(tmp_path, "a.png 'title'")
    assert local.kind is AssetKind.LOCAL
    assert local.path == image


def test_malformed_file_url_resolves_to_missing(tmp_path: Path) -> None:
    assert decode_file_url("file://[oops/a.png") == ""
    assert resolve_image_path(tmp_path, "file://[oops/a.png") is None
    assert classify(tmp_path, "file://[oops/a.png").kind is AssetKind.MISSING
