import hashlib
from pathlib import Path

from markdown_packer.utils import (
    atomic_write,
    generate_run_id,
    hash_file,
    is_within_dir,
    iter_markdown_files,
    relative_posix,
)


def test_generate_run_id_unique() -> None:
    first = generate_run_id("test")
    second = generate_run_id("test")
    assert first != second
    assert first.startswith("test-")


def test_hash_file_matches_sha1(tmp_path: Path) -> None:
    sample = tmp_path / "a.bin"
    sample.write_bytes(b"\x89PNG payload")
    assert hash_file(sample) == hashlib.sha1(b"\x89PNG payload").hexdigest()


def test_is_within_dir(tmp_path: Path) -> None:
    base = tmp_path / "docs"
    assert is_within_dir(base / "img" / "a.png", base)
    assert not is_within_dir(base, base)
    assert not is_within_dir(tmp_path / "other" / "a.png", base)
    assert not is_within_dir(tmp_path / "docs-old" / "a.png", base)


def test_iter_markdown_files_filters_extensions(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    (tmp_path / "a.md").write_text("a", encoding="utf-8")
    (tmp_path / "sub" / "b.MARKDOWN").write_text("b", encoding="utf-8")
    (tmp_path / "sub" / "c.txt").write_text("c", encoding="utf-8")
    (tmp_path / "a.md.copy").write_text("backup", encoding="utf-8")
    found = {path.name for path in iter_markdown_files(tmp_path)}
    assert found == {"a.md", "b.MARKDOWN"}


def test_relative_posix_uses_forward_slashes(tmp_path: Path) -> None:
    target = tmp_path / "shared" / "logo.png"
    assert relative_posix(target, tmp_path / "docs") == "../shared/logo.png"


def test_atomic_write_keeps_line_endings(tmp_path: Path) -> None:
    target = tmp_path / "doc.md"
    atomic_write(target, "line1\r\nline2\r\n")
    assert target.read_bytes() == b"line1\r\nline2\r\n"
