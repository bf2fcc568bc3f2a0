from pathlib import Path

import pytest

from markdown_packer.assets import AssetContext, AssetCopier, CopyError
from markdown_packer.models import NamingMode, PackOptions


def build_copier(doc_dir: Path, options: PackOptions | None = None) -> tuple[AssetCopier, AssetContext]:
    opts = options or PackOptions()
    context = AssetContext.create(opts.assets_dir_for(doc_dir), opts)
    return AssetCopier(context), context


def write(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_copy_creates_assets_dir_and_registers(tmp_path: Path) -> None:
    source = write(tmp_path / "img" / "photo.png", b"photo")
    copier, context = build_copier(tmp_path)
    outcome = copier.copy(source, tmp_path)
    assert outcome.relative_path == "assets/photo.png"
    assert outcome.reused is False
    assert (tmp_path / "assets" / "photo.png").read_bytes() == b"photo"
    assert len(context.store) == 1


def test_identical_content_is_reused_without_write(tmp_path: Path) -> None:
    first = write(tmp_path / "a" / "logo.png", b"logo")
    second = write(tmp_path / "b" / "other-name.png", b"logo")
    copier, _ = build_copier(tmp_path)
    copier.copy(first, tmp_path)
    outcome = copier.copy(second, tmp_path)
    assert outcome.reused is True
    assert outcome.relative_path == "assets/logo.png"
    assert sorted(p.name for p in (tmp_path / "assets").iterdir()) == ["logo.png"]


def test_name_collision_with_different_content_gets_suffix(tmp_path: Path) -> None:
    existing = write(tmp_path / "assets" / "x.png", b"old content")
    source = write(tmp_path / "img" / "x.png", b"new content")
    copier, _ = build_copier(tmp_path)
    outcome = copier.copy(source, tmp_path)
    assert outcome.relative_path == "assets/x_1.png"
    assert outcome.conflicts == 1
    assert existing.read_bytes() == b"old content"
    assert (tmp_path / "assets" / "x_1.png").read_bytes() == b"new content"


def test_existing_file_with_same_digest_is_reused(tmp_path: Path) -> None:
    write(tmp_path / "assets" / "x.png", b"same")
    source = write(tmp_path / "img" / "x.png", b"same")
    copier, context = build_copier(tmp_path)
    outcome = copier.copy(source, tmp_path)
    assert outcome.reused is True
    assert outcome.relative_path == "assets/x.png"
    assert len(context.store) == 1


def test_source_inside_assets_dir_is_reused_in_place(tmp_path: Path) -> None:
    source = write(tmp_path / "assets" / "3f2a.png", b"data")
    copier, _ = build_copier(tmp_path, PackOptions(naming_mode=NamingMode.UUID))
    outcome = copier.copy(source, tmp_path)
    assert outcome.reused is True
    assert outcome.relative_path == "assets/3f2a.png"
    assert [p.name for p in (tmp_path / "assets").iterdir()] == ["3f2a.png"]


def test_missing_source_raises(tmp_path: Path) -> None:
    copier, _ = build_copier(tmp_path)
    with pytest.raises(CopyError):
        copier.copy(tmp_path / "nope.png", tmp_path)
    (tmp_path / "dir.png").mkdir()
    with pytest.raises(CopyError):
        copier.copy(tmp_path / "dir.png", tmp_path)


def test_shared_assets_dir_paths_are_relative_to_document(tmp_path: Path) -> None:
    shared = tmp_path / "shared"
    options = PackOptions(shared_assets_dir=shared)
    source = write(tmp_path / "docs" / "logo.png", b"logo")
    copier, _ = build_copier(tmp_path / "docs", options)
    first = copier.copy(source, tmp_path / "docs")
    second = copier.copy(source, tmp_path / "notes" / "deep")
    assert first.relative_path == "../shared/logo.png"
    assert second.reused is True
    assert second.relative_path == "../../shared/logo.png"


def test_source_in_assets_dir_still_advances_sequence(tmp_path: Path) -> None:
    packed = write(tmp_path / "assets" / "img-1.png", b"old")
    fresh = write(tmp_path / "new.png", b"new")
    copier, _ = build_copier(tmp_path, PackOptions(naming_mode=NamingMode.SEQUENCE))
    first = copier.copy(packed, tmp_path)
    second = copier.copy(fresh, tmp_path)
    assert first.reused is True
    assert first.relative_path == "assets/img-1.png"
    assert second.relative_path == "assets/img-2.png"
    assert second.conflicts == 0
    assert packed.read_bytes() == b"old"
