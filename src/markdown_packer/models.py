"""Domain models for markdown asset packing."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


INVALID_DIR_NAME_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
PREFIX_RE = re.compile(r"^[\u4e00-\u9fa5A-Za-z0-9_\-.\s]+$")


class NamingMode(str, Enum):
    ORIGINAL = "original"
    SEQUENCE = "sequence"
    PREFIX = "prefix"
    HASH = "hash"
    DATE = "date"
    UUID = "uuid"
    FIXED = "fixed"


class ReferenceKind(str, Enum):
    INLINE = "inline"
    REFERENCE = "reference"
    HTML = "html"


class AssetKind(str, Enum):
    EXTERNAL = "external"
    MISSING = "missing"
    LOCAL = "local"


class ErrorKind(str, Enum):
    READ = "READ_ERROR"
    BACKUP = "BACKUP_ERROR"
    COPY = "COPY_ERROR"
    DELETE = "DELETE_ERROR"
    WRITE = "WRITE_ERROR"
    TARGET = "TARGET_ERROR"
    PROCESSING = "PROCESSING_ERROR"

    def format(self, message: str) -> str:
        return f"{self.value}: {message}"


class PackError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class OptionsError(PackError):
    def __init__(self, message: str) -> None:
        super().__init__("INVALID_OPTIONS", message)


def is_valid_assets_dir_name(name: str) -> bool:
    trimmed = name.strip()
    if not trimmed or trimmed in {".", ".."}:
        return False
    return INVALID_DIR_NAME_RE.search(trimmed) is None


def is_valid_prefix(prefix: str) -> bool:
    trimmed = prefix.strip()
    if not trimmed:
        return True
    return PREFIX_RE.match(trimmed) is not None


@dataclass(frozen=True, slots=True)
class PackOptions:
    """Configuration for a single packing run."""

    assets_dir_name: str = "assets"
    naming_mode: NamingMode = NamingMode.ORIGINAL
    naming_prefix: str = ""
    naming_start: int = 1
    backup_enabled: bool = False
    delete_old: bool = False
    shared_assets_dir: Path | None = None

    def validate(self) -> "PackOptions":
        if not is_valid_assets_dir_name(self.assets_dir_name):
            raise OptionsError(f"Invalid assets directory name: {self.assets_dir_name!r}")
        if not is_valid_prefix(self.naming_prefix):
            raise OptionsError(
                "Naming prefix may only contain letters, digits, CJK characters, '_', '-', '.' and spaces"
            )
        if not isinstance(self.naming_mode, NamingMode):
            raise OptionsError(f"Unknown naming mode: {self.naming_mode!r}")
        return self

    def assets_dir_for(self, document_dir: Path) -> Path:
        if self.shared_assets_dir is not None:
            return Path(os.path.abspath(self.shared_assets_dir))
        return document_dir / self.assets_dir_name.strip()


@dataclass(frozen=True, slots=True)
class ImageReference:
    raw: str
    kind: ReferenceKind
    start: int
    end: int
    ref_id: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedAsset:
    kind: AssetKind
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class FileResult:
    """Outcome of rewriting one Markdown document."""

    file_path: Path
    images_found: int = 0
    copied: int = 0
    reused: int = 0
    skipped_external: int = 0
    skipped_missing: int = 0
    name_conflicts: int = 0
    errors: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return not self.errors and self.skipped_missing == 0

    def as_dict(self) -> dict[str, object]:
        return {
            "file_path": str(self.file_path),
            "images_found": self.images_found,
            "copied": self.copied,
            "reused": self.reused,
            "skipped_external": self.skipped_external,
            "skipped_missing": self.skipped_missing,
            "name_conflicts": self.name_conflicts,
            "errors": list(self.errors),
            "succeeded": self.succeeded,
        }


@dataclass(slots=True)
class RunSummary:
    total_files: int = 0
    total_images_found: int = 0
    total_copied: int = 0
    total_reused: int = 0
    total_skipped_external: int = 0
    total_skipped_missing: int = 0
    total_name_conflicts: int = 0
    total_errors: int = 0

    def add(self, result: FileResult) -> None:
        self.total_files += 1
        self.total_images_found += result.images_found
        self.total_copied += result.copied
        self.total_reused += result.reused
        self.total_skipped_external += result.skipped_external
        self.total_skipped_missing += result.skipped_missing
        self.total_name_conflicts += result.name_conflicts
        self.total_errors += len(result.errors)

    def as_dict(self) -> dict[str, int]:
        return {
            "total_files": self.total_files,
            "total_images_found": self.total_images_found,
            "total_copied": self.total_copied,
            "total_reused": self.total_reused,
            "total_skipped_external": self.total_skipped_external,
            "total_skipped_missing": self.total_skipped_missing,
            "total_name_conflicts": self.total_name_conflicts,
            "total_errors": self.total_errors,
        }


@dataclass(slots=True)
class PackResult:
    """Aggregate results for a packing run."""

    run_id: str
    summary: RunSummary
    files: list[FileResult] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)
    cancelled: bool = False


__all__ = [
    "AssetKind",
    "ErrorKind",
    "FileResult",
    "ImageReference",
    "NamingMode",
    "OptionsError",
    "PackError",
    "PackOptions",
    "PackResult",
    "ReferenceKind",
    "ResolvedAsset",
    "RunSummary",
]
