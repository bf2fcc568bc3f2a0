from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .models import PackOptions
from .naming import NamePolicy
from .utils import atomic_copy, hash_file, relative_posix


class CopyError(RuntimeError):
    """Raised when an image cannot be materialized in the assets directory."""


@dataclass(slots=True)
class DedupStore:
    """Content digest to materialized target, for one assets directory."""

    entries: dict[str, Path] = field(default_factory=dict)

    def lookup(self, digest: str) -> Path | None:
        return self.entries.get(digest)

    def register(self, digest: str, target: Path) -> None:
        self.entries[digest] = target

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(slots=True)
class AssetContext:
    """Mutable state owned by the runner for one assets directory."""

    assets_dir: Path
    store: DedupStore
    policy: NamePolicy

    @classmethod
    def create(cls, assets_dir: Path, options: PackOptions) -> "AssetContext":
        policy = NamePolicy(options.naming_mode, options.naming_prefix, options.naming_start)
        return cls(assets_dir=assets_dir, store=DedupStore(), policy=policy)


@dataclass(frozen=True, slots=True)
class CopyOutcome:
    relative_path: str
    reused: bool
    conflicts: int = 0
    target: Path | None = None


def relative_target(target: Path, document_dir: Path) -> str:
    if target.parent == document_dir:
        return target.name
    return relative_posix(target, document_dir)


class AssetCopier:
    def __init__(self, context: AssetContext) -> None:
        self._context = context

    @property
    def assets_dir(self) -> Path:
        return self._context.assets_dir

    def copy(self, source: Path, document_dir: Path) -> CopyOutcome:
        if not source.exists() or not source.is_file():
            raise CopyError(f"Image file does not exist or is not a regular file: {source}")

        store = self._context.store
        digest = hash_file(source)
        existing = store.lookup(digest)
        if existing is not None:
            return CopyOutcome(relative_target(existing, document_dir), reused=True, target=existing)

        base_name, ext = self._context.policy.name_parts(source)
        target = self.assets_dir / f"{base_name}{ext}"
        conflicts = 0
        while target.exists():
            if target.is_file() and hash_file(target) == digest:
                store.register(digest, target)
                return CopyOutcome(
                    relative_target(target, document_dir), reused=True, conflicts=conflicts, target=target
                )
            conflicts += 1
            target = self.assets_dir / f"{base_name}_{conflicts}{ext}"

        if source.parent == self.assets_dir:
            # already packed under another name, e.g. by an earlier uuid or date run
            store.register(digest, source)
            return CopyOutcome(relative_target(source, document_dir), reused=True, target=source)

        try:
            self.assets_dir.mkdir(parents=True, exist_ok=True)
            atomic_copy(source, target)
        except OSError as exc:
            raise CopyError(f"Failed to copy {source} -> {target}: {exc}") from exc
        store.register(digest, target)
        return CopyOutcome(relative_target(target, document_dir), reused=False, conflicts=conflicts, target=target)


__all__ = ["AssetContext", "AssetCopier", "CopyError", "CopyOutcome", "DedupStore"]
