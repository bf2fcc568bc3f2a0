from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from .assets import AssetContext, AssetCopier, CopyError
from .models import AssetKind, ErrorKind, FileResult, ImageReference, PackOptions, ReferenceKind
from .resolver import classify, extract_path
from .utils import atomic_copy, atomic_write, is_within_dir


REF_DEF_RE = re.compile(r"^[ \t]*\[([^\]]+)\]:[ \t]*(.+)$", re.MULTILINE)
INLINE_IMG_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
REF_IMG_RE = re.compile(r"!\[([^\]]*)\]\[([^\]]*)\]")
HTML_IMG_RE = re.compile(r"""<img\b[^>]*?\bsrc=["']([^"']+)["'][^>]*>""", re.IGNORECASE)

BACKUP_SUFFIX = ".copy"

PathHandler = Callable[[str], "str | None"]


def normalize_label(label: str) -> str:
    return " ".join(label.split()).casefold()


def _path_span(raw: str, offset: int) -> tuple[str, int, int]:
    """Locate the path text inside *raw*, angle brackets included."""

    path = extract_path(raw)
    if not path:
        return path, offset, offset + len(raw)
    for needle in (f"<{path}>", path):
        index = raw.find(needle)
        if index >= 0:
            start = offset + index
            return raw[index : index + len(needle)], start, start + len(needle)
    return path, offset, offset + len(raw)


def collect_definitions(text: str) -> dict[str, str]:
    definitions: dict[str, str] = {}
    for match in REF_DEF_RE.finditer(text):
        definitions.setdefault(normalize_label(match.group(1)), extract_path(match.group(2)))
    return definitions


def find_inline_images(text: str) -> list[ImageReference]:
    references = []
    for match in INLINE_IMG_RE.finditer(text):
        path, start, end = _path_span(match.group(2), match.start(2))
        references.append(ImageReference(path, ReferenceKind.INLINE, start, end))
    return references


def find_reference_images(text: str) -> list[ImageReference]:
    references = []
    for match in REF_IMG_RE.finditer(text):
        label = match.group(2) or match.group(1)
        if not label.strip():
            continue
        references.append(
            ImageReference("", ReferenceKind.REFERENCE, match.start(), match.end(), normalize_label(label))
        )
    return references


def find_html_images(text: str) -> list[ImageReference]:
    references = []
    for match in HTML_IMG_RE.finditer(text):
        path, start, end = _path_span(match.group(1), match.start(1))
        references.append(ImageReference(path, ReferenceKind.HTML, start, end))
    return references


def substitute(text: str, references: Sequence[ImageReference], handler: PathHandler) -> str:
    """Replace the path span of every reference the handler maps to a new path."""

    pieces: list[str] = []
    cursor = 0
    for reference in references:
        replacement = handler(reference.raw)
        if replacement is None:
            continue
        pieces.append(text[cursor : reference.start])
        pieces.append(replacement)
        cursor = reference.end
    pieces.append(text[cursor:])
    return "".join(pieces)


def markdown_path(path: str) -> str:
    if any(ch.isspace() for ch in path):
        return f"<{path}>"
    return path


@dataclass(slots=True)
class _Tally:
    images_found: int = 0
    copied: int = 0
    reused: int = 0
    skipped_external: int = 0
    skipped_missing: int = 0
    name_conflicts: int = 0
    errors: list[str] = field(default_factory=list)

    def freeze(self, path: Path) -> FileResult:
        return FileResult(
            file_path=path,
            images_found=self.images_found,
            copied=self.copied,
            reused=self.reused,
            skipped_external=self.skipped_external,
            skipped_missing=self.skipped_missing,
            name_conflicts=self.name_conflicts,
            errors=tuple(self.errors),
        )


class DocumentRewriter:
    """Copy the local images of one document and point its references at them."""

    def __init__(self, path: Path, options: PackOptions, context: AssetContext) -> None:
        self.path = path
        self.document_dir = path.parent
        self.options = options
        self.context = context
        self._copier = AssetCopier(context)
        self._tally = _Tally()
        self._pending_deletes: list[Path] = []

    def run(self) -> FileResult:
        try:
            content = self.path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self._tally.errors.append(ErrorKind.READ.format(f"Failed to read {self.path}: {exc}"))
            return self._tally.freeze(self.path)

        if self.options.backup_enabled:
            self._backup()

        rewritten = self.rewrite(content)

        if rewritten != content:
            try:
                atomic_write(self.path, rewritten)
            except OSError as exc:
                self._tally.errors.append(ErrorKind.WRITE.format(f"Failed to write {self.path}: {exc}"))
                return self._tally.freeze(self.path)

        for source in self._pending_deletes:
            self._delete_original(source)
        return self._tally.freeze(self.path)

    def rewrite(self, content: str) -> str:
        definitions = collect_definitions(content)
        updated: set[str] = set()

        content = substitute(content, find_inline_images(content), self._inline_handler())

        for reference in find_reference_images(content):
            label = reference.ref_id or ""
            raw = definitions.get(label)
            if not raw:
                continue
            new_path = self.handle_image_path(raw)
            if new_path is not None:
                definitions[label] = new_path
                updated.add(label)

        content = substitute(content, find_html_images(content), self.handle_image_path)

        if updated:
            content = self._rewrite_definitions(content, definitions, updated)
        return content

    def _inline_handler(self) -> PathHandler:
        def handle(raw: str) -> str | None:
            new_path = self.handle_image_path(raw)
            if new_path is None:
                return None
            return markdown_path(new_path)

        return handle

    def _rewrite_definitions(self, content: str, definitions: dict[str, str], updated: set[str]) -> str:
        pending = set(updated)

        def replace(match: re.Match[str]) -> str:
            label = normalize_label(match.group(1))
            # only the first definition of a label is in effect
            if label not in pending:
                return match.group(0)
            pending.discard(label)
            new_path = definitions[label]
            raw = match.group(2)
            old_path, start, end = _path_span(raw, 0)
            if extract_path(old_path) == new_path:
                return match.group(0)
            head = match.group(0)[: match.start(2) - match.start(0)]
            return head + raw[:start] + markdown_path(new_path) + raw[end:]

        return REF_DEF_RE.sub(replace, content)

    def handle_image_path(self, raw: str) -> str | None:
        """Account for one reference and return its new path, or None to leave it."""

        tally = self._tally
        tally.images_found += 1
        asset = classify(self.document_dir, raw)
        if asset.kind is AssetKind.EXTERNAL:
            tally.skipped_external += 1
            return None
        if asset.kind is AssetKind.MISSING or asset.path is None:
            tally.skipped_missing += 1
            return None

        try:
            outcome = self._copier.copy(asset.path, self.document_dir)
        except (CopyError, OSError) as exc:
            tally.errors.append(ErrorKind.COPY.format(f"Failed to copy {raw}: {exc}"))
            return None

        tally.name_conflicts += outcome.conflicts
        if outcome.reused:
            tally.reused += 1
        else:
            tally.copied += 1
            if self.options.delete_old and self._deletable(asset.path):
                self._pending_deletes.append(asset.path)
        return outcome.relative_path

    def _deletable(self, source: Path) -> bool:
        if not is_within_dir(source, self.document_dir):
            return False
        return not is_within_dir(source, self.context.assets_dir)

    def _delete_original(self, source: Path) -> None:
        try:
            source.unlink()
        except OSError as exc:
            self._tally.errors.append(ErrorKind.DELETE.format(f"Failed to delete {source}: {exc}"))

    def _backup(self) -> None:
        backup_path = self.path.with_name(self.path.name + BACKUP_SUFFIX)
        try:
            atomic_copy(self.path, backup_path)
        except OSError as exc:
            self._tally.errors.append(ErrorKind.BACKUP.format(f"Failed to back up {self.path}: {exc}"))


def rewrite_document(path: Path, options: PackOptions, context: AssetContext) -> FileResult:
    return DocumentRewriter(path, options, context).run()


__all__ = [
    "DocumentRewriter",
    "collect_definitions",
    "find_html_images",
    "find_inline_images",
    "find_reference_images",
    "rewrite_document",
    "substitute",
]
