from __future__ import annotations

import os
import re
from pathlib import Path
from urllib.parse import unquote, urlsplit

from .models import AssetKind, ResolvedAsset


EXTERNAL_PREFIXES = ("http://", "https://", "data:", "blob:", "//")

ANGLE_RE = re.compile(r"^<(.+)>$", re.DOTALL)
TITLE_RE = re.compile(r"^(.+?)(\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*$", re.DOTALL)
DRIVE_RE = re.compile(r"^[A-Za-z]:[\\/]")
SLASHED_DRIVE_RE = re.compile(r"^/[A-Za-z]:/")


def extract_path(raw: str) -> str:
    """Strip angle brackets and a trailing link title from *raw*."""

    if not raw:
        return ""
    body = raw.strip()
    angle = ANGLE_RE.match(body)
    if angle is None:
        match = TITLE_RE.match(body)
        body = match.group(1).strip() if match else body
        # <path with spaces> "title"
        angle = ANGLE_RE.match(body)
    if angle is not None:
        body = angle.group(1)
    return body.strip()


def is_external(path: str) -> bool:
    if not path or not path.strip():
        return True
    lowered = path.strip().lower()
    return lowered.startswith(EXTERNAL_PREFIXES)


def decode_file_url(path: str) -> str:
    if not path.lower().startswith("file://"):
        return path
    try:
        pathname = unquote(urlsplit(path).path)
    except ValueError:
        return ""
    if SLASHED_DRIVE_RE.match(pathname):
        pathname = pathname[1:]
    return pathname


def is_absolute(path: str) -> bool:
    return bool(DRIVE_RE.match(path)) or os.path.isabs(path)


def resolve_image_path(document_dir: Path, raw: str) -> Path | None:
    """Map a reference to an absolute path without touching the filesystem."""

    candidate = decode_file_url(extract_path(raw))
    if not candidate:
        return None
    if is_absolute(candidate):
        return Path(os.path.normpath(candidate))
    return Path(os.path.normpath(os.path.join(document_dir, candidate)))


def classify(document_dir: Path, raw: str) -> ResolvedAsset:
    if is_external(extract_path(raw)):
        return ResolvedAsset(AssetKind.EXTERNAL)
    resolved = resolve_image_path(document_dir, raw)
    if resolved is None or not resolved.is_file():
        return ResolvedAsset(AssetKind.MISSING, resolved)
    return ResolvedAsset(AssetKind.LOCAL, resolved)


__all__ = [
    "classify",
    "decode_file_url",
    "extract_path",
    "is_external",
    "resolve_image_path",
]
