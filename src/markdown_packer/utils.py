from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Iterator


MARKDOWN_SUFFIXES = (".md", ".markdown")
HASH_CHUNK_SIZE = 1024 * 1024


def generate_run_id(prefix: str = "pack") -> str:
    epoch_ms = int(time.time() * 1000)
    random_bits = hashlib.sha256(os.urandom(16)).hexdigest()[:8]
    return f"{prefix}-{epoch_ms}-{random_bits}"


def hash_file(path: Path) -> str:
    """Return the SHA-1 hex digest of the file contents."""

    digest = hashlib.sha1()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def atomic_write(path: Path, data: str, encoding: str = "utf-8") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", delete=False, dir=path.parent, encoding=encoding, newline=""
    ) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
    if path.exists():
        shutil.copymode(path, tmp.name)
    os.replace(tmp.name, path)


def atomic_copy(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(delete=False, dir=destination.parent) as tmp:
        tmp_path = Path(tmp.name)
    try:
        shutil.copy2(source, tmp_path)
        os.replace(tmp_path, destination)
    finally:
        tmp_path.unlink(missing_ok=True)


def is_markdown_file(path: Path) -> bool:
    return path.name.lower().endswith(MARKDOWN_SUFFIXES)


def iter_markdown_files(root: Path) -> Iterator[Path]:
    for file_path in sorted(root.rglob("*")):
        if file_path.is_file() and is_markdown_file(file_path):
            yield file_path


def is_within_dir(target: Path, base: Path) -> bool:
    """True when *target* lies strictly below *base*."""

    try:
        relative = os.path.relpath(target, base)
    except ValueError:
        # different drives on Windows
        return False
    if relative == os.curdir or os.path.isabs(relative):
        return False
    return Path(relative).parts[0] != os.pardir


def to_posix(path: str) -> str:
    return path.replace(os.sep, "/")


def relative_posix(target: Path, start: Path) -> str:
    relative = os.path.relpath(target, start)
    return to_posix(relative)
