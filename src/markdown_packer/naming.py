from __future__ import annotations

import time
import uuid
from pathlib import Path

from .models import NamingMode
from .utils import hash_file


DATE_FORMAT = "%Y%m%d_%H%M%S"


class NamePolicy:
    """Produce target names for freshly copied images.

    One instance belongs to one assets directory, so the running counter used by
    the sequence, prefix and date modes is shared by every document that writes
    into that directory during a run.
    """

    def __init__(self, mode: NamingMode = NamingMode.ORIGINAL, prefix: str = "", start: int = 1) -> None:
        self.mode = mode
        self.prefix = prefix.strip()
        self.counter = start

    def _next_number(self) -> int:
        number = self.counter
        self.counter += 1
        return number

    def name_parts(self, source: Path) -> tuple[str, str]:
        ext = source.suffix
        source_base = source.name[: len(source.name) - len(ext)] if ext else source.name
        mode = self.mode
        if mode is NamingMode.SEQUENCE:
            return f"img-{self._next_number()}", ext
        if mode is NamingMode.PREFIX:
            return f"{self.prefix or 'img'}{self._next_number()}", ext
        if mode is NamingMode.HASH:
            return hash_file(source), ext
        if mode is NamingMode.DATE:
            stamp = time.strftime(DATE_FORMAT, time.localtime())
            return f"img_{stamp}_{self._next_number()}", ext
        if mode is NamingMode.UUID:
            return str(uuid.uuid4()), ext
        if mode is NamingMode.FIXED:
            return self.prefix or source_base or "image", ext
        return source_base, ext


__all__ = ["NamePolicy", "DATE_FORMAT"]
