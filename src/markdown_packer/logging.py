from __future__ import annotations

import csv
import json
import time
from dataclasses import asdict, dataclass, field
from io import StringIO
from pathlib import Path
from typing import Any, Sequence

from .models import FileResult, RunSummary
from .utils import atomic_write


SUMMARY_HEADER = [
    "run_id",
    "timestamp",
    "total_files",
    "images_found",
    "copied",
    "reused",
    "skipped_external",
    "skipped_missing",
    "name_conflicts",
    "errors",
    "cancelled",
]


@dataclass(slots=True)
class PackLogEntry:
    run_id: str
    document: str
    status: str
    images_found: int
    copied: int
    reused: int
    skipped_external: int
    skipped_missing: int
    name_conflicts: int
    errors: list[str]
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_result(cls, run_id: str, result: FileResult) -> "PackLogEntry":
        return cls(
            run_id=run_id,
            document=str(result.file_path),
            status="success" if result.succeeded else "failure",
            images_found=result.images_found,
            copied=result.copied,
            reused=result.reused,
            skipped_external=result.skipped_external,
            skipped_missing=result.skipped_missing,
            name_conflicts=result.name_conflicts,
            errors=list(result.errors),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RunLogger:
    def __init__(self, log_file: Path) -> None:
        self._log_file = log_file

    def append(self, entry: PackLogEntry) -> None:
        self._log_file.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._log_file.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")


def describe_result(result: FileResult) -> str:
    status = "OK" if result.succeeded else "FAILED"
    line = (
        f"[{status}] {result.file_path}: found={result.images_found} copied={result.copied} "
        f"reused={result.reused} external={result.skipped_external} missing={result.skipped_missing} "
        f"conflicts={result.name_conflicts}"
    )
    if result.errors:
        line += " errors=" + "; ".join(result.errors)
    return line


def summary_row(run_id: str, summary: RunSummary, cancelled: bool = False) -> list[str]:
    return [
        run_id,
        time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        str(summary.total_files),
        str(summary.total_images_found),
        str(summary.total_copied),
        str(summary.total_reused),
        str(summary.total_skipped_external),
        str(summary.total_skipped_missing),
        str(summary.total_name_conflicts),
        str(summary.total_errors),
        "1" if cancelled else "0",
    ]


def write_summary_csv(path: Path, header: list[str], rows: list[list[str]]) -> None:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(rows)
    atomic_write(path, buffer.getvalue())


def append_summary_csv(path: Path, row: list[str]) -> None:
    header = SUMMARY_HEADER
    rows: list[list[str]] = []
    if path.exists():
        with path.open("r", encoding="utf-8", newline="") as handle:
            reader = list(csv.reader(handle))
        if reader:
            header = reader[0]
            rows = reader[1:]
    rows.append(row)
    write_summary_csv(path, header, rows)


def export_log(lines: Sequence[str], destination: Path) -> bool:
    """Write accumulated log lines to *destination*; False when there is nothing to write."""

    if not lines:
        return False
    atomic_write(destination, "\n".join(lines))
    return True


__all__ = [
    "PackLogEntry",
    "RunLogger",
    "append_summary_csv",
    "describe_result",
    "export_log",
    "summary_row",
    "write_summary_csv",
]
