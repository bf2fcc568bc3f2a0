from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from threading import Event
from typing import Callable, Iterable, Sequence

from .assets import AssetContext
from .config import AppConfig
from .logging import PackLogEntry, RunLogger, append_summary_csv, describe_result, summary_row
from .models import ErrorKind, FileResult, PackError, PackOptions, PackResult, RunSummary
from .rewriter import DocumentRewriter
from .utils import generate_run_id, is_markdown_file, iter_markdown_files

ProgressCallback = Callable[[int, int], None]
TargetLike = str | os.PathLike[str]


@dataclass(slots=True)
class _WorkItem:
    document: Path | None = None
    contexts: dict[Path, AssetContext] = field(default_factory=dict)
    error: FileResult | None = None


@dataclass(slots=True)
class _RunState:
    run: PackResult
    options: PackOptions
    logger: RunLogger | None
    total: int
    done: int = 0


def normalize_targets(targets: Iterable[TargetLike | None]) -> list[Path]:
    cleaned: list[Path] = []
    for target in targets:
        if target is None:
            continue
        text = os.fspath(target)
        if not text.strip():
            continue
        cleaned.append(Path(os.path.abspath(text.strip())))
    if not cleaned:
        raise PackError("NO_TARGETS", "No targets selected")
    return cleaned


def expand_target(target: Path) -> list[Path]:
    """Return the Markdown documents a target stands for; raises OSError when unreadable."""

    if target.is_dir():
        return list(iter_markdown_files(target))
    target.stat()
    if is_markdown_file(target):
        return [target]
    return []


def _target_error(target: Path, message: str) -> FileResult:
    return FileResult(file_path=target, errors=(ErrorKind.TARGET.format(message),))


class PackService:
    def __init__(self, config: AppConfig | None = None) -> None:
        self._config = config or AppConfig()

    def default_options(self) -> PackOptions:
        return self._config.pack.to_options()

    def run_pack(
        self,
        targets: Sequence[TargetLike | None],
        options: PackOptions | None = None,
        *,
        progress: ProgressCallback | None = None,
        cancellation: Event | None = None,
    ) -> PackResult:
        state, items = self._prepare(targets, options)
        callback = progress or (lambda _done, _total: None)
        for item in items:
            if self._handle_item(state, item, callback, cancellation):
                break
        return self._finish(state, callback)

    async def run_pack_async(
        self,
        targets: Sequence[TargetLike | None],
        options: PackOptions | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation: Event | None = None,
    ) -> PackResult:
        state, items = self._prepare(targets, options)
        callback = on_progress or (lambda _done, _total: None)
        for item in items:
            if self._handle_item(state, item, callback, cancellation):
                break
            if item.document is not None:
                await asyncio.sleep(0)
        return self._finish(state, callback)

    def _prepare(
        self, targets: Sequence[TargetLike | None], options: PackOptions | None
    ) -> tuple[_RunState, list[_WorkItem]]:
        paths = normalize_targets(targets)
        opts = (options or self.default_options()).validate()
        items = self._plan(paths)
        log_file = self._config.runtime.log_file
        state = _RunState(
            run=PackResult(run_id=generate_run_id(), summary=RunSummary()),
            options=opts,
            logger=RunLogger(log_file) if log_file else None,
            total=sum(1 for item in items if item.document is not None),
        )
        return state, items

    def _plan(self, targets: Sequence[Path]) -> list[_WorkItem]:
        items: list[_WorkItem] = []
        for target in targets:
            if not target.exists():
                items.append(_WorkItem(error=_target_error(target, "Path does not exist or is not accessible")))
                continue
            try:
                documents = expand_target(target)
            except OSError as exc:
                items.append(_WorkItem(error=_target_error(target, f"Cannot read path: {exc}")))
                continue
            # dedup scope is one top-level target
            contexts: dict[Path, AssetContext] = {}
            items.extend(_WorkItem(document=document, contexts=contexts) for document in documents)
        return items

    def _handle_item(
        self,
        state: _RunState,
        item: _WorkItem,
        callback: ProgressCallback,
        cancellation: Event | None,
    ) -> bool:
        """Process one work item; True when the run was cancelled before it."""

        if item.error is not None:
            state.run.files.append(item.error)
            state.run.summary.total_errors += max(1, len(item.error.errors))
            state.run.logs.append(describe_result(item.error))
            return False
        if cancellation is not None and cancellation.is_set():
            state.run.cancelled = True
            return True
        if item.document is None:
            return False
        result = self._process_document(item.document, state.options, item.contexts)
        self._record(state, result)
        state.done += 1
        callback(state.done, state.total)
        return False

    def _process_document(
        self, document: Path, options: PackOptions, contexts: dict[Path, AssetContext]
    ) -> FileResult:
        assets_dir = options.assets_dir_for(document.parent)
        context = contexts.get(assets_dir)
        if context is None:
            context = contexts[assets_dir] = AssetContext.create(assets_dir, options)
        try:
            return DocumentRewriter(document, options, context).run()
        except (OSError, ValueError) as exc:
            return FileResult(file_path=document, errors=(ErrorKind.PROCESSING.format(str(exc)),))

    def _record(self, state: _RunState, result: FileResult) -> None:
        run = state.run
        run.files.append(result)
        run.summary.add(result)
        run.logs.append(describe_result(result))
        if state.logger is None:
            return
        try:
            state.logger.append(PackLogEntry.from_result(run.run_id, result))
        except OSError as exc:
            run.logs.append(f"[LOG] failed to append run log: {exc}")

    def _finish(self, state: _RunState, callback: ProgressCallback) -> PackResult:
        run = state.run
        if not run.cancelled:
            callback(state.done, state.total)
        summary_csv = self._config.runtime.summary_csv
        if summary_csv is not None:
            try:
                append_summary_csv(summary_csv, summary_row(run.run_id, run.summary, run.cancelled))
            except OSError as exc:
                run.logs.append(f"[LOG] failed to update summary csv: {exc}")
        return run


def run_pack(targets: Sequence[TargetLike | None], options: PackOptions | None = None) -> PackResult:
    return PackService().run_pack(targets, options)


async def run_pack_async(
    targets: Sequence[TargetLike | None],
    options: PackOptions | None = None,
    on_progress: ProgressCallback | None = None,
    cancellation: Event | None = None,
) -> PackResult:
    return await PackService().run_pack_async(targets, options, on_progress, cancellation)


__all__ = [
    "PackService",
    "ProgressCallback",
    "expand_target",
    "normalize_targets",
    "run_pack",
    "run_pack_async",
]
