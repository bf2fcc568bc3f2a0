from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from ..config import AppConfig, dump_config, load_config, parse_naming_mode
from ..core import PackService
from ..logging import export_log
from ..models import PackError, PackOptions, PackResult
from ..utils import generate_run_id

console = Console()

app = typer.Typer(help="Collect local Markdown images into assets directories")


def _load_config(path: Path | None, log_file: Path | None = None) -> AppConfig:
    cfg = load_config(path)
    if log_file is not None:
        cfg.runtime.log_file = log_file
    return cfg


def _build_options(
    cfg: AppConfig,
    *,
    assets_dir: str | None,
    naming: str | None,
    prefix: str | None,
    backup: bool | None,
    delete_old: bool | None,
    shared_assets: Path | None,
) -> PackOptions:
    options = cfg.pack.to_options()
    overrides: dict[str, object] = {}
    if assets_dir is not None:
        overrides["assets_dir_name"] = assets_dir.strip() or "assets"
    if naming is not None:
        overrides["naming_mode"] = parse_naming_mode(naming)
    if prefix is not None:
        overrides["naming_prefix"] = prefix.strip()
    if backup is not None:
        overrides["backup_enabled"] = backup
    if delete_old is not None:
        overrides["delete_old"] = delete_old
    if shared_assets is not None:
        overrides["shared_assets_dir"] = shared_assets
    return replace(options, **overrides).validate()


def _render(result: PackResult) -> None:
    summary = result.summary
    table = Table(title="Pack summary")
    table.add_column("Documents", justify="right")
    table.add_column("Images", justify="right")
    table.add_column("Copied", justify="right")
    table.add_column("Reused", justify="right")
    table.add_column("External", justify="right")
    table.add_column("Missing", justify="right")
    table.add_column("Conflicts", justify="right")
    table.add_column("Errors", justify="right")
    table.add_row(
        str(summary.total_files),
        str(summary.total_images_found),
        f"[green]{summary.total_copied}[/green]",
        str(summary.total_reused),
        str(summary.total_skipped_external),
        f"[red]{summary.total_skipped_missing}[/red]" if summary.total_skipped_missing else "0",
        str(summary.total_name_conflicts),
        f"[red]{summary.total_errors}[/red]" if summary.total_errors else "0",
    )
    console.print(table)

    details = Table(title="Documents")
    details.add_column("Status")
    details.add_column("Document")
    details.add_column("Images / copied / reused")
    details.add_column("Errors")
    for item in result.files:
        status = "[green]ok[/green]" if item.succeeded else "[red]failed[/red]"
        details.add_row(
            status,
            str(item.file_path),
            f"{item.images_found} / {item.copied} / {item.reused}",
            "\n".join(item.errors) or "-",
        )
    console.print(details)


@app.command()
def pack(
    paths: list[Path] = typer.Argument(..., help="Markdown files or directories"),
    assets_dir: str | None = typer.Option(None, "--assets-dir", help="Assets directory name"),
    naming: str | None = typer.Option(
        None, "--naming", help="original, sequence, prefix, hash, date, uuid or fixed"
    ),
    prefix: str | None = typer.Option(None, "--prefix", help="Prefix or fixed name"),
    backup: bool | None = typer.Option(None, "--backup/--no-backup", help="Write <doc>.copy first"),
    delete_old: bool | None = typer.Option(
        None, "--delete-old/--keep-old", help="Delete originals after copying"
    ),
    shared_assets: Path | None = typer.Option(
        None, "--shared-assets", help="Use one assets directory for every document"
    ),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
    log_file: Path | None = typer.Option(None, "--log-file", help="Append a JSONL run log"),
    export_path: Path | None = typer.Option(None, "--export-log", help="Write the run log lines here"),
) -> None:
    cfg = _load_config(config, log_file)
    try:
        options = _build_options(
            cfg,
            assets_dir=assets_dir,
            naming=naming,
            prefix=prefix,
            backup=backup,
            delete_old=delete_old,
            shared_assets=shared_assets,
        )
    except PackError as exc:
        console.print(f"[red]Invalid options[/red]: {exc}")
        raise typer.Exit(2) from exc

    service = PackService(cfg)
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as bar:
        task = bar.add_task("Packing", total=None)

        def on_progress(done: int, total: int) -> None:
            bar.update(task, completed=done, total=total)

        try:
            result = service.run_pack(paths, options, progress=on_progress)
        except PackError as exc:
            console.print(f"[red]Pack failed[/red]: {exc.code} - {exc}")
            raise typer.Exit(2) from exc

    _render(result)
    if export_path is not None:
        if export_log(result.logs, export_path):
            console.print(f"Log written to {export_path}")
        else:
            console.print("Nothing to export.")
    if any(not item.succeeded for item in result.files):
        raise typer.Exit(1)


@app.command("show-config")
def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    console.print_json(dump_config(_load_config(config)))


@app.command()
def serve(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    import uvicorn

    from ..api import create_app

    cfg = _load_config(config)
    try:
        api = create_app(config)
    except RuntimeError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    uvicorn.run(api, host=cfg.api.host, port=cfg.api.port)


@app.command()
def new_run_id() -> None:
    console.print(generate_run_id())


if __name__ == "__main__":
    app()
