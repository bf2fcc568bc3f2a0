from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, TypeVar

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .config import AppConfig, load_config, parse_naming_mode
from .core import PackService
from .models import PackError, PackOptions, PackResult

T = TypeVar("T")


class PackOptionsModel(BaseModel):
    assets_dir_name: str | None = None
    naming_mode: str | None = None
    naming_prefix: str | None = None
    backup_enabled: bool | None = None
    delete_old: bool | None = None
    shared_assets_dir: str | None = None

    def to_options(self, defaults: PackOptions) -> PackOptions:
        return PackOptions(
            assets_dir_name=(self.assets_dir_name or "").strip() or defaults.assets_dir_name,
            naming_mode=parse_naming_mode(self.naming_mode) if self.naming_mode else defaults.naming_mode,
            naming_prefix=self.naming_prefix.strip() if self.naming_prefix is not None else defaults.naming_prefix,
            naming_start=defaults.naming_start,
            backup_enabled=defaults.backup_enabled if self.backup_enabled is None else self.backup_enabled,
            delete_old=defaults.delete_old if self.delete_old is None else self.delete_old,
            shared_assets_dir=Path(self.shared_assets_dir) if self.shared_assets_dir else defaults.shared_assets_dir,
        )


class PackRequest(BaseModel):
    targets: list[str] = Field(default_factory=list)
    options: PackOptionsModel = Field(default_factory=PackOptionsModel)


async def run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Execute *func* in a worker thread and return the result."""

    return await asyncio.to_thread(func, *args, **kwargs)


def result_payload(result: PackResult) -> dict[str, Any]:
    return {
        "run_id": result.run_id,
        "summary": result.summary.as_dict(),
        "files": [item.as_dict() for item in result.files],
        "logs": result.logs,
        "cancelled": result.cancelled,
    }


def create_app(config_path: Path | None = None, *, require_enabled: bool = True) -> FastAPI:
    config: AppConfig = load_config(config_path)
    if require_enabled and not config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via runtime.enable_local_api")
    service = PackService(config)
    app = FastAPI(title="Markdown Packer", version="0.1.0")
    app.state.config = config
    app.state.service = service

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": app.version}

    @app.post("/pack")
    async def pack(request: PackRequest) -> dict[str, Any]:
        try:
            options = request.options.to_options(service.default_options())
            result = await run_sync(service.run_pack, request.targets, options)
        except PackError as exc:
            raise HTTPException(status_code=400, detail=exc.code) from exc
        return result_payload(result)

    return app


__all__ = ["PackRequest", "create_app", "result_payload"]
