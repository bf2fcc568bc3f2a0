from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .models import NamingMode, OptionsError, PackOptions


CONFIG_FILE = Path("config.toml")
ENV_PREFIX = "MDPACK_"


@dataclass(slots=True)
class PackConfig:
    assets_dir_name: str = "assets"
    naming_mode: NamingMode = NamingMode.ORIGINAL
    naming_prefix: str = ""
    naming_start: int = 1
    backup_enabled: bool = False
    delete_old: bool = False
    shared_assets_dir: Path | None = None

    def to_options(self) -> PackOptions:
        return PackOptions(
            assets_dir_name=self.assets_dir_name,
            naming_mode=self.naming_mode,
            naming_prefix=self.naming_prefix,
            naming_start=self.naming_start,
            backup_enabled=self.backup_enabled,
            delete_old=self.delete_old,
            shared_assets_dir=self.shared_assets_dir,
        )


@dataclass(slots=True)
class RuntimeConfig:
    log_file: Path | None = None
    summary_csv: Path | None = None
    enable_local_api: bool = False


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    pack: PackConfig = field(default_factory=PackConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    api: APIConfig = field(default_factory=APIConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _optional_path(value: object | None) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value))


def parse_naming_mode(value: object) -> NamingMode:
    try:
        return NamingMode(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(mode.value for mode in NamingMode)
        raise OptionsError(f"Unknown naming mode {value!r}; expected one of: {choices}") from exc


def _build_pack(data: Mapping[str, object] | None) -> PackConfig:
    if not data:
        return PackConfig()
    return PackConfig(
        assets_dir_name=str(data.get("assets_dir_name", "assets")),
        naming_mode=parse_naming_mode(data.get("naming_mode", NamingMode.ORIGINAL.value)),
        naming_prefix=str(data.get("naming_prefix", "")),
        naming_start=int(data.get("naming_start", 1)),
        backup_enabled=bool(data.get("backup_enabled", False)),
        delete_old=bool(data.get("delete_old", False)),
        shared_assets_dir=_optional_path(data.get("shared_assets_dir")),
    )


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    return RuntimeConfig(
        log_file=_optional_path(data.get("log_file")),
        summary_csv=_optional_path(data.get("summary_csv")),
        enable_local_api=bool(data.get("enable_local_api", False)),
    )


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def default_config_path() -> Path:
    env_path = os.getenv(f"{ENV_PREFIX}CONFIG_PATH")
    return Path(env_path) if env_path else CONFIG_FILE


def load_config(path: Path | None = None) -> AppConfig:
    path = path or default_config_path()
    raw = _read_toml(path)
    pack_data = raw.get("pack")
    runtime_data = raw.get("runtime")
    api_data = raw.get("api")
    return AppConfig(
        pack=_build_pack(pack_data if isinstance(pack_data, Mapping) else None),
        runtime=_build_runtime(runtime_data if isinstance(runtime_data, Mapping) else None),
        api=_build_api(api_data if isinstance(api_data, Mapping) else None),
    )


def dump_config(config: AppConfig) -> str:
    pack = config.pack
    payload = {
        "pack": {
            "assets_dir_name": pack.assets_dir_name,
            "naming_mode": pack.naming_mode.value,
            "naming_prefix": pack.naming_prefix,
            "naming_start": pack.naming_start,
            "backup_enabled": pack.backup_enabled,
            "delete_old": pack.delete_old,
            "shared_assets_dir": str(pack.shared_assets_dir) if pack.shared_assets_dir else None,
        },
        "runtime": {
            "log_file": str(config.runtime.log_file) if config.runtime.log_file else None,
            "summary_csv": str(config.runtime.summary_csv) if config.runtime.summary_csv else None,
            "enable_local_api": config.runtime.enable_local_api,
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)
