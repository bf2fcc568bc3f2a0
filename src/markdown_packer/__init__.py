"""Copy local Markdown images into per-document assets directories."""

from .config import AppConfig, load_config
from .core import PackService, run_pack, run_pack_async
from .logging import export_log
from .models import FileResult, NamingMode, PackError, PackOptions, PackResult, RunSummary

__all__ = [
    "AppConfig",
    "FileResult",
    "NamingMode",
    "PackError",
    "PackOptions",
    "PackResult",
    "PackService",
    "RunSummary",
    "export_log",
    "load_config",
    "run_pack",
    "run_pack_async",
]
