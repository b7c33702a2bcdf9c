from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional


ENV_LOG_LEVEL = "SHEETCOMPARE_LOG_LEVEL"
ENV_EXPORT_DIR = "SHEETCOMPARE_EXPORT_DIR"

DEFAULT_LOG_LEVEL = "WARNING"


def resolve_log_level(explicit: Optional[str] = None) -> int:
    """Resolve the logging level.

    Priority:
    1) explicit value (the CLI's --log-level)
    2) SHEETCOMPARE_LOG_LEVEL env var
    3) WARNING
    Unknown names fall back to WARNING.
    """
    name = (explicit or os.getenv(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def resolve_export_path(path: str) -> str:
    """Resolve where an export is written.

    Absolute paths are kept. Relative paths are placed under
    SHEETCOMPARE_EXPORT_DIR when it is set, else under the current directory.
    """
    p = Path(path)
    if p.is_absolute():
        return str(p)
    base = os.getenv(ENV_EXPORT_DIR)
    return str((Path(base) if base else Path.cwd()) / p)
