from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(cfg_logging: Dict[str, Any]) -> None:
    if not cfg_logging or not cfg_logging.get("enabled", True):
        return

    level_name = str(cfg_logging.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    file_path = Path(cfg_logging.get("file_path", "logs/callgrader.log"))
    file_path.parent.mkdir(parents=True, exist_ok=True)

    max_bytes = int(cfg_logging.get("max_bytes", 1_048_576))
    backup_count = int(cfg_logging.get("backup_count", 5))

    handler = RotatingFileHandler(
        file_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    # Re-running setup (GUI restarts, tests) must not duplicate file output.
    for existing in list(root.handlers):
        if isinstance(existing, RotatingFileHandler) and Path(existing.baseFilename) == file_path.absolute():
            root.removeHandler(existing)
            existing.close()
    root.addHandler(handler)

    # requests/urllib3 log every connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
