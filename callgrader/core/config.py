from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_API_BASE = "http://127.0.0.1:8000"
API_BASE_ENV = "CALL_GRADER_API_BASE"


@dataclass
class AppConfig:
    api_base: str = DEFAULT_API_BASE
    request_timeout_sec: Optional[float] = None
    input_dir: Path = Path("data/incoming")
    reports_dir: Path = Path("data/reports")
    use_excel_export: bool = False
    logging: Dict[str, Any] = field(default_factory=dict)


def load_config(path: Path) -> AppConfig:
    raw: Dict[str, Any] = {}
    if path.exists():
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}

    timeout = raw.get("request_timeout_sec")
    return AppConfig(
        api_base=resolve_api_base(raw.get("api_base")),
        request_timeout_sec=float(timeout) if timeout is not None else None,
        input_dir=Path(raw.get("input_dir", "data/incoming")),
        reports_dir=Path(raw.get("reports_dir", "data/reports")),
        use_excel_export=bool(raw.get("use_excel_export", False)),
        logging=raw.get("logging", {}) or {},
    )


def resolve_api_base(configured: Optional[str] = None) -> str:
    base = os.getenv(API_BASE_ENV) or configured or DEFAULT_API_BASE
    return base.rstrip("/")
