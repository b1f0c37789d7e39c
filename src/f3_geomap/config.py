"""Settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .models import OrgType


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_types(name: str) -> frozenset[OrgType]:
    raw = os.environ.get(name, "")
    return frozenset(OrgType(part.strip().lower()) for part in raw.split(",") if part.strip())


@dataclass
class Settings:
    api_base: str = "https://api.f3nation.com"
    api_key: str = "tackle"
    client_header: str = "scalar-api"
    page_size: int = 1000
    overrides_path: Optional[str] = None
    snapshot_path: Optional[str] = None
    output_dir: Path = field(default_factory=lambda: Path.home() / ".f3-geomap" / "renders")
    log_level: str = "INFO"
    view_only_types: frozenset[OrgType] = frozenset()
    host: str = "0.0.0.0"
    port: int = 8767

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_base=os.environ.get("F3_API_BASE", "https://api.f3nation.com").rstrip("/"),
            api_key=os.environ.get("F3_API_KEY", "tackle"),
            client_header=os.environ.get("F3_CLIENT_HEADER", "scalar-api"),
            page_size=_env_int("F3_PAGE_SIZE", 1000),
            overrides_path=os.environ.get("F3_GEOMAP_OVERRIDES") or None,
            snapshot_path=os.environ.get("F3_GEOMAP_SNAPSHOT") or None,
            output_dir=Path(os.environ.get("F3_GEOMAP_OUTPUT_DIR", Path.home() / ".f3-geomap" / "renders")),
            log_level=os.environ.get("F3_GEOMAP_LOG_LEVEL", "INFO").upper(),
            view_only_types=_env_types("F3_GEOMAP_VIEW_ONLY_TYPES"),
            host=os.environ.get("F3_GEOMAP_HOST", "0.0.0.0"),
            port=_env_int("F3_GEOMAP_PORT", 8767),
        )

    def ensure_output_dir(self) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir
