"""Configuration — Pydantic Settings + YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from scopegraph.assets.models import normalize_name

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "default.yaml"


def _dedupe(values: list[Any]) -> list[Any]:
    seen: set[Any] = set()
    ordered = []
    for v in values:
        marker = tuple(sorted(v.items())) if isinstance(v, dict) else v
        if marker in seen:
            continue
        seen.add(marker)
        ordered.append(v)
    return ordered


class ScopeSettings(BaseSettings):
    """Values that define what belongs to the investigation."""

    domains: list[str] = Field(default_factory=list)
    cidrs: list[str] = Field(default_factory=list)
    asns: list[int] = Field(default_factory=list)
    addresses: list[str] = Field(default_factory=list)
    organizations: list[str] = Field(default_factory=list)
    locations: list[dict[str, str]] = Field(default_factory=list)
    fingerprints: list[dict[str, str]] = Field(default_factory=list)

    @field_validator("domains")
    @classmethod
    def _normalize_domains(cls, v: list[str]) -> list[str]:
        return _dedupe([normalize_name(d) for d in v if normalize_name(d)])

    @field_validator("cidrs", "addresses", "organizations")
    @classmethod
    def _strip(cls, v: list[str]) -> list[str]:
        return _dedupe([s.strip() for s in v if s.strip()])

    @field_validator("asns", "locations", "fingerprints")
    @classmethod
    def _unique(cls, v: list[Any]) -> list[Any]:
        return _dedupe(v)


class StorageSettings(BaseSettings):
    backend: str = "sqlite"             # "sqlite" / "memory"
    db_path: str = "scopegraph.db"
    wal_mode: bool = True
    bulk_chunk_size: int = 1000


class TTLSettings(BaseSettings):
    """Freshness windows for previously discovered associations.

    ``transformations`` overrides the default per plugin name or per
    ``"<from>-><to>"`` asset-type pair, in minutes.
    """

    default_minutes: int = 1440
    transformations: dict[str, int] = Field(default_factory=dict)


class HttpSettings(BaseSettings):
    timeout: float = 15.0
    max_connections: int = 100
    max_connections_per_host: int = 10
    user_agent: str = "Mozilla/5.0 (compatible; scopegraph/1.0)"
    verify_ssl: bool = True


class Settings(BaseSettings):
    """Root settings merging defaults, YAML config, and env vars."""

    scope: ScopeSettings = Field(default_factory=ScopeSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    ttl: TTLSettings = Field(default_factory=TTLSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    log_level: str = "INFO"

    @classmethod
    def load(cls, config_path: Path | str | None = None) -> Settings:
        """Load settings from YAML file, falling back to defaults."""
        data: dict[str, Any] = {}

        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        path = Path(config_path)
        if path.exists():
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f)
                if isinstance(raw, dict):
                    data = raw

        return cls(**data)
