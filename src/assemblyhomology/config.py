"""Service settings, read from the environment or a .env file."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ASSEMBLY_HOMOLOGY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite:///data/assemblyhomology.db"
    TEMP_DIR: Path = Path("data/temp")
    MINHASH_TIMEOUT_SEC: int = Field(default=30, ge=1)
    FILTERS: list[dict[str, Any]] = Field(default_factory=list)
    LOG_LEVEL: str = "INFO"
    DONT_TRUST_X_IP_HEADERS: bool = False

    @field_validator("FILTERS", mode="before")
    @classmethod
    def _parse_filters(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = json.loads(value) if value.strip() else []
        if not isinstance(value, list):
            raise ValueError("FILTERS must be a list of {factory, config} mappings")
        for entry in value:
            if not isinstance(entry, dict) or not entry.get("factory"):
                raise ValueError(f"Illegal filter entry: {entry!r}")
            config = entry.get("config", {})
            if not isinstance(config, dict):
                raise ValueError(f"Filter config for {entry['factory']} must be a mapping")
            if any(not isinstance(v, str) for v in config.values()):
                raise ValueError(f"Filter config values for {entry['factory']} must be strings")
        return value


settings = Settings()
