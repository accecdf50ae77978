"""Service configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ConfigError(f"{name} must be >= 1, got {value}")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean flag, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the analyzer service."""

    db_path: Path = Path("data") / "inventory.db"
    max_upload_mb: int = 50
    seed_rules: bool = True
    log_level: str = "INFO"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Load settings from the environment.

        Raises:
            ConfigError: if a numeric or boolean variable cannot be parsed
        """
        db_path = os.getenv("INVENTORY_DB_PATH", "").strip()
        return cls(
            db_path=Path(db_path) if db_path else cls.db_path,
            max_upload_mb=_env_int("INVENTORY_MAX_UPLOAD_MB", cls.max_upload_mb),
            seed_rules=_env_bool("INVENTORY_SEED_RULES", cls.seed_rules),
            log_level=os.getenv("INVENTORY_LOG_LEVEL", cls.log_level).strip().upper() or cls.log_level,
        )
