"""
Core Module - Application Configuration.

============================================================
CONFIGURATION SOURCES
============================================================

Configuration can be loaded from:
- Default values
- Environment variables (a local .env file is honored)
- YAML config file

Environment variables:
- DATABASE_URL               (unset = in-memory cache store)
- SOURCES_FILE               (default: sources.yaml)
- FETCH_TIMEOUT_SECONDS      (default: 10)
- DEFAULT_INTERVAL_SECONDS   (default: 600)
- MAX_ITEMS_PER_SOURCE       (default: 30)
- REFRESH_TOKENS             (comma separated bearer tokens)
- DISABLE_LOGIN              (every caller may force a refresh)
- RSSHUB_BASE_URL
- LOG_LEVEL / LOG_FORMAT
- SERVER_HOST / SERVER_PORT

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv


logger = logging.getLogger(__name__)


_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _split_tokens(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


@dataclass
class AppConfig:
    """Runtime configuration for the news cache service."""

    # Persistence
    database_url: Optional[str] = None

    # Sources
    sources_file: Path = Path("sources.yaml")
    rsshub_base_url: str = "https://rsshub.app"
    default_interval_seconds: int = 600
    max_items_per_source: int = 30

    # Fetching
    fetch_timeout_seconds: float = 10.0

    # Access
    refresh_tokens: List[str] = field(default_factory=list)
    disable_login: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    # Server
    server_host: str = "0.0.0.0"
    server_port: int = 8000

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")
        if self.default_interval_seconds <= 0:
            raise ValueError("default_interval_seconds must be > 0")
        if self.max_items_per_source < 1:
            raise ValueError("max_items_per_source must be >= 1")
        self.sources_file = Path(self.sources_file)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables."""
        load_dotenv()
        config = cls()

        if os.getenv("DATABASE_URL"):
            config.database_url = os.getenv("DATABASE_URL")
        if os.getenv("SOURCES_FILE"):
            config.sources_file = Path(os.getenv("SOURCES_FILE"))
        if os.getenv("RSSHUB_BASE_URL"):
            config.rsshub_base_url = os.getenv("RSSHUB_BASE_URL")
        if os.getenv("DEFAULT_INTERVAL_SECONDS"):
            config.default_interval_seconds = int(os.getenv("DEFAULT_INTERVAL_SECONDS"))
        if os.getenv("MAX_ITEMS_PER_SOURCE"):
            config.max_items_per_source = int(os.getenv("MAX_ITEMS_PER_SOURCE"))
        if os.getenv("FETCH_TIMEOUT_SECONDS"):
            config.fetch_timeout_seconds = float(os.getenv("FETCH_TIMEOUT_SECONDS"))

        config.refresh_tokens = _split_tokens(os.getenv("REFRESH_TOKENS"))
        config.disable_login = _env_bool("DISABLE_LOGIN")

        config.log_level = os.getenv("LOG_LEVEL", config.log_level)
        config.log_format = os.getenv("LOG_FORMAT", config.log_format)
        config.server_host = os.getenv("SERVER_HOST", config.server_host)
        config.server_port = int(os.getenv("SERVER_PORT", os.getenv("PORT", str(config.server_port))))

        config.__post_init__()
        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from YAML file, falling back to defaults."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load YAML config from {path}: {e}")
            return cls()

        known = set(cls.__dataclass_fields__)
        unknown = [k for k in data if k not in known]
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")

        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (secrets masked)."""
        return {
            "database_url": "***" if self.database_url else None,
            "sources_file": str(self.sources_file),
            "rsshub_base_url": self.rsshub_base_url,
            "default_interval_seconds": self.default_interval_seconds,
            "max_items_per_source": self.max_items_per_source,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "refresh_tokens": len(self.refresh_tokens),
            "disable_login": self.disable_login,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "server_host": self.server_host,
            "server_port": self.server_port,
        }


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global application configuration."""
    global _default_config
    if _default_config is None:
        _default_config = AppConfig.from_env()
    return _default_config


def set_config(config: AppConfig) -> None:
    """Set the global application configuration."""
    global _default_config
    _default_config = config
