"""
Configuration for the pool stats exporter

Environment variables win; config.yaml in CONFIG_DIR fills in the rest.
"""
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the exporter cannot start with the given configuration"""


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


class AppConfig:
    """YAML-backed config with dotted key lookups ("exporter.poll_interval")"""

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._config: Dict[str, Any] = {}
        if path is not None:
            self.load(path)

    def load(self, path: Path) -> None:
        self.path = path
        if not path.exists():
            logger.info(f"No config file at {path}, using environment only")
            self._config = {}
            return

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")
        self._config = data
        logger.info(f"Loaded config file {path}")

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node


class Settings:
    """Process settings, read once at startup"""

    def __init__(self, config: Optional[AppConfig] = None):
        self.CONFIG_DIR = Path(os.getenv("CONFIG_DIR", "/config"))
        config = config or AppConfig(self.CONFIG_DIR / "config.yaml")

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", config.get("logging.level", "INFO")).upper()
        self.WEB_HOST = os.getenv("WEB_HOST", config.get("web.host", "0.0.0.0"))
        self.WEB_PORT = self._int("WEB_PORT", config.get("web.port", 8080))

        self.POOL_HOST = os.getenv("POOL_HOST", config.get("pool.host", "")) or ""
        self.WALLET = os.getenv("WALLET", config.get("pool.wallet", "")) or ""
        self.POOL_NAME = os.getenv("POOL_NAME", config.get("pool.name", "")) or ""
        self.URL_TEMPLATE = os.getenv(
            "URL_TEMPLATE",
            config.get("pool.url_template", "https://{host}/api/accounts/{wallet}"),
        )

        self.POLL_INTERVAL = self._float("POLL_INTERVAL", config.get("exporter.poll_interval", 60))
        self.REQUEST_TIMEOUT = self._float("REQUEST_TIMEOUT", config.get("exporter.request_timeout", 10))
        self.SCALING_FACTOR = self._float("SCALING_FACTOR", config.get("exporter.scaling_factor", 1e9))
        self.MAX_TRACKED_WORKERS = self._int("MAX_TRACKED_WORKERS", config.get("exporter.max_tracked_workers", 0))

        rewards = _env_bool("REWARDS_ENABLED")
        self.REWARDS_ENABLED = bool(config.get("exporter.rewards_enabled", True)) if rewards is None else rewards

        # None means "decide from the number of pools"
        pool_label = _env_bool("INCLUDE_POOL_LABEL")
        self.INCLUDE_POOL_LABEL = config.get("exporter.include_pool_label") if pool_label is None else pool_label

        self._validate()

    @staticmethod
    def _int(name: str, default: Any) -> int:
        raw = os.getenv(name)
        value = default if raw is None or not raw.strip() else raw
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{name} must be an integer, got {value!r}") from e

    @staticmethod
    def _float(name: str, default: Any) -> float:
        raw = os.getenv(name)
        value = default if raw is None or not raw.strip() else raw
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{name} must be a number, got {value!r}") from e

    def _validate(self) -> None:
        if self.POLL_INTERVAL <= 0:
            raise ConfigError(f"POLL_INTERVAL must be positive, got {self.POLL_INTERVAL}")
        if self.REQUEST_TIMEOUT < 0:
            raise ConfigError(f"REQUEST_TIMEOUT cannot be negative, got {self.REQUEST_TIMEOUT}")
        if self.SCALING_FACTOR <= 0:
            raise ConfigError(f"SCALING_FACTOR must be positive, got {self.SCALING_FACTOR}")
        if self.MAX_TRACKED_WORKERS < 0:
            raise ConfigError(f"MAX_TRACKED_WORKERS cannot be negative, got {self.MAX_TRACKED_WORKERS}")


def load_settings() -> Settings:
    """Read settings from the environment and CONFIG_DIR/config.yaml"""
    return Settings()
