"""
Pool Target Loader

Loads the pools to monitor from /config/pools/*.yaml. When that directory holds
no pool definitions, a single pool is built from the POOL_HOST / WALLET settings.
"""
import logging
from typing import Dict, List, Optional
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from core.config import ConfigError, Settings

logger = logging.getLogger(__name__)


class PoolTarget(BaseModel):
    """A single pool account to poll"""
    name: str                           # Label value for the "pool" label
    host: str                           # Pool API host without scheme: "etc.2miners.com"
    wallet: str                         # Wallet / account identifier
    url_template: str = "https://{host}/api/accounts/{wallet}"
    poll_interval: Optional[float] = None   # Falls back to POLL_INTERVAL
    scaling_factor: Optional[float] = None  # Falls back to SCALING_FACTOR

    @field_validator("host", "wallet")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("poll_interval", "scaling_factor")
    @classmethod
    def _positive(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("must be positive")
        return value

    def build_url(self) -> str:
        """Substitute host and wallet into the URL template"""
        try:
            return self.url_template.format(host=self.host, wallet=self.wallet)
        except (KeyError, IndexError) as e:
            raise ConfigError(f"Pool {self.name}: bad url_template {self.url_template!r}: {e}") from e


class PoolLoader:
    """
    Loads pool targets from <config_dir>/pools/.
    Files are read in name order so label ordering is stable across restarts.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.pools_path = Path(settings.CONFIG_DIR) / "pools"
        self.targets: Dict[str, PoolTarget] = {}

    def load_all(self) -> List[PoolTarget]:
        """Load every pool target, raising ConfigError if there are none"""
        self.load_pool_files()

        if not self.targets:
            target = self._target_from_settings()
            if target is None:
                raise ConfigError(
                    f"No pools configured: set POOL_HOST and WALLET or add YAML files to {self.pools_path}"
                )
            self.targets[target.name] = target

        for target in self.targets.values():
            logger.info(f"✅ Monitoring pool {target.name} ({target.host})")

        return list(self.targets.values())

    def load_pool_files(self) -> None:
        """Load all YAML files from the pools directory"""
        if not self.pools_path.exists():
            logger.debug(f"Pools directory not found: {self.pools_path}")
            return

        logger.info(f"Loading pool configs from {self.pools_path}")

        for file_path in sorted(self.pools_path.glob("*.yaml")):
            try:
                with open(file_path, "r") as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to read pool config {file_path.name}: {e}") from e

            if not data:
                logger.warning(f"⚠️  Empty pool config file: {file_path.name}")
                continue
            if not isinstance(data, dict):
                raise ConfigError(f"Pool config {file_path.name} must be a mapping")

            data.setdefault("name", file_path.stem)
            data.setdefault("url_template", self.settings.URL_TEMPLATE)
            try:
                target = PoolTarget(**data)
            except ValidationError as e:
                raise ConfigError(f"Invalid pool config {file_path.name}: {e}") from e

            if target.name in self.targets:
                raise ConfigError(f"Duplicate pool name '{target.name}' in {file_path.name}")
            self.targets[target.name] = target

    def _target_from_settings(self) -> Optional[PoolTarget]:
        if not self.settings.POOL_HOST or not self.settings.WALLET:
            return None
        try:
            return PoolTarget(
                name=self.settings.POOL_NAME or self.settings.POOL_HOST,
                host=self.settings.POOL_HOST,
                wallet=self.settings.WALLET,
                url_template=self.settings.URL_TEMPLATE,
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid pool settings: {e}") from e
