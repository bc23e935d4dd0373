"""
Configuration loader for the Boatyard lifecycle engine.

Loads settings from boatyard_config.yaml and provides typed access
to all configuration sections.
"""
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
from functools import lru_cache

import yaml


# Default config ships inside the package; BOATYARD_CONFIG overrides it
DEFAULT_CONFIG_PATH = Path(__file__).parent / "boatyard_config.yaml"
CONFIG_ENV_VAR = "BOATYARD_CONFIG"


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class BoatyardConfig:
    """
    Configuration manager for the Boatyard lifecycle engine.

    Loads YAML configuration and provides typed access to all sections.
    Use get_config() to obtain the singleton instance.
    """

    def __init__(self, config_path: Optional[Path] = None):
        env_path = os.environ.get(CONFIG_ENV_VAR)
        self._config_path = config_path or (Path(env_path) if env_path else DEFAULT_CONFIG_PATH)
        self._config: dict = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            raise ConfigurationError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r') as f:
                self._config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self._config, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

        self._validate()

    def _validate(self) -> None:
        for key in ("default_ratio", "warn_threshold"):
            value = self.cost_estimation.get(key)
            if value is not None and not 0 <= float(value) <= 1:
                raise ConfigurationError(f"cost_estimation.{key} must be between 0 and 1, got {value}")
        if self.quote_validity_days <= 0:
            raise ConfigurationError("quotes.validity_days must be positive")

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load()
        get_config.cache_clear()

    @property
    def path(self) -> Path:
        return self._config_path

    @property
    def version(self) -> str:
        """Configuration file version."""
        return self._config.get("version", "unknown")

    # =========================================================================
    # Database & Logging
    # =========================================================================

    @property
    def database_url(self) -> str:
        return self._config.get("database", {}).get("url", "sqlite:///./boatyard.db")

    @property
    def database_echo(self) -> bool:
        return bool(self._config.get("database", {}).get("echo", False))

    @property
    def log_level(self) -> str:
        return self._config.get("logging", {}).get("level", "INFO").upper()

    @property
    def log_format(self) -> str:
        return self._config.get("logging", {}).get(
            "format", "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        )

    # =========================================================================
    # Numbering
    # =========================================================================

    @property
    def project_number_prefix(self) -> str:
        return self._config.get("numbering", {}).get("project_prefix", "PRJ")

    @property
    def quote_number_prefix(self) -> str:
        return self._config.get("numbering", {}).get("quote_prefix", "QUO")

    # =========================================================================
    # Pricing & Cost Estimation
    # =========================================================================

    @property
    def vat_rate(self) -> Decimal:
        """Default VAT rate in percent."""
        return Decimal(str(self._config.get("pricing", {}).get("vat_rate", 21)))

    @property
    def cost_estimation(self) -> dict:
        """Cost estimation defaults."""
        return self._config.get("cost_estimation", {})

    @property
    def default_estimation_ratio(self) -> Decimal:
        return Decimal(str(self.cost_estimation.get("default_ratio", 0.6)))

    @property
    def estimation_warn_threshold(self) -> Decimal:
        return Decimal(str(self.cost_estimation.get("warn_threshold", 0.3)))

    # =========================================================================
    # Quotes
    # =========================================================================

    @property
    def quotes(self) -> dict:
        return self._config.get("quotes", {})

    @property
    def quote_validity_days(self) -> int:
        return int(self.quotes.get("validity_days", 30))

    @property
    def default_payment_terms(self) -> str:
        return self.quotes.get("payment_terms", "")

    @property
    def default_delivery_terms(self) -> str:
        return self.quotes.get("delivery_terms", "")

    # =========================================================================
    # API
    # =========================================================================

    @property
    def api(self) -> dict:
        return self._config.get("api", {})

    @property
    def api_title(self) -> str:
        return self.api.get("title", "Boatyard Project Lifecycle API")

    # =========================================================================
    # Raw Access
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level config value by key."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to config."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        return key in self._config


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> BoatyardConfig:
    """
    Get the singleton configuration instance.

    Args:
        config_path: Optional path to config file. Only used on first call.

    Returns:
        BoatyardConfig singleton instance
    """
    path = Path(config_path) if config_path else None
    return BoatyardConfig(path)


def reload_config() -> BoatyardConfig:
    """Reload configuration from disk and return new instance."""
    get_config.cache_clear()
    return get_config()
