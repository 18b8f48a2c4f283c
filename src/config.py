"""Application configuration: YAML file, ``.env`` and provider settings."""
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from src.decision.config import AnalysisConfig
from src.utils.errors import ConfigurationError
from src.utils.logging import setup_logging
from src.utils.paths import resolve_config_path

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ('app', 'analysis')

# Provider name -> settings block under ``providers``
PROVIDER_SECTIONS = {
    'exchange_rate_host': 'exchange_rate_host',
    'yfinance': 'yfinance',
    'remote': 'remote_signal',
    'momentum': 'momentum',
    'static': 'static',
}


class Config:
    """
    Loaded configuration for one process.

    Reading the file also configures logging from its ``logging`` section
    (``LOG_LEVEL`` in the environment wins over the file).
    """

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = resolve_config_path(config_path)
        self._data: Dict[str, Any] = self._read()
        self._check()
        self._configure_logging()
        self.analysis = AnalysisConfig.from_dict(self._data['analysis'])
        logger.info(f"Configuration loaded from {self.config_path}")

    def _read(self) -> Dict[str, Any]:
        load_dotenv()
        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")
        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e
        if not data:
            raise ConfigurationError(f"Empty configuration file: {self.config_path}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {self.config_path}")
        return data

    def _check(self) -> None:
        missing = [s for s in REQUIRED_SECTIONS if s not in self._data]
        if missing:
            raise ConfigurationError(f"Missing required config section: {', '.join(missing)}")

        timeout = self.get('analysis.timeout_seconds')
        if timeout is not None and (
            isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0
        ):
            raise ConfigurationError(f"analysis.timeout_seconds must be positive, got {timeout!r}")

    def _configure_logging(self) -> None:
        log_config = self.section('logging')
        setup_logging(
            level=os.getenv('LOG_LEVEL', log_config.get('level', 'INFO')),
            log_file=log_config.get('file'),
            format_type=log_config.get('format', 'json'),
            enabled=log_config.get('enabled', True)
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Value at a dot-separated path such as ``providers.rate_oracle``."""
        node: Any = self._data
        for part in key.split('.'):
            if not isinstance(node, dict) or node.get(part) is None:
                return default
            node = node[part]
        return node

    def section(self, key: str) -> Dict[str, Any]:
        """Copy of a sub-mapping, empty when absent."""
        value = self.get(key)
        return dict(value) if isinstance(value, dict) else {}

    def provider_settings(self, name: str) -> Dict[str, Any]:
        """Settings block for a rate oracle or signal provider."""
        return self.section(f"providers.{PROVIDER_SECTIONS.get(name, name)}")

    def get_env(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return os.getenv(key, default)

    @property
    def app_name(self) -> str:
        return self.get('app.name', 'Differential Analysis Engine')

    @property
    def app_version(self) -> str:
        return self.get('app.version', '0.1.0')

    @property
    def debug(self) -> bool:
        return self.get('app.debug', False)

    @property
    def reference_currency(self) -> str:
        """Currency every exchange rate is normalised to."""
        return self.analysis.reference_currency

    @property
    def rate_oracle_name(self) -> str:
        return self.get('providers.rate_oracle', 'exchange_rate_host')

    @property
    def signal_provider_name(self) -> str:
        return self.get('providers.signal_provider', 'momentum')

    @property
    def cache_ttl(self) -> float:
        """Rate cache TTL in seconds; 0 disables the cache."""
        return self.get('cache.rates_ttl', 0)


_config: Optional[Config] = None


def load_config(config_path: str = "config.yaml") -> Config:
    """Load the process-wide configuration once and return it."""
    global _config
    if _config is None:
        _config = Config(config_path)
    return _config


def get_config() -> Config:
    if _config is None:
        raise ConfigurationError("Configuration not loaded. Call load_config() first.")
    return _config


def reset_config() -> None:
    """Drop the global configuration so the next load_config() re-reads it."""
    global _config
    _config = None
