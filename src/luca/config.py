"""
LUCA Configuration Loading
Reads YAML/JSON settings files and configures logging.

Lookup order: explicit path, then $LUCA_CONFIG, then ./config.yaml.

Example config.yaml:
    core:
      max_memory_nodes: 500
      interpretation_threshold: 0.65
      seed: 7
    logging:
      level: DEBUG
"""

from dataclasses import dataclass, field
from typing import Optional
import logging
import os

from luca.core.config import CoreConfig, read_config_file
from luca.core.exceptions import ConfigurationError

CONFIG_ENV_VAR = "LUCA_CONFIG"
DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT


@dataclass(frozen=True)
class Settings:
    """Everything read from a LUCA config file."""
    core: CoreConfig = field(default_factory=CoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: Optional[str] = None


def load_config(path: Optional[str] = None) -> Settings:
    """
    Load settings from ``path``, $LUCA_CONFIG, or ./config.yaml.

    A missing default file yields the defaults; a missing explicit path or an
    unreadable/invalid file raises ConfigurationError.
    """
    config_path = path or os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)
    if not os.path.exists(config_path):
        if path is not None:
            raise ConfigurationError("Config file not found", path=config_path)
        return Settings()

    data = read_config_file(config_path)
    logging_data = data.get("logging") or {}
    return Settings(
        core=CoreConfig.from_dict(data.get("core") or {}),
        logging=LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
            format=logging_data.get("format", DEFAULT_LOG_FORMAT),
        ),
        source=config_path,
    )


def setup_logging(level: str = "INFO", fmt: str = DEFAULT_LOG_FORMAT) -> None:
    """Configure basic logging for the CLI."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=fmt)
