"""Configuration module for swaprpc."""

from swaprpc.config.loader import get_config_path, load_config, save_config
from swaprpc.config.schema import Config, LoggingConfig, MessengerConfig

__all__ = ["Config", "LoggingConfig", "MessengerConfig", "get_config_path", "load_config", "save_config"]
