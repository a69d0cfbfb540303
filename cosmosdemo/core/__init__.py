"""Core module initialization."""

from .config_manager import ConfigManager, ConfigurationError, DemoConfig
from .logging_config import setup_logging, get_logger

__all__ = [
    "ConfigManager",
    "ConfigurationError",
    "DemoConfig",
    "setup_logging",
    "get_logger",
]
