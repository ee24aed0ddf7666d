"""Configuration module - exports Settings and load_config."""

from studylens.config.loader import DEFAULT_CONFIG, load_config
from studylens.config.settings import Settings

__all__ = ["DEFAULT_CONFIG", "Settings", "load_config"]
