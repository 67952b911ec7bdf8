"""Configuration loading."""
from .loader import CONFIG_FILES, MakeConfig, find_config_file, load_config

__all__ = ["CONFIG_FILES", "MakeConfig", "find_config_file", "load_config"]
