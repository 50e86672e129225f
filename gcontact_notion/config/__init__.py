"""
gcontact_notion.config - Configuration management module

Contains configuration loading, validation, and default settings.
"""

from gcontact_notion.config.generator import generate_default_config, save_config_file
from gcontact_notion.config.loader import ConfigError, ConfigLoader, build_field_mappings

__all__ = [
    "ConfigLoader",
    "ConfigError",
    "build_field_mappings",
    "generate_default_config",
    "save_config_file",
]
