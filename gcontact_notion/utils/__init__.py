"""
gcontact_notion.utils - Utility module

Common utilities including logging configuration.
"""

from gcontact_notion.utils.paths import DEFAULT_CONFIG_DIR, resolve_config_dir

__all__ = ["resolve_config_dir", "DEFAULT_CONFIG_DIR"]
