"""
Configuration loader module for Google Contacts to Notion synchronization.

Provides YAML-based configuration file loading with support for:
- Loading configuration from default or custom paths
- Graceful handling of missing configuration files
- Validation of known keys, their types, and their ranges
- Building field mappings from the ``field_mappings`` section
"""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from gcontact_notion.api.people_api import MAX_PAGE_SIZE
from gcontact_notion.sync.contact import VALID_PRIMARY_POLICIES
from gcontact_notion.sync.mapping import (
    DEFAULT_JOIN_KEY_PROPERTY,
    FieldMapping,
    load_field_mappings,
)
from gcontact_notion.utils.paths import CONFIG_FILE_NAME, resolve_config_dir

# Default configuration file name
DEFAULT_CONFIG_FILE = CONFIG_FILE_NAME

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


# Known configuration keys and their expected types
VALID_KEYS: dict[str, type[Any] | tuple[type[Any], ...]] = {
    # Sync options
    "database_id": str,
    "page_size": int,
    "primary_policy": str,
    "ensure_schema": bool,
    "include_deleted": bool,
    "join_key_property": str,
    "field_mappings": dict,
    # API options
    "api_max_retries": int,
    "api_initial_retry_delay": (int, float),
    "api_max_retry_delay": (int, float),
    # Logging options
    "verbose": bool,
    "log_dir": str,
    "log_retention_count": int,
}


class ConfigLoader:
    """
    YAML configuration file loader.

    Attributes:
        config_dir: Directory containing the configuration file
        config_file: Name of the configuration file

    Usage:
        loader = ConfigLoader()
        config = loader.load_and_validate()
        mappings = build_field_mappings(config)

        # Load from specific file
        config = loader.load_from_file("/path/to/config.yaml")
    """

    def __init__(
        self, config_dir: Optional[Path] = None, config_file: str = DEFAULT_CONFIG_FILE
    ):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory containing the configuration file.
                       Defaults to ~/.gcontact-notion/ or $GCONTACT_NOTION_CONFIG_DIR
            config_file: Name of the configuration file (default: config.yaml)
        """
        self.config_dir = resolve_config_dir(config_dir)
        self.config_file = config_file

    @property
    def config_path(self) -> Path:
        """Full path to the configuration file."""
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """
        Load configuration from the default configuration file.

        Returns:
            Dictionary containing configuration values, or empty dict if file
            doesn't exist

        Raises:
            ConfigError: If the configuration file exists but cannot be parsed
        """
        return self.load_from_file(self.config_path)

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Load configuration from a specific file.

        Returns an empty dict if the file doesn't exist, allowing
        graceful operation with CLI defaults.

        Args:
            path: Path to the configuration file

        Returns:
            Dictionary containing configuration values

        Raises:
            ConfigError: If the configuration file exists but cannot be parsed
        """
        path = Path(path)

        if not path.exists():
            logger.debug(f"Configuration file not found: {path}")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}") from e

        if config is None:
            logger.debug(f"Configuration file is empty: {path}")
            return {}

        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration file must contain a YAML dictionary, "
                f"got {type(config).__name__}"
            )

        logger.debug(f"Loaded configuration from {path}")
        return config

    def validate(self, config: dict[str, Any]) -> None:
        """
        Validate configuration structure and values.

        Unknown keys are logged and ignored.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ConfigError: If configuration is invalid
        """
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration must be a dictionary, got {type(config).__name__}"
            )

        for key, value in config.items():
            if key not in VALID_KEYS:
                logger.warning(f"Ignoring unknown configuration key '{key}'")
                continue
            expected_type = VALID_KEYS[key]
            # bool is an int subclass; reject it for numeric keys
            if not isinstance(value, expected_type) or (
                isinstance(value, bool) and expected_type is not bool
            ):
                if isinstance(expected_type, tuple):
                    type_name = " or ".join(t.__name__ for t in expected_type)
                else:
                    type_name = expected_type.__name__
                raise ConfigError(
                    f"Invalid type for '{key}': expected {type_name}, "
                    f"got {type(value).__name__}"
                )

        if "primary_policy" in config:
            if config["primary_policy"] not in VALID_PRIMARY_POLICIES:
                raise ConfigError(
                    f"Invalid primary_policy '{config['primary_policy']}'. "
                    f"Must be one of: {', '.join(sorted(VALID_PRIMARY_POLICIES))}"
                )

        if "page_size" in config:
            page_size = config["page_size"]
            if not (1 <= page_size <= MAX_PAGE_SIZE):
                raise ConfigError(
                    f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}"
                )

        if "api_max_retries" in config and config["api_max_retries"] < 1:
            raise ConfigError(
                f"api_max_retries must be >= 1, got {config['api_max_retries']}"
            )

        if "log_retention_count" in config and config["log_retention_count"] < 0:
            raise ConfigError(
                f"log_retention_count must be >= 0, "
                f"got {config['log_retention_count']}"
            )

        for key in ("api_initial_retry_delay", "api_max_retry_delay"):
            if key in config and config[key] <= 0:
                raise ConfigError(f"{key} must be > 0, got {config[key]}")

        for key in ("database_id", "join_key_property"):
            if key in config and not config[key].strip():
                raise ConfigError(f"{key} must not be empty")

        if "field_mappings" in config or "join_key_property" in config:
            build_field_mappings(config)

    def load_and_validate(self) -> dict[str, Any]:
        """
        Load configuration and validate it.

        Returns:
            Validated configuration dictionary

        Raises:
            ConfigError: If configuration cannot be loaded or is invalid
        """
        config = self.load()
        if config:
            self.validate(config)
        return config


def build_field_mappings(config: dict[str, Any]) -> list[FieldMapping]:
    """
    Build the field mappings for a configuration.

    Args:
        config: Loaded configuration dictionary

    Returns:
        Default mappings with the ``field_mappings`` section applied

    Raises:
        ConfigError: If the section is invalid or maps a field onto the
                     join-key property
    """
    try:
        mappings = load_field_mappings(config.get("field_mappings"))
    except ValueError as e:
        raise ConfigError(f"Invalid field_mappings: {e}") from e

    join_key = config.get("join_key_property", DEFAULT_JOIN_KEY_PROPERTY)
    for mapping in mappings:
        if mapping.is_mapped and mapping.property_name == join_key:
            raise ConfigError(
                f"Field '{mapping.field_key}' is mapped to '{join_key}', "
                f"which holds the Google resource name"
            )

    return mappings
