"""
Path utilities for configuration directory resolution.

Provides consistent path resolution for the gcontact-notion configuration
directory, which holds the config file, OAuth tokens, the state database,
and logs.
"""

from __future__ import annotations

import os
from pathlib import Path

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".gcontact-notion"

# Environment variable for overriding config directory
CONFIG_DIR_ENV_VAR = "GCONTACT_NOTION_CONFIG_DIR"

# File names inside the configuration directory
CONFIG_FILE_NAME = "config.yaml"
STATE_DB_NAME = "sync.db"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """
    Resolve the configuration directory path.

    Priority:
        1. Explicit config_dir parameter (if provided)
        2. GCONTACT_NOTION_CONFIG_DIR environment variable
        3. Default directory (~/.gcontact-notion)

    Args:
        config_dir: Optional explicit configuration directory path.
                   Can be a Path object or string.

    Returns:
        Resolved Path to the configuration directory (expanduser and resolve applied)
    """
    if config_dir is not None:
        return Path(config_dir).expanduser().resolve()

    env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    return DEFAULT_CONFIG_DIR.expanduser().resolve()


def ensure_config_dir(config_dir: Path) -> Path:
    """Create the configuration directory with owner-only permissions."""
    if not config_dir.exists():
        config_dir.mkdir(parents=True, mode=0o700)
    return config_dir
