"""
Configuration file generator for Google Contacts to Notion synchronization.

Generates a default configuration file documenting every option.
"""

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """
    Generate default YAML configuration with all options documented.

    Every option is commented out, so the generated file loads as an
    empty configuration until edited.

    Returns:
        String containing YAML configuration with comments
    """
    return """# Google Contacts to Notion Sync Configuration
# ============================================
#
# This file sets default options for gcontact-notion.
# CLI arguments always override these values.
#
# To use this configuration:
#   1. Save as ~/.gcontact-notion/config.yaml (or custom location)
#   2. Uncomment and modify options as needed
#   3. Run gcontact-notion commands normally


# Target Database
# ---------------

# ID of the Notion database that receives contacts. The integration
# must be shared with this database.
# database_id: 0123456789abcdef0123456789abcdef


# Sync Behavior
# -------------

# Contacts requested per Google API page (1 to 1000)
# Default: 100
# page_size: 100

# How to pick an email, phone, organization, etc. when a contact has
# several and none is flagged primary:
#   - strict: leave the property empty
#   - first: use the first entry
# Default: strict
# primary_policy: strict

# Add mapped properties that are missing from the database before syncing
# Default: false
# ensure_schema: false

# Treat contacts deleted in Google as changed instead of archiving them.
# Deleted contacts rarely keep their names; those without a title value
# are skipped and counted in the summary, not reported as failures.
# Default: false
# include_deleted: false


# Property Mapping
# ----------------

# Property that stores each contact's Google resource name. Pages are
# matched to contacts through this property, so do not edit it in Notion.
# Default: Resource Name
# join_key_property: Resource Name

# Contact field -> Notion property. Use a name, a {name, type} mapping,
# or null to skip a field. Supported fields:
#   display_name (title), first_name, last_name, nickname, email, phone,
#   address, company, department, job_title, notes, birthday, website
# field_mappings:
#   display_name: Name
#   email: {name: E-mail, type: email}
#   nickname: {name: Nickname}
#   website: {name: Website, type: url}
#   department: null


# API Options
# -----------

# Maximum attempts for rate-limited or failing API calls
# Default: 5
# api_max_retries: 5

# Backoff delays in seconds
# api_initial_retry_delay: 1.0
# api_max_retry_delay: 60.0


# Logging Options
# ---------------

# Enable verbose output with detailed logging
# Default: false
# verbose: false

# Directory for log files
# Default: ~/.gcontact-notion/logs
# log_dir: /path/to/logs

# Number of daily log files to keep
# Default: 10
# log_retention_count: 10
"""


def save_config_file(
    config_path: Path, overwrite: bool = False
) -> tuple[bool, Optional[str]]:
    """
    Save default configuration file to specified path.

    Args:
        config_path: Path where the config file should be saved
        overwrite: If True, overwrite existing file. If False, fail if file exists.

    Returns:
        Tuple of (success, error_message); error_message is None on success
    """
    config_path = config_path.expanduser().resolve()

    if config_path.exists() and not overwrite:
        return (
            False,
            f"Configuration file already exists: {config_path}\n"
            "Use --force to overwrite.",
        )

    try:
        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")
        config_path.chmod(0o600)
    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)

    logger.info(f"Created configuration file: {config_path}")
    return (True, None)
