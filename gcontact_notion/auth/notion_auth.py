"""
Notion token storage.

Notion integrations authenticate with a bearer token (an internal
integration secret or an OAuth access token). The token is read from the
NOTION_TOKEN environment variable when set, otherwise from a token file
in the configuration directory.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from gcontact_notion.utils.paths import ensure_config_dir, resolve_config_dir

NOTION_TOKEN_FILE = "token_notion.json"
NOTION_TOKEN_ENV_VAR = "NOTION_TOKEN"

logger = logging.getLogger(__name__)


class NotionAuth:
    """
    Stores and loads the Notion access token.

    Usage:
        auth = NotionAuth()
        auth.save_token("secret_...")
        token = auth.get_token()
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = resolve_config_dir(config_dir)
        self.token_path = self.config_dir / NOTION_TOKEN_FILE

    def _load_stored_token(self) -> Optional[str]:
        if not self.token_path.exists():
            return None
        try:
            data = json.loads(self.token_path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Invalid Notion token file: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning("Invalid Notion token file: expected a JSON object")
            return None
        token = data.get("access_token")
        return token.strip() or None if isinstance(token, str) else None

    def get_token(self) -> Optional[str]:
        """
        Get the Notion token.

        Returns:
            Token from NOTION_TOKEN if set, else the stored token, else None
        """
        env_token = os.environ.get(NOTION_TOKEN_ENV_VAR, "").strip()
        if env_token:
            return env_token
        return self._load_stored_token()

    def save_token(self, token: str) -> None:
        """
        Store a token with owner-only permissions.

        Raises:
            ValueError: If the token is empty
        """
        token = token.strip()
        if not token:
            raise ValueError("Notion token must not be empty")

        ensure_config_dir(self.config_dir)
        self.token_path.write_text(json.dumps({"access_token": token}))
        self.token_path.chmod(0o600)
        logger.info("Saved Notion token")

    def clear_token(self) -> bool:
        """
        Remove the stored token.

        Returns:
            True if a token file was removed
        """
        if self.token_path.exists():
            self.token_path.unlink()
            logger.info("Cleared Notion token")
            return True
        return False

    def get_auth_status(self) -> dict[str, Any]:
        """Get token availability and where it comes from."""
        env_set = bool(os.environ.get(NOTION_TOKEN_ENV_VAR, "").strip())
        stored = self._load_stored_token() is not None
        if env_set:
            source = "environment"
        elif stored:
            source = "file"
        else:
            source = None
        return {
            "authenticated": env_set or stored,
            "source": source,
            "token_path": str(self.token_path),
            "token_exists": self.token_path.exists(),
        }
