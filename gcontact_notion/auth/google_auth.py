"""
OAuth2 authentication module for Google Contacts access.

Provides OAuth 2.0 authentication with support for:
- Read-only access to the contacts of one Google account
- Automatic token refresh
- Secure credential storage in the configuration directory
- Graceful handling of expired tokens
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from gcontact_notion.errors import CredentialsError
from gcontact_notion.utils.paths import ensure_config_dir, resolve_config_dir

# OAuth2 scopes required for reading Google Contacts
SCOPES = ["https://www.googleapis.com/auth/contacts.readonly"]

GOOGLE_TOKEN_FILE = "token_google.json"
CLIENT_SECRETS_FILE = "credentials.json"

logger = logging.getLogger(__name__)


class AuthenticationError(CredentialsError):
    """Raised when the OAuth flow fails."""

    pass


class GoogleAuth:
    """
    OAuth2 authentication manager for the Google account.

    Handles credential loading, token refresh, and the installed-app
    OAuth flow.

    Attributes:
        config_dir: Directory for storing credentials and tokens
        credentials_path: Path to OAuth client credentials file
        token_path: Path to the stored user token

    Usage:
        auth = GoogleAuth()
        creds = auth.authenticate()

        # Later runs, without user interaction:
        creds = auth.get_credentials()
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize the authentication manager.

        Args:
            config_dir: Directory for storing credentials and tokens.
                       Defaults to ~/.gcontact-notion/ or $GCONTACT_NOTION_CONFIG_DIR
        """
        self.config_dir = resolve_config_dir(config_dir)
        self.credentials_path = self.config_dir / CLIENT_SECRETS_FILE
        self.token_path = self.config_dir / GOOGLE_TOKEN_FILE

    def _load_credentials(self) -> Optional[Credentials]:
        """
        Load credentials from the token file if it exists.

        Returns:
            Credentials object if the token file exists and parses, None otherwise
        """
        if not self.token_path.exists():
            logger.debug("No Google token file found")
            return None

        try:
            creds: Credentials = Credentials.from_authorized_user_file(
                str(self.token_path), SCOPES
            )
            logger.debug("Loaded Google credentials")
            return creds
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Invalid Google token file: {e}")
            return None

    def _save_credentials(self, creds: Credentials) -> None:
        """Write credentials to the token file with owner-only permissions."""
        ensure_config_dir(self.config_dir)
        self.token_path.write_text(creds.to_json())
        self.token_path.chmod(0o600)
        logger.debug("Saved Google credentials")

    def _refresh_credentials(self, creds: Credentials) -> bool:
        """
        Attempt to refresh expired credentials.

        Returns:
            True if refresh succeeded, False otherwise
        """
        if not creds.refresh_token:
            logger.debug("No refresh token available")
            return False

        try:
            creds.refresh(Request())
            logger.debug("Successfully refreshed credentials")
            return True
        except RefreshError as e:
            logger.warning(f"Failed to refresh credentials: {e}")
            return False

    def get_credentials(self) -> Optional[Credentials]:
        """
        Get valid credentials if available.

        Attempts to load and refresh credentials without user interaction.

        Returns:
            Valid Credentials object, or None if not available
        """
        creds = self._load_credentials()
        if creds is None:
            return None

        if creds.valid:
            return creds

        if creds.expired and creds.refresh_token and self._refresh_credentials(creds):
            self._save_credentials(creds)
            return creds

        return None

    def authenticate(self, force_reauth: bool = False) -> Credentials:
        """
        Authenticate the Google account.

        If valid credentials exist and force_reauth is False, returns existing
        credentials. Otherwise, runs the OAuth flow in the browser.

        Args:
            force_reauth: If True, ignore existing credentials and re-authenticate

        Returns:
            Valid Credentials object

        Raises:
            AuthenticationError: If authentication fails
            FileNotFoundError: If credentials.json is not found
        """
        if not force_reauth:
            creds = self.get_credentials()
            if creds is not None:
                logger.info("Using existing Google credentials")
                return creds

        if not self.credentials_path.exists():
            raise FileNotFoundError(
                f"OAuth credentials file not found: {self.credentials_path}\n"
                "Please download your OAuth client credentials from "
                "Google Cloud Console and save them to this location."
            )

        logger.info("Starting Google OAuth flow")

        try:
            flow = InstalledAppFlow.from_client_secrets_file(
                str(self.credentials_path), SCOPES
            )
            # offline access is what yields a refresh token
            new_creds: Credentials = flow.run_local_server(
                port=0, access_type="offline", prompt="consent"
            )
        except Exception as e:
            logger.error(f"Google authentication failed: {e}")
            raise AuthenticationError(f"Failed to authenticate with Google: {e}") from e

        self._save_credentials(new_creds)
        logger.info("Successfully authenticated with Google")
        return new_creds

    def is_authenticated(self) -> bool:
        """Check if valid credentials exist."""
        return self.get_credentials() is not None

    def clear_credentials(self) -> bool:
        """
        Remove stored credentials.

        Returns:
            True if credentials were removed, False if they didn't exist
        """
        if self.token_path.exists():
            self.token_path.unlink()
            logger.info("Cleared Google credentials")
            return True
        return False

    def get_auth_status(self) -> dict[str, Any]:
        """
        Get authentication status.

        Returns:
            Dictionary with authenticated, token_path, token_exists,
            has_refresh_token, credentials_path, and credentials_exist
        """
        creds = self.get_credentials()
        return {
            "authenticated": creds is not None,
            "token_path": str(self.token_path),
            "token_exists": self.token_path.exists(),
            "has_refresh_token": bool(creds is not None and creds.refresh_token),
            "credentials_path": str(self.credentials_path),
            "credentials_exist": self.credentials_path.exists(),
        }
