"""
Unit tests for the authentication modules.

Tests GoogleAuth with mocked google-auth objects and NotionAuth token
storage, including environment variable precedence.
"""

import json
import os
import stat
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError

from gcontact_notion.auth import AuthenticationError, GoogleAuth, NotionAuth
from gcontact_notion.auth.google_auth import SCOPES
from gcontact_notion.errors import CredentialsError

GOOGLE = "gcontact_notion.auth.google_auth"


@pytest.fixture
def google_auth(tmp_path):
    return GoogleAuth(config_dir=tmp_path)


@pytest.fixture
def no_env_token():
    env = {k: v for k, v in os.environ.items() if k != "NOTION_TOKEN"}
    with patch.dict(os.environ, env, clear=True):
        yield


class TestGoogleAuthInit:
    """Tests for GoogleAuth initialization."""

    def test_paths(self, tmp_path):
        """Test that token and client secret paths live in the config dir."""
        auth = GoogleAuth(config_dir=tmp_path)

        assert auth.credentials_path == tmp_path.resolve() / "credentials.json"
        assert auth.token_path == tmp_path.resolve() / "token_google.json"

    def test_scope_is_read_only(self):
        """Test that only read access to contacts is requested."""
        assert SCOPES == ["https://www.googleapis.com/auth/contacts.readonly"]

    def test_authentication_error_is_credentials_error(self):
        assert issubclass(AuthenticationError, CredentialsError)


class TestGoogleGetCredentials:
    """Tests for GoogleAuth.get_credentials."""

    def test_no_token_file(self, google_auth):
        """Test that missing tokens yield None."""
        assert google_auth.get_credentials() is None

    @patch(f"{GOOGLE}.Credentials")
    def test_valid_credentials(self, mock_credentials, google_auth):
        """Test that valid stored credentials are returned."""
        google_auth.token_path.write_text("{}")
        creds = MagicMock(valid=True)
        mock_credentials.from_authorized_user_file.return_value = creds

        assert google_auth.get_credentials() is creds
        mock_credentials.from_authorized_user_file.assert_called_once_with(
            str(google_auth.token_path), SCOPES
        )

    @patch(f"{GOOGLE}.Request")
    @patch(f"{GOOGLE}.Credentials")
    def test_expired_credentials_are_refreshed(
        self, mock_credentials, mock_request, google_auth
    ):
        """Test that expired credentials are refreshed and saved."""
        google_auth.token_path.write_text("{}")
        creds = MagicMock(valid=False, expired=True, refresh_token="refresh")
        creds.to_json.return_value = '{"token": "new"}'
        mock_credentials.from_authorized_user_file.return_value = creds

        assert google_auth.get_credentials() is creds
        creds.refresh.assert_called_once()
        assert google_auth.token_path.read_text() == '{"token": "new"}'
        assert stat.S_IMODE(google_auth.token_path.stat().st_mode) == 0o600

    @patch(f"{GOOGLE}.Request")
    @patch(f"{GOOGLE}.Credentials")
    def test_failed_refresh_returns_none(
        self, mock_credentials, mock_request, google_auth
    ):
        """Test that a revoked refresh token yields None."""
        google_auth.token_path.write_text("{}")
        creds = MagicMock(valid=False, expired=True, refresh_token="refresh")
        creds.refresh.side_effect = RefreshError("revoked")
        mock_credentials.from_authorized_user_file.return_value = creds

        assert google_auth.get_credentials() is None

    @patch(f"{GOOGLE}.Credentials")
    def test_invalid_token_file(self, mock_credentials, google_auth):
        """Test that unparsable token files yield None."""
        google_auth.token_path.write_text("not json")
        mock_credentials.from_authorized_user_file.side_effect = ValueError("bad")

        assert google_auth.get_credentials() is None


class TestGoogleAuthenticate:
    """Tests for GoogleAuth.authenticate."""

    def test_missing_client_secrets(self, google_auth):
        """Test that a missing credentials.json raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="credentials file not found"):
            google_auth.authenticate(force_reauth=True)

    @patch(f"{GOOGLE}.InstalledAppFlow")
    def test_runs_flow_with_offline_access(self, mock_flow_class, google_auth):
        """Test that the browser flow asks for a refresh token."""
        google_auth.credentials_path.write_text("{}")
        new_creds = MagicMock()
        new_creds.to_json.return_value = "{}"
        flow = mock_flow_class.from_client_secrets_file.return_value
        flow.run_local_server.return_value = new_creds

        assert google_auth.authenticate(force_reauth=True) is new_creds
        flow.run_local_server.assert_called_once_with(
            port=0, access_type="offline", prompt="consent"
        )
        assert google_auth.token_path.exists()

    @patch(f"{GOOGLE}.InstalledAppFlow")
    def test_flow_failure_raises_authentication_error(
        self, mock_flow_class, google_auth
    ):
        """Test that flow errors are wrapped."""
        google_auth.credentials_path.write_text("{}")
        mock_flow_class.from_client_secrets_file.side_effect = ValueError("bad client")

        with pytest.raises(AuthenticationError, match="bad client"):
            google_auth.authenticate(force_reauth=True)

    def test_clear_credentials(self, google_auth):
        """Test token removal."""
        google_auth.token_path.write_text("{}")

        assert google_auth.clear_credentials() is True
        assert google_auth.clear_credentials() is False

    def test_auth_status_without_token(self, google_auth):
        status = google_auth.get_auth_status()

        assert status["authenticated"] is False
        assert status["token_exists"] is False
        assert status["credentials_exist"] is False


class TestNotionAuth:
    """Tests for NotionAuth."""

    def test_save_and_get_token(self, tmp_path, no_env_token):
        """Test that a saved token is returned with owner-only permissions."""
        auth = NotionAuth(config_dir=tmp_path)

        auth.save_token("  secret_abc  ")

        assert auth.get_token() == "secret_abc"
        assert json.loads(auth.token_path.read_text()) == {"access_token": "secret_abc"}
        assert stat.S_IMODE(auth.token_path.stat().st_mode) == 0o600

    def test_empty_token_rejected(self, tmp_path):
        """Test that blank tokens are refused."""
        with pytest.raises(ValueError, match="must not be empty"):
            NotionAuth(config_dir=tmp_path).save_token("  ")

    def test_environment_wins(self, tmp_path):
        """Test that NOTION_TOKEN overrides the stored token."""
        auth = NotionAuth(config_dir=tmp_path)
        auth.save_token("secret_file")

        with patch.dict(os.environ, {"NOTION_TOKEN": "secret_env"}):
            assert auth.get_token() == "secret_env"
            assert auth.get_auth_status()["source"] == "environment"

    def test_no_token(self, tmp_path, no_env_token):
        """Test that nothing configured yields None."""
        auth = NotionAuth(config_dir=tmp_path)

        assert auth.get_token() is None
        assert auth.get_auth_status() == {
            "authenticated": False,
            "source": None,
            "token_path": str(auth.token_path),
            "token_exists": False,
        }

    def test_corrupt_token_file(self, tmp_path, no_env_token):
        """Test that an unreadable token file counts as missing."""
        auth = NotionAuth(config_dir=tmp_path)
        auth.token_path.write_text("{not json")

        assert auth.get_token() is None

    def test_clear_token(self, tmp_path, no_env_token):
        auth = NotionAuth(config_dir=tmp_path)
        auth.save_token("secret_abc")

        assert auth.clear_token() is True
        assert auth.get_token() is None
        assert auth.clear_token() is False
