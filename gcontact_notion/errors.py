"""
Error taxonomy for contact synchronization.

Every failure the sync core can raise belongs to one of a small, closed set
of exception types. Each is raised where the condition is detected so that
callers branch on the type, never on message text:

- SyncTokenExpiredError: the stored sync token was rejected by Google
- SyncTokenMissingError: no sync token has been stored yet
- TransportError: a provider call failed (retries included)
- ValidationError: a single contact could not be converted
- RecordNotFoundError: no live Notion page exists for a resource name
- CredentialsError: Google or Notion credentials are missing or unusable
"""

# Commands that fix a CredentialsError, shown to the user as hints
GOOGLE_AUTH_HINT = "gcontact-notion auth google"
NOTION_AUTH_HINT = "gcontact-notion auth notion --token <integration token>"


class ContactSyncError(Exception):
    """Base class for all synchronization errors."""

    pass


class SyncTokenExpiredError(ContactSyncError):
    """Raised when Google reports the sync token as expired (410 GONE)."""

    def __init__(self, message: str = "SYNC_TOKEN_EXPIRED"):
        super().__init__(message)


class SyncTokenMissingError(ContactSyncError):
    """Raised when an incremental sync is requested without a stored token."""

    def __init__(self, message: str = "No sync token stored; run a full sync"):
        super().__init__(message)


class TransportError(ContactSyncError):
    """Raised when a provider API call fails."""

    pass


class ValidationError(ContactSyncError):
    """Raised when a contact cannot be converted into Notion properties."""

    def __init__(self, message: str, resource_name: str | None = None):
        super().__init__(message)
        self.resource_name = resource_name


class RecordNotFoundError(ContactSyncError):
    """Raised when no live Notion page matches a resource name."""

    def __init__(self, resource_name: str):
        super().__init__(f"Page not found: {resource_name}")
        self.resource_name = resource_name


class CredentialsError(ContactSyncError):
    """
    Raised when credentials are missing, invalid, or cannot be refreshed.

    Attributes:
        hint: Command the user should run to fix the problem
    """

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


__all__ = [
    "ContactSyncError",
    "SyncTokenExpiredError",
    "SyncTokenMissingError",
    "TransportError",
    "ValidationError",
    "RecordNotFoundError",
    "CredentialsError",
    "GOOGLE_AUTH_HINT",
    "NOTION_AUTH_HINT",
]
