"""
Google People API wrapper for contact synchronization.

Provides the narrow slice of the People API the sync engine needs:
- Listing one page of connections, with or without a sync token
- Lazily iterating every page of a listing
- Typed detection of expired sync tokens
- Exponential backoff retry logic for rate limits and server errors
"""

import json
import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

import httplib2
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from gcontact_notion.errors import (
    GOOGLE_AUTH_HINT,
    CredentialsError,
    SyncTokenExpiredError,
    TransportError,
)
from gcontact_notion.sync.contact import SourceContact

# Person fields to request from the API
# metadata is required so that deleted contacts are reported as such
PERSON_FIELDS = ",".join(
    [
        "addresses",
        "biographies",
        "birthdays",
        "emailAddresses",
        "metadata",
        "names",
        "nicknames",
        "organizations",
        "phoneNumbers",
        "photos",
        "urls",
    ]
)

# Resource whose connections are listed
OWNER_RESOURCE = "people/me"

# Number of contacts per page when listing
DEFAULT_PAGE_SIZE = 100

# API maximum page size
MAX_PAGE_SIZE = 1000

# Backoff settings; 403 is how the People API reports exhausted quota
RATE_LIMIT_STATUSES = (429, 403)
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_RETRY_DELAY = 1.0  # seconds
DEFAULT_MAX_RETRY_DELAY = 60.0  # seconds

# Error reason reported with a 400 when the sync token is too old
EXPIRED_SYNC_TOKEN_REASON = "EXPIRED_SYNC_TOKEN"

logger = logging.getLogger(__name__)


class PeopleAPIError(TransportError):
    """Raised when a People API operation fails."""

    pass


class RateLimitError(PeopleAPIError):
    """Raised when rate limit is exceeded and retries are exhausted."""

    pass


@dataclass
class ContactPage:
    """
    One page of a connections listing.

    Attributes:
        items: Contacts on this page
        next_page_token: Token for the following page, None on the last page
        next_sync_token: Sync token attached to this page, if any
    """

    items: list[SourceContact] = field(default_factory=list)
    next_page_token: str | None = None
    next_sync_token: str | None = None


def is_expired_sync_token_error(error: HttpError) -> bool:
    """
    Check whether an HttpError means the presented sync token expired.

    Google reports an expired token either as 410 GONE or as a 400 whose
    error details carry the EXPIRED_SYNC_TOKEN reason.

    Args:
        error: Error raised by the API client

    Returns:
        True if the sync token is no longer valid
    """
    status = error.resp.status
    if status == 410:
        return True
    if status != 400:
        return False

    content = error.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    if not content:
        return False

    try:
        payload = json.loads(content)
    except ValueError:
        return EXPIRED_SYNC_TOKEN_REASON in content

    error_body = payload.get("error", {}) if isinstance(payload, dict) else {}
    if not isinstance(error_body, dict):
        return False
    for detail in error_body.get("details", []) or []:
        if isinstance(detail, dict) and detail.get("reason") == EXPIRED_SYNC_TOKEN_REASON:
            return True
    return EXPIRED_SYNC_TOKEN_REASON in str(error_body.get("message", ""))


class PeopleAPI:
    """
    Google People API wrapper for listing contacts.

    Attributes:
        credentials: Google OAuth2 credentials
        service: Google API service object

    Usage:
        api = PeopleAPI(credentials)

        # First page of a full listing, asking for a sync token
        page = api.list_page(request_sync_token=True)

        # Every page of the changes since a sync token
        for page in api.iter_pages(sync_token=token):
            ...
    """

    def __init__(
        self,
        credentials: Credentials,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
    ):
        """
        Initialize the People API wrapper.

        Args:
            credentials: Valid Google OAuth2 credentials with contacts scope
            page_size: Number of contacts per page when listing (default 100)
            max_retries: Maximum attempts for failed API calls (default 5)
            initial_retry_delay: Initial backoff delay in seconds (default 1.0)
            max_retry_delay: Maximum backoff delay in seconds (default 60.0)
        """
        self.credentials = credentials
        self.page_size = min(page_size, MAX_PAGE_SIZE)
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.max_retry_delay = max_retry_delay
        self._service = None

    @property
    def service(self) -> Any:
        """
        Get or create the Google API service object.

        Raises:
            PeopleAPIError: If service cannot be created
        """
        if self._service is None:
            try:
                self._service = build(
                    "people", "v1", credentials=self.credentials, cache_discovery=False
                )
                logger.debug("Created People API service")
            except Exception as e:
                logger.error(f"Failed to create People API service: {e}")
                raise PeopleAPIError(f"Failed to create API service: {e}") from e
        return self._service

    def _retry_with_backoff(
        self, operation: Callable[[], Any], operation_name: str
    ) -> Any:
        """
        Run an API call, retrying transient failures with exponential backoff.

        Rate limits (429, or 403 for exhausted quota), server errors, and
        network errors are retried until max_retries attempts have been
        made, doubling the delay each time up to max_retry_delay. An
        expired sync token and every other client error fail on the
        first attempt.

        Raises:
            SyncTokenExpiredError: If the presented sync token has expired
            CredentialsError: If the access token cannot be refreshed
            RateLimitError: If the last attempt was still rate limited
            PeopleAPIError: For other API and network failures
        """
        delay = self.initial_retry_delay
        attempt = 0

        while True:
            attempt += 1
            try:
                return operation()

            except HttpError as e:
                if is_expired_sync_token_error(e):
                    logger.warning(f"{operation_name}: sync token expired")
                    raise SyncTokenExpiredError() from e

                status_code = e.resp.status
                if status_code in RATE_LIMIT_STATUSES:
                    if attempt >= self.max_retries:
                        raise RateLimitError(
                            f"Rate limit exceeded for {operation_name} "
                            f"after {attempt} attempts"
                        ) from e
                    reason = "rate limited"
                elif status_code >= 500 and attempt < self.max_retries:
                    reason = f"server error ({status_code})"
                else:
                    logger.error(f"{operation_name} failed with status {status_code}: {e}")
                    raise PeopleAPIError(f"{operation_name} failed: {e}") from e

            except RefreshError as e:
                logger.error(f"{operation_name}: Google token refresh failed")
                raise CredentialsError(
                    f"Google credentials could not be refreshed: {e}",
                    hint=GOOGLE_AUTH_HINT,
                ) from e

            except (OSError, httplib2.HttpLib2Error) as e:
                if attempt >= self.max_retries:
                    raise PeopleAPIError(
                        f"{operation_name} failed after {attempt} attempts: {e}"
                    ) from e
                reason = f"network error ({e})"

            logger.warning(
                f"{operation_name} {reason}, retrying in {delay:.1f}s "
                f"(attempt {attempt}/{self.max_retries})"
            )
            time.sleep(delay)
            delay = min(delay * 2, self.max_retry_delay)

    def list_page(
        self,
        page_token: str | None = None,
        sync_token: str | None = None,
        request_sync_token: bool = False,
        page_size: int | None = None,
    ) -> ContactPage:
        """
        Fetch a single page of connections.

        Args:
            page_token: Continuation token from the previous page
            sync_token: Sync token for an incremental listing
            request_sync_token: Ask Google to attach a new sync token
            page_size: Override the instance page size

        Returns:
            ContactPage with the parsed contacts and tokens

        Raises:
            SyncTokenExpiredError: If sync_token has expired
            PeopleAPIError: If listing fails
            RateLimitError: If rate limit exceeded
        """
        params: dict[str, Any] = {
            "resourceName": OWNER_RESOURCE,
            "personFields": PERSON_FIELDS,
            "pageSize": min(page_size or self.page_size, MAX_PAGE_SIZE),
        }

        if page_token:
            params["pageToken"] = page_token

        if sync_token:
            params["syncToken"] = sync_token
        elif request_sync_token:
            params["requestSyncToken"] = True

        def execute_list(p: dict[str, Any] = params) -> Any:
            return self.service.people().connections().list(**p).execute()

        response = self._retry_with_backoff(execute_list, "list_contacts")

        items: list[SourceContact] = []
        for person in response.get("connections", []):
            try:
                items.append(SourceContact.from_api_response(person))
            except (AttributeError, TypeError) as e:
                logger.warning(f"Failed to parse contact: {e}")

        return ContactPage(
            items=items,
            next_page_token=response.get("nextPageToken") or None,
            next_sync_token=response.get("nextSyncToken") or None,
        )

    def iter_pages(
        self,
        sync_token: str | None = None,
        request_sync_token: bool = False,
        page_size: int | None = None,
    ) -> Iterator[ContactPage]:
        """
        Lazily iterate over every page of a listing.

        The same sync_token (or sync token request) is presented on every
        page; only the page token changes.

        Yields:
            ContactPage objects in order
        """
        page_token: str | None = None
        page_number = 0

        while True:
            page = self.list_page(
                page_token=page_token,
                sync_token=sync_token,
                request_sync_token=request_sync_token,
                page_size=page_size,
            )
            page_number += 1
            logger.debug(
                f"Fetched page {page_number} ({len(page.items)} contacts, "
                f"more={bool(page.next_page_token)})"
            )
            yield page

            page_token = page.next_page_token
            if not page_token:
                break

    def list_contacts(self, limit: int = 10) -> list[SourceContact]:
        """
        List up to ``limit`` contacts without touching sync tokens.

        Args:
            limit: Maximum number of contacts to return

        Returns:
            List of SourceContact objects
        """
        contacts: list[SourceContact] = []
        for page in self.iter_pages(page_size=min(limit, MAX_PAGE_SIZE)):
            contacts.extend(page.items)
            if len(contacts) >= limit:
                break
        return contacts[:limit]
