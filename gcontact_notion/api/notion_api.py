"""
Notion database wrapper for contact synchronization.

Provides the operations the sync engine needs against one Notion database:
- Querying pages with a filter (all result pages)
- Creating, updating, and archiving pages
- Reading and extending the database schema
- Exponential backoff retry logic for rate limits and server errors
"""

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx
from notion_client import Client
from notion_client.errors import APIResponseError, RequestTimeoutError

from gcontact_notion.errors import TransportError

# Retry configuration defaults
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_RETRY_DELAY = 1.0  # seconds
DEFAULT_MAX_RETRY_DELAY = 60.0  # seconds

# Notion allows about three requests per second per integration
DEFAULT_MIN_REQUEST_INTERVAL = 0.35  # seconds

# Maximum results per query page
QUERY_PAGE_SIZE = 100

logger = logging.getLogger(__name__)


class NotionAPIError(TransportError):
    """Raised when a Notion API operation fails."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class NotionRateLimitError(NotionAPIError):
    """Raised when rate limit is exceeded and retries are exhausted."""

    pass


class NotionDatabase:
    """
    Notion API wrapper bound to a single database.

    Attributes:
        client: notion_client.Client instance
        database_id: ID of the target database

    Usage:
        db = NotionDatabase(Client(auth=token), database_id)

        pages = db.query({"property": "Resource Name",
                          "rich_text": {"equals": "people/c1"}})
        page = db.create_page(properties, icon=None)
        db.update_page(page["id"], properties)
        db.archive_page(page["id"])
    """

    def __init__(
        self,
        client: Client,
        database_id: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
        min_request_interval: float = DEFAULT_MIN_REQUEST_INTERVAL,
    ):
        """
        Initialize the database wrapper.

        Args:
            client: Authenticated notion_client.Client
            database_id: Target database ID
            max_retries: Maximum attempts for failed API calls (default 5)
            initial_retry_delay: Initial backoff delay in seconds (default 1.0)
            max_retry_delay: Maximum backoff delay in seconds (default 60.0)
            min_request_interval: Minimum seconds between requests
        """
        self.client = client
        self.database_id = database_id
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.max_retry_delay = max_retry_delay
        self.min_request_interval = min_request_interval
        self._last_request_time = 0.0

    @classmethod
    def from_token(cls, token: str, database_id: str, **kwargs: Any) -> "NotionDatabase":
        """Create a wrapper with a new client for an integration token."""
        return cls(Client(auth=token), database_id, **kwargs)

    def _throttle(self) -> None:
        """Enforce the minimum interval between requests."""
        if self.min_request_interval <= 0:
            return
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self.min_request_interval:
            time.sleep(self.min_request_interval - elapsed)
        self._last_request_time = time.monotonic()

    def _retry_with_backoff(
        self, operation: Callable[[], Any], operation_name: str
    ) -> Any:
        """
        Execute an operation with exponential backoff retry.

        Args:
            operation: Callable to execute
            operation_name: Name for logging purposes

        Returns:
            Result of the operation

        Raises:
            NotionRateLimitError: If retries are exhausted due to rate limits
            NotionAPIError: For other API errors, and network failures or
                timeouts that outlast the retries (status None)
        """
        delay = self.initial_retry_delay

        for attempt in range(self.max_retries):
            self._throttle()
            try:
                return operation()

            except APIResponseError as e:
                status_code = e.status

                if status_code == 429:
                    if attempt < self.max_retries - 1:
                        wait = max(delay, _retry_after(e))
                        logger.warning(
                            f"{operation_name} rate limited, retrying in "
                            f"{wait:.1f}s (attempt {attempt + 1}/{self.max_retries})"
                        )
                        time.sleep(wait)
                        delay = min(delay * 2, self.max_retry_delay)
                        continue
                    raise NotionRateLimitError(
                        f"Rate limit exceeded for {operation_name} "
                        f"after {self.max_retries} retries",
                        status=status_code,
                    ) from e

                if status_code >= 500 and attempt < self.max_retries - 1:
                    logger.warning(
                        f"{operation_name} server error ({status_code}), "
                        f"retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    delay = min(delay * 2, self.max_retry_delay)
                    continue

                logger.error(f"{operation_name} failed with status {status_code}: {e}")
                raise NotionAPIError(
                    f"{operation_name} failed: {e.code} - {e}", status=status_code
                ) from e

            except (RequestTimeoutError, httpx.TransportError) as e:
                if attempt < self.max_retries - 1:
                    logger.warning(
                        f"{operation_name} network error ({e!r}), "
                        f"retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    delay = min(delay * 2, self.max_retry_delay)
                    continue
                raise NotionAPIError(
                    f"{operation_name} failed after {self.max_retries} attempts: {e!r}"
                ) from e

        raise NotionAPIError(f"{operation_name} failed after all retries")

    # =========================================================================
    # Page Operations
    # =========================================================================

    def query(self, filter: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """
        Query all live pages matching a filter.

        Args:
            filter: Notion filter object, or None for every page

        Returns:
            List of page objects, archived pages excluded
        """
        pages: list[dict[str, Any]] = []
        start_cursor: str | None = None

        while True:
            params: dict[str, Any] = {
                "database_id": self.database_id,
                "page_size": QUERY_PAGE_SIZE,
            }
            if filter:
                params["filter"] = filter
            if start_cursor:
                params["start_cursor"] = start_cursor

            def execute_query(p: dict[str, Any] = params) -> Any:
                return self.client.databases.query(**p)

            response = self._retry_with_backoff(execute_query, "query_database")

            for page in response.get("results", []):
                if page.get("archived") or page.get("in_trash"):
                    continue
                pages.append(page)

            if not response.get("has_more"):
                break
            start_cursor = response.get("next_cursor")
            if not start_cursor:
                break

        return pages

    def create_page(
        self, properties: dict[str, Any], icon: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Create a page in the database.

        Args:
            properties: Property payloads keyed by property name
            icon: Optional icon payload

        Returns:
            Created page object
        """
        params: dict[str, Any] = {
            "parent": {"database_id": self.database_id},
            "properties": properties,
        }
        if icon:
            params["icon"] = icon

        page = self._retry_with_backoff(
            lambda: self.client.pages.create(**params), "create_page"
        )
        logger.debug(f"Created page {page.get('id')}")
        return page

    def update_page(
        self,
        page_id: str,
        properties: dict[str, Any],
        icon: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Update properties of an existing page.

        Properties not present in ``properties`` are left untouched. The
        icon is only changed when one is given.

        Returns:
            Updated page object
        """
        params: dict[str, Any] = {"page_id": page_id, "properties": properties}
        if icon:
            params["icon"] = icon

        page = self._retry_with_backoff(
            lambda: self.client.pages.update(**params), f"update_page({page_id})"
        )
        logger.debug(f"Updated page {page_id}")
        return page

    def archive_page(self, page_id: str) -> dict[str, Any]:
        """
        Archive (soft-delete) a page.

        Returns:
            Archived page object
        """
        page = self._retry_with_backoff(
            lambda: self.client.pages.update(page_id=page_id, archived=True),
            f"archive_page({page_id})",
        )
        logger.debug(f"Archived page {page_id}")
        return page

    # =========================================================================
    # Schema Operations
    # =========================================================================

    def retrieve_schema(self) -> dict[str, str]:
        """
        Get the database properties.

        Returns:
            Dictionary of property name to Notion property type
        """
        database = self._retry_with_backoff(
            lambda: self.client.databases.retrieve(database_id=self.database_id),
            "retrieve_database",
        )
        return {
            name: prop.get("type", "")
            for name, prop in database.get("properties", {}).items()
        }

    def add_properties(self, definitions: dict[str, Any]) -> None:
        """
        Add properties to the database schema.

        Args:
            definitions: Property definitions keyed by property name
        """
        if not definitions:
            return
        self._retry_with_backoff(
            lambda: self.client.databases.update(
                database_id=self.database_id, properties=definitions
            ),
            "update_database",
        )
        logger.info(f"Added database properties: {', '.join(definitions)}")


def _retry_after(error: APIResponseError) -> float:
    """Read the Retry-After header from a rate-limit error, in seconds."""
    headers = getattr(error, "headers", None) or {}
    try:
        return float(headers.get("Retry-After", 0))
    except (TypeError, ValueError):
        return 0.0
