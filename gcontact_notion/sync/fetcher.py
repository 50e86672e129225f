"""
Contact fetching with full and incremental synchronization.

Implements the sync token lifecycle against the People API:
- full_sync: list every contact and capture a fresh sync token
- incremental_sync: replay changes since the stored token, splitting
  deleted contacts from changed ones
- sync: incremental when possible, full when the token is missing or
  expired; every other failure propagates
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from gcontact_notion.api.people_api import DEFAULT_PAGE_SIZE, ContactPage, PeopleAPI
from gcontact_notion.errors import SyncTokenExpiredError, SyncTokenMissingError
from gcontact_notion.storage.db import TokenStore
from gcontact_notion.sync.contact import SourceContact

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """
    Contacts fetched for one sync run.

    Attributes:
        people: Contacts to create or update in Notion
        deleted_people: Contacts deleted in Google since the last sync
        is_full_sync: True if the whole contact list was read
    """

    people: list[SourceContact] = field(default_factory=list)
    deleted_people: list[SourceContact] = field(default_factory=list)
    is_full_sync: bool = False


def fold_pages(
    pages: Iterable[ContactPage],
) -> tuple[list[SourceContact], Optional[str]]:
    """
    Accumulate the contacts of a page stream and its newest sync token.

    Google normally attaches the sync token to the last page only, but a
    token seen on any page is kept until a later page supplies another.

    Args:
        pages: Pages in listing order

    Returns:
        Tuple of (all contacts, last non-empty sync token or None)
    """
    contacts: list[SourceContact] = []
    sync_token: Optional[str] = None

    for page in pages:
        contacts.extend(page.items)
        if page.next_sync_token:
            sync_token = page.next_sync_token

    return contacts, sync_token


class ContactFetcher:
    """
    Fetches the contacts that need syncing and manages the sync token.

    Attributes:
        api: People API wrapper
        token_store: Storage for the sync token
        page_size: Default page size for full syncs
        include_deleted: Route deleted contacts to the changed list

    Usage:
        fetcher = ContactFetcher(api, SyncTokenStore(db))
        result = fetcher.sync()
        if result.is_full_sync:
            ...
    """

    def __init__(
        self,
        api: PeopleAPI,
        token_store: TokenStore,
        page_size: int = DEFAULT_PAGE_SIZE,
        include_deleted: bool = False,
    ):
        self.api = api
        self.token_store = token_store
        self.page_size = page_size
        self.include_deleted = include_deleted

    def full_sync(self, page_size: Optional[int] = None) -> list[SourceContact]:
        """
        Read every contact and store a fresh sync token.

        Args:
            page_size: Contacts per page (defaults to the fetcher's page size)

        Returns:
            All contacts currently in the account

        Raises:
            PeopleAPIError: If listing fails
        """
        size = page_size or self.page_size
        logger.info(f"Starting full sync (page size {size})")

        contacts, sync_token = fold_pages(
            self.api.iter_pages(request_sync_token=True, page_size=size)
        )

        if sync_token:
            self.token_store.save(sync_token)
        else:
            logger.warning("Full sync returned no sync token; next run will be full")

        logger.info(f"Full sync fetched {len(contacts)} contacts")
        return contacts

    def incremental_sync(self) -> FetchResult:
        """
        Read the changes since the stored sync token.

        Returns:
            FetchResult with changed and deleted contacts

        Raises:
            SyncTokenMissingError: If no sync token is stored
            SyncTokenExpiredError: If Google rejects the stored token
            PeopleAPIError: If listing fails for any other reason
        """
        stored_token = self.token_store.load()
        if not stored_token:
            raise SyncTokenMissingError()

        logger.info("Starting incremental sync")

        contacts, new_token = fold_pages(self.api.iter_pages(sync_token=stored_token))
        people, deleted_people = self._classify(contacts)

        if new_token:
            self.token_store.save(new_token)

        logger.info(
            f"Incremental sync fetched {len(people)} changed and "
            f"{len(deleted_people)} deleted contacts"
        )
        return FetchResult(
            people=people, deleted_people=deleted_people, is_full_sync=False
        )

    def sync(self) -> FetchResult:
        """
        Run an incremental sync, falling back to a full sync when needed.

        Only a missing or expired sync token triggers the fallback. Any
        other error propagates unchanged.

        Returns:
            FetchResult; is_full_sync is True when the fallback ran
        """
        try:
            return self.incremental_sync()
        except SyncTokenMissingError:
            logger.info("No sync token stored, performing full sync")
        except SyncTokenExpiredError:
            logger.warning("Sync token expired, performing full sync")

        people = self.full_sync()
        return FetchResult(people=people, deleted_people=[], is_full_sync=True)

    def _classify(
        self, contacts: list[SourceContact]
    ) -> tuple[list[SourceContact], list[SourceContact]]:
        """
        Split contacts into changed and deleted lists.

        Repeated resource names keep only their last-seen entry.
        """
        latest: dict[str, SourceContact] = {}
        for contact in contacts:
            latest[contact.resource_name] = contact

        if len(latest) < len(contacts):
            logger.debug(
                f"Dropped {len(contacts) - len(latest)} repeated contacts"
            )

        people: list[SourceContact] = []
        deleted_people: list[SourceContact] = []
        for contact in latest.values():
            if contact.deleted and not self.include_deleted:
                deleted_people.append(contact)
            else:
                people.append(contact)

        return people, deleted_people
