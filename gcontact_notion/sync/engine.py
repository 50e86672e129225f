"""
Sync engine for Google Contacts to Notion synchronization.

Orchestrates one sync run through its stages:

    CHECKING_CREDENTIALS -> [ENSURING_SCHEMA] -> FETCHING -> UPSERTING
        -> ARCHIVING -> REPORTING

with FAILED reachable from every stage. Per-contact conversion, upsert,
and archival failures are recorded and the batch continues; missing
credentials and exhausted transport retries abort the run. The optional
schema step finishes before the fetch saves a new sync token.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from gcontact_notion.api.notion_api import NotionAPIError, NotionRateLimitError
from gcontact_notion.api.people_api import RateLimitError
from gcontact_notion.errors import (
    GOOGLE_AUTH_HINT,
    NOTION_AUTH_HINT,
    CredentialsError,
    RecordNotFoundError,
    TransportError,
    ValidationError,
)
from gcontact_notion.storage.db import DEFAULT_ACCOUNT_ID, SyncDatabase
from gcontact_notion.sync.contact import SourceContact
from gcontact_notion.sync.fetcher import ContactFetcher, FetchResult
from gcontact_notion.sync.mapping import FieldMapping
from gcontact_notion.sync.upsert import UpsertAction, RecordUpserter

logger = logging.getLogger(__name__)


class SyncStage(str, Enum):
    """Stages of a sync run."""

    IDLE = "idle"
    CHECKING_CREDENTIALS = "checking_credentials"
    ENSURING_SCHEMA = "ensuring_schema"
    FETCHING = "fetching"
    UPSERTING = "upserting"
    ARCHIVING = "archiving"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ItemFailure:
    """A contact that could not be upserted or archived."""

    resource_name: str
    display_name: str
    stage: str  # "upsert" or "archive"
    error: str


@dataclass
class SyncStats:
    """
    Statistics from a sync run.

    Tracks counts of all operations performed during sync.
    """

    changed: int = 0
    deleted: int = 0
    created: int = 0
    updated: int = 0
    archived: int = 0
    would_upsert: int = 0
    would_archive: int = 0
    skipped: int = 0
    upsert_failures: int = 0
    archive_failures: int = 0
    schema_properties_added: int = 0

    @property
    def attempted(self) -> int:
        """Contacts the run tried to upsert or archive."""
        return self.changed + self.deleted

    @property
    def succeeded(self) -> int:
        """Contacts handled without error, dry-run counts included."""
        return (
            self.created
            + self.updated
            + self.archived
            + self.would_upsert
            + self.would_archive
        )

    @property
    def upserted(self) -> int:
        """Pages created or updated."""
        return self.created + self.updated

    @property
    def failed(self) -> int:
        """Contacts that failed in any stage."""
        return self.upsert_failures + self.archive_failures


@dataclass
class SyncResult:
    """
    Result of a sync run.

    Contains the fetched contacts, the per-contact failures, and statistics.
    """

    people: list[SourceContact] = field(default_factory=list)
    deleted_people: list[SourceContact] = field(default_factory=list)
    is_full_sync: bool = False
    dry_run: bool = False
    failures: list[ItemFailure] = field(default_factory=list)
    stats: SyncStats = field(default_factory=SyncStats)

    @property
    def has_failures(self) -> bool:
        """Check if any contact failed."""
        return bool(self.failures)

    def summary(self) -> str:
        """
        Generate a human-readable summary of the sync run.

        Returns:
            Formatted string summary of sync operations
        """
        stats = self.stats
        sync_type = "full" if self.is_full_sync else "incremental"
        heading = "Sync Summary (dry run):" if self.dry_run else "Sync Summary:"

        lines = [
            heading,
            f"  Sync type: {sync_type}",
            f"  Changed contacts: {stats.changed}",
            f"  Deleted contacts: {stats.deleted}",
            "",
            f"  Attempted: {stats.attempted}",
            f"  Succeeded: {stats.succeeded}",
            f"  Failed: {stats.failed}",
            "",
        ]
        if self.dry_run:
            lines.append(f"  Would upsert: {stats.would_upsert}")
            lines.append(f"  Would archive: {stats.would_archive}")
        else:
            lines.append(f"  Created: {stats.created}")
            lines.append(f"  Updated: {stats.updated}")
            lines.append(f"  Archived: {stats.archived}")

        if stats.skipped:
            lines.append(f"  Skipped (deleted, no title): {stats.skipped}")

        if stats.schema_properties_added:
            lines.append(f"  Properties added: {stats.schema_properties_added}")

        if self.failures:
            lines.append("")
            lines.append("Failures:")
            for failure in self.failures:
                label = failure.display_name or failure.resource_name
                lines.append(
                    f"  [{failure.stage}] {label} ({failure.resource_name}): "
                    f"{failure.error}"
                )

        return "\n".join(lines)


def check_credentials(google_credentials: Any, notion_token: Optional[str]) -> None:
    """
    Verify both providers have usable credentials.

    Args:
        google_credentials: Google OAuth2 credentials, or None
        notion_token: Notion integration or OAuth access token, or None

    Raises:
        CredentialsError: If either is missing or Google cannot refresh
    """
    if google_credentials is None:
        raise CredentialsError(
            "Google authentication is required.", hint=GOOGLE_AUTH_HINT
        )
    if not getattr(google_credentials, "refresh_token", None):
        raise CredentialsError(
            "Google credentials have no refresh token.", hint=GOOGLE_AUTH_HINT
        )
    if not notion_token:
        raise CredentialsError(
            "Notion authentication is required.", hint=NOTION_AUTH_HINT
        )


def is_fatal_error(error: Exception) -> bool:
    """
    Decide whether a per-contact error must abort the whole run.

    Exhausted rate-limit retries, server errors that outlived their
    retries, timeouts, and credential problems are fatal. Validation
    errors, missing pages, and other client errors are per-contact.
    """
    if isinstance(error, (CredentialsError, RateLimitError, NotionRateLimitError)):
        return True
    if isinstance(error, NotionAPIError):
        return error.status is None or error.status >= 500
    return isinstance(error, TransportError)


class SyncEngine:
    """
    Orchestrates Google Contacts to Notion synchronization.

    Attributes:
        fetcher: Contact fetcher (owns the sync token lifecycle)
        upserter: Notion page upserter
        mappings: Field mappings to apply
        stage: Current stage of the run

    Usage:
        engine = SyncEngine(fetcher, upserter, mappings,
                            google_credentials=creds, notion_token=token)
        result = engine.run()
        print(result.summary())
    """

    def __init__(
        self,
        fetcher: ContactFetcher,
        upserter: RecordUpserter,
        mappings: list[FieldMapping],
        google_credentials: Any = None,
        notion_token: Optional[str] = None,
        database: Optional[SyncDatabase] = None,
        account_id: str = DEFAULT_ACCOUNT_ID,
    ):
        """
        Initialize the sync engine.

        Args:
            fetcher: ContactFetcher for the Google account
            upserter: RecordUpserter for the target database
            mappings: Field mappings
            google_credentials: Google credentials to verify before fetching
            notion_token: Notion token to verify before fetching
            database: Optional SyncDatabase for recording run history
            account_id: Account identifier used in run history
        """
        self.fetcher = fetcher
        self.upserter = upserter
        self.mappings = mappings
        self.google_credentials = google_credentials
        self.notion_token = notion_token
        self.database = database
        self.account_id = account_id
        self.stage = SyncStage.IDLE

    def run(
        self,
        full: bool = False,
        page_size: Optional[int] = None,
        dry_run: bool = False,
        ensure_schema: bool = False,
    ) -> SyncResult:
        """
        Execute one sync run.

        Args:
            full: Force a full sync instead of the automatic choice
            page_size: Page size for a forced full sync
            dry_run: Convert contacts without writing to Notion
            ensure_schema: Add missing mapped properties before upserting

        Returns:
            SyncResult with statistics and per-contact failures

        Raises:
            CredentialsError: If credentials are missing or rejected
            TransportError: If a provider call fails after its retries
        """
        try:
            self.stage = SyncStage.CHECKING_CREDENTIALS
            check_credentials(self.google_credentials, self.notion_token)

            added: list[str] = []
            if ensure_schema and not dry_run:
                self.stage = SyncStage.ENSURING_SCHEMA
                added = self.upserter.ensure_schema(self.mappings)

            self.stage = SyncStage.FETCHING
            fetched = self._fetch(full, page_size)
            result = SyncResult(
                people=fetched.people,
                deleted_people=fetched.deleted_people,
                is_full_sync=fetched.is_full_sync,
                dry_run=dry_run,
            )
            result.stats.changed = len(fetched.people)
            result.stats.deleted = len(fetched.deleted_people)
            result.stats.schema_properties_added = len(added)

            self.stage = SyncStage.UPSERTING
            self._upsert_all(result, dry_run)

            self.stage = SyncStage.ARCHIVING
            self._archive_all(result, dry_run)

            self.stage = SyncStage.REPORTING
            self._report(result)

            self.stage = SyncStage.DONE
            return result

        except Exception:
            failed_stage = self.stage
            self.stage = SyncStage.FAILED
            logger.error(f"Sync failed during {failed_stage.value}")
            raise

    def _fetch(self, full: bool, page_size: Optional[int]) -> FetchResult:
        """Fetch contacts, forcing a full sync when requested."""
        if full:
            people = self.fetcher.full_sync(page_size)
            return FetchResult(people=people, deleted_people=[], is_full_sync=True)
        return self.fetcher.sync()

    def _upsert_all(self, result: SyncResult, dry_run: bool) -> None:
        """Upsert every changed contact, isolating per-contact failures."""
        total = len(result.people)
        converter = self.upserter.converter

        for index, contact in enumerate(result.people, 1):
            try:
                if dry_run:
                    converter.convert(contact, self.mappings)
                    result.stats.would_upsert += 1
                else:
                    outcome = self.upserter.upsert(contact, self.mappings)
                    if outcome.action == UpsertAction.CREATED:
                        result.stats.created += 1
                    else:
                        result.stats.updated += 1
            except ValidationError as e:
                if contact.deleted:
                    # Tombstones usually carry no names
                    result.stats.skipped += 1
                    logger.debug(
                        f"Skipping deleted contact {contact.resource_name}: {e}"
                    )
                else:
                    self._record_upsert_failure(result, contact, e)
            except TransportError as e:
                self._raise_if_fatal(e)
                self._record_upsert_failure(result, contact, e)

            if index % 25 == 0 or index == total:
                logger.info(f"Progress: {index}/{total} contacts processed")

    @staticmethod
    def _record_upsert_failure(
        result: SyncResult, contact: SourceContact, error: Exception
    ) -> None:
        result.stats.upsert_failures += 1
        result.failures.append(
            ItemFailure(
                contact.resource_name, contact.display_name, "upsert", str(error)
            )
        )
        logger.warning(f"Failed to upsert {contact.resource_name}: {error}")

    def _archive_all(self, result: SyncResult, dry_run: bool) -> None:
        """Archive pages of deleted contacts, isolating per-contact failures."""
        for contact in result.deleted_people:
            if dry_run:
                result.stats.would_archive += 1
                continue
            try:
                self.upserter.archive_by_join_key(contact.resource_name)
                result.stats.archived += 1
            except (RecordNotFoundError, TransportError) as e:
                self._raise_if_fatal(e)
                result.stats.archive_failures += 1
                result.failures.append(
                    ItemFailure(
                        contact.resource_name, contact.display_name, "archive", str(e)
                    )
                )
                logger.warning(f"Failed to archive {contact.resource_name}: {e}")

    @staticmethod
    def _raise_if_fatal(error: Exception) -> None:
        """Re-raise errors that must abort the run."""
        if isinstance(error, NotionAPIError) and error.status == 401:
            raise CredentialsError(
                "Notion rejected the access token.", hint=NOTION_AUTH_HINT
            ) from error
        if is_fatal_error(error):
            raise error

    def _report(self, result: SyncResult) -> None:
        """Log the outcome and record it in the run history."""
        stats = result.stats
        logger.info(
            f"Sync complete ({'full' if result.is_full_sync else 'incremental'}): "
            f"attempted {stats.attempted}, created {stats.created}, "
            f"updated {stats.updated}, archived {stats.archived}, "
            f"failed {stats.failed}"
        )

        if self.database is not None and not result.dry_run:
            self.database.record_sync_run(
                self.account_id,
                self.upserter.database.database_id,
                result.is_full_sync,
                changed=stats.changed,
                upserted=stats.upserted,
                archived=stats.archived,
                failed=stats.failed,
            )
