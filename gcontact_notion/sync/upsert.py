"""
Upserting and archiving Notion pages keyed by Google resource name.

Each synced page stores the contact's resource name in the join-key
property. At most one live (non-archived) page exists per resource name:
- upsert looks the page up fresh for every contact, then updates or creates
- archive_by_join_key soft-deletes the live page; archived pages are never
  found again, so a deleted contact is not resurrected
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from gcontact_notion.api.notion_api import NotionDatabase
from gcontact_notion.errors import RecordNotFoundError
from gcontact_notion.sync.contact import SourceContact
from gcontact_notion.sync.converter import ContactConverter
from gcontact_notion.sync.mapping import JOIN_KEY_PROPERTY_TYPE, FieldMapping
from gcontact_notion.sync.properties import get_property_type

logger = logging.getLogger(__name__)


class UpsertAction:
    """What upsert did with a contact."""

    CREATED = "created"
    UPDATED = "updated"


@dataclass
class UpsertOutcome:
    """Result of one upsert."""

    resource_name: str
    page_id: str
    action: str


class RecordUpserter:
    """
    Reconciles converted contacts with pages of one Notion database.

    Attributes:
        database: Notion database wrapper
        converter: Contact converter (owns the join-key property name)

    Usage:
        upserter = RecordUpserter(NotionDatabase(client, db_id), ContactConverter())
        outcome = upserter.upsert(contact, mappings)
        upserter.archive_by_join_key("people/c123")
    """

    def __init__(self, database: NotionDatabase, converter: ContactConverter):
        self.database = database
        self.converter = converter

    @property
    def join_key_property(self) -> str:
        """Name of the property holding the resource name."""
        return self.converter.join_key_property

    def find_by_join_key(self, resource_name: str) -> Optional[dict[str, Any]]:
        """
        Find the live page for a resource name.

        Args:
            resource_name: Google resource name

        Returns:
            The page object, or None if no live page matches
        """
        pages = self.database.query(
            {
                "property": self.join_key_property,
                JOIN_KEY_PROPERTY_TYPE: {"equals": resource_name},
            }
        )

        if not pages:
            return None
        if len(pages) > 1:
            logger.warning(
                f"{len(pages)} live pages found for {resource_name}, "
                f"using {pages[0].get('id')}"
            )
        return pages[0]

    def upsert(
        self, contact: SourceContact, mappings: list[FieldMapping]
    ) -> UpsertOutcome:
        """
        Create or update the page for a contact.

        Properties outside the mapping are left as they are on update, and
        the page icon is only replaced when the contact has a photo.

        Args:
            contact: Contact to write
            mappings: Field mappings

        Returns:
            UpsertOutcome describing the write

        Raises:
            ValidationError: If the contact cannot be converted
            NotionAPIError: If the Notion call fails
        """
        record = self.converter.convert(contact, mappings)

        existing = self.find_by_join_key(record.resource_name)
        if existing:
            page = self.database.update_page(
                existing["id"], record.properties, icon=record.icon
            )
            logger.info(f"Updated page for {record.title} ({record.resource_name})")
            return UpsertOutcome(
                record.resource_name, page.get("id", existing["id"]), UpsertAction.UPDATED
            )

        page = self.database.create_page(record.properties, icon=record.icon)
        logger.info(f"Created page for {record.title} ({record.resource_name})")
        return UpsertOutcome(record.resource_name, page["id"], UpsertAction.CREATED)

    def archive_by_join_key(self, resource_name: str) -> str:
        """
        Archive the live page for a resource name.

        Args:
            resource_name: Google resource name of a deleted contact

        Returns:
            ID of the archived page

        Raises:
            RecordNotFoundError: If no live page matches
        """
        page = self.find_by_join_key(resource_name)
        if not page:
            raise RecordNotFoundError(resource_name)

        self.database.archive_page(page["id"])
        logger.info(f"Archived page for {resource_name}")
        return page["id"]

    # =========================================================================
    # Schema
    # =========================================================================

    def missing_properties(self, mappings: list[FieldMapping]) -> dict[str, Any]:
        """
        Compute property definitions absent from the database schema.

        A database has exactly one title property; a title mapping that
        names a different property than the existing title is reported
        and skipped.

        Returns:
            Property definitions keyed by property name
        """
        schema = self.database.retrieve_schema()
        wanted: dict[str, str] = {
            m.property_name.strip(): m.property_type for m in mappings if m.is_mapped
        }
        wanted[self.join_key_property] = JOIN_KEY_PROPERTY_TYPE

        missing: dict[str, Any] = {}
        for name, prop_type in wanted.items():
            existing_type = schema.get(name)
            if existing_type:
                if existing_type != prop_type:
                    logger.warning(
                        f"Property '{name}' is {existing_type}, mapping expects "
                        f"{prop_type}"
                    )
                continue
            if prop_type == "title":
                logger.warning(
                    f"Cannot add title property '{name}'; rename the database "
                    f"title property instead"
                )
                continue
            missing[name] = get_property_type(prop_type).to_definition()

        return missing

    def ensure_schema(self, mappings: list[FieldMapping]) -> list[str]:
        """
        Add mapped properties missing from the database.

        Returns:
            Names of the properties that were added
        """
        missing = self.missing_properties(mappings)
        self.database.add_properties(missing)
        return list(missing)
