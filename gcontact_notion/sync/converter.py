"""
Conversion of Google contacts into Notion page properties.

The converter turns one SourceContact plus the configured field mappings
into the property payload of a Notion page:
- The title field must resolve to a non-empty value
- Unmapped fields and fields without a value are omitted entirely
- The resource name is always written to the join-key property
- A primary photo becomes an external page icon
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from gcontact_notion.errors import ValidationError
from gcontact_notion.sync.contact import PartialDate, PrimaryPolicy, SourceContact
from gcontact_notion.sync.mapping import (
    DEFAULT_JOIN_KEY_PROPERTY,
    JOIN_KEY_PROPERTY_TYPE,
    TITLE_FIELD,
    FieldMapping,
)
from gcontact_notion.sync.properties import get_property_type

# Destination types that can hold a partial (year-less) birthday as text
TEXT_PROPERTY_TYPES = {"title", "rich_text"}

logger = logging.getLogger(__name__)


@dataclass
class ConvertedRecord:
    """
    Notion payload for one contact.

    Attributes:
        resource_name: Google resource name (join key value)
        title: Resolved display name
        properties: Notion property payloads keyed by property name
        icon: External icon payload, or None to leave the icon untouched
    """

    resource_name: str
    title: str
    properties: dict[str, Any]
    icon: Optional[dict[str, Any]] = None


class ContactConverter:
    """
    Converts SourceContacts into Notion page payloads.

    Attributes:
        join_key_property: Name of the property storing the resource name
        policy: Primary-entry fallback policy

    Usage:
        converter = ContactConverter()
        record = converter.convert(contact, mappings)
        client.pages.create(parent=..., properties=record.properties)
    """

    def __init__(
        self,
        join_key_property: str = DEFAULT_JOIN_KEY_PROPERTY,
        policy: PrimaryPolicy = PrimaryPolicy.STRICT,
    ):
        self.join_key_property = join_key_property
        self.policy = policy

    def convert(
        self, contact: SourceContact, mappings: list[FieldMapping]
    ) -> ConvertedRecord:
        """
        Convert a contact into a Notion payload.

        Args:
            contact: Contact to convert
            mappings: Field mappings to route values through

        Returns:
            ConvertedRecord with properties and optional icon

        Raises:
            ValidationError: If the title is empty, the resource name is
                             missing, or a value does not fit its property type
        """
        resource_name = contact.resource_name
        if not resource_name:
            raise ValidationError("Contact has no resource name")

        values = contact.primary_values(self.policy)

        title = values.get(TITLE_FIELD)
        if not title:
            raise ValidationError(f"{TITLE_FIELD} is required", resource_name)

        properties: dict[str, Any] = {}

        for mapping in mappings:
            if not mapping.is_mapped:
                continue

            prop_name = mapping.property_name.strip()
            if prop_name == self.join_key_property:
                raise ValidationError(
                    f"Field '{mapping.field_key}' is mapped to the join-key "
                    f"property '{self.join_key_property}'",
                    resource_name,
                )

            value = self._render_value(
                values.get(mapping.field_key), mapping.property_type
            )
            if value is None:
                continue

            try:
                prop_type = get_property_type(mapping.property_type)
                properties[prop_name] = prop_type.to_property(value)
            except (KeyError, ValueError, TypeError) as e:
                raise ValidationError(
                    f"Cannot convert {mapping.field_key} to "
                    f"{mapping.property_type}: {e}",
                    resource_name,
                ) from e

        properties[self.join_key_property] = get_property_type(
            JOIN_KEY_PROPERTY_TYPE
        ).to_property(resource_name)

        icon = None
        photo_url = values.get("photo_url")
        if photo_url:
            icon = {"type": "external", "external": {"url": photo_url}}

        logger.debug(
            f"Converted {resource_name} ({title}): {len(properties)} properties"
        )
        return ConvertedRecord(
            resource_name=resource_name,
            title=title,
            properties=properties,
            icon=icon,
        )

    @staticmethod
    def _render_value(value: Any, property_type: str) -> Any:
        """Render a field value for a property type; None means omit."""
        if isinstance(value, PartialDate):
            if property_type in TEXT_PROPERTY_TYPES:
                return value.to_text()
            return value.to_iso()
        return value
