"""
Field mappings between contact fields and Notion database properties.

A field mapping routes one contact field (e.g. ``email``) to one Notion
property name and type. Mappings are read-only to the sync engine; they
come from the defaults below, overridden by the ``field_mappings`` section
of the configuration file:

    field_mappings:
      display_name: Name                 # shorthand, default type
      email: {name: E-mail, type: email}
      nickname: {name: Nickname}
      department: null                   # not synced
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from gcontact_notion.sync.properties import VALID_PROPERTY_TYPES

# Contact fields that can be mapped, with their default Notion type
CONTACT_FIELDS: dict[str, str] = {
    "display_name": "title",
    "first_name": "rich_text",
    "last_name": "rich_text",
    "nickname": "rich_text",
    "email": "email",
    "phone": "phone_number",
    "address": "rich_text",
    "company": "rich_text",
    "department": "rich_text",
    "job_title": "rich_text",
    "notes": "rich_text",
    "birthday": "date",
    "website": "url",
}

# Field that must resolve to a non-empty value for a page to be written
TITLE_FIELD = "display_name"

# Property holding the Google resource name on every synced page
DEFAULT_JOIN_KEY_PROPERTY = "Resource Name"
JOIN_KEY_PROPERTY_TYPE = "rich_text"

DEFAULT_PROPERTY_NAMES: dict[str, str | None] = {
    "display_name": "Display Name",
    "first_name": "First Name",
    "last_name": "Last Name",
    "nickname": None,
    "email": "Email",
    "phone": "Phone",
    "address": "Address",
    "company": "Company",
    "department": "Department",
    "job_title": "Job Title",
    "notes": "Notes",
    "birthday": "Birthday",
    "website": None,
}


@dataclass(frozen=True)
class FieldMapping:
    """
    Association of one contact field with one Notion property.

    Attributes:
        field_key: Contact field (one of CONTACT_FIELDS)
        property_name: Destination property name; None or empty means the
                       field is not synced
        property_type: Notion property type of the destination
    """

    field_key: str
    property_name: str | None
    property_type: str

    @property
    def is_mapped(self) -> bool:
        """True if the field has a destination property."""
        return bool(self.property_name and self.property_name.strip())

    @classmethod
    def from_config(cls, field_key: str, value: Any) -> FieldMapping:
        """
        Build a mapping from one ``field_mappings`` configuration entry.

        Args:
            field_key: Contact field key
            value: None, a property name string, or a dict with ``name``
                   and optional ``type``

        Raises:
            ValueError: If the field key, value shape, or type is invalid
        """
        if field_key not in CONTACT_FIELDS:
            raise ValueError(
                f"Unknown contact field '{field_key}'. "
                f"Must be one of: {', '.join(CONTACT_FIELDS)}"
            )

        default_type = CONTACT_FIELDS[field_key]

        if value is None or isinstance(value, str):
            return cls(field_key, value or None, default_type)

        if not isinstance(value, dict):
            raise ValueError(
                f"Mapping for '{field_key}' must be a string or a dictionary, "
                f"got {type(value).__name__}"
            )

        name = value.get("name")
        if name is not None and not isinstance(name, str):
            raise ValueError(f"Mapping name for '{field_key}' must be a string")

        property_type = value.get("type", default_type)
        if property_type not in VALID_PROPERTY_TYPES:
            raise ValueError(
                f"Invalid property type '{property_type}' for '{field_key}'. "
                f"Must be one of: {', '.join(sorted(VALID_PROPERTY_TYPES))}"
            )

        return cls(field_key, name or None, property_type)


def default_field_mappings() -> list[FieldMapping]:
    """Return the default mapping set, one entry per contact field."""
    return [
        FieldMapping(key, DEFAULT_PROPERTY_NAMES.get(key), prop_type)
        for key, prop_type in CONTACT_FIELDS.items()
    ]


def load_field_mappings(data: dict[str, Any] | None) -> list[FieldMapping]:
    """
    Merge configured mappings over the defaults.

    Args:
        data: The ``field_mappings`` configuration section, or None

    Returns:
        One FieldMapping per contact field, in CONTACT_FIELDS order

    Raises:
        ValueError: If the section or any entry is invalid
    """
    if data is None:
        return default_field_mappings()

    if not isinstance(data, dict):
        raise ValueError(
            f"field_mappings must be a dictionary, got {type(data).__name__}"
        )

    mappings = {m.field_key: m for m in default_field_mappings()}
    for field_key, value in data.items():
        mappings[field_key] = FieldMapping.from_config(field_key, value)

    names = [m.property_name for m in mappings.values() if m.is_mapped]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(
            f"Notion properties mapped more than once: {', '.join(duplicates)}"
        )

    return [mappings[key] for key in CONTACT_FIELDS]
