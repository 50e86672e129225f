"""
Notion property type conversion table.

Maps each supported Notion property type to a pair of functions: one that
renders a plain value as a page property payload, and one that renders the
empty database schema definition used when the property has to be created.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

# Notion caps a single rich text object at 2000 characters
MAX_TEXT_LENGTH = 2000


@dataclass(frozen=True)
class PropertyType:
    """A Notion property type and its converters."""

    name: str
    to_property: Callable[[Any], dict[str, Any]]
    to_definition: Callable[[], dict[str, Any]]


def _text(value: Any) -> list[dict[str, Any]]:
    return [{"text": {"content": str(value)[:MAX_TEXT_LENGTH]}}]


PROPERTY_TYPES: dict[str, PropertyType] = {
    "title": PropertyType(
        "title",
        lambda v: {"title": _text(v)},
        lambda: {"title": {}},
    ),
    "rich_text": PropertyType(
        "rich_text",
        lambda v: {"rich_text": _text(v)},
        lambda: {"rich_text": {}},
    ),
    "number": PropertyType(
        "number",
        lambda v: {"number": float(v) if "." in str(v) else int(v)},
        lambda: {"number": {}},
    ),
    "email": PropertyType(
        "email",
        lambda v: {"email": str(v)},
        lambda: {"email": {}},
    ),
    "phone_number": PropertyType(
        "phone_number",
        lambda v: {"phone_number": str(v)},
        lambda: {"phone_number": {}},
    ),
    "url": PropertyType(
        "url",
        lambda v: {"url": str(v)},
        lambda: {"url": {}},
    ),
    "select": PropertyType(
        "select",
        lambda v: {"select": {"name": str(v)}},
        lambda: {"select": {"options": []}},
    ),
    "multi_select": PropertyType(
        "multi_select",
        lambda v: {
            "multi_select": [
                {"name": part.strip()} for part in str(v).split(",") if part.strip()
            ]
        },
        lambda: {"multi_select": {"options": []}},
    ),
    "date": PropertyType(
        "date",
        lambda v: {"date": {"start": str(v)}},
        lambda: {"date": {}},
    ),
    "checkbox": PropertyType(
        "checkbox",
        lambda v: {"checkbox": bool(v)},
        lambda: {"checkbox": {}},
    ),
    "files": PropertyType(
        "files",
        lambda v: {
            "files": [{"name": str(v)[:100], "external": {"url": str(v)}}]
        },
        lambda: {"files": {}},
    ),
    "status": PropertyType(
        "status",
        lambda v: {"status": {"name": str(v)}},
        lambda: {"status": {}},
    ),
}

VALID_PROPERTY_TYPES = frozenset(PROPERTY_TYPES)


def get_property_type(type_name: str) -> PropertyType:
    """
    Look up a property type by its Notion name.

    Raises:
        KeyError: If the type is not supported
    """
    try:
        return PROPERTY_TYPES[type_name]
    except KeyError:
        raise KeyError(f"Unsupported Notion property type: {type_name}") from None

