"""
Contact data model for Google Contacts to Notion synchronization.

Provides a SourceContact representation that keeps every multi-valued
People API field intact, along with:
- Explicit primary-entry selection with a named fallback policy
- A PartialDate value for birthdays that lack a year, month, or day
- Extraction of the single values that are written to Notion
"""

import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class PrimaryPolicy(str, Enum):
    """How to pick a value when no entry is flagged as primary."""

    STRICT = "strict"  # No primary entry means no value
    FIRST = "first"  # Fall back to the first entry


VALID_PRIMARY_POLICIES = {policy.value for policy in PrimaryPolicy}


def select_primary(
    entries: list[dict[str, Any]],
    policy: PrimaryPolicy = PrimaryPolicy.STRICT,
    field_name: str = "",
    resource_name: str = "",
) -> Optional[dict[str, Any]]:
    """
    Select the primary entry from a multi-valued People API field.

    Args:
        entries: Entries as returned by the API (each may carry
                 ``metadata.primary``)
        policy: What to do when no entry is flagged primary
        field_name: Field name, used for logging only
        resource_name: Contact resource name, used for logging only

    Returns:
        The primary entry, the first entry under PrimaryPolicy.FIRST,
        or None
    """
    if not entries:
        return None

    for entry in entries:
        if (entry.get("metadata") or {}).get("primary"):
            return entry

    if policy == PrimaryPolicy.FIRST:
        logger.debug(
            f"No primary {field_name or 'entry'} for {resource_name or 'contact'}, "
            f"using first of {len(entries)}"
        )
        return entries[0]

    return None


@dataclass(frozen=True)
class PartialDate:
    """
    A calendar date where any component may be missing.

    Google birthdays frequently omit the year. A PartialDate only renders
    as an ISO date when all three components form a real date.
    """

    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None

    @classmethod
    def from_api(cls, data: Optional[dict[str, Any]]) -> Optional["PartialDate"]:
        """Build a PartialDate from a People API ``Date`` message."""
        if not data:
            return None

        def component(key: str) -> Optional[int]:
            value = data.get(key)
            if isinstance(value, int) and value > 0:
                return value
            return None

        date = cls(component("year"), component("month"), component("day"))
        if date.year is None and date.month is None and date.day is None:
            return None
        return date

    @property
    def is_complete(self) -> bool:
        """True if year, month, and day form a valid calendar date."""
        return self.to_iso() is not None

    def to_iso(self) -> Optional[str]:
        """Return ``YYYY-MM-DD`` for a complete, valid date, else None."""
        if self.year is None or self.month is None or self.day is None:
            return None
        try:
            return datetime.date(self.year, self.month, self.day).isoformat()
        except ValueError:
            return None

    def to_text(self) -> Optional[str]:
        """
        Return a textual rendering that never invents missing components.

        Returns:
            ``YYYY-MM-DD`` when complete, ``--MM-DD`` without a year,
            ``YYYY-MM`` without a day, otherwise None
        """
        iso = self.to_iso()
        if iso:
            return iso
        if self.month is None or not 1 <= self.month <= 12:
            return None
        if self.day is not None and 1 <= self.day <= 31:
            if self.year is None:
                return f"--{self.month:02d}-{self.day:02d}"
            return None
        if self.year is not None:
            return f"{self.year:04d}-{self.month:02d}"
        return None


@dataclass
class SourceContact:
    """
    A contact as fetched from the Google People API.

    Multi-valued fields are kept as the raw API entries so the primary
    entry can be chosen at conversion time.

    Attributes:
        resource_name: Google's stable ID (e.g., "people/c12345")
        etag: Entity tag of the fetched version
        deleted: True for tombstones returned by an incremental sync
        names, email_addresses, phone_numbers, organizations, addresses,
        birthdays, biographies, photos, nicknames, urls: raw API entries

    Usage:
        contact = SourceContact.from_api_response(person)
        values = contact.primary_values(PrimaryPolicy.STRICT)
        values["display_name"]  # -> "Jane Doe" or None
    """

    resource_name: str
    etag: str = ""
    deleted: bool = False

    names: list[dict[str, Any]] = field(default_factory=list)
    email_addresses: list[dict[str, Any]] = field(default_factory=list)
    phone_numbers: list[dict[str, Any]] = field(default_factory=list)
    organizations: list[dict[str, Any]] = field(default_factory=list)
    addresses: list[dict[str, Any]] = field(default_factory=list)
    birthdays: list[dict[str, Any]] = field(default_factory=list)
    biographies: list[dict[str, Any]] = field(default_factory=list)
    photos: list[dict[str, Any]] = field(default_factory=list)
    nicknames: list[dict[str, Any]] = field(default_factory=list)
    urls: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, person: dict[str, Any]) -> "SourceContact":
        """
        Create a SourceContact from a Google People API person resource.

        Args:
            person: Dictionary from the People API

        Returns:
            SourceContact populated from the response

        Example API response structure::

            {
                'resourceName': 'people/c12345',
                'etag': 'abc123',
                'metadata': {'deleted': False, 'sources': [...]},
                'names': [{'displayName': 'John Doe',
                           'metadata': {'primary': True}}],
                'emailAddresses': [{'value': 'john@example.com',
                                    'metadata': {'primary': True}}],
                'birthdays': [{'date': {'month': 4, 'day': 2}}],
            }
        """
        metadata = person.get("metadata") or {}

        return cls(
            resource_name=person.get("resourceName", ""),
            etag=person.get("etag", ""),
            deleted=bool(metadata.get("deleted", False)),
            names=list(person.get("names", [])),
            email_addresses=list(person.get("emailAddresses", [])),
            phone_numbers=list(person.get("phoneNumbers", [])),
            organizations=list(person.get("organizations", [])),
            addresses=list(person.get("addresses", [])),
            birthdays=list(person.get("birthdays", [])),
            biographies=list(person.get("biographies", [])),
            photos=list(person.get("photos", [])),
            nicknames=list(person.get("nicknames", [])),
            urls=list(person.get("urls", [])),
        )

    @property
    def display_name(self) -> str:
        """Best-effort display name for listings and log messages."""
        name = select_primary(self.names, PrimaryPolicy.FIRST) or {}
        return name.get("displayName", "")

    def primary_values(
        self, policy: PrimaryPolicy = PrimaryPolicy.STRICT
    ) -> dict[str, Any]:
        """
        Extract one value per contact field from the primary entries.

        Args:
            policy: Primary-entry fallback policy

        Returns:
            Dictionary keyed by contact field (see
            ``gcontact_notion.sync.mapping.CONTACT_FIELDS``). Missing values
            are None; ``birthday`` is a PartialDate.
        """

        def pick(entries: list[dict[str, Any]], name: str) -> dict[str, Any]:
            return (
                select_primary(entries, policy, name, self.resource_name) or {}
            )

        name = pick(self.names, "name")
        organization = pick(self.organizations, "organization")
        birthday = pick(self.birthdays, "birthday")
        photo = pick(self.photos, "photo")

        # Default avatars are generated by Google and carry no information
        photo_url = photo.get("url") if not photo.get("default") else None

        return {
            "display_name": _clean(name.get("displayName")),
            "first_name": _clean(name.get("givenName")),
            "last_name": _clean(name.get("familyName")),
            "nickname": _clean(pick(self.nicknames, "nickname").get("value")),
            "email": _clean(pick(self.email_addresses, "email").get("value")),
            "phone": _clean(pick(self.phone_numbers, "phone").get("value")),
            "address": _clean(pick(self.addresses, "address").get("formattedValue")),
            "company": _clean(organization.get("name")),
            "department": _clean(organization.get("department")),
            "job_title": _clean(organization.get("title")),
            "notes": _clean(pick(self.biographies, "biography").get("value")),
            "birthday": PartialDate.from_api(birthday.get("date")),
            "website": _clean(pick(self.urls, "url").get("value")),
            "photo_url": _clean(photo_url),
        }

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return (
            f"SourceContact(resource_name={self.resource_name!r}, "
            f"display_name={self.display_name!r}, deleted={self.deleted!r})"
        )


def _clean(value: Any) -> Optional[str]:
    """Return a stripped string, or None for empty values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
