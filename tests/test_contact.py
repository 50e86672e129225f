"""
Unit tests for the contact data model.

Tests primary-entry selection, partial birthdays, and SourceContact
parsing from People API responses.
"""

import logging

import pytest
from conftest import make_person

from gcontact_notion.sync.contact import (
    PartialDate,
    PrimaryPolicy,
    SourceContact,
    select_primary,
)


class TestSelectPrimary:
    """Tests for select_primary."""

    def test_empty_entries_return_none(self):
        """Test that an empty field has no primary under either policy."""
        assert select_primary([], PrimaryPolicy.STRICT) is None
        assert select_primary([], PrimaryPolicy.FIRST) is None

    def test_flagged_entry_wins_over_order(self):
        """Test that the flagged entry is chosen even when not first."""
        entries = [
            {"value": "a@example.com"},
            {"value": "b@example.com", "metadata": {"primary": True}},
        ]

        assert select_primary(entries)["value"] == "b@example.com"

    def test_strict_policy_without_flag_returns_none(self):
        """Test that strict policy yields nothing when no entry is flagged."""
        entries = [{"value": "a@example.com"}, {"value": "b@example.com"}]

        assert select_primary(entries, PrimaryPolicy.STRICT) is None

    def test_strict_policy_single_unflagged_entry_returns_none(self):
        """Test that a lone unflagged entry is still not primary under strict."""
        assert select_primary([{"value": "a@example.com"}]) is None

    def test_first_policy_falls_back_to_first_entry(self, caplog):
        """Test that first policy returns the first entry and logs it."""
        entries = [{"value": "a@example.com"}, {"value": "b@example.com"}]

        with caplog.at_level(logging.DEBUG, logger="gcontact_notion.sync.contact"):
            entry = select_primary(entries, PrimaryPolicy.FIRST, "email", "people/c1")

        assert entry["value"] == "a@example.com"
        assert "No primary email for people/c1" in caplog.text


class TestPartialDate:
    """Tests for PartialDate."""

    def test_from_api_complete_date(self):
        """Test parsing a full date."""
        date = PartialDate.from_api({"year": 1990, "month": 4, "day": 2})

        assert date == PartialDate(1990, 4, 2)
        assert date.is_complete
        assert date.to_iso() == "1990-04-02"

    def test_from_api_missing_year(self):
        """Test that a year-less birthday keeps year as None."""
        date = PartialDate.from_api({"month": 4, "day": 2})

        assert date == PartialDate(None, 4, 2)
        assert not date.is_complete
        assert date.to_iso() is None
        assert date.to_text() == "--04-02"

    def test_from_api_zero_components_are_absent(self):
        """Test that Google's zero placeholders are treated as missing."""
        date = PartialDate.from_api({"year": 0, "month": 4, "day": 2})

        assert date.year is None

    @pytest.mark.parametrize("data", [None, {}, {"year": 0, "month": 0, "day": 0}])
    def test_from_api_empty_returns_none(self, data):
        """Test that dates without any component are absent."""
        assert PartialDate.from_api(data) is None

    def test_invalid_calendar_date_has_no_iso(self):
        """Test that impossible dates never render as ISO."""
        date = PartialDate(2021, 2, 30)

        assert date.to_iso() is None
        assert date.to_text() is None

    def test_year_and_month_only(self):
        """Test that a date without a day renders as year-month text."""
        date = PartialDate(1990, 4, None)

        assert date.to_iso() is None
        assert date.to_text() == "1990-04"


class TestSourceContactFromApi:
    """Tests for SourceContact.from_api_response."""

    def test_parses_basic_fields(self):
        """Test parsing resource name, etag, and multi-valued fields."""
        person = make_person("people/c1", "Jane Doe", email="jane@example.com")

        contact = SourceContact.from_api_response(person)

        assert contact.resource_name == "people/c1"
        assert contact.etag == "etag-people/c1"
        assert contact.deleted is False
        assert contact.email_addresses[0]["value"] == "jane@example.com"

    def test_parses_deleted_flag(self):
        """Test that metadata.deleted marks a tombstone."""
        person = {"resourceName": "people/c2", "metadata": {"deleted": True}}

        contact = SourceContact.from_api_response(person)

        assert contact.deleted is True
        assert contact.names == []

    def test_display_name_falls_back_to_first_name_entry(self):
        """Test that display_name works without a primary flag."""
        contact = SourceContact(
            resource_name="people/c3", names=[{"displayName": "Unflagged"}]
        )

        assert contact.display_name == "Unflagged"

    def test_repr_contains_resource_name(self):
        """Test the readable representation."""
        contact = SourceContact.from_api_response(make_person("people/c4", "Bob"))

        assert "people/c4" in repr(contact)
        assert "Bob" in repr(contact)


class TestPrimaryValues:
    """Tests for SourceContact.primary_values."""

    @pytest.fixture
    def contact(self):
        """Create a contact with every supported field."""
        person = make_person(
            "people/c10",
            "Ada Lovelace",
            email="ada@example.com",
            phoneNumbers=[
                {"value": "+44 1", "metadata": {"primary": False}},
                {"value": "+44 2", "metadata": {"primary": True}},
            ],
            organizations=[
                {
                    "name": "Analytical Engines",
                    "department": "Research",
                    "title": "Programmer",
                    "metadata": {"primary": True},
                }
            ],
            addresses=[
                {"formattedValue": "12 St James's Square", "metadata": {"primary": True}}
            ],
            biographies=[{"value": "  First programmer  ", "metadata": {"primary": True}}],
            birthdays=[
                {"date": {"month": 12, "day": 10}, "metadata": {"primary": True}}
            ],
            nicknames=[{"value": "Ada", "metadata": {"primary": True}}],
            urls=[{"value": "https://example.com/ada", "metadata": {"primary": True}}],
            photos=[
                {"url": "https://example.com/ada.jpg", "metadata": {"primary": True}}
            ],
        )
        return SourceContact.from_api_response(person)

    def test_extracts_primary_values(self, contact):
        """Test that each field takes the value of its primary entry."""
        values = contact.primary_values()

        assert values["display_name"] == "Ada Lovelace"
        assert values["first_name"] == "Ada"
        assert values["last_name"] == "Lovelace"
        assert values["email"] == "ada@example.com"
        assert values["phone"] == "+44 2"
        assert values["company"] == "Analytical Engines"
        assert values["job_title"] == "Programmer"
        assert values["address"] == "12 St James's Square"
        assert values["nickname"] == "Ada"
        assert values["website"] == "https://example.com/ada"
        assert values["photo_url"] == "https://example.com/ada.jpg"

    def test_department_comes_from_organization_department(self, contact):
        """Test that department is not a copy of the company name."""
        assert contact.primary_values()["department"] == "Research"

    def test_notes_are_stripped(self, contact):
        """Test that surrounding whitespace is removed."""
        assert contact.primary_values()["notes"] == "First programmer"

    def test_birthday_is_partial_date(self, contact):
        """Test that birthdays are returned as PartialDate."""
        assert contact.primary_values()["birthday"] == PartialDate(None, 12, 10)

    def test_default_photo_is_ignored(self):
        """Test that Google's generated avatar is not used."""
        contact = SourceContact(
            resource_name="people/c11",
            photos=[
                {
                    "url": "https://example.com/default.png",
                    "default": True,
                    "metadata": {"primary": True},
                }
            ],
        )

        assert contact.primary_values()["photo_url"] is None

    def test_strict_policy_leaves_unflagged_fields_empty(self):
        """Test that unflagged entries produce no value under strict policy."""
        contact = SourceContact(
            resource_name="people/c12",
            email_addresses=[{"value": "x@example.com"}],
        )

        assert contact.primary_values(PrimaryPolicy.STRICT)["email"] is None
        assert contact.primary_values(PrimaryPolicy.FIRST)["email"] == "x@example.com"
