"""Shared fixtures for the gcontact_notion test suite."""

import itertools
from typing import Any, Optional

import pytest


def make_person(
    resource_name: str,
    name: Optional[str] = "Jane Doe",
    email: Optional[str] = None,
    deleted: bool = False,
    **extra: Any,
) -> dict[str, Any]:
    """Build a People API person resource with primary-flagged entries."""
    person: dict[str, Any] = {
        "resourceName": resource_name,
        "etag": f"etag-{resource_name}",
        "metadata": {"deleted": deleted} if deleted else {"sources": []},
    }
    if name is not None:
        given, _, family = name.partition(" ")
        person["names"] = [
            {
                "displayName": name,
                "givenName": given,
                "familyName": family,
                "metadata": {"primary": True},
            }
        ]
    if email is not None:
        person["emailAddresses"] = [{"value": email, "metadata": {"primary": True}}]
    person.update(extra)
    return person


def extract_plain_text(prop: dict[str, Any]) -> str:
    """Read the plain text of a title or rich_text page property."""
    for key in ("title", "rich_text"):
        if key in prop:
            return "".join(
                part.get("plain_text") or part.get("text", {}).get("content", "")
                for part in prop.get(key) or []
            )
    return ""


class FakeNotionDatabase:
    """
    In-memory stand-in for NotionDatabase.

    Pages are matched on the plain text of the filtered property, and
    archived pages are invisible to queries, like the real API.
    """

    def __init__(self, database_id: str = "db-1", schema: Optional[dict] = None):
        self.database_id = database_id
        self.pages: dict[str, dict[str, Any]] = {}
        self.schema: dict[str, str] = dict(schema or {})
        self.calls: list[tuple[str, Any]] = []
        self._ids = itertools.count(1)

    def query(self, filter: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        self.calls.append(("query", filter))
        results = []
        for page in self.pages.values():
            if page["archived"]:
                continue
            if filter:
                prop = page["properties"].get(filter["property"], {})
                if extract_plain_text(prop) != filter["rich_text"]["equals"]:
                    continue
            results.append(page)
        return results

    def create_page(self, properties, icon=None):
        self.calls.append(("create_page", properties))
        page_id = f"page-{next(self._ids)}"
        self.pages[page_id] = {
            "id": page_id,
            "properties": dict(properties),
            "icon": icon,
            "archived": False,
        }
        return self.pages[page_id]

    def update_page(self, page_id, properties, icon=None):
        self.calls.append(("update_page", page_id))
        page = self.pages[page_id]
        page["properties"].update(properties)
        if icon:
            page["icon"] = icon
        return page

    def archive_page(self, page_id):
        self.calls.append(("archive_page", page_id))
        self.pages[page_id]["archived"] = True
        return self.pages[page_id]

    def retrieve_schema(self):
        return dict(self.schema)

    def add_properties(self, definitions):
        self.calls.append(("add_properties", definitions))
        for name, definition in definitions.items():
            self.schema[name] = next(iter(definition))

    def live_pages(self, resource_name: str, join_key: str = "Resource Name"):
        return [
            page
            for page in self.pages.values()
            if not page["archived"]
            and extract_plain_text(page["properties"].get(join_key, {}))
            == resource_name
        ]


@pytest.fixture
def fake_notion():
    """Create an empty in-memory Notion database."""
    return FakeNotionDatabase()
