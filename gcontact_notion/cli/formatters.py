"""CLI output formatting functions.

This module contains functions for displaying contact listings, sync
results, and schema differences on the command line.
"""

from typing import TYPE_CHECKING, Any

import click

from gcontact_notion.sync.contact import PrimaryPolicy

if TYPE_CHECKING:
    from gcontact_notion.sync.contact import SourceContact
    from gcontact_notion.sync.engine import SyncResult

# Maximum contacts listed per section in detailed output
DETAIL_LIMIT = 10


def _truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    return value[: width - 3] + "..."


def format_contacts_table(contacts: list["SourceContact"]) -> str:
    """
    Render contacts as a fixed-width table of name, email, and phone.

    The first entry is shown when no entry is flagged primary.
    """
    header = f"{'Name':<30} {'Email':<32} {'Phone':<18}"
    lines = [header, "-" * len(header)]

    for contact in contacts:
        values = contact.primary_values(PrimaryPolicy.FIRST)
        name = _truncate(values.get("display_name") or "(no name)", 30)
        email = _truncate(values.get("email") or "", 32)
        phone = _truncate(values.get("phone") or "", 18)
        lines.append(f"{name:<30} {email:<32} {phone:<18}")

    lines.append("")
    lines.append(f"{len(contacts)} contact(s)")
    return "\n".join(lines)


def show_detailed_changes(result: "SyncResult") -> None:
    """
    Display the contacts a sync run touched.

    Args:
        result: The SyncResult to display
    """
    click.echo("\n=== Detailed Changes ===")

    if result.people:
        click.echo("\nChanged contacts:")
        for contact in result.people[:DETAIL_LIMIT]:
            click.echo(f"  ~ {contact.display_name or contact.resource_name}")
        if len(result.people) > DETAIL_LIMIT:
            click.echo(f"  ... and {len(result.people) - DETAIL_LIMIT} more")

    if result.deleted_people:
        click.echo("\nDeleted contacts (pages archived):")
        for contact in result.deleted_people[:DETAIL_LIMIT]:
            click.echo(f"  - {contact.resource_name}")
        if len(result.deleted_people) > DETAIL_LIMIT:
            click.echo(f"  ... and {len(result.deleted_people) - DETAIL_LIMIT} more")

    if not result.people and not result.deleted_people:
        click.echo("\nNo contacts changed.")


def show_missing_properties(missing: dict[str, Any]) -> None:
    """Display property definitions missing from the target database."""
    if not missing:
        click.echo(click.style("Database schema has every mapped property.", fg="green"))
        return

    click.echo("Properties missing from the database:")
    for name, definition in missing.items():
        prop_type = next(iter(definition), "?")
        click.echo(f"  + {name} ({prop_type})")
