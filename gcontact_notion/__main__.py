"""
Entry point for running gcontact_notion as a module.

Usage:
    python -m gcontact_notion --help
    python -m gcontact_notion auth google
    python -m gcontact_notion sync --database-id <id>
"""

from gcontact_notion.cli import cli

if __name__ == "__main__":
    cli()
