"""
gcontact_notion.cli - Command-line interface

Exposes the click command group used by the gcontact-notion entry point.
"""

from gcontact_notion.cli.main import cli

__all__ = ["cli"]
