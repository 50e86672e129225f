"""
gcontact_notion - Google Contacts to Notion database synchronization.

Keeps a Notion database in step with a Google account's contacts using
the People API change feed, falling back to a full resync when the
stored sync token expires.
"""

__version__ = "0.3.0"
