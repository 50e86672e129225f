"""
gcontact_notion.storage - Sync state storage

SQLite-backed sync token and run history.
"""
