"""
gcontact_notion.sync - Synchronization module

Contact fetching, conversion, Notion upserts, and the sync engine.
"""
