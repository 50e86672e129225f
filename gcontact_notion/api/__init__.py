"""
gcontact_notion.api - Provider API wrappers

Google People API and Notion database clients with retry handling.
"""
