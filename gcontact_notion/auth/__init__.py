"""
gcontact_notion.auth - Authentication module

Google OAuth2 credentials and Notion token storage.
"""

from gcontact_notion.auth.google_auth import AuthenticationError, GoogleAuth
from gcontact_notion.auth.notion_auth import NotionAuth

__all__ = ["GoogleAuth", "NotionAuth", "AuthenticationError"]
