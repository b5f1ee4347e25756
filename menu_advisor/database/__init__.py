"""SQLAlchemy models for menus, conversations and their messages."""

from menu_advisor.database.models import Conversation, Document, Turn

__all__ = [
    "Conversation",
    "Document",
    "Turn",
]
