from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from menu_advisor.database.models import Document
from menu_advisor.repositories.base_repository import BaseRepository
from menu_advisor.utils.text_transforms import sanitize


class DocumentRepository(BaseRepository[Document]):
    """Repository for uploaded menu files."""

    def __init__(self, session: AsyncSession):
        """Initialize document repository.

        Args:
            session: SQLAlchemy async session
        """
        super().__init__(session, Document)

    async def create_document(
        self,
        filename: str,
        storage_ref: str,
        mime_type: Optional[str] = None,
    ) -> Document:
        """Create a new document record.

        Args:
            filename: Original display name of the upload
            storage_ref: Reference returned by the document store
            mime_type: MIME type reported by the chat platform

        Returns:
            Created Document record
        """
        return await self.create(
            filename=sanitize(filename),
            storage_ref=sanitize(storage_ref),
            mime_type=mime_type,
            uploaded_at=datetime.now(timezone.utc),
        )
