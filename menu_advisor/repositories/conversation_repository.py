from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from menu_advisor.core.exceptions import PersistenceError
from menu_advisor.database.models import Conversation
from menu_advisor.repositories.base_repository import BaseRepository
from menu_advisor.schemas.conversation import ConversationStatus
from menu_advisor.utils.logging import get_logger
from menu_advisor.utils.text_transforms import sanitize

LOGGER = get_logger(__name__)


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for per-thread conversation state."""

    def __init__(self, session: AsyncSession):
        """Initialize conversation repository.

        Args:
            session: SQLAlchemy async session
        """
        super().__init__(session, Conversation)

    async def create_conversation(
        self,
        channel_id: str,
        thread_id: str,
        document_id: Optional[UUID],
        status: ConversationStatus = ConversationStatus.AWAITING_INFO,
    ) -> Conversation:
        """Create the conversation bound to a chat thread."""
        return await self.create(
            channel_id=channel_id,
            thread_id=thread_id,
            document_id=document_id,
            status=status.value,
            created_at=datetime.now(timezone.utc),
        )

    async def get_by_thread(self, channel_id: str, thread_id: str) -> Optional[Conversation]:
        """Get the newest conversation for a (channel, thread) pair.

        Args:
            channel_id: Chat channel identifier
            thread_id: Thread identifier within the channel

        Returns:
            The conversation if one exists, None otherwise
        """
        try:
            query = (
                select(Conversation)
                .where(
                    Conversation.channel_id == channel_id,
                    Conversation.thread_id == thread_id,
                )
                .order_by(Conversation.created_at.desc())
                .limit(1)
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(
                "Error retrieving conversation by thread",
                exc_info=True,
                extra={"channel_id": channel_id, "thread_id": thread_id},
            )
            raise PersistenceError("Failed to load conversation", original_error=e) from e

    async def update_status(self, conversation_id: UUID, status: ConversationStatus) -> Optional[Conversation]:
        """Move a conversation to a new state."""
        return await self.update(conversation_id, status=status.value)

    async def update_fields(self, conversation_id: UUID, **fields) -> Optional[Conversation]:
        """Update report or targeting fields, optionally with the status.

        String values are sanitized before they are written.
        """
        values = {}
        for key, value in fields.items():
            if isinstance(value, ConversationStatus):
                value = value.value
            values[key] = sanitize(value)
        return await self.update(conversation_id, **values)
