from datetime import datetime, timezone
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from menu_advisor.core.exceptions import PersistenceError
from menu_advisor.database.models import Turn
from menu_advisor.repositories.base_repository import BaseRepository
from menu_advisor.schemas.conversation import TurnSender
from menu_advisor.utils.logging import get_logger
from menu_advisor.utils.text_transforms import sanitize

LOGGER = get_logger(__name__)


class TurnRepository(BaseRepository[Turn]):
    """Repository for the append-only message history."""

    def __init__(self, session: AsyncSession):
        """Initialize turn repository.

        Args:
            session: SQLAlchemy async session
        """
        super().__init__(session, Turn)

    async def add_turn(self, conversation_id: UUID, sender: TurnSender, content: str) -> Turn:
        """Append one message to a conversation's history.

        Args:
            conversation_id: Owning conversation
            sender: Human or assistant
            content: Message text; NUL characters are removed

        Returns:
            Created Turn record
        """
        return await self.create(
            conversation_id=conversation_id,
            sender=sender.value,
            content=sanitize(content or ""),
            created_at=datetime.now(timezone.utc),
        )

    async def list_history(self, conversation_id: UUID) -> List[Turn]:
        """Get the full history, oldest first, in stable insertion order."""
        try:
            query = (
                select(Turn)
                .where(Turn.conversation_id == conversation_id)
                .order_by(Turn.created_at.asc(), Turn.seq.asc())
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            LOGGER.error(
                "Error retrieving conversation history",
                exc_info=True,
                extra={"conversation_id": str(conversation_id)},
            )
            raise PersistenceError("Failed to load conversation history", original_error=e) from e
