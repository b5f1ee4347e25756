"""Transaction boundary around the conversation repositories.

The orchestrator opens one unit of work per inbound message. Nothing is
written until ``commit``; leaving the context with an exception rolls back.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from menu_advisor.core.exceptions import PersistenceError
from menu_advisor.repositories.conversation_repository import ConversationRepository
from menu_advisor.repositories.document_repository import DocumentRepository
from menu_advisor.repositories.turn_repository import TurnRepository
from menu_advisor.utils.logging import get_logger

LOGGER = get_logger(__name__)


class UnitOfWork(ABC):
    """Repositories sharing one transaction."""

    documents: DocumentRepository
    conversations: ConversationRepository
    turns: TurnRepository

    @abstractmethod
    async def commit(self) -> None:
        """Persist every pending change.

        Raises:
            PersistenceError: If the write fails
        """

    @abstractmethod
    async def rollback(self) -> None:
        """Discard every pending change."""


class ConversationStore(ABC):
    """Factory for units of work."""

    @abstractmethod
    def unit_of_work(self):
        """Return an async context manager yielding a ``UnitOfWork``."""


class SqlUnitOfWork(UnitOfWork):
    """Unit of work backed by one SQLAlchemy async session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.documents = DocumentRepository(session)
        self.conversations = ConversationRepository(session)
        self.turns = TurnRepository(session)

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            LOGGER.error("Transaction commit failed", exc_info=True)
            await self.rollback()
            raise PersistenceError("Failed to save conversation data", original_error=e) from e

    async def rollback(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError:
            LOGGER.error("Transaction rollback failed", exc_info=True)


class SqlConversationStore(ConversationStore):
    """PostgreSQL-backed store handing out one session per unit of work."""

    def __init__(self, session_factory: async_sessionmaker):
        """Initialize the store.

        Args:
            session_factory: Async session factory bound to the engine
        """
        self.session_factory = session_factory

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[SqlUnitOfWork]:
        async with self.session_factory() as session:
            uow = SqlUnitOfWork(session)
            try:
                yield uow
            except BaseException:
                await uow.rollback()
                raise
