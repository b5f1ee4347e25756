"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    ForeignKey,
    Identity,
    Index,
    String,
    Text,
    TIMESTAMP,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from menu_advisor.core.database import Base
from menu_advisor.schemas.conversation import ConversationStatus


class Document(Base):
    """Uploaded menu file. Immutable after creation."""

    __tablename__ = "menus"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    filename: Mapped[str] = mapped_column(String, nullable=False)
    storage_ref: Mapped[str] = mapped_column(String, nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )

    # Relationships
    conversations: Mapped[list["Conversation"]] = relationship(
        "Conversation", back_populates="document"
    )


class Conversation(Base):
    """Workflow state for one chat thread."""

    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversations_channel_thread", "channel_id", "thread_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("menus.id", ondelete="SET NULL"), nullable=True
    )
    channel_id: Mapped[str] = mapped_column(String, nullable=False)
    thread_id: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str | None] = mapped_column(
        String, nullable=True, default=ConversationStatus.AWAITING_INFO.value
    )  # pending_info | active | pending_report_* | generating_report
    report_preparer_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    report_closing_date: Mapped[str | None] = mapped_column(String, nullable=True)
    report_subject_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_aov: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_audience: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )

    # Relationships
    document: Mapped["Document | None"] = relationship(
        "Document", back_populates="conversations"
    )
    turns: Mapped[list["Turn"]] = relationship(
        "Turn",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Turn.seq",
    )


class Turn(Base):
    """One stored human or assistant message. Append-only."""

    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender: Mapped[str] = mapped_column(String, nullable=False)  # user | ai
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # Insertion sequence; breaks created_at ties so history order is total
    seq: Mapped[int] = mapped_column(BigInteger, Identity(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )

    # Relationships
    conversation: Mapped["Conversation"] = relationship(
        "Conversation", back_populates="turns"
    )
