"""Conversation enums and inbound chat event schemas."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ConversationStatus(str, Enum):
    """Workflow state of a conversation thread."""

    AWAITING_INFO = "pending_info"
    ACTIVE = "active"
    AWAITING_PREPARER_NAME = "pending_report_preparer_name"
    AWAITING_CLOSING_DATE = "pending_report_closing_date"
    AWAITING_SUBJECT_NAME = "pending_report_subject_name"
    GENERATING_REPORT = "generating_report"


class TurnSender(str, Enum):
    """Author of a stored turn."""

    USER = "user"
    AI = "ai"


class Attachment(BaseModel):
    """File shared together with a chat message."""

    file_id: str = Field(..., description="Chat-platform file identifier")
    name: str = Field(..., description="Original file name")
    mimetype: str = Field(default="", description="MIME type reported by the platform")
    download_url: Optional[str] = Field(
        default=None, description="Authenticated download URL, if already known"
    )


class InboundMessage(BaseModel):
    """Chat event delivered by the transport, normalized for the orchestrator."""

    channel_id: str
    thread_id: str
    sender_id: Optional[str] = None
    text: str = ""
    attachments: List[Attachment] = Field(default_factory=list)
