"""Pytest configuration and shared fixtures."""

import asyncio
import copy
import itertools
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from menu_advisor.core.exceptions import APIClientError, ExtractionError, PersistenceError
from menu_advisor.core.llm_client import CompletionClient
from menu_advisor.main import app
from menu_advisor.repositories.unit_of_work import ConversationStore, UnitOfWork
from menu_advisor.schemas.conversation import Attachment, ConversationStatus, InboundMessage
from menu_advisor.services.chat.transport import ChatTransport
from menu_advisor.services.content_extraction import ContentExtractionService
from menu_advisor.services.conversation.orchestrator import ConversationOrchestrator
from menu_advisor.services.export.report_document_service import ReportDocumentService
from menu_advisor.services.export.spreadsheet_service import SpreadsheetExportService
from menu_advisor.services.ocr.ocr_base import BaseOCRService, OCRResult
from menu_advisor.services.storage_service import DocumentStore

_clock = itertools.count(1)


@dataclass
class FakeDocument:
    filename: str
    storage_ref: str
    mime_type: Optional[str] = None
    id: UUID = field(default_factory=uuid4)


@dataclass
class FakeConversation:
    channel_id: str
    thread_id: str
    document_id: Optional[UUID] = None
    status: Optional[str] = ConversationStatus.AWAITING_INFO.value
    report_preparer_name: Optional[str] = None
    report_closing_date: Optional[str] = None
    report_subject_name: Optional[str] = None
    target_aov: Optional[str] = None
    target_audience: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    created_at: int = field(default_factory=lambda: next(_clock))


@dataclass
class FakeTurn:
    conversation_id: UUID
    sender: str
    content: str
    seq: int


class _FakeDocuments:
    def __init__(self, state: Dict[str, Any]):
        self.state = state

    async def create_document(self, filename: str, storage_ref: str, mime_type: Optional[str] = None):
        document = FakeDocument(filename=filename, storage_ref=storage_ref, mime_type=mime_type)
        self.state["documents"][document.id] = document
        return document

    async def get_by_id(self, id: UUID):
        return self.state["documents"].get(id)


class _FakeConversations:
    def __init__(self, state: Dict[str, Any]):
        self.state = state

    async def create_conversation(self, channel_id, thread_id, document_id, status=ConversationStatus.AWAITING_INFO):
        conversation = FakeConversation(
            channel_id=channel_id,
            thread_id=thread_id,
            document_id=document_id,
            status=getattr(status, "value", status),
        )
        self.state["conversations"][conversation.id] = conversation
        return conversation

    async def get_by_id(self, id: UUID):
        return self.state["conversations"].get(id)

    async def get_by_thread(self, channel_id: str, thread_id: str):
        matches = [
            c for c in self.state["conversations"].values()
            if c.channel_id == channel_id and c.thread_id == thread_id
        ]
        return max(matches, key=lambda c: c.created_at) if matches else None

    async def update_status(self, id: UUID, status):
        return await self.update_fields(id, status=status)

    async def update_fields(self, id: UUID, **fields):
        conversation = self.state["conversations"].get(id)
        if conversation is None:
            return None
        for key, value in fields.items():
            setattr(conversation, key, getattr(value, "value", value))
        return conversation


class _FakeTurns:
    def __init__(self, state: Dict[str, Any]):
        self.state = state

    async def add_turn(self, conversation_id: UUID, sender, content: str):
        turn = FakeTurn(
            conversation_id=conversation_id,
            sender=getattr(sender, "value", sender),
            content=content,
            seq=len(self.state["turns"]) + 1,
        )
        self.state["turns"].append(turn)
        return turn

    async def list_history(self, conversation_id: UUID):
        return [t for t in self.state["turns"] if t.conversation_id == conversation_id]


class InMemoryUnitOfWork(UnitOfWork):
    """Works on a private copy of the store; changes land only on commit."""

    def __init__(self, store: "InMemoryConversationStore"):
        self.store = store
        self.working = copy.deepcopy(store.state)
        self.documents = _FakeDocuments(self.working)
        self.conversations = _FakeConversations(self.working)
        self.turns = _FakeTurns(self.working)

    async def commit(self) -> None:
        if self.store.fail_next_commit:
            self.store.fail_next_commit = False
            raise PersistenceError("Database write failed")
        self.store.state = copy.deepcopy(self.working)
        self.store.commit_count += 1

    async def rollback(self) -> None:
        self.working = copy.deepcopy(self.store.state)


class InMemoryConversationStore(ConversationStore):
    """Conversation store keeping documents, conversations and turns in memory."""

    def __init__(self):
        self.state: Dict[str, Any] = {"documents": {}, "conversations": {}, "turns": []}
        self.fail_next_commit = False
        self.commit_count = 0

    @asynccontextmanager
    async def unit_of_work(self):
        uow = InMemoryUnitOfWork(self)
        try:
            yield uow
        except BaseException:
            await uow.rollback()
            raise

    @property
    def conversations(self) -> List[FakeConversation]:
        return list(self.state["conversations"].values())

    @property
    def documents(self) -> List[FakeDocument]:
        return list(self.state["documents"].values())

    @property
    def turns(self) -> List[FakeTurn]:
        return list(self.state["turns"])

    def seed_conversation(self, conversation: FakeConversation, document: Optional[FakeDocument] = None):
        if document is not None:
            self.state["documents"][document.id] = document
            conversation.document_id = document.id
        self.state["conversations"][conversation.id] = conversation
        return conversation


class FakeTransport(ChatTransport):
    """Chat transport recording every reply and upload."""

    def __init__(self):
        self.posts: List[Dict[str, str]] = []
        self.uploads: List[Dict[str, Any]] = []
        self.files: Dict[str, bytes] = {}
        self.download_error: Optional[Exception] = None
        self.failing_prefixes: List[str] = []

    async def post_reply(self, channel_id: str, thread_id: str, text: str) -> None:
        if any(text.startswith(prefix) for prefix in self.failing_prefixes):
            raise APIClientError("Slack API Error: ratelimited")
        self.posts.append({"channel_id": channel_id, "thread_id": thread_id, "text": text})

    async def upload_file(self, channel_id, thread_id, content, filename, caption) -> None:
        self.uploads.append(
            {
                "channel_id": channel_id,
                "thread_id": thread_id,
                "content": content,
                "filename": filename,
                "caption": caption,
            }
        )

    async def download_attachment(self, attachment: Attachment) -> bytes:
        if self.download_error is not None:
            raise self.download_error
        return self.files[attachment.file_id]

    @property
    def texts(self) -> List[str]:
        return [post["text"] for post in self.posts]


@dataclass
class CompletionCall:
    prompt: str
    prior_turns: List[Any]


class FakeCompletion(CompletionClient):
    """Completion client returning queued replies (or raising queued errors)."""

    def __init__(self):
        self.replies: List[Any] = []
        self.calls: List[CompletionCall] = []
        self.blocker: Optional[asyncio.Event] = None

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def complete(self, prompt: str, prior_turns: Optional[Sequence[Any]] = None) -> str:
        self.calls.append(CompletionCall(prompt=prompt, prior_turns=list(prior_turns or [])))
        if self.blocker is not None:
            await self.blocker.wait()
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeDocumentStore(DocumentStore):
    """Byte store keeping uploads in a dictionary."""

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self._counter = itertools.count(1)

    async def save_document(self, content: bytes, original_name: str) -> str:
        storage_ref = f"menu-{next(self._counter)}{Path(original_name).suffix.lower()}"
        self.files[storage_ref] = content
        return storage_ref

    async def read_document(self, storage_ref: str) -> bytes:
        if storage_ref not in self.files:
            raise ExtractionError(f"無法讀取菜單檔案：{storage_ref}")
        return self.files[storage_ref]

    async def delete_document(self, storage_ref: str) -> None:
        self.files.pop(storage_ref, None)


class FakeOCRService(BaseOCRService):
    """OCR service returning a fixed text and recording the files it saw."""

    def __init__(self, text: str = "招牌牛肉麵 180\n滷味拼盤 90"):
        self.text = text
        self.calls: List[str] = []

    async def recognize_text(self, content: bytes, filename: str) -> OCRResult:
        self.calls.append(filename)
        return OCRResult(text=self.text, metadata={"service": self.get_service_name()})

    def get_service_name(self) -> str:
        return "Fake OCR"


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    The lifespan is not entered, so no database connection is attempted.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest.fixture
def store() -> InMemoryConversationStore:
    """Create an empty in-memory conversation store.

    Returns:
        InMemoryConversationStore: Store with commit-or-discard semantics
    """
    return InMemoryConversationStore()


@pytest.fixture
def transport() -> FakeTransport:
    """Create a recording chat transport.

    Returns:
        FakeTransport: Transport collecting posts and uploads
    """
    return FakeTransport()


@pytest.fixture
def completion() -> FakeCompletion:
    """Create a scripted completion client.

    Returns:
        FakeCompletion: Client answering from its reply queue
    """
    return FakeCompletion()


@pytest.fixture
def document_store() -> FakeDocumentStore:
    """Create an in-memory document store.

    Returns:
        FakeDocumentStore: Store keeping bytes in a dictionary
    """
    return FakeDocumentStore()


@pytest.fixture
def ocr_service() -> FakeOCRService:
    """Create a fake OCR service.

    Returns:
        FakeOCRService: OCR service with a fixed menu text
    """
    return FakeOCRService()


@pytest.fixture
def orchestrator(store, transport, completion, document_store, ocr_service) -> ConversationOrchestrator:
    """Create an orchestrator wired to in-memory fakes.

    Args:
        store: In-memory conversation store fixture
        transport: Recording transport fixture
        completion: Scripted completion fixture
        document_store: In-memory document store fixture
        ocr_service: Fake OCR fixture

    Returns:
        ConversationOrchestrator: Orchestrator under test
    """
    return ConversationOrchestrator(
        store=store,
        transport=transport,
        completion=completion,
        extractor=ContentExtractionService(document_store, ocr_service),
        document_store=document_store,
        spreadsheet_service=SpreadsheetExportService(),
        report_service=ReportDocumentService(),
    )


@pytest.fixture
def sample_menu_text() -> str:
    """Sample plain-text menu.

    Returns:
        str: Menu content
    """
    return "經典牛肉堡 220\n起司薯條 90\n冰紅茶 45"


@pytest.fixture
def sample_background_info() -> str:
    """Background info reply with labeled targeting lines.

    Returns:
        str: Restaurant background message
    """
    return (
        "餐廳類型與風格：美式漢堡店\n"
        "主要目標客群：上班族\n"
        "希望主打品項：經典牛肉堡、起司薯條\n"
        "目標客單價：250"
    )


def make_mention(
    thread_id: str = "1700000000.000100",
    file_name: str = "menu.txt",
    mimetype: str = "text/plain",
    file_id: str = "F001",
    with_file: bool = True,
) -> InboundMessage:
    attachments = [Attachment(file_id=file_id, name=file_name, mimetype=mimetype)] if with_file else []
    return InboundMessage(
        channel_id="C001",
        thread_id=thread_id,
        sender_id="U001",
        text="<@BOT> 幫我看菜單",
        attachments=attachments,
    )


def make_reply(text: str, thread_id: str = "1700000000.000100") -> InboundMessage:
    return InboundMessage(channel_id="C001", thread_id=thread_id, sender_id="U001", text=text)


@pytest.fixture
def mention():
    """Factory for mention events carrying a menu file."""
    return make_mention


@pytest.fixture
def reply():
    """Factory for thread replies."""
    return make_reply
