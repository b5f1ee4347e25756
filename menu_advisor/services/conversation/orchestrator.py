"""Per-thread conversation state machine.

Every inbound thread message is dispatched on the stored conversation status.
Messages for one thread are serialized with an asyncio lock; the closing
report runs as a supervised background task that always returns the
conversation to ``active``.
"""

import asyncio
import weakref
from typing import Any, Dict, Optional, Set, Tuple
from uuid import UUID

from menu_advisor.core.exceptions import (
    AppError,
    ConversationNotFoundError,
    ParseError,
    PersistenceError,
    UnsupportedFileTypeError,
    ValidationError,
)
from menu_advisor.core.llm_client import CompletionClient
from menu_advisor.prompts import templates
from menu_advisor.repositories.unit_of_work import ConversationStore
from menu_advisor.schemas.conversation import ConversationStatus, InboundMessage, TurnSender
from menu_advisor.services.chat.transport import ChatTransport
from menu_advisor.services.content_extraction import ContentExtractionService, is_supported_mime_type
from menu_advisor.services.conversation.commands import Command, detect_command
from menu_advisor.services.conversation.field_parser import parse_closing_date, parse_targeting_fields
from menu_advisor.services.conversation.prompt_builder import (
    ReportFacts,
    build_closing_report_prompt,
    build_initial_analysis_prompt,
    build_resummarize_prompt,
    build_structured_export_prompt,
    filter_command_turns,
)
from menu_advisor.services.export.report_document_service import ReportDocumentService, report_file_name
from menu_advisor.services.export.spreadsheet_service import (
    SpreadsheetExportService,
    build_export_rows,
    export_file_name,
)
from menu_advisor.services.storage_service import DocumentStore
from menu_advisor.utils.logging import get_logger
from menu_advisor.utils.response_parser import extract_items, extract_markdown, recover_final_advice

LOGGER = get_logger(__name__)


class ConversationOrchestrator:
    """Drives the menu-optimization workflow for each chat thread.

    All collaborators are injected so tests can substitute in-memory fakes.
    """

    def __init__(
        self,
        store: ConversationStore,
        transport: ChatTransport,
        completion: CompletionClient,
        extractor: ContentExtractionService,
        document_store: DocumentStore,
        spreadsheet_service: Optional[SpreadsheetExportService] = None,
        report_service: Optional[ReportDocumentService] = None,
    ):
        self.store = store
        self.transport = transport
        self.completion = completion
        self.extractor = extractor
        self.document_store = document_store
        self.spreadsheet_service = spreadsheet_service or SpreadsheetExportService()
        self.report_service = report_service or ReportDocumentService()

        self._locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = weakref.WeakValueDictionary()
        self._background_tasks: Set[asyncio.Task] = set()
        self._state_handlers = {
            ConversationStatus.AWAITING_INFO: self._handle_background_info,
            ConversationStatus.ACTIVE: self._handle_active_message,
            ConversationStatus.AWAITING_PREPARER_NAME: self._handle_preparer_name,
            ConversationStatus.AWAITING_CLOSING_DATE: self._handle_closing_date,
            ConversationStatus.AWAITING_SUBJECT_NAME: self._handle_subject_name,
            ConversationStatus.GENERATING_REPORT: self._handle_while_generating,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle_mention(self, message: InboundMessage) -> None:
        """Start a conversation from a mention carrying a menu file.

        The file is stored, a Document and a Conversation in ``pending_info``
        are created, and the owner is asked for background information.
        """
        context = {"channel_id": message.channel_id, "thread_id": message.thread_id}

        if not message.attachments:
            LOGGER.info("Mention without attachment", extra=context)
            await self._safe_post(
                message.channel_id,
                message.thread_id,
                templates.MISSING_FILE_MESSAGE.format(user_id=message.sender_id or ""),
            )
            return

        attachment = message.attachments[0]
        storage_ref = None
        try:
            if not is_supported_mime_type(attachment.mimetype):
                raise UnsupportedFileTypeError(f"不支援的檔案類型: {attachment.mimetype or '未知'}")

            content = await self.transport.download_attachment(attachment)
            storage_ref = await self.document_store.save_document(content, attachment.name)

            async with self._lock_for(message.channel_id, message.thread_id):
                async with self.store.unit_of_work() as uow:
                    document = await uow.documents.create_document(
                        filename=attachment.name,
                        storage_ref=storage_ref,
                        mime_type=attachment.mimetype or None,
                    )
                    conversation = await uow.conversations.create_conversation(
                        channel_id=message.channel_id,
                        thread_id=message.thread_id,
                        document_id=document.id,
                    )
                    await uow.commit()

        except Exception as e:
            LOGGER.error(
                "Error processing uploaded file",
                exc_info=True,
                extra={**context, "file_id": attachment.file_id, "file_name": attachment.name},
            )
            if storage_ref:
                await self._discard_stored_file(storage_ref)
            await self._safe_post(
                message.channel_id,
                message.thread_id,
                templates.FILE_PROCESSING_ERROR_MESSAGE.format(
                    file_name=attachment.name, error=_describe(e)
                ),
            )
            return

        LOGGER.info(
            "Created conversation awaiting background info",
            extra={**context, "conversation_id": str(conversation.id), "document_id": str(document.id)},
        )
        await self._safe_post(
            message.channel_id,
            message.thread_id,
            templates.INFO_REQUEST_MESSAGE.format(file_name=attachment.name),
        )

    async def handle_thread_message(self, message: InboundMessage) -> None:
        """Route a human reply inside a thread to the handler for its state.

        Failures roll back the message's unit of work, so the state does not
        advance, and are reported to the thread. Nothing propagates.
        """
        if not (message.text or "").strip():
            return

        context: Dict[str, Any] = {"channel_id": message.channel_id, "thread_id": message.thread_id}

        async with self._lock_for(message.channel_id, message.thread_id):
            try:
                async with self.store.unit_of_work() as uow:
                    conversation = await uow.conversations.get_by_thread(
                        message.channel_id, message.thread_id
                    )
                    if conversation is None:
                        LOGGER.warning("Received message in thread with no conversation", extra=context)
                        return

                    context["conversation_id"] = str(conversation.id)
                    status = _resolve_status(conversation.status)
                    if status is None:
                        LOGGER.warning(
                            f"Conversation has unexpected status: {conversation.status}", extra=context
                        )
                        return

                    LOGGER.info(f"Handling message in state {status.value}", extra=context)
                    await self._state_handlers[status](uow, conversation, message)

            except PersistenceError:
                LOGGER.error("Failed to persist conversation changes", exc_info=True, extra=context)
                await self._safe_post(
                    message.channel_id, message.thread_id, templates.PERSISTENCE_ERROR_MESSAGE
                )
            except Exception as e:
                LOGGER.error("Error processing threaded message", exc_info=True, extra=context)
                await self._safe_post(
                    message.channel_id,
                    message.thread_id,
                    templates.GENERIC_ERROR_MESSAGE.format(error=_describe(e)),
                )

    async def wait_for_background_tasks(self) -> None:
        """Wait until every spawned closing-report task has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    async def _handle_background_info(self, uow, conversation, message: InboundMessage) -> None:
        document = await self._require_document(uow, conversation)
        await self.transport.post_reply(
            message.channel_id, message.thread_id, templates.ANALYZING_MESSAGE
        )

        document_text = await self.extractor.extract_text(document)
        prompt = build_initial_analysis_prompt(message.text, document_text)
        reply = await self.completion.complete(prompt, [])

        target_aov, target_audience = parse_targeting_fields(message.text)
        await uow.turns.add_turn(conversation.id, TurnSender.USER, message.text)
        await uow.turns.add_turn(conversation.id, TurnSender.AI, reply)
        await uow.conversations.update_fields(
            conversation.id,
            status=ConversationStatus.ACTIVE,
            target_aov=target_aov,
            target_audience=target_audience,
        )
        await uow.commit()

        await self._safe_post(message.channel_id, message.thread_id, reply)

    async def _handle_active_message(self, uow, conversation, message: InboundMessage) -> None:
        command = detect_command(message.text)
        if command is Command.RESUMMARIZE:
            await self._resummarize(uow, conversation, message)
        elif command is Command.EXPORT:
            await self._export_spreadsheet(uow, conversation, message)
        elif command is Command.CLOSING_REPORT:
            await self._start_closing_report(uow, conversation, message)
        else:
            await self._chat(uow, conversation, message)

    async def _handle_preparer_name(self, uow, conversation, message: InboundMessage) -> None:
        await uow.conversations.update_fields(
            conversation.id,
            report_preparer_name=message.text.strip(),
            status=ConversationStatus.AWAITING_CLOSING_DATE,
        )
        await uow.commit()
        await self._safe_post(
            message.channel_id, message.thread_id, templates.ASK_CLOSING_DATE_MESSAGE
        )

    async def _handle_closing_date(self, uow, conversation, message: InboundMessage) -> None:
        try:
            closing_date = parse_closing_date(message.text)
        except ValidationError as e:
            LOGGER.info(
                f"Rejected closing date: {e}",
                extra={"conversation_id": str(conversation.id), "thread_id": message.thread_id},
            )
            await self.transport.post_reply(
                message.channel_id, message.thread_id, templates.INVALID_CLOSING_DATE_MESSAGE
            )
            return

        await uow.conversations.update_fields(
            conversation.id,
            report_closing_date=closing_date,
            status=ConversationStatus.AWAITING_SUBJECT_NAME,
        )
        await uow.commit()
        await self._safe_post(
            message.channel_id, message.thread_id, templates.ASK_SUBJECT_NAME_MESSAGE
        )

    async def _handle_subject_name(self, uow, conversation, message: InboundMessage) -> None:
        subject_name = message.text.strip()
        await uow.conversations.update_fields(
            conversation.id,
            report_subject_name=subject_name,
            status=ConversationStatus.GENERATING_REPORT,
        )
        await uow.commit()

        # Spawned before any post; the task owns the revert to active.
        self._spawn_report(conversation.id, message.channel_id, message.thread_id)
        await self._safe_post(
            message.channel_id,
            message.thread_id,
            templates.REPORT_STARTED_MESSAGE.format(subject_name=subject_name),
        )

    async def _handle_while_generating(self, uow, conversation, message: InboundMessage) -> None:
        LOGGER.info(
            "Message received while report is generating",
            extra={"conversation_id": str(conversation.id), "thread_id": message.thread_id},
        )
        await self.transport.post_reply(
            message.channel_id, message.thread_id, templates.REPORT_IN_PROGRESS_MESSAGE
        )

    # ------------------------------------------------------------------
    # Active-state actions
    # ------------------------------------------------------------------

    async def _resummarize(self, uow, conversation, message: InboundMessage) -> None:
        await self.transport.post_reply(
            message.channel_id, message.thread_id, templates.RESUMMARIZING_MESSAGE
        )
        document = await self._require_document(uow, conversation)
        document_text = await self.extractor.extract_text(document)
        history = filter_command_turns(await uow.turns.list_history(conversation.id))

        reply = await self.completion.complete(build_resummarize_prompt(document_text), history)
        await self.transport.post_reply(message.channel_id, message.thread_id, reply)

    async def _export_spreadsheet(self, uow, conversation, message: InboundMessage) -> None:
        await self.transport.post_reply(
            message.channel_id, message.thread_id, templates.EXPORTING_MESSAGE
        )
        document = await self._require_document(uow, conversation)
        document_text = await self.extractor.extract_text(document)
        history = await uow.turns.list_history(conversation.id)

        raw_text = await self.completion.complete(build_structured_export_prompt(document_text), history)
        try:
            rows = build_export_rows(extract_items(raw_text))
        except ParseError as e:
            LOGGER.warning(
                f"Structured export failed: {e}",
                extra={"conversation_id": str(conversation.id), "thread_id": message.thread_id},
            )
            await self.transport.post_reply(
                message.channel_id,
                message.thread_id,
                templates.EXPORT_FAILED_MESSAGE.format(error=str(e), raw_text=e.raw_text or raw_text),
            )
            return

        content = self.spreadsheet_service.render(rows)
        await self.transport.upload_file(
            message.channel_id,
            message.thread_id,
            content,
            export_file_name(document.filename),
            templates.EXPORT_CAPTION,
        )

    async def _start_closing_report(self, uow, conversation, message: InboundMessage) -> None:
        document = await self._load_document(uow, conversation)
        if document is None:
            await self.transport.post_reply(
                message.channel_id, message.thread_id, templates.REPORT_MISSING_DOCUMENT_MESSAGE
            )
            return

        await uow.conversations.update_status(conversation.id, ConversationStatus.AWAITING_PREPARER_NAME)
        await uow.commit()
        await self._safe_post(
            message.channel_id, message.thread_id, templates.ASK_PREPARER_NAME_MESSAGE
        )

    async def _chat(self, uow, conversation, message: InboundMessage) -> None:
        history = await uow.turns.list_history(conversation.id)
        await uow.turns.add_turn(conversation.id, TurnSender.USER, message.text)
        reply = await self.completion.complete(message.text, history)
        await uow.turns.add_turn(conversation.id, TurnSender.AI, reply)
        await uow.commit()

        await self._safe_post(message.channel_id, message.thread_id, reply)

    # ------------------------------------------------------------------
    # Closing report
    # ------------------------------------------------------------------

    def _spawn_report(self, conversation_id: UUID, channel_id: str, thread_id: str) -> None:
        task = asyncio.create_task(
            self._supervise_report(conversation_id, channel_id, thread_id),
            name=f"closing-report-{conversation_id}",
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _supervise_report(self, conversation_id: UUID, channel_id: str, thread_id: str) -> None:
        context = {
            "channel_id": channel_id,
            "thread_id": thread_id,
            "conversation_id": str(conversation_id),
        }
        try:
            await self._generate_closing_report(conversation_id, channel_id, thread_id)
            LOGGER.info("Closing report delivered", extra=context)
        except Exception as e:
            LOGGER.error("Closing report generation failed", exc_info=True, extra=context)
            await self._safe_post(
                channel_id, thread_id, templates.REPORT_FAILED_MESSAGE.format(error=_describe(e))
            )
        finally:
            await self._revert_to_active(conversation_id, channel_id, thread_id, context)

    async def _generate_closing_report(self, conversation_id: UUID, channel_id: str, thread_id: str) -> None:
        async with self.store.unit_of_work() as uow:
            conversation = await uow.conversations.get_by_id(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
            document = await self._require_document(uow, conversation)
            history = await uow.turns.list_history(conversation_id)

        document_text = await self.extractor.extract_text(document)
        final_advice = recover_final_advice(history, document.filename, document_text)
        facts = ReportFacts(
            subject_name=conversation.report_subject_name or "",
            preparer_name=conversation.report_preparer_name or "",
            closing_date=conversation.report_closing_date or "",
            target_aov=conversation.target_aov,
            target_audience=conversation.target_audience,
            document_text=document_text,
        )

        raw_text = await self.completion.complete(build_closing_report_prompt(facts, final_advice), [])
        content = self.report_service.render(extract_markdown(raw_text))

        await self.transport.upload_file(
            channel_id,
            thread_id,
            content,
            report_file_name(facts.subject_name),
            templates.REPORT_CAPTION.format(subject_name=facts.subject_name),
        )

    async def _revert_to_active(
        self, conversation_id: UUID, channel_id: str, thread_id: str, context: Dict[str, Any]
    ) -> None:
        try:
            async with self._lock_for(channel_id, thread_id):
                async with self.store.unit_of_work() as uow:
                    await uow.conversations.update_status(conversation_id, ConversationStatus.ACTIVE)
                    await uow.commit()
            LOGGER.info("Reverted conversation to active", extra=context)
        except Exception:
            LOGGER.error("Failed to revert conversation status", exc_info=True, extra=context)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_for(self, channel_id: str, thread_id: str) -> asyncio.Lock:
        key = (channel_id, thread_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _load_document(self, uow, conversation):
        if not conversation.document_id:
            return None
        return await uow.documents.get_by_id(conversation.document_id)

    async def _require_document(self, uow, conversation):
        document = await self._load_document(uow, conversation)
        if document is None:
            raise ConversationNotFoundError("找不到此對話的菜單檔案記錄。")
        return document

    async def _safe_post(self, channel_id: str, thread_id: str, text: str) -> None:
        try:
            await self.transport.post_reply(channel_id, thread_id, text)
        except Exception:
            LOGGER.error(
                "Failed to send message to chat",
                exc_info=True,
                extra={"channel_id": channel_id, "thread_id": thread_id},
            )

    async def _discard_stored_file(self, storage_ref: str) -> None:
        try:
            await self.document_store.delete_document(storage_ref)
        except AppError:
            LOGGER.warning("Failed to delete stored file", extra={"storage_ref": storage_ref})


def _resolve_status(value: Optional[str]) -> Optional[ConversationStatus]:
    """Map the stored status to an enum member; NULL counts as active."""
    if value is None:
        return ConversationStatus.ACTIVE
    try:
        return ConversationStatus(value)
    except ValueError:
        return None


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__
