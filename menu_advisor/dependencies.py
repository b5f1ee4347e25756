"""Wiring of the orchestrator and its collaborators for the running service."""

from functools import lru_cache

from menu_advisor.config import settings
from menu_advisor.core.database import async_session_maker
from menu_advisor.core.exceptions import ConfigurationError
from menu_advisor.core.llm_client import GeminiClient
from menu_advisor.repositories.unit_of_work import SqlConversationStore
from menu_advisor.services.chat.slack_client import SlackChatClient
from menu_advisor.services.content_extraction import ContentExtractionService
from menu_advisor.services.conversation.orchestrator import ConversationOrchestrator
from menu_advisor.services.export.report_document_service import ReportDocumentService
from menu_advisor.services.export.spreadsheet_service import SpreadsheetExportService
from menu_advisor.services.ocr.mistral_ocr import MistralOCRService
from menu_advisor.services.storage_service import LocalDocumentStore


@lru_cache
def get_orchestrator() -> ConversationOrchestrator:
    """Build the process-wide orchestrator once.

    One instance is shared so its per-thread locks cover every request.

    Raises:
        ConfigurationError: If a required API credential is missing
    """
    missing = [
        name
        for name, value in (
            ("GEMINI_API_KEY", settings.gemini_api_key),
            ("MISTRAL_API_KEY", settings.mistral_api_key),
            ("SLACK_BOT_TOKEN", settings.slack_bot_token),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    document_store = LocalDocumentStore(settings.upload_dir)
    ocr_service = MistralOCRService(
        api_key=settings.mistral_api_key,
        api_url=settings.mistral_api_url,
        model=settings.mistral_model,
        timeout=settings.ocr_timeout,
    )
    return ConversationOrchestrator(
        store=SqlConversationStore(async_session_maker),
        transport=SlackChatClient(
            bot_token=settings.slack_bot_token,
            api_url=settings.slack_api_url,
            timeout=settings.http_timeout,
        ),
        completion=GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.http_timeout,
        ),
        extractor=ContentExtractionService(document_store, ocr_service),
        document_store=document_store,
        spreadsheet_service=SpreadsheetExportService(),
        report_service=ReportDocumentService(logo_path=settings.brand_logo_path),
    )


def get_signing_secret() -> str:
    """Slack signing secret; an empty value disables signature checks."""
    return settings.slack_signing_secret
