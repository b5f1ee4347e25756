"""Text extraction for stored menu documents.

Images and PDFs go through OCR; every other file is decoded as UTF-8. Each
call extracts again from the stored bytes.
"""

from pathlib import Path
from typing import Any

from menu_advisor.core.exceptions import AppError, ExtractionError
from menu_advisor.services.ocr.ocr_base import BaseOCRService
from menu_advisor.services.storage_service import DocumentStore
from menu_advisor.utils.logging import get_logger
from menu_advisor.utils.text_transforms import sanitize

LOGGER = get_logger(__name__)

OCR_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".pdf"})

SUPPORTED_MIME_PREFIXES = ("image/", "application/pdf", "text/", "application/csv")


def requires_ocr(filename: str) -> bool:
    """Check whether a file name has one of the OCR extensions."""
    return Path(filename or "").suffix.lower() in OCR_EXTENSIONS


def is_supported_mime_type(mime_type: str) -> bool:
    """Check an upload's MIME type against the accepted prefixes."""
    return any((mime_type or "").startswith(prefix) for prefix in SUPPORTED_MIME_PREFIXES)


class ContentExtractionService:
    """Dispatches a stored document to OCR or a plain UTF-8 read."""

    def __init__(self, document_store: DocumentStore, ocr_service: BaseOCRService):
        self.document_store = document_store
        self.ocr_service = ocr_service

    async def extract_text(self, document: Any) -> str:
        """Return the text content of a stored document.

        Args:
            document: Record exposing ``filename`` and ``storage_ref``

        Returns:
            Extracted text with NUL characters removed

        Raises:
            ExtractionError: If the read or recognition fails
        """
        storage_ref = document.storage_ref
        use_ocr = requires_ocr(storage_ref) or requires_ocr(document.filename)

        LOGGER.info(
            "Extracting menu text",
            extra={"storage_ref": storage_ref, "method": "ocr" if use_ocr else "read"},
        )

        try:
            content = await self.document_store.read_document(storage_ref)
            if use_ocr:
                result = await self.ocr_service.recognize_text(content, document.filename)
                text = result.text
            else:
                text = content.decode("utf-8")
        except ExtractionError:
            raise
        except UnicodeDecodeError as e:
            raise ExtractionError("菜單檔案不是有效的 UTF-8 文字檔", original_error=e) from e
        except AppError as e:
            LOGGER.error("Menu text extraction failed", extra={"storage_ref": storage_ref, "error": e.args[0]})
            raise ExtractionError(f"OCR process failed: {e}", original_error=e) from e

        return sanitize(text or "")
