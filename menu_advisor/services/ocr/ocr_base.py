"""Base OCR service interface for pluggable OCR implementations."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class OCRResult:
    """OCR extraction result container.

    Attributes:
        text: Extracted text content
        metadata: Additional metadata (page_count, processing_time, etc.)
    """

    def __init__(self, text: str, metadata: Optional[Dict[str, Any]] = None):
        self.text = text
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "metadata": self.metadata}


class BaseOCRService(ABC):
    """Abstract base class for OCR service implementations."""

    @abstractmethod
    async def recognize_text(self, content: bytes, filename: str) -> OCRResult:
        """Recognize text in an image or PDF.

        Args:
            content: Raw file bytes
            filename: Original file name, used to pick the MIME type

        Returns:
            OCRResult: Recognized text and metadata

        Raises:
            ExtractionError: If recognition fails
            APIClientError: If the OCR provider rejects the request
        """

    @abstractmethod
    def get_service_name(self) -> str:
        """Get the name of the OCR service."""
