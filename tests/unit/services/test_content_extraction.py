"""Tests for menu text extraction."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from menu_advisor.core.exceptions import APITimeoutError, ExtractionError
from menu_advisor.services.content_extraction import (
    ContentExtractionService,
    is_supported_mime_type,
    requires_ocr,
)
from menu_advisor.services.ocr.ocr_base import BaseOCRService, OCRResult
from menu_advisor.services.storage_service import DocumentStore


class TestExtractionHelpers:
    """Test suite for dispatch helpers."""

    @pytest.mark.parametrize("name", ["menu.PNG", "a.jpg", "b.jpeg", "c.gif", "d.bmp", "e.webp", "f.pdf"])
    def test_ocr_extensions(self, name) -> None:
        assert requires_ocr(name)

    @pytest.mark.parametrize("name", ["menu.txt", "menu.csv", "menu", ""])
    def test_non_ocr_extensions(self, name) -> None:
        assert not requires_ocr(name)

    def test_supported_mime_types(self) -> None:
        assert is_supported_mime_type("image/jpeg")
        assert is_supported_mime_type("application/pdf")
        assert is_supported_mime_type("text/plain")
        assert is_supported_mime_type("application/csv")
        assert not is_supported_mime_type("application/zip")
        assert not is_supported_mime_type("")


class TestContentExtractionService:
    """Test suite for ContentExtractionService."""

    @pytest.fixture
    def document_store(self) -> Mock:
        """Create mock document store.

        Returns:
            Mock: Store whose read returns fixed bytes
        """
        store = Mock(spec=DocumentStore)
        store.read_document = AsyncMock(return_value=b"fake-bytes")
        return store

    @pytest.fixture
    def ocr(self) -> Mock:
        """Create mock OCR service.

        Returns:
            Mock: OCR service returning a fixed result
        """
        service = Mock(spec=BaseOCRService)
        service.recognize_text = AsyncMock(return_value=OCRResult(text="紅燒牛肉麵\0 180"))
        return service

    @pytest.mark.asyncio
    async def test_image_goes_through_ocr(self, document_store, ocr) -> None:
        service = ContentExtractionService(document_store, ocr)
        document = SimpleNamespace(filename="menu.jpg", storage_ref="slack-1-abc.jpg")

        text = await service.extract_text(document)

        assert text == "紅燒牛肉麵 180"
        document_store.read_document.assert_awaited_once_with("slack-1-abc.jpg")
        ocr.recognize_text.assert_awaited_once_with(b"fake-bytes", "menu.jpg")

    @pytest.mark.asyncio
    async def test_text_file_is_decoded(self, document_store, ocr) -> None:
        document_store.read_document.return_value = "滷肉飯 35".encode("utf-8")
        service = ContentExtractionService(document_store, ocr)

        text = await service.extract_text(SimpleNamespace(filename="menu.txt", storage_ref="slack-1-abc.txt"))

        assert text == "滷肉飯 35"
        ocr.recognize_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_utf8_raises_extraction_error(self, document_store, ocr) -> None:
        document_store.read_document.return_value = b"\xff\xfe\xfa"
        service = ContentExtractionService(document_store, ocr)

        with pytest.raises(ExtractionError):
            await service.extract_text(SimpleNamespace(filename="menu.csv", storage_ref="slack-1-abc.csv"))

    @pytest.mark.asyncio
    async def test_ocr_failure_is_wrapped(self, document_store, ocr) -> None:
        ocr.recognize_text.side_effect = APITimeoutError("OCR processing timed out after 120s")
        service = ContentExtractionService(document_store, ocr)

        with pytest.raises(ExtractionError) as exc_info:
            await service.extract_text(SimpleNamespace(filename="menu.pdf", storage_ref="slack-1-abc.pdf"))

        assert str(exc_info.value).startswith("OCR process failed")

    @pytest.mark.asyncio
    async def test_read_failure_propagates_unchanged(self, document_store, ocr) -> None:
        error = ExtractionError("無法讀取菜單檔案：slack-1-abc.png")
        document_store.read_document.side_effect = error
        service = ContentExtractionService(document_store, ocr)

        with pytest.raises(ExtractionError) as exc_info:
            await service.extract_text(SimpleNamespace(filename="menu.png", storage_ref="slack-1-abc.png"))

        assert exc_info.value is error
