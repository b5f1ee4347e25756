"""Mistral OCR service implementation."""

import base64
import time
from pathlib import Path

import httpx

from menu_advisor.core.exceptions import APIClientError, APITimeoutError, ExtractionError
from menu_advisor.services.ocr.ocr_base import BaseOCRService, OCRResult
from menu_advisor.utils.logging import get_logger

LOGGER = get_logger(__name__)

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
}


class MistralOCRService(BaseOCRService):
    """OCR through Mistral's document OCR endpoint.

    Files are sent inline as base64 data URIs, so the stored menu never needs
    a public URL. One request per call, no retries.

    Attributes:
        api_key: Mistral API key
        api_url: Mistral API endpoint URL
        model: OCR model name
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.mistral.ai/v1/ocr",
        model: str = "mistral-ocr-latest",
        timeout: int = 120,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout

        LOGGER.info(
            "Initialized Mistral OCR service",
            extra={"model": self.model, "timeout": self.timeout},
        )

    async def recognize_text(self, content: bytes, filename: str) -> OCRResult:
        LOGGER.info("Starting OCR extraction", extra={"document_name": filename, "size_bytes": len(content)})
        start_time = time.time()

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "document": build_document_chunk(content, filename),
            "include_image_base64": False,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
                result = response.json()

        except httpx.TimeoutException as e:
            LOGGER.error("OCR extraction timed out", exc_info=True, extra={"document_name": filename})
            raise APITimeoutError(f"OCR processing timed out after {self.timeout}s", original_error=e) from e

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            LOGGER.error(
                f"Mistral OCR API error response: {e.response.text[:500]}",
                extra={"document_name": filename, "status_code": status_code},
            )
            if status_code in (401, 403):
                raise APIClientError(f"OCR permission denied (HTTP {status_code})", original_error=e) from e
            if status_code == 429:
                raise APIClientError("OCR quota exceeded (HTTP 429)", original_error=e) from e
            raise APIClientError(f"Mistral OCR API returned error: {status_code}", original_error=e) from e

        except httpx.RequestError as e:
            LOGGER.error("OCR request failed", exc_info=True, extra={"document_name": filename})
            raise APIClientError(f"Failed to communicate with Mistral API: {e}", original_error=e) from e

        except ValueError as e:
            raise ExtractionError(f"Invalid OCR response: {e}", original_error=e) from e

        text = join_pages(result)
        processing_time = time.time() - start_time

        LOGGER.info(
            "OCR extraction completed successfully",
            extra={
                "document_name": filename,
                "text_length": len(text),
                "processing_time": round(processing_time, 2),
            },
        )

        return OCRResult(
            text=text,
            metadata={
                "service": self.get_service_name(),
                "model": self.model,
                "page_count": len(result.get("pages", [])),
                "processing_time_seconds": round(processing_time, 2),
            },
        )

    def get_service_name(self) -> str:
        return "Mistral OCR"


def build_document_chunk(content: bytes, filename: str) -> dict:
    """Build the ``document`` field: PDFs as document_url, everything else as image_url."""
    mime_type = MIME_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")
    data_uri = f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"
    if mime_type == "application/pdf":
        return {"type": "document_url", "document_url": data_uri}
    return {"type": "image_url", "image_url": data_uri}


def join_pages(result: dict) -> str:
    """Combine the markdown of every page in an OCR response."""
    # Response structure: {"pages": [{"markdown": "text content"}], ...}
    page_texts = []
    for page in result.get("pages", []):
        page_text = page.get("markdown", page.get("text", ""))
        if page_text:
            page_texts.append(page_text)
    return "\n\n".join(page_texts).strip()
