"""OCR service implementations."""

from menu_advisor.services.ocr.mistral_ocr import MistralOCRService
from menu_advisor.services.ocr.ocr_base import BaseOCRService, OCRResult

__all__ = ["BaseOCRService", "MistralOCRService", "OCRResult"]
