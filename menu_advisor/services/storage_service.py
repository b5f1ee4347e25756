"""Storage service for uploaded menu files."""

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from menu_advisor.core.exceptions import AppError, ExtractionError
from menu_advisor.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentStore(ABC):
    """Byte storage for uploaded documents."""

    @abstractmethod
    async def save_document(self, content: bytes, original_name: str) -> str:
        """Store bytes and return an opaque reference."""

    @abstractmethod
    async def read_document(self, storage_ref: str) -> bytes:
        """Return the bytes stored under a reference."""

    @abstractmethod
    async def delete_document(self, storage_ref: str) -> None:
        """Remove stored bytes; a missing reference is not an error."""


class LocalDocumentStore(DocumentStore):
    """Keeps uploads as files in a local directory.

    The reference is the stored file name, which keeps the original
    extension so content extraction can dispatch on it.
    """

    def __init__(self, upload_dir: str):
        self.upload_dir = Path(upload_dir)

    async def save_document(self, content: bytes, original_name: str) -> str:
        suffix = Path(original_name or "").suffix.lower()
        storage_ref = f"slack-{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{suffix}"
        path = self.upload_dir / storage_ref

        try:
            await asyncio.to_thread(self._write, path, content)
        except OSError as e:
            LOGGER.error(
                "Failed to store uploaded file",
                exc_info=True,
                extra={"original_name": original_name, "path": str(path)},
            )
            raise AppError(f"Storage upload error: {e}", original_error=e) from e

        LOGGER.info(
            "Stored uploaded file",
            extra={"original_name": original_name, "storage_ref": storage_ref, "size_bytes": len(content)},
        )
        return storage_ref

    async def read_document(self, storage_ref: str) -> bytes:
        path = self._resolve(storage_ref)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            LOGGER.error("Failed to read stored file", extra={"storage_ref": storage_ref, "error": str(e)})
            raise ExtractionError(f"無法讀取菜單檔案：{Path(storage_ref).name}", original_error=e) from e

    async def delete_document(self, storage_ref: str) -> None:
        path = self._resolve(storage_ref)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            raise AppError(f"Failed to delete stored file: {e}", original_error=e) from e

    def _resolve(self, storage_ref: str) -> Path:
        # References are bare file names; anything else must not escape the upload dir
        name = Path(storage_ref).name
        return self.upload_dir / name

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
