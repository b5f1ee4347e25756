"""Slack Web API client."""

import json
from typing import Any, Dict, Optional

import httpx

from menu_advisor.core.exceptions import APIClientError, APITimeoutError
from menu_advisor.schemas.conversation import Attachment
from menu_advisor.services.chat.transport import ChatTransport
from menu_advisor.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SlackChatClient(ChatTransport):
    """Posts replies and files to Slack threads over the Web API.

    Attributes:
        bot_token: Bot user OAuth token
        api_url: Web API base URL
        timeout: Request timeout in seconds
    """

    def __init__(self, bot_token: str, api_url: str = "https://slack.com/api", timeout: int = 60):
        self.bot_token = bot_token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.bot_token}"}

    async def post_reply(self, channel_id: str, thread_id: str, text: str) -> None:
        await self.call_api(
            "chat.postMessage",
            json_body={"channel": channel_id, "thread_ts": thread_id, "text": text},
        )
        LOGGER.info("Posted reply", extra={"channel_id": channel_id, "thread_id": thread_id})

    async def upload_file(
        self,
        channel_id: str,
        thread_id: str,
        content: bytes,
        filename: str,
        caption: str,
    ) -> None:
        ticket = await self.call_api(
            "files.getUploadURLExternal",
            form={"filename": filename, "length": str(len(content))},
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(ticket["upload_url"], content=content)
                response.raise_for_status()
        except httpx.HTTPError as e:
            LOGGER.error("File upload to Slack failed", exc_info=True, extra={"file_name": filename})
            raise APIClientError(f"Slack file upload failed: {e}", original_error=e) from e

        await self.call_api(
            "files.completeUploadExternal",
            form={
                "files": json.dumps([{"id": ticket["file_id"], "title": filename}]),
                "channel_id": channel_id,
                "thread_ts": thread_id,
                "initial_comment": caption,
            },
        )
        LOGGER.info(
            "Uploaded file",
            extra={"channel_id": channel_id, "thread_id": thread_id, "file_name": filename, "size_bytes": len(content)},
        )

    async def download_attachment(self, attachment: Attachment) -> bytes:
        download_url = attachment.download_url
        if not download_url:
            info = await self.call_api("files.info", params={"file": attachment.file_id})
            download_url = info.get("file", {}).get("url_private_download")
        if not download_url:
            raise APIClientError("無法取得檔案下載連結。")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(download_url, headers=self.headers)
                response.raise_for_status()
                return response.content
        except httpx.TimeoutException as e:
            raise APITimeoutError(f"Slack file download timed out after {self.timeout}s", original_error=e) from e
        except httpx.HTTPError as e:
            LOGGER.error("Slack file download failed", exc_info=True, extra={"file_id": attachment.file_id})
            raise APIClientError(f"Slack file download failed: {e}", original_error=e) from e

    async def call_api(
        self,
        method: str,
        json_body: Optional[Dict[str, Any]] = None,
        form: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Call one Web API method and return its payload.

        Raises:
            APIClientError: On transport failure or an ``ok: false`` payload
        """
        url = f"{self.api_url}/{method}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                if params is not None:
                    response = await client.get(url, headers=self.headers, params=params)
                elif form is not None:
                    response = await client.post(url, headers=self.headers, data=form)
                else:
                    response = await client.post(url, headers=self.headers, json=json_body)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            LOGGER.error(f"Slack API timeout: {method}", extra={"method": method})
            raise APITimeoutError(f"Slack API timeout: {method}", original_error=e) from e
        except httpx.HTTPError as e:
            LOGGER.error(f"Slack API HTTP error: {method}", exc_info=True, extra={"method": method})
            raise APIClientError(f"Slack API request failed: {e}", original_error=e) from e

        if not payload.get("ok"):
            error = payload.get("error", "unknown_error")
            LOGGER.error(f"Slack API returned error: {error}", extra={"method": method})
            raise APIClientError(f"Slack API error ({method}): {error}")
        return payload
