"""Tests for the Slack Web API client."""

import json
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from menu_advisor.core.exceptions import APIClientError, APITimeoutError
from menu_advisor.schemas.conversation import Attachment
from menu_advisor.services.chat.slack_client import SlackChatClient


def api_response(payload: dict) -> Mock:
    return Mock(json=Mock(return_value=payload), raise_for_status=Mock())


class TestSlackChatClient:
    """Test suite for SlackChatClient."""

    @pytest.fixture
    def client(self) -> SlackChatClient:
        """Create SlackChatClient instance for testing.

        Returns:
            SlackChatClient: Client with a test token
        """
        return SlackChatClient(bot_token="xoxb-test", api_url="https://slack.com/api/", timeout=10)

    @pytest.mark.asyncio
    async def test_post_reply(self, client: SlackChatClient) -> None:
        """Test that replies are posted into the thread.

        Args:
            client: Slack client fixture
        """
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.post.return_value = api_response({"ok": True})

            await client.post_reply("C1", "100.1", "你好")

            mock_client.post.assert_called_once_with(
                "https://slack.com/api/chat.postMessage",
                headers={"Authorization": "Bearer xoxb-test"},
                json={"channel": "C1", "thread_ts": "100.1", "text": "你好"},
            )

    @pytest.mark.asyncio
    async def test_upload_file_uses_external_upload_flow(self, client: SlackChatClient) -> None:
        """Test the three-step upload: ticket, byte upload, completion."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.post.side_effect = [
                api_response({"ok": True, "upload_url": "https://files.slack.com/upload/v1/abc", "file_id": "F9"}),
                Mock(raise_for_status=Mock()),
                api_response({"ok": True}),
            ]

            await client.upload_file("C1", "100.1", b"xlsx-bytes", "menu_優化建議.xlsx", "說明")

            calls = mock_client.post.call_args_list
            assert calls[0].args[0] == "https://slack.com/api/files.getUploadURLExternal"
            assert calls[0].kwargs["data"] == {"filename": "menu_優化建議.xlsx", "length": "10"}
            assert calls[1].args[0] == "https://files.slack.com/upload/v1/abc"
            assert calls[1].kwargs["content"] == b"xlsx-bytes"
            assert calls[2].args[0] == "https://slack.com/api/files.completeUploadExternal"
            completion_form = calls[2].kwargs["data"]
            assert json.loads(completion_form["files"]) == [{"id": "F9", "title": "menu_優化建議.xlsx"}]
            assert completion_form["channel_id"] == "C1"
            assert completion_form["thread_ts"] == "100.1"
            assert completion_form["initial_comment"] == "說明"

    @pytest.mark.asyncio
    async def test_api_error_payload_raises(self, client: SlackChatClient) -> None:
        """Test that an ``ok: false`` payload becomes APIClientError."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.post.return_value = api_response({"ok": False, "error": "channel_not_found"})

            with pytest.raises(APIClientError) as exc_info:
                await client.post_reply("C1", "100.1", "你好")

            assert "channel_not_found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_raises_timeout_error(self, client: SlackChatClient) -> None:
        """Test that a transport timeout becomes APITimeoutError."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.post.side_effect = httpx.TimeoutException("timed out")

            with pytest.raises(APITimeoutError):
                await client.post_reply("C1", "100.1", "你好")

    @pytest.mark.asyncio
    async def test_download_resolves_url_through_files_info(self, client: SlackChatClient) -> None:
        """Test that a missing download URL is looked up before downloading."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.side_effect = [
                api_response({"ok": True, "file": {"url_private_download": "https://files.slack.com/F1/menu.png"}}),
                Mock(content=b"png-bytes", raise_for_status=Mock()),
            ]

            content = await client.download_attachment(
                Attachment(file_id="F1", name="menu.png", mimetype="image/png")
            )

            assert content == b"png-bytes"
            first, second = mock_client.get.call_args_list
            assert first.kwargs["params"] == {"file": "F1"}
            assert second.args[0] == "https://files.slack.com/F1/menu.png"
            assert second.kwargs["headers"] == {"Authorization": "Bearer xoxb-test"}

    @pytest.mark.asyncio
    async def test_download_without_url_raises(self, client: SlackChatClient) -> None:
        """Test that a file without any download URL is reported."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.return_value = api_response({"ok": True, "file": {}})

            with pytest.raises(APIClientError):
                await client.download_attachment(Attachment(file_id="F1", name="menu.png"))
