from abc import ABC, abstractmethod

from menu_advisor.schemas.conversation import Attachment


class ChatTransport(ABC):
    """Outbound side of the chat platform."""

    @abstractmethod
    async def post_reply(self, channel_id: str, thread_id: str, text: str) -> None:
        """Post a text message into a thread."""

    @abstractmethod
    async def upload_file(
        self,
        channel_id: str,
        thread_id: str,
        content: bytes,
        filename: str,
        caption: str,
    ) -> None:
        """Upload a file into a thread with a caption."""

    @abstractmethod
    async def download_attachment(self, attachment: Attachment) -> bytes:
        """Fetch the bytes of a file attached to an inbound message."""
