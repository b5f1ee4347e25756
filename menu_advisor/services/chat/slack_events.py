"""Slack Events API helpers: request signature checks and event normalization."""

import hashlib
import hmac
import time
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from menu_advisor.schemas.conversation import Attachment, InboundMessage

SIGNATURE_VERSION = "v0"
MAX_REQUEST_AGE_SECONDS = 60 * 5

# file_share repeats a file-carrying mention, which arrives as app_mention
IGNORED_MESSAGE_SUBTYPES = frozenset({"bot_message", "file_share", "message_changed", "message_deleted"})


class EventKind(str, Enum):
    """How an inbound Slack event is routed."""

    MENTION = "mention"
    THREAD_MESSAGE = "thread_message"


def verify_slack_signature(
    signing_secret: str,
    timestamp: Optional[str],
    signature: Optional[str],
    body: bytes,
    now: Optional[float] = None,
) -> bool:
    """Check ``X-Slack-Signature`` against the raw request body.

    Requests older than five minutes are rejected to prevent replays.
    """
    if not timestamp or not signature:
        return False
    try:
        request_time = int(timestamp)
    except ValueError:
        return False

    current_time = time.time() if now is None else now
    if abs(current_time - request_time) > MAX_REQUEST_AGE_SECONDS:
        return False

    base_string = f"{SIGNATURE_VERSION}:{timestamp}:".encode("utf-8") + body
    digest = hmac.new(signing_secret.encode("utf-8"), base_string, hashlib.sha256).hexdigest()
    return hmac.compare_digest(f"{SIGNATURE_VERSION}={digest}", signature)


def parse_event(event: Dict[str, Any]) -> Optional[Tuple[EventKind, InboundMessage]]:
    """Normalize an ``event_callback`` event for the orchestrator.

    Returns:
        The routing kind and message, or None for events the bot ignores
    """
    event_type = event.get("type")
    channel_id = event.get("channel")
    ts = event.get("ts")
    thread_ts = event.get("thread_ts")
    if not channel_id or not ts:
        return None

    if event_type == "app_mention":
        attachments = _attachments(event)
        # A file-less mention inside a thread is also delivered as a message event
        if thread_ts and not attachments:
            return None
        return EventKind.MENTION, InboundMessage(
            channel_id=channel_id,
            thread_id=thread_ts or ts,
            sender_id=event.get("user"),
            text=event.get("text") or "",
            attachments=attachments,
        )

    if event_type == "message":
        if event.get("bot_id") or event.get("subtype") in IGNORED_MESSAGE_SUBTYPES or event.get("files"):
            return None
        if not thread_ts or thread_ts == ts or not event.get("text"):
            return None
        return EventKind.THREAD_MESSAGE, InboundMessage(
            channel_id=channel_id,
            thread_id=thread_ts,
            sender_id=event.get("user"),
            text=event["text"],
        )

    return None


def _attachments(event: Dict[str, Any]) -> list:
    return [
        Attachment(
            file_id=item["id"],
            name=item.get("name") or item["id"],
            mimetype=item.get("mimetype") or "",
            download_url=item.get("url_private_download"),
        )
        for item in event.get("files") or []
        if item.get("id")
    ]
