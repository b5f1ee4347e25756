"""Slack Events API receiver."""

import json
from typing import Annotated, Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status

from menu_advisor.dependencies import get_orchestrator, get_signing_secret
from menu_advisor.services.chat.slack_events import EventKind, parse_event, verify_slack_signature
from menu_advisor.services.conversation.orchestrator import ConversationOrchestrator
from menu_advisor.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/events",
    summary="Receive Slack events",
    description="Acknowledge Slack event callbacks and process them in the background",
    operation_id="receive_slack_events",
)
async def receive_slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    orchestrator: Annotated[ConversationOrchestrator, Depends(get_orchestrator)],
    signing_secret: Annotated[str, Depends(get_signing_secret)],
) -> Dict[str, Any]:
    """Handle one Slack Events API delivery.

    Slack expects an answer within three seconds, so the actual work is
    scheduled as a background task.
    """
    body = await request.body()

    if signing_secret and not verify_slack_signature(
        signing_secret,
        request.headers.get("X-Slack-Request-Timestamp"),
        request.headers.get("X-Slack-Signature"),
        body,
    ):
        LOGGER.warning("Rejected Slack request with invalid signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Slack signature")

    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge", "")}

    if request.headers.get("X-Slack-Retry-Num"):
        LOGGER.info(
            "Ignoring Slack retry",
            extra={"retry_num": request.headers.get("X-Slack-Retry-Num")},
        )
        return {"ok": True}

    if payload.get("type") != "event_callback":
        return {"ok": True}

    parsed = parse_event(payload.get("event") or {})
    if parsed is None:
        return {"ok": True}

    kind, message = parsed
    LOGGER.info(
        f"Received Slack {kind.value}",
        extra={"channel_id": message.channel_id, "thread_id": message.thread_id},
    )
    if kind is EventKind.MENTION:
        background_tasks.add_task(orchestrator.handle_mention, message)
    else:
        background_tasks.add_task(orchestrator.handle_thread_message, message)

    return {"ok": True}
