"""Parsing helpers for completion-service responses.

The completion service only loosely follows the requested output format, so
every helper here tolerates surrounding prose and falls back to heuristics.
"""

import json
import re
from typing import Any, Dict, List, Sequence

from menu_advisor.core.exceptions import ParseError
from menu_advisor.schemas.conversation import TurnSender
from menu_advisor.services.conversation.commands import RESUMMARIZE_PHRASE
from menu_advisor.utils.logging import get_logger

LOGGER = get_logger(__name__)

_FENCED_JSON_PATTERN = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_BRACKET_SPAN_PATTERN = re.compile(r"\[[\s\S]*\]")
_FENCED_MARKDOWN_PATTERN = re.compile(r"```markdown\s*([\s\S]*?)\s*```", re.IGNORECASE)

PLACEHOLDER_EXCERPT_CHARS = 500


def extract_items(response_text: str) -> List[Dict[str, Any]]:
    """Extract the structured item list from a completion.

    Looks for a fenced ```json block first, then for the widest ``[...]`` span.

    Args:
        response_text: Raw completion text

    Returns:
        List of item dictionaries, exactly as parsed

    Raises:
        ParseError: If no JSON array can be found or parsed, or if any element
            is not an object. The raw text is attached to the error.
    """
    text = response_text or ""

    fenced = _FENCED_JSON_PATTERN.search(text)
    if fenced:
        candidate = fenced.group(1)
    else:
        span = _BRACKET_SPAN_PATTERN.search(text)
        if not span:
            LOGGER.warning("No JSON array found in completion", extra={"text_length": len(text)})
            raise ParseError("No JSON array found in response", raw_text=text)
        candidate = span.group(0)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Failed to parse JSON from completion: {e}")
        raise ParseError(f"Invalid JSON in response: {e}", raw_text=text, original_error=e) from e

    if not isinstance(data, list):
        raise ParseError("Expected a JSON array of items", raw_text=text)
    if not all(isinstance(item, dict) for item in data):
        raise ParseError("Every item in the JSON array must be an object", raw_text=text)

    LOGGER.info(f"Parsed {len(data)} items from completion")
    return data


def extract_markdown(response_text: str) -> str:
    """Return the content of a fenced ```markdown block, or the whole text.

    Args:
        response_text: Raw completion text

    Returns:
        Trimmed Markdown content
    """
    text = response_text or ""
    fenced = _FENCED_MARKDOWN_PATTERN.search(text)
    if fenced:
        return fenced.group(1).strip()
    return text.strip()


def recover_final_advice(
    turns: Sequence[Any],
    document_name: str,
    document_text: str,
) -> str:
    """Pick the most recent agreed-upon advice from a conversation history.

    The assistant reply that directly follows the latest resummarize command
    wins. Otherwise the latest assistant turn is used. With no assistant turn
    at all a clearly marked placeholder is returned so report generation can
    still proceed.

    Args:
        turns: History ordered oldest to newest; items expose ``sender`` and ``content``
        document_name: Display name of the uploaded menu
        document_text: Extracted menu text, used for the placeholder excerpt

    Returns:
        Advice text to embed in the closing-report prompt
    """
    turns = list(turns)

    for index in range(len(turns) - 1, -1, -1):
        turn = turns[index]
        if _is_sender(turn, TurnSender.USER) and RESUMMARIZE_PHRASE in (turn.content or "").lower():
            if index + 1 < len(turns) and _is_sender(turns[index + 1], TurnSender.AI):
                LOGGER.info("Using advice that followed the latest resummarize command")
                return turns[index + 1].content
            break

    for turn in reversed(turns):
        if _is_sender(turn, TurnSender.AI):
            LOGGER.info("Using latest assistant turn as final advice")
            return turn.content

    LOGGER.warning("No assistant turn found; using placeholder advice")
    excerpt = (document_text or "")[:PLACEHOLDER_EXCERPT_CHARS]
    return (
        "【系統提示：找不到先前的優化建議內容】\n"
        f"菜單檔案：{document_name}\n"
        f"菜單內容摘錄：\n{excerpt}"
    )


def _is_sender(turn: Any, sender: TurnSender) -> bool:
    value = getattr(turn.sender, "value", turn.sender)
    return value == sender.value
