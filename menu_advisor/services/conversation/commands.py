"""Command phrases recognized inside free-text chat messages."""

from enum import Enum
from typing import Optional

RESUMMARIZE_PHRASE = "統整建議"
EXPORT_PHRASES = ("提供 excel", "提供 csv")
CLOSING_REPORT_PHRASE = "產出結案報告"


class Command(str, Enum):
    """Global commands available while a conversation is active."""

    RESUMMARIZE = "resummarize"
    EXPORT = "export"
    CLOSING_REPORT = "closing_report"


def detect_command(text: str) -> Optional[Command]:
    """Return the command contained in a message, if any.

    Matching is a case-insensitive substring check. When a message mentions
    several commands, resummarize wins over export, which wins over the
    closing report.
    """
    lowered = (text or "").lower()
    if RESUMMARIZE_PHRASE in lowered:
        return Command.RESUMMARIZE
    if any(phrase in lowered for phrase in EXPORT_PHRASES):
        return Command.EXPORT
    if CLOSING_REPORT_PHRASE in lowered:
        return Command.CLOSING_REPORT
    return None


def is_resummarize_command(text: str) -> bool:
    return detect_command(text) is Command.RESUMMARIZE
