"""Prompt assembly for each workflow stage.

Builders only return instruction text; the orchestrator decides which prior
turns accompany it and calls the completion service.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from menu_advisor.prompts.templates import (
    CLOSING_REPORT_PROMPT,
    INITIAL_ANALYSIS_PROMPT,
    RESUMMARIZE_PROMPT,
    STRUCTURED_EXPORT_PROMPT,
)
from menu_advisor.schemas.conversation import TurnSender
from menu_advisor.services.conversation.commands import is_resummarize_command
from menu_advisor.utils.text_transforms import sanitize

REPORT_EXCERPT_CHARS = 2000
NOT_PROVIDED = "未提供"


@dataclass
class ReportFacts:
    """Facts collected for the closing report."""

    subject_name: str
    preparer_name: str
    closing_date: str
    target_aov: Optional[str] = None
    target_audience: Optional[str] = None
    document_text: str = ""


def build_initial_analysis_prompt(background_info: str, document_text: str) -> str:
    """Build the first-turn analysis prompt.

    Must be sent without any prior history.
    """
    return sanitize(
        INITIAL_ANALYSIS_PROMPT.format(
            background_info=background_info or "",
            document_text=document_text or "",
        )
    )


def build_resummarize_prompt(document_text: str) -> str:
    """Build the prompt that regenerates the full advice structure."""
    return sanitize(RESUMMARIZE_PROMPT.format(document_text=document_text or ""))


def filter_command_turns(turns: Sequence[Any]) -> List[Any]:
    """Drop human turns that contain the resummarize command phrase."""
    return [
        turn
        for turn in turns
        if not (_sender_value(turn) == TurnSender.USER.value and is_resummarize_command(turn.content))
    ]


def build_structured_export_prompt(document_text: str) -> str:
    """Build the JSON-only export prompt, examples included."""
    return sanitize(STRUCTURED_EXPORT_PROMPT.format(document_text=document_text or ""))


def build_closing_report_prompt(facts: ReportFacts, final_advice: str) -> str:
    """Build the closing-report prompt.

    Args:
        facts: Collected report fields and the extracted menu text
        final_advice: Advice text recovered from the history

    Returns:
        Prompt asking for a single fenced Markdown block
    """
    return sanitize(
        CLOSING_REPORT_PROMPT.format(
            subject_name=facts.subject_name,
            preparer_name=facts.preparer_name,
            closing_date=facts.closing_date,
            target_aov=facts.target_aov or NOT_PROVIDED,
            target_audience=facts.target_audience or NOT_PROVIDED,
            final_advice=final_advice,
            document_excerpt=(facts.document_text or "")[:REPORT_EXCERPT_CHARS],
        )
    )


def _sender_value(turn: Any) -> str:
    return getattr(turn.sender, "value", turn.sender)
