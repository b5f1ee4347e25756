"""Parsing of human-supplied fields collected during the conversation."""

import re
from datetime import datetime
from typing import Optional, Tuple

from menu_advisor.core.exceptions import ValidationError

_TARGET_AOV_PATTERN = re.compile(r"目標客單價(?:：|:)\s*([^\n]+)", re.IGNORECASE)
_TARGET_AUDIENCE_PATTERN = re.compile(r"主要目標客群(?:：|:)\s*([^\n]+)", re.IGNORECASE)
_CLOSING_DATE_PATTERN = re.compile(r"^\d{4}/\d{2}/\d{2}$")

CLOSING_DATE_FORMAT = "%Y/%m/%d"


def parse_targeting_fields(background_info: str) -> Tuple[Optional[str], Optional[str]]:
    """Best-effort extraction of target AOV and audience from labeled lines.

    Args:
        background_info: Free text supplied by the restaurant owner

    Returns:
        Tuple of (target_aov, target_audience); each is None when not labeled
    """
    text = background_info or ""
    aov_match = _TARGET_AOV_PATTERN.search(text)
    audience_match = _TARGET_AUDIENCE_PATTERN.search(text)

    target_aov = aov_match.group(1).strip() if aov_match else None
    target_audience = audience_match.group(1).strip() if audience_match else None
    return target_aov or None, target_audience or None


def parse_closing_date(text: str) -> str:
    """Validate a closing date written as ``YYYY/MM/DD``.

    Args:
        text: Raw message text

    Returns:
        The normalized (trimmed) date string

    Raises:
        ValidationError: If the format does not match or the date does not exist
    """
    candidate = (text or "").strip()
    if not _CLOSING_DATE_PATTERN.match(candidate):
        raise ValidationError(f"Closing date does not match YYYY/MM/DD: {candidate!r}")
    try:
        datetime.strptime(candidate, CLOSING_DATE_FORMAT)
    except ValueError as e:
        raise ValidationError(f"Closing date is not a real calendar date: {candidate!r}", original_error=e) from e
    return candidate
