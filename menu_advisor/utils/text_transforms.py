"""Stateless text helpers applied before persistence and export."""

import re

# Common emoji blocks, dingbats, variation selectors, tag characters and the star symbol.
_DECORATIVE_PATTERN = re.compile(
    "("
    "[\U0001F600-\U0001F64F]"
    "|[\U0001F300-\U0001F5FF]"
    "|[\U0001F680-\U0001F6FF]"
    "|[\u2600-\u26FF]"
    "|[\u2700-\u27BF]"
    "|[\uFE00-\uFE0F]"
    "|[\U0001F900-\U0001F9FF]"
    "|[\U0001FA70-\U0001FAFF]"
    "|[\U000E0020-\U000E007F]"
    "|\u2B50"
    r")\s*"
)

_PRICED_TAG_PATTERN = re.compile(r"\(\+\d+\)")


def sanitize(text):
    """Remove NUL characters, which PostgreSQL text columns reject.

    Args:
        text: Any value; only strings are transformed

    Returns:
        The string without NUL characters, or the input unchanged if not a string
    """
    if not isinstance(text, str):
        return text
    return text.replace("\0", "")


def strip_decorative(text):
    """Strip pictographic characters (and trailing whitespace after each) from a label.

    Only meant for short display names going into the spreadsheet export.

    Args:
        text: Any value; only strings are transformed

    Returns:
        The trimmed string without decorative symbols, or the input unchanged
    """
    if not isinstance(text, str):
        return text
    return _DECORATIVE_PATTERN.sub("", text).strip()


def has_priced_tag(tag) -> bool:
    """Check whether a tag carries an additive price such as ``加起司(+30)``."""
    if not isinstance(tag, str):
        return False
    return _PRICED_TAG_PATTERN.search(tag) is not None
