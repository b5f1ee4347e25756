"""Menu Advisor - conversational menu optimization assistant."""

__version__ = "0.1.0"
