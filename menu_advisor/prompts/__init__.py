"""Prompt templates and canned chat replies."""
