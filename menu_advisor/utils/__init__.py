"""Shared utilities: logging, text transforms and response parsing."""
