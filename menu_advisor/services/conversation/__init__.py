"""Conversation orchestration: commands, prompts, field parsing and the state machine."""
