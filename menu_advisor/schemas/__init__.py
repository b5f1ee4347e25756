"""Pydantic schemas and enums shared across layers."""
