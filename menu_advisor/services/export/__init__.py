"""Spreadsheet and closing-report document generation."""
