"""Chat-platform transport."""
