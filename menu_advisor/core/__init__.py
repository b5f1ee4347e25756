"""Core infrastructure: errors, database plumbing and the completion client."""
