"""Persistence repositories and the unit of work that commits them."""
