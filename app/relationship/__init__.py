"""Relationship engine: one consistent edge per user pair."""
