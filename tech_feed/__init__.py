"""Aggregate engineering RSS feeds into a JSON file and browse it."""
