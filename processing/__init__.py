"""Turning fetched courses into selectable lines."""
