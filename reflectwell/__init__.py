"""Reflectwell journaling platform - crisis detection engine."""
