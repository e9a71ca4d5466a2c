"""Responses module - fallback and canned answers."""
