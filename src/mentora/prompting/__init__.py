"""Prompting module - turns memory into system-instruction text."""
