"""Textual terminal UI for gplay."""
