"""Widgets for the gplay TUI."""
