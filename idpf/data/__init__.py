"""Packaged data files (command tables)."""
