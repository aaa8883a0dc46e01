"""Filesystem, subprocess and console seams."""
