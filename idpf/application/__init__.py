"""Use cases composed from domain rules and infrastructure seams."""
