"""IDPF framework installer and workflow helper library."""

__version__ = "0.18.0"
