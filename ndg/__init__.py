"""Markdown and NixOS module option processing for documentation, with configuration handling."""

__version__ = "2.1.0"