"""Translate AI coding assistant rule files through one canonical representation."""

__version__ = "0.1.0"
