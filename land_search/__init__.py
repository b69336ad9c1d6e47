"""Hybrid metadata and vector search over virtual land plots."""

__version__ = "0.1.0"
