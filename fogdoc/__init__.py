"""Canonical binary documents with schema hashes, compression settings and an array-splitting builder."""

__version__ = "0.1.0"
__all__ = ["errors", "depth", "compress", "layout", "document", "builder"]