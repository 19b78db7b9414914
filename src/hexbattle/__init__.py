"""Hex-grid tactical battle engine with an HTTP API."""

__version__ = "0.1.0"
