"""Command-line interface for ofx2json.

This module provides the ``ofx2json`` console script converting one OFX
document to JSON.
"""

from .main import main

__all__ = ["main"]
