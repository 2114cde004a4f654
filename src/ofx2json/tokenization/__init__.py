"""Tokenization engine for SGML-style OFX documents.

Key Components:
    SGMLTokenizer: Forward-only scanner producing element events
    ElementEvent: One open or close event with attributes and inner text
    EventKind: Enumeration of event kinds
    TokenPosition: Line/column/offset position for diagnostics
"""

from .tokenizer import (
    ElementEvent,
    EventKind,
    SGMLTokenizer,
    TokenPosition,
    iter_events,
)

__all__ = [
    "ElementEvent",
    "EventKind",
    "SGMLTokenizer",
    "TokenPosition",
    "iter_events",
]
