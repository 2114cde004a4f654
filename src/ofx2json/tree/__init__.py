"""Tree building engine for OFX conversion.

Key Components:
    TreeBuilder: Container stack that turns element events into a JSON tree
    OpenContainer: One stack frame with its value and pending tags
"""

from .builder import (
    OpenContainer,
    TreeBuilder,
    attach,
    json_key,
)

__all__ = [
    "OpenContainer",
    "TreeBuilder",
    "attach",
    "json_key",
]
