"""Schema model for OFX conversion.

Key Components:
    SchemaNode: Immutable container descriptor (serialize mode, children, leaves)
    SerializeMode: How a closed container attaches to its parent
    ValueKind: Declared leaf value types
    load_schema / load_schema_file / default_schema: Schema construction
"""

from .model import (
    SchemaNode,
    SerializeMode,
    ValueKind,
    default_schema,
    load_schema,
    load_schema_file,
)

__all__ = [
    "SchemaNode",
    "SerializeMode",
    "ValueKind",
    "default_schema",
    "load_schema",
    "load_schema_file",
]
