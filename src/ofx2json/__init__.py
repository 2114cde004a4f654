"""ofx2json: SGML OFX to JSON conversion.

Reconstructs a strict JSON tree from OFX tag soup (optional closing tags,
unquoted attributes) using a declarative schema of containers and typed leaves.

Progressive API Disclosure:
- Level 1: Simple functions - convert(), convert_string(), convert_bytes(), convert_file()
- Level 2: Configured converter - OFXConverter class with ConverterConfig
- Level 3: Document driver - process_document() raising on fatal errors
"""

__version__ = "0.1.0"

# Progressive API disclosure - Level 1: Simple functions
# Progressive API disclosure - Level 2: Advanced configuration
from .api import (
    ConversionResult,
    OFXConverter,
    convert,
    convert_bytes,
    convert_file,
    convert_string,
    process_document,
)

# Schema model for custom schemas
from .schema import SchemaNode, SerializeMode, ValueKind, default_schema, load_schema

# Configuration and errors
from .shared.config import ConverterConfig
from .shared.errors import OFXConversionError

__all__ = [
    # Version and metadata
    "__version__",

    # Level 1: Simple conversion functions
    "convert",
    "convert_string",
    "convert_bytes",
    "convert_file",

    # Level 2: Advanced converter class
    "OFXConverter",
    "ConverterConfig",

    # Level 3: Driver and schema model
    "process_document",
    "SchemaNode",
    "SerializeMode",
    "ValueKind",
    "default_schema",
    "load_schema",

    # Result objects and errors
    "ConversionResult",
    "OFXConversionError",
]
