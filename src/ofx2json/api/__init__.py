"""Public conversion API for OFX documents.

Key Components:
    process_document: Document driver that raises on fatal conditions
    OFXConverter: Reusable converter with configuration and schema
    ConversionResult: Tree, header, diagnostics and metrics of one run
    convert / convert_string / convert_bytes / convert_file: Simple entry points
"""

from .converter import (
    ConversionResult,
    OFXConverter,
    convert,
    convert_bytes,
    convert_file,
    convert_string,
    process_document,
)

__all__ = [
    "ConversionResult",
    "OFXConverter",
    "convert",
    "convert_bytes",
    "convert_file",
    "convert_string",
    "process_document",
]
