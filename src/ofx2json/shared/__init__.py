"""Shared utilities for OFX conversion.

This module provides configuration objects, the exception hierarchy, diagnostic
and metrics types, and logging helpers used across all processing layers.
"""

from .config import (
    ConfigError,
    ConfigValidationError,
    ConverterConfig,
)
from .errors import (
    CloseMismatchError,
    LeafDecodeError,
    NotAnOfxDocumentError,
    OFXConversionError,
    SchemaError,
    StructuralParseError,
    UnbalancedStackError,
)
from .logging import (
    CorrelationLogger,
    get_logger,
)
from .result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    PerformanceMetrics,
)

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "ConverterConfig",
    "CloseMismatchError",
    "LeafDecodeError",
    "NotAnOfxDocumentError",
    "OFXConversionError",
    "SchemaError",
    "StructuralParseError",
    "UnbalancedStackError",
    "CorrelationLogger",
    "get_logger",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "PerformanceMetrics",
]
