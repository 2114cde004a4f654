"""Conversion API with progressive disclosure for OFX documents.

This module provides the document driver (``process_document``), which raises
on any fatal condition, plus result-returning entry points that wrap it:
module-level ``convert*`` functions and the reusable ``OFXConverter`` class.
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, TextIO, Union

try:
    import psutil
    HAS_PSUTIL = True
except ImportError:
    psutil = None
    HAS_PSUTIL = False

from ofx2json.character import decode_input, parse_ofx_header
from ofx2json.schema import SchemaNode, default_schema, load_schema_file
from ofx2json.shared import (
    ConverterConfig,
    DiagnosticEntry,
    DiagnosticSeverity,
    NotAnOfxDocumentError,
    OFXConversionError,
    PerformanceMetrics,
    get_logger,
)
from ofx2json.tokenization import SGMLTokenizer
from ofx2json.tree import TreeBuilder

# Type definitions for input data
InputType = Union[str, bytes, BinaryIO, TextIO, Path]

MS_PER_SECOND = 1000


def process_document(
    text: str,
    schema: Optional[SchemaNode] = None,
    config: Optional[ConverterConfig] = None,
    builder: Optional[TreeBuilder] = None
) -> Dict[str, Any]:
    """Convert one OFX document to its JSON tree.

    Only the text after the first root marker is tokenized. The root close
    tag ends the scan; the root container is then closed and the stack must
    be empty.

    Args:
        text: Complete document text, header included
        schema: Root schema node (defaults to the bundled OFX schema)
        config: Conversion settings (root tag, quiet mode)
        builder: Pre-built TreeBuilder, for callers that want its counters
            and diagnostics

    Returns:
        The output tree

    Raises:
        NotAnOfxDocumentError: if the root marker is absent
        StructuralParseError: on malformed tag syntax
        CloseMismatchError: on an unresolvable close tag
        LeafDecodeError: on a number or boolean leaf that does not decode
        UnbalancedStackError: if containers remain open at end of input
    """
    config = config or ConverterConfig()
    marker = config.root_marker
    start = text.find(marker)
    if start < 0:
        raise NotAnOfxDocumentError(marker)

    if builder is None:
        builder = TreeBuilder(
            schema if schema is not None else default_schema(),
            root_name=config.root_tag,
            quiet=config.quiet,
            correlation_id=config.correlation_id,
        )
    builder.push_root()

    tokenizer = SGMLTokenizer(
        text, start + len(marker), config.root_tag, config.correlation_id
    )
    for event in tokenizer.events():
        builder.handle_event(event)
    return builder.finish()


@dataclass
class ConversionResult:
    """Outcome of one conversion run.

    ``tree`` is ``None`` whenever ``success`` is false; the failure is kept in
    ``error`` and summarised as an ERROR diagnostic.
    """

    success: bool = True
    tree: Optional[Dict[str, Any]] = None
    header: Dict[str, str] = field(default_factory=dict)
    encoding: Optional[str] = None
    error: Optional[OFXConversionError] = None
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    correlation_id: Optional[str] = None

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        position: Optional[Dict[str, int]] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add a diagnostic entry to the result."""
        self.diagnostics.append(
            DiagnosticEntry(
                severity=severity,
                message=message,
                component=component,
                position=position,
                details=details,
                correlation_id=self.correlation_id,
            )
        )

    def get_diagnostics_by_severity(
        self, severity: DiagnosticSeverity
    ) -> List[DiagnosticEntry]:
        """Get all diagnostics of a specific severity level."""
        return [d for d in self.diagnostics if d.severity == severity]

    @property
    def unrecognized_elements(self) -> List[DiagnosticEntry]:
        """Unrecognized-element notices recorded during the run."""
        return self.get_diagnostics_by_severity(DiagnosticSeverity.WARNING)

    def raise_for_error(self) -> None:
        """Re-raise the fatal error of a failed run; no-op on success."""
        if self.error is not None:
            raise self.error

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize the tree; compact unless ``indent`` is given.

        Raises:
            OFXConversionError: if the run failed
        """
        self.raise_for_error()
        if indent is None:
            return json.dumps(self.tree, ensure_ascii=False, separators=(",", ":"))
        return json.dumps(self.tree, ensure_ascii=False, indent=indent)

    def summary(self) -> Dict[str, Any]:
        """Get a JSON-friendly summary of the run."""
        return {
            "success": self.success,
            "error": str(self.error) if self.error else None,
            "encoding": self.encoding,
            "header": dict(self.header),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "performance": {
                "processing_time_ms": self.performance.processing_time_ms,
                "memory_used_bytes": self.performance.memory_used_bytes,
                "characters_processed": self.performance.characters_processed,
                "events_processed": self.performance.events_processed,
                "containers_opened": self.performance.containers_opened,
                "unrecognized_elements": self.performance.unrecognized_elements,
            },
        }


class OFXConverter:
    """Reusable converter holding a configuration and a loaded schema.

    Examples:
        >>> converter = OFXConverter()
        >>> result = converter.convert(Path("statement.ofx"))
        >>> result.success
        True
        >>> result.tree["signonmsgsrsv1"]["sonrs"]["status"]["code"]
        '0'
    """

    def __init__(
        self,
        config: Optional[ConverterConfig] = None,
        schema: Optional[SchemaNode] = None
    ) -> None:
        """Initialize converter.

        Args:
            config: Conversion settings (defaults to ``ConverterConfig()``)
            schema: Root schema node; overrides ``config.schema_path`` and the
                bundled schema
        """
        self.config = config or ConverterConfig()
        if schema is not None:
            self.schema = schema
        elif self.config.schema_path:
            self.schema = load_schema_file(self.config.schema_path)
        else:
            self.schema = default_schema()
        self.logger = get_logger(
            __name__, self.config.correlation_id, "ofx_converter", self.config.quiet
        )

        self._conversion_count = 0
        self._successful_conversions = 0

    def convert(self, input_data: InputType) -> ConversionResult:
        """Convert a document from any supported input type."""
        if isinstance(input_data, str):
            return self.convert_string(input_data)
        if isinstance(input_data, (bytes, bytearray)):
            return self.convert_bytes(bytes(input_data))
        if isinstance(input_data, Path):
            return self.convert_file(input_data)
        if hasattr(input_data, "read"):
            content = input_data.read()
            if isinstance(content, str):
                return self.convert_string(content)
            return self.convert_bytes(content)
        raise TypeError(f"Unsupported input type: {type(input_data).__name__}")

    def convert_string(self, text: str) -> ConversionResult:
        """Convert an already-decoded document."""
        result = ConversionResult(correlation_id=self.config.correlation_id)
        result.header = parse_ofx_header(text, self.config.root_marker)
        return self._run(text, result)

    def convert_bytes(self, data: bytes) -> ConversionResult:
        """Decode ``data`` per its OFX header and convert it."""
        text, detected = decode_input(
            data,
            override=self.config.encoding,
            fallback_encoding=self.config.fallback_encoding,
            marker=self.config.root_marker,
        )
        result = ConversionResult(correlation_id=self.config.correlation_id)
        result.header = detected.header
        result.encoding = detected.encoding
        self.logger.debug(
            "Input decoded",
            extra={"encoding": detected.encoding, "method": detected.method.value}
        )
        return self._run(text, result)

    def convert_file(self, file_path: Union[str, Path]) -> ConversionResult:
        """Read and convert a document file.

        Raises:
            OSError: if the file cannot be read
        """
        path_obj = Path(file_path)
        self.logger.info("Converting file", extra={"file_path": str(path_obj)})
        return self.convert_bytes(path_obj.read_bytes())

    def _run(self, text: str, result: ConversionResult) -> ConversionResult:
        start_time = time.time()
        process = (
            psutil.Process()
            if (self.config.enable_memory_tracking and HAS_PSUTIL) else None
        )
        memory_start = process.memory_info().rss if process else 0

        builder = TreeBuilder(
            self.schema,
            root_name=self.config.root_tag,
            quiet=self.config.quiet,
            correlation_id=self.config.correlation_id,
        )
        self._conversion_count += 1

        try:
            result.tree = process_document(text, self.schema, self.config, builder)
        except OFXConversionError as e:
            result.success = False
            result.tree = None
            result.error = e
        else:
            self._successful_conversions += 1

        if not self.config.quiet:
            result.diagnostics.extend(builder.diagnostics)
            if result.success:
                result.add_diagnostic(
                    DiagnosticSeverity.INFO, "Processing succeeded.", "ofx_converter"
                )
                self.logger.debug("Processing succeeded.")
            else:
                result.add_diagnostic(
                    DiagnosticSeverity.ERROR,
                    f"Processing failed: {result.error}",
                    "ofx_converter",
                    details={"exception_type": type(result.error).__name__},
                )
                self.logger.error(
                    "Processing failed.", extra={"error": str(result.error)}
                )

        if self.config.enable_metrics:
            metrics = result.performance
            metrics.processing_time_ms = (time.time() - start_time) * MS_PER_SECOND
            metrics.memory_used_bytes = (
                max(0, process.memory_info().rss - memory_start) if process else 0
            )
            metrics.characters_processed = len(text)
            metrics.events_processed = builder.events_processed
            metrics.containers_opened = builder.containers_opened
            metrics.unrecognized_elements = builder.unrecognized_elements
        return result

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get converter usage statistics."""
        return {
            "total_conversions": self._conversion_count,
            "successful_conversions": self._successful_conversions,
            "success_rate": (
                self._successful_conversions / self._conversion_count
                if self._conversion_count > 0 else 0.0
            ),
            "correlation_id": self.config.correlation_id,
        }


def convert(
    input_data: InputType, config: Optional[ConverterConfig] = None
) -> ConversionResult:
    """Convert an OFX document from a string, bytes, file object or Path.

    Examples:
        >>> result = convert("<OFX><SIGNONMSGSRSV1></SIGNONMSGSRSV1></OFX>")
        >>> result.tree
        {'signonmsgsrsv1': {}}
    """
    return OFXConverter(config).convert(input_data)


def convert_string(text: str, config: Optional[ConverterConfig] = None) -> ConversionResult:
    """Convert an OFX document held in a string."""
    return OFXConverter(config).convert_string(text)


def convert_bytes(data: bytes, config: Optional[ConverterConfig] = None) -> ConversionResult:
    """Convert an OFX document held in bytes, decoding per its header."""
    return OFXConverter(config).convert_bytes(data)


def convert_file(
    file_path: Union[str, Path], config: Optional[ConverterConfig] = None
) -> ConversionResult:
    """Convert an OFX document file."""
    return OFXConverter(config).convert_file(file_path)
