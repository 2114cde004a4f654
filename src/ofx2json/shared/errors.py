"""Exception hierarchy for OFX conversion.

Every fatal condition of a conversion run derives from ``OFXConversionError``
so callers can catch the whole family at once. Unrecognized elements are not
errors; they travel through the diagnostics channel instead.
"""

from typing import Optional


class OFXConversionError(Exception):
    """Base exception for all fatal conversion failures."""


class NotAnOfxDocumentError(OFXConversionError):
    """Raised when the document root marker is missing from the input."""

    def __init__(self, marker: str) -> None:
        super().__init__(f"Not an OFX file: root marker {marker!r} not found")
        self.marker = marker


class StructuralParseError(OFXConversionError):
    """Raised by the tokenizer on malformed tag syntax or premature end of input."""

    def __init__(
        self,
        message: str,
        offset: int,
        line: Optional[int] = None,
        column: Optional[int] = None
    ) -> None:
        location = f"offset {offset}"
        if line is not None and column is not None:
            location = f"line {line}, column {column}"
        super().__init__(f"{message} at {location}")
        self.reason = message
        self.offset = offset
        self.line = line
        self.column = column


class CloseMismatchError(OFXConversionError):
    """Raised when a close tag cannot be resolved against the open container."""

    def __init__(self, close_tag: str, container: Optional[str]) -> None:
        if container is None:
            message = f"unexpected tag found: </{close_tag}>"
        else:
            message = f"mismatch for </{close_tag}>, expecting </{container}>"
        super().__init__(message)
        self.close_tag = close_tag
        self.container = container


class UnbalancedStackError(OFXConversionError):
    """Raised when containers remain open at end of input."""

    def __init__(self, message: str, depth: int) -> None:
        super().__init__(message)
        self.depth = depth


class LeafDecodeError(OFXConversionError, ValueError):
    """Raised when leaf text does not decode as its declared value kind."""

    def __init__(self, kind: str, text: str, tag: Optional[str] = None) -> None:
        if tag is None:
            message = f"failed to parse {text!r} as a {kind}"
        else:
            message = f"<{tag}> failed to parse {text!r} as a {kind}"
        super().__init__(message)
        self.kind = kind
        self.text = text
        self.tag = tag


class SchemaError(ValueError):
    """Raised when schema data is malformed or cyclic."""
