"""Input handling for OFX documents.

Key Components:
    parse_ofx_header: KEY:VALUE header block parsing
    CharsetDetector: Codec selection for bytes input
    decode_input: Detect and decode in one step
"""

from .header import (
    CharsetDetector,
    DetectionMethod,
    EncodingResult,
    HeaderCharsetResolver,
    decode_input,
    parse_ofx_header,
)

__all__ = [
    "CharsetDetector",
    "DetectionMethod",
    "EncodingResult",
    "HeaderCharsetResolver",
    "decode_input",
    "parse_ofx_header",
]
