"""OFX header parsing and input charset selection.

SGML-era OFX files open with a block of ``KEY:VALUE`` lines ahead of the
``<OFX>`` root marker::

    OFXHEADER:100
    DATA:OFXSGML
    VERSION:102
    ENCODING:USASCII
    CHARSET:1252

For bytes input the ENCODING and CHARSET values select the codec used to
decode the whole document.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple

DEFAULT_MARKER = "<OFX>"

# Header lines are plain ASCII, so any single-byte codec reads them safely
HEADER_SCAN_CODEC = "latin-1"

_HEADER_LINE_PATTERN = re.compile(
    r"^[ \t]*([A-Za-z0-9]+)[ \t]*:[ \t]*(.*?)[ \t\r]*$", re.MULTILINE
)


class DetectionMethod(Enum):
    """How the input codec was chosen."""

    OVERRIDE = "override"
    BOM = "bom"
    HEADER = "header"
    FALLBACK = "fallback"


@dataclass
class EncodingResult:
    """Codec selected for a bytes document, with the header it was read from."""

    encoding: str
    method: DetectionMethod
    header: Dict[str, str] = field(default_factory=dict)
    bom_length: int = 0


def parse_ofx_header(text: str, marker: str = DEFAULT_MARKER) -> Dict[str, str]:
    """Parse the ``KEY:VALUE`` header lines preceding ``marker``.

    Keys are upper-cased; lines that are not ``KEY:VALUE`` pairs are ignored.
    When ``marker`` is absent the whole text is treated as header.
    """
    end = text.find(marker)
    region = text if end < 0 else text[:end]
    return {
        match.group(1).upper(): match.group(2)
        for match in _HEADER_LINE_PATTERN.finditer(region)
    }


class HeaderCharsetResolver:
    """Maps OFX header ENCODING/CHARSET values to Python codecs."""

    CHARSET_CODECS: ClassVar[Dict[str, str]] = {
        "1252": "cp1252",
    }

    def resolve(self, header: Dict[str, str]) -> Optional[str]:
        """Return the codec named by ``header``, or ``None`` if unrecognised."""
        encoding = header.get("ENCODING", "").upper()
        if encoding in ("UTF-8", "UTF8"):
            return "utf-8"
        if encoding == "USASCII":
            return self.CHARSET_CODECS.get(header.get("CHARSET", "").upper())
        return None


class CharsetDetector:
    """Selects the codec for a bytes document.

    Implements a cascading strategy:
    1. Explicit override
    2. UTF-8 byte order mark
    3. OFX header ENCODING/CHARSET
    4. Configured fallback
    """

    BOM_PATTERNS: ClassVar[Dict[bytes, str]] = {
        b"\xef\xbb\xbf": "utf-8",
    }

    def __init__(self, fallback_encoding: str = "latin-1") -> None:
        """Initialize detector.

        Args:
            fallback_encoding: Codec used when nothing else names one
        """
        self.fallback_encoding = fallback_encoding
        self.resolver = HeaderCharsetResolver()

    def detect(
        self,
        data: bytes,
        override: Optional[str] = None,
        marker: str = DEFAULT_MARKER
    ) -> EncodingResult:
        """Choose a codec for ``data``.

        Args:
            data: Raw document bytes
            override: Codec that bypasses detection when given
            marker: Root marker ending the header block

        Returns:
            EncodingResult describing the choice and the parsed header
        """
        bom_length = 0
        bom_encoding = None
        for bom_bytes, encoding in self.BOM_PATTERNS.items():
            if data.startswith(bom_bytes):
                bom_length = len(bom_bytes)
                bom_encoding = encoding
                break

        header = parse_ofx_header(data[bom_length:].decode(HEADER_SCAN_CODEC), marker)

        if override:
            return EncodingResult(override, DetectionMethod.OVERRIDE, header, bom_length)
        if bom_encoding:
            return EncodingResult(bom_encoding, DetectionMethod.BOM, header, bom_length)

        declared = self.resolver.resolve(header)
        if declared:
            return EncodingResult(declared, DetectionMethod.HEADER, header)
        return EncodingResult(self.fallback_encoding, DetectionMethod.FALLBACK, header)


def decode_input(
    data: bytes,
    override: Optional[str] = None,
    fallback_encoding: str = "latin-1",
    marker: str = DEFAULT_MARKER
) -> Tuple[str, EncodingResult]:
    """Decode a bytes document using the detected codec.

    Undecodable bytes are replaced rather than raising.

    Returns:
        Tuple of decoded text and the EncodingResult used
    """
    result = CharsetDetector(fallback_encoding).detect(data, override, marker)
    text = data[result.bom_length:].decode(result.encoding, errors="replace")
    return text, result
