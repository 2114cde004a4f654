"""Tag-soup tokenizer for SGML-style OFX documents.

This module scans a character buffer and produces element events. It tolerates
the laxness of OFX markup (missing closing tags, unquoted attribute values,
arbitrary whitespace layout) but treats any broken tag syntax as a hard
structural error.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, Optional

from ofx2json.decoding.entities import decode_entities
from ofx2json.decoding.primitives import WHITESPACE, skip_whitespace
from ofx2json.shared.errors import StructuralParseError

# Names and unquoted attribute values end at whitespace or any of <>/="
_NAME_PATTERN = re.compile(r'[^ \t\n\r\f\v<>/="]+')
_TEXT_END_PATTERN = re.compile(r"[<>]")

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Structural event kinds produced by the tokenizer."""

    OPEN = auto()   # <NAME attr=value>text
    CLOSE = auto()  # </NAME>, or the synthetic close after <NAME/>


@dataclass
class TokenPosition:
    """Position information for an element event."""

    line: int
    column: int
    offset: int

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")

    @classmethod
    def from_offset(cls, text: str, offset: int) -> "TokenPosition":
        """Compute the 1-based line and column of ``offset`` within ``text``."""
        offset = max(0, min(offset, len(text)))
        line = text.count("\n", 0, offset) + 1
        column = offset - (text.rfind("\n", 0, offset) + 1) + 1
        return cls(line, column, offset)


@dataclass
class ElementEvent:
    """One element event: an open tag with its inner text, or a close tag."""

    kind: EventKind
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    offset: int = 0
    synthetic: bool = False

    def __post_init__(self) -> None:
        """Validate event values."""
        if not self.name:
            raise ValueError("Element name cannot be empty")

    @property
    def is_close(self) -> bool:
        """Check if this event closes an element."""
        return self.kind is EventKind.CLOSE

    @property
    def tag(self) -> str:
        """Tag as written in the source, with a leading '/' for close events."""
        return f"/{self.name}" if self.is_close else self.name


class SGMLTokenizer:
    """Forward-only tokenizer over an in-memory OFX body.

    Iterating ``events()`` yields ``ElementEvent`` objects until the input is
    exhausted or the close tag of ``stop_tag`` is seen; the latter ends the
    whole scan even when other elements remain open.
    """

    def __init__(
        self,
        text: str,
        start: int = 0,
        stop_tag: Optional[str] = "OFX",
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize the tokenizer.

        Args:
            text: Complete document text
            start: Offset at which scanning begins
            stop_tag: Tag whose close event terminates the scan
            correlation_id: Optional correlation ID for tracking requests
        """
        if start < 0 or start > len(text):
            raise ValueError("start must lie within the text")
        self.text = text
        self.start = start
        self.stop_tag = stop_tag
        self.correlation_id = correlation_id
        self._reset_state()

    def _reset_state(self) -> None:
        """Reset tokenizer state for a new scan."""
        self.pos = self.start
        self.events_emitted = 0
        self.stopped_at_root = False

    def _fail(self, message: str, offset: Optional[int] = None) -> StructuralParseError:
        position = TokenPosition.from_offset(
            self.text, self.pos if offset is None else offset
        )
        logger.debug(
            "Structural parse error",
            extra={
                "component": "sgml_tokenizer",
                "correlation_id": self.correlation_id,
                "reason": message,
                "offset": position.offset,
            }
        )
        return StructuralParseError(
            message, position.offset, position.line, position.column
        )

    def _skip_ws(self) -> bool:
        """Advance past whitespace; report whether anything was skipped."""
        begin = self.pos
        self.pos = skip_whitespace(self.text, self.pos)
        return self.pos > begin

    def _at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _read_name(self, what: str) -> str:
        match = _NAME_PATTERN.match(self.text, self.pos)
        if match is None:
            if self._at_end():
                raise self._fail(f"unexpected end of input, expected {what}")
            raise self._fail(f"missing {what}")
        self.pos = match.end()
        return match.group()

    def _read_attribute_value(self) -> str:
        quoted = self.text[self.pos] == '"'
        if not quoted:
            return self._read_name("attribute value")

        self.pos += 1
        end = self.text.find('"', self.pos)
        if end < 0:
            raise self._fail("unterminated quoted attribute value")
        if end == self.pos:
            raise self._fail("empty attribute value")
        value = self.text[self.pos:end]
        self.pos = end + 1
        return value

    def _read_attributes(self) -> Dict[str, str]:
        attributes: Dict[str, str] = {}
        while not self._at_end():
            if self.text[self.pos] in ">/":
                break

            name = self._read_name("attribute name")
            self._skip_ws()
            if self._at_end():
                raise self._fail("unexpected end of input in tag")

            value = ""
            if self.text[self.pos] == "=":
                self.pos += 1
                self._skip_ws()
                if self._at_end():
                    raise self._fail("unexpected end of input, expected attribute value")
                value = self._read_attribute_value()

            self._skip_ws()
            attributes.setdefault(name, decode_entities(value))
        return attributes

    def _read_text(self) -> str:
        self._skip_ws()
        match = _TEXT_END_PATTERN.search(self.text, self.pos)
        if match is None:
            raise self._fail("unexpected end of input in element text")
        raw = self.text[self.pos:match.start()].rstrip(WHITESPACE)
        self.pos = match.start()
        return raw

    def _expect_tag_end(self) -> None:
        self._skip_ws()
        if self._at_end():
            raise self._fail("unexpected end of input, expected '>'")
        if self.text[self.pos] != ">":
            raise self._fail("expected '>'")
        self.pos += 1

    def events(self) -> Iterator[ElementEvent]:
        """Yield element events from the current position onward.

        Raises:
            StructuralParseError: on malformed tag syntax, unterminated quotes
                or input ending inside a tag or its text
        """
        self._reset_state()
        text = self.text

        while not self._at_end():
            self._skip_ws()
            if self._at_end():
                break
            tag_offset = self.pos
            if text[self.pos] != "<":
                raise self._fail("expected '<'")
            self.pos += 1
            self._skip_ws()
            if self._at_end():
                raise self._fail("unexpected end of input after '<'")

            if text[self.pos] == "/":
                self.pos += 1
                self._skip_ws()
                name = self._read_name("element name")
                self._expect_tag_end()

                if name == self.stop_tag:
                    self.stopped_at_root = True
                    logger.debug(
                        "Root close reached, stopping scan",
                        extra={
                            "component": "sgml_tokenizer",
                            "correlation_id": self.correlation_id,
                            "offset": tag_offset,
                            "events": self.events_emitted,
                        }
                    )
                    return

                self.events_emitted += 1
                yield ElementEvent(EventKind.CLOSE, name, offset=tag_offset)
                continue

            name = self._read_name("element name")
            attributes: Dict[str, str] = {}
            if self._skip_ws():
                attributes = self._read_attributes()
            if self._at_end():
                raise self._fail("unexpected end of input in tag")

            self_closing = text[self.pos] == "/"
            if self_closing:
                self.pos += 1
            self._expect_tag_end()

            raw_text = "" if self_closing else self._read_text()

            self.events_emitted += 1
            yield ElementEvent(
                EventKind.OPEN,
                name,
                attributes=attributes,
                text=decode_entities(raw_text),
                offset=tag_offset,
            )
            if self_closing:
                self.events_emitted += 1
                yield ElementEvent(
                    EventKind.CLOSE,
                    name,
                    attributes=dict(attributes),
                    offset=tag_offset,
                    synthetic=True,
                )


def iter_events(
    text: str,
    start: int = 0,
    stop_tag: Optional[str] = "OFX"
) -> Iterator[ElementEvent]:
    """Convenience wrapper yielding events from ``text`` starting at ``start``."""
    return SGMLTokenizer(text, start, stop_tag).events()
