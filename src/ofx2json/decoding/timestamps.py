"""OFX datetime decoding and rendering.

OFX datetimes are fixed-width digit strings with optional extensions::

    YYYYMMDD
    YYYYMMDDHHMMSS
    YYYYMMDDHHMMSS.XXX[gmt offset:tz name]

Fields are range-checked individually but not validated as a calendar date,
so the decoded value is kept as plain fields rather than a ``datetime``.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ofx2json.decoding.primitives import parse_digits, skip_whitespace
from ofx2json.shared.errors import LeafDecodeError

MIN_DATE_LENGTH = 8
MIN_TIME_LENGTH = 14
MIN_EXTENDED_LENGTH = 18
MAX_TZ_HOURS = 12


@dataclass(frozen=True)
class OFXTimestamp:
    """Decoded OFX datetime: calendar fields plus a timezone offset in minutes."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    millisecond: int = 0
    tz_offset_minutes: int = 0
    tz_name: Optional[str] = None

    def isoformat(self) -> str:
        """Render as ISO-8601, e.g. ``2021-01-15T12:00:00-05:00``.

        A zero offset renders as ``Z``. Milliseconds are not rendered.
        """
        base = (
            f"{self.year:04d}-{self.month:02d}-{self.day:02d}"
            f"T{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        )
        if self.tz_offset_minutes == 0:
            return base + "Z"
        sign = "-" if self.tz_offset_minutes < 0 else "+"
        hours, minutes = divmod(abs(self.tz_offset_minutes), 60)
        return f"{base}{sign}{hours:02d}:{minutes:02d}"

    def to_ofx(self) -> str:
        """Encode back to the extended OFX form accepted by ``parse_datetime``.

        Raises:
            ValueError: if the offset is not a whole number of hours, which
                the OFX form cannot express
        """
        text = (
            f"{self.year:04d}{self.month:02d}{self.day:02d}"
            f"{self.hour:02d}{self.minute:02d}{self.second:02d}"
            f".{self.millisecond:03d}"
        )
        if self.tz_offset_minutes == 0 and self.tz_name is None:
            return text
        hours, minutes = divmod(abs(self.tz_offset_minutes), 60)
        if minutes:
            raise ValueError(
                f"offset of {self.tz_offset_minutes} minutes is not a whole hour"
            )
        sign = "-" if self.tz_offset_minutes < 0 else "+"
        suffix = f"{sign}{hours}"
        if self.tz_name is not None:
            suffix += f":{self.tz_name}"
        return f"{text}[{suffix}]"

    def __str__(self) -> str:
        return self.isoformat()


def _field(text: str, pos: int, width: int, low: int, high: int) -> int:
    value, consumed = parse_digits(text, pos, width)
    if not consumed or not (low <= value <= high):
        raise LeafDecodeError("datetime", text)
    return value


def _parse_timezone(text: str, pos: int) -> Tuple[int, Optional[str]]:
    """Parse the bracketed ``[±H[.F][:NAME]]`` suffix starting at ``pos``.

    Returns:
        Tuple of (offset in minutes, timezone name or None)
    """
    length = len(text)
    if text[pos] != "[":
        raise LeafDecodeError("datetime", text)
    pos = skip_whitespace(text, pos + 1)
    if pos >= length:
        raise LeafDecodeError("datetime", text)

    negative = False
    if text[pos] in "+-":
        negative = text[pos] == "-"
        pos += 1
        if pos >= length:
            raise LeafDecodeError("datetime", text)

    hours, consumed = parse_digits(text, pos)
    if not consumed or hours > MAX_TZ_HOURS:
        raise LeafDecodeError("datetime", text)
    offset = hours * 60
    pos += consumed
    if pos >= length:
        raise LeafDecodeError("datetime", text)

    if text[pos] == ".":
        pos += 1
        if pos >= length:
            raise LeafDecodeError("datetime", text)
        # Unclear whether the fraction is minutes or part of an hour, so
        # only a zero fraction is accepted.
        fraction, consumed = parse_digits(text, pos)
        if not consumed or fraction:
            raise LeafDecodeError("datetime", text)
        pos += consumed

    if negative:
        offset = -offset

    pos = skip_whitespace(text, pos)
    if pos >= length:
        raise LeafDecodeError("datetime", text)

    tz_name = None
    if text[pos] == ":":
        start = pos + 1
        pos = text.find("]", start)
        if pos < 0:
            raise LeafDecodeError("datetime", text)
        tz_name = text[start:pos]

    if text[pos] != "]":
        raise LeafDecodeError("datetime", text)
    if skip_whitespace(text, pos + 1) < length:
        raise LeafDecodeError("datetime", text)

    return offset, tz_name


def parse_datetime(text: str) -> OFXTimestamp:
    """Decode an OFX datetime string.

    Examples:
        >>> parse_datetime("20210115120000[-5:EST]").isoformat()
        '2021-01-15T12:00:00-05:00'
        >>> parse_datetime("20210115").isoformat()
        '2021-01-15T00:00:00Z'

    Raises:
        LeafDecodeError: if any field is missing, malformed or out of range
    """
    length = len(text)
    if length < MIN_DATE_LENGTH:
        raise LeafDecodeError("datetime", text)

    year = _field(text, 0, 4, 0, 9999)
    month = _field(text, 4, 2, 1, 12)
    day = _field(text, 6, 2, 1, 31)

    if length < MIN_TIME_LENGTH:
        if length > MIN_DATE_LENGTH:
            raise LeafDecodeError("datetime", text)
        return OFXTimestamp(year, month, day)

    hour = _field(text, 8, 2, 0, 23)
    minute = _field(text, 10, 2, 0, 59)
    second = _field(text, 12, 2, 0, 60)  # leap seconds

    if length < MIN_EXTENDED_LENGTH:
        if length > MIN_TIME_LENGTH:
            raise LeafDecodeError("datetime", text)
        return OFXTimestamp(year, month, day, hour, minute, second)

    pos = MIN_TIME_LENGTH
    millisecond = 0
    if text[pos] == ".":
        millisecond = _field(text, pos + 1, 3, 0, 999)
        pos += 4

    pos = skip_whitespace(text, pos)
    offset, tz_name = 0, None
    if pos < length:
        offset, tz_name = _parse_timezone(text, pos)

    return OFXTimestamp(
        year, month, day, hour, minute, second, millisecond,
        tz_offset_minutes=offset, tz_name=tz_name,
    )
