"""Number and boolean decoders for OFX leaf text.

OFX leaf values are plain text: signed decimals without exponents and
single-letter Y/N flags. Both decoders raise ``LeafDecodeError`` on failure;
the tree builder treats that as fatal for numbers and booleans.
"""

from typing import Optional, Tuple

from ofx2json.shared.errors import LeafDecodeError

# ASCII whitespace as understood by the OFX grammar
WHITESPACE = " \t\n\r\f\v"

# Digit accumulators are limited to a 64-bit unsigned range
MAX_ACCUMULATOR = (1 << 64) - 1


def skip_whitespace(text: str, pos: int) -> int:
    """Return the first position at or after ``pos`` that is not whitespace."""
    length = len(text)
    while pos < length and text[pos] in WHITESPACE:
        pos += 1
    return pos


def accumulate_digit(value: int, digit: int) -> Optional[int]:
    """Multiply-add one decimal digit, returning ``None`` on overflow.

    Any result above the 64-bit unsigned range counts as overflow.
    """
    result = value * 10 + digit
    if result > MAX_ACCUMULATOR:
        return None
    return result


def parse_digits(text: str, pos: int, width: Optional[int] = None) -> Tuple[int, int]:
    """Parse a run of decimal digits starting at ``pos``.

    With ``width`` set, exactly that many digits must be present. Without it,
    at least one digit is required and the run ends at the first non-digit.

    Returns:
        Tuple of (value, digits consumed); consumed is 0 on failure
    """
    end = len(text)
    if width is not None:
        if pos + width > end:
            return 0, 0
        end = pos + width

    value = 0
    count = 0
    while pos + count < end:
        ch = text[pos + count]
        if not ("0" <= ch <= "9"):
            if width is not None or count == 0:
                return 0, 0
            break
        stepped = accumulate_digit(value, ord(ch) - ord("0"))
        if stepped is None:
            return 0, 0
        value = stepped
        count += 1
    return value, count


def parse_number(text: str) -> float:
    """Decode an OFX amount such as ``"  -12.50 "``.

    Accepts an optional sign, digits with at most one decimal point, and
    surrounding whitespace. Exponents are not supported.

    Raises:
        LeafDecodeError: if the text is not a number or the digits overflow
    """
    length = len(text)
    pos = skip_whitespace(text, 0)
    if pos >= length:
        raise LeafDecodeError("number", text)

    negative = False
    if text[pos] in "+-":
        negative = text[pos] == "-"
        pos += 1
        if pos >= length:
            raise LeafDecodeError("number", text)

    mantissa = 0
    scale = 0
    seen_point = False
    while pos < length:
        ch = text[pos]
        if ch == ".":
            if seen_point:
                raise LeafDecodeError("number", text)
            seen_point = True
        elif "0" <= ch <= "9":
            stepped = accumulate_digit(mantissa, ord(ch) - ord("0"))
            if stepped is None:
                raise LeafDecodeError("number", text)
            mantissa = stepped
            if seen_point:
                scale += 1
        else:
            break
        pos += 1

    if skip_whitespace(text, pos) < length:
        raise LeafDecodeError("number", text)

    value = mantissa / (10 ** scale)
    return -value if negative else value


def parse_bool(text: str) -> bool:
    """Decode an OFX Y/N flag, case-insensitively.

    Raises:
        LeafDecodeError: if the first non-whitespace character is not Y or N,
            or anything but whitespace follows it
    """
    pos = skip_whitespace(text, 0)
    if pos >= len(text):
        raise LeafDecodeError("boolean", text)

    flag = text[pos]
    if flag in "Yy":
        value = True
    elif flag in "Nn":
        value = False
    else:
        raise LeafDecodeError("boolean", text)

    if skip_whitespace(text, pos + 1) < len(text):
        raise LeafDecodeError("boolean", text)
    return value
