"""Entity reference decoding for OFX text and attribute values."""

from typing import Dict, List

XML_ENTITIES: Dict[str, str] = {
    "quot": '"',
    "amp": "&",
    "apos": "'",
    "lt": "<",
    "gt": ">",
}

# A terminating ';' must appear within this many characters after '&'
MAX_ENTITY_SPAN = 5


def decode_entities(text: str) -> str:
    """Replace the five standard named references in ``text``.

    Unrecognized or unterminated references are copied through unchanged,
    including the ``&`` itself.

    Examples:
        >>> decode_entities("AT&amp;T")
        'AT&T'
        >>> decode_entities("Q&A; &copy;")
        'Q&A; &copy;'
    """
    if "&" not in text:
        return text

    out: List[str] = []
    pos = 0
    length = len(text)
    while pos < length:
        ch = text[pos]
        if ch == "&":
            end = text.find(";", pos + 1, min(length, pos + 1 + MAX_ENTITY_SPAN))
            if end > pos + 1:
                replacement = XML_ENTITIES.get(text[pos + 1:end])
                if replacement is not None:
                    out.append(replacement)
                    pos = end + 1
                    continue
        out.append(ch)
        pos += 1

    return "".join(out)
