"""Leaf value decoders for OFX conversion.

Key Components:
    decode_entities: Named entity reference decoding for text and attributes
    parse_number: Signed decimal decoding
    parse_bool: Y/N flag decoding
    parse_datetime: Fixed-width OFX datetime decoding into OFXTimestamp
"""

from .entities import XML_ENTITIES, decode_entities
from .primitives import parse_bool, parse_number
from .timestamps import OFXTimestamp, parse_datetime

__all__ = [
    "XML_ENTITIES",
    "OFXTimestamp",
    "decode_entities",
    "parse_bool",
    "parse_datetime",
    "parse_number",
]
