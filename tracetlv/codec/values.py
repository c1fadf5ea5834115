"""Header value and length encoding (the V and L of each TLV record).

Integers are written little-endian with their trailing zero bytes removed,
so 2 stored as uint32 becomes the single byte 0x02. Zero keeps one byte.
Floats keep their full width: trimming would change the value.
"""

from typing import Union

import numpy as np

HeaderValue = Union[str, bytes, bytearray, bool, int, float, np.generic]

SHORT_LENGTH_MAX = 0x7F
EXTENDED_LENGTH_FLAG = 0x80


def _trim_trailing_zeros(raw: bytes) -> bytes:
    trimmed = raw.rstrip(b"\x00")
    # A zero value would otherwise encode to nothing.
    return trimmed if trimmed else b"\x00"


def encode_value(value: HeaderValue) -> bytes:
    """Convert a header value to its minimal byte representation.

    Args:
        value: Text, raw bytes, bool, Python int/float or numpy scalar.

    Returns:
        Encoded value bytes (never empty for numeric input).

    Raises:
        TypeError: If value is not text, bytes or a real number.
    """
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, (bool, np.bool_)):
        return b"\x01" if value else b"\x00"
    if isinstance(value, np.integer):
        le = value.dtype.newbyteorder("<")
        return _trim_trailing_zeros(np.asarray(value, dtype=le).tobytes())
    if isinstance(value, np.floating):
        le = value.dtype.newbyteorder("<")
        return np.asarray(value, dtype=le).tobytes()
    if isinstance(value, int):
        return _trim_trailing_zeros(value.to_bytes(8, "little", signed=value < 0))
    if isinstance(value, float):
        return np.float32(value).astype("<f4").tobytes()
    raise TypeError(
        f"Cannot encode header value of type {type(value).__name__}; "
        f"expected str, bytes, bool, int, float or a numpy scalar"
    )


def encode_length(length: int) -> bytes:
    """Encode a value length as a TLV length field.

    Lengths up to 127 take one byte. Longer values use 0x80 | k followed by
    k little-endian bytes holding the length.
    """
    if length < 0:
        raise ValueError(f"Length must be non-negative, got {length}")
    if length <= SHORT_LENGTH_MAX:
        return bytes([length])
    n_bytes = (length.bit_length() + 7) // 8
    if n_bytes > SHORT_LENGTH_MAX:
        raise ValueError(f"Length {length} cannot be expressed in a length field")
    return bytes([EXTENDED_LENGTH_FLAG | n_bytes]) + length.to_bytes(n_bytes, "little")
