"""Tag-indexed TLV header store.

Each stored header keeps its encoded length field and value bytes. Records
are rendered in ascending tag order, followed by the trace block marker
(0x5F, length 0). The marker itself is never stored.
"""

import warnings
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

import numpy as np

from ..codec.values import HeaderValue, encode_length, encode_value
from ..errors import InvalidTagError, PreconditionNotMetError
from .tags import (
    DERIVED_TAGS,
    RESERVED_TAGS,
    UNDOCUMENTED_TAGS,
    Tag,
    is_external_clock_header,
    tag_name,
)


@dataclass(frozen=True)
class HeaderEntry:
    """One encoded TLV record."""
    tag: int
    length: bytes       # encoded length field (1 byte, or 0x80|k + k bytes)
    value: bytes

    def to_bytes(self) -> bytes:
        return bytes([self.tag]) + self.length + self.value


class HeaderStore:
    """Headers of one trace set, keyed by tag."""

    def __init__(self):
        self._entries: Dict[int, HeaderEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, tag: int) -> bool:
        return tag in self._entries

    def __iter__(self) -> Iterator[HeaderEntry]:
        for tag in sorted(self._entries):
            yield self._entries[tag]

    def get(self, tag: int) -> Optional[bytes]:
        """Encoded value bytes of tag, or None if unset."""
        entry = self._entries.get(tag)
        return None if entry is None else entry.value

    def get_bool(self, tag: int) -> bool:
        """True iff tag is set and its first value byte is nonzero."""
        entry = self._entries.get(tag)
        if entry is None or not entry.value:
            return False
        return entry.value[0] != 0

    def remove(self, tag: int) -> None:
        self._entries.pop(tag, None)

    def set(self, tag: int, value: HeaderValue) -> None:
        """Validate tag, encode value and store the record, replacing any previous one.

        Raises:
            InvalidTagError: Tag outside 0..255, reserved, or the trace block marker.
            PreconditionNotMetError: External clock header set before its gate.
            TypeError: Value type cannot be encoded.
        """
        self._validate_tag(tag)
        self._validate_preconditions(tag)

        encoded = encode_value(value)
        entry = HeaderEntry(tag=int(tag), length=encode_length(len(encoded)), value=encoded)

        if tag == Tag.EXTERNAL_CLOCK_USED and not (encoded and encoded[0]):
            still_set = [tag_name(t) for t in self._entries if is_external_clock_header(t)]
            if still_set:
                warnings.warn(
                    "External clock disabled but dependent headers remain set: "
                    + ", ".join(sorted(still_set))
                )
        self._entries[entry.tag] = entry

    def render(self) -> bytes:
        """All records in ascending tag order, terminated by the trace block marker."""
        out = bytearray()
        for entry in self:
            out += entry.to_bytes()
        out += bytes([Tag.TRACE_BLOCK_MARKER, 0x00])
        return bytes(out)

    @staticmethod
    def _validate_tag(tag: int) -> None:
        if isinstance(tag, bool) or not isinstance(tag, (int, np.integer)) or not 0 <= tag <= 0xFF:
            raise InvalidTagError(f"Tag must be an integer in 0..255, got {tag!r}", tag=None)
        if tag in RESERVED_TAGS:
            raise InvalidTagError(f"Tag 0x{tag:02X} is reserved and cannot be set", tag=tag)
        if tag == Tag.TRACE_BLOCK_MARKER:
            raise InvalidTagError(
                "Tag 0x5F is the trace block marker; it is written automatically", tag=tag
            )
        if tag in UNDOCUMENTED_TAGS:
            warnings.warn(f"Tag 0x{tag:02X} is undocumented in the trace set format")

    def _validate_preconditions(self, tag: int) -> None:
        if not is_external_clock_header(tag):
            return
        if not self.get_bool(Tag.EXTERNAL_CLOCK_USED):
            raise PreconditionNotMetError(
                "Enable external clock explicitly with set_external_clock_used()",
                required_tag=Tag.EXTERNAL_CLOCK_USED,
            )
        if tag != Tag.EXTERNAL_CLOCK_RESAMPLER_MASK:
            return
        if not self.get_bool(Tag.EXTERNAL_CLOCK_RESAMPLER_ENABLED):
            raise PreconditionNotMetError(
                "Enable external clock resampler explicitly with "
                "set_external_clock_resampler_enabled()",
                required_tag=Tag.EXTERNAL_CLOCK_RESAMPLER_ENABLED,
            )


def is_derived_tag(tag: int) -> bool:
    return tag in DERIVED_TAGS
