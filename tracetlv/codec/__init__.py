"""Byte-level codecs: header values/lengths and trace samples."""

from .values import encode_value, encode_length
from .samples import (
    SampleBytePacker,
    count_samples,
    resolve_sample_dtype,
    sample_coding,
    validate_equal_length,
    validate_sample_width,
)

__all__ = [
    "encode_value",
    "encode_length",
    "SampleBytePacker",
    "count_samples",
    "resolve_sample_dtype",
    "sample_coding",
    "validate_equal_length",
    "validate_sample_width",
]
