"""Packing of trace samples into the trace block.

Every sample is written in exactly `sample_width` bytes:
  - integers: big-endian, zero-left-padded (two's complement when signed)
  - floats:   IEEE float of the declared width, little-endian

Traces are concatenated in order. Optional per-trace extra data (for example
plaintext/ciphertext) is written immediately before each trace's samples.
"""

import numbers
from typing import List, Optional, Sequence, Union

import numpy as np

from ..errors import (
    InvalidSampleTypeError,
    InvalidSampleWidthError,
    SampleOverflowError,
    StructuralMismatchError,
)

VALID_SAMPLE_WIDTHS = (1, 2, 4)
FLOAT_CODING_BIT = 0x10

ExtraData = Union[bytes, bytearray, memoryview, str]


def resolve_sample_dtype(dtype) -> np.dtype:
    """Normalise a dtype-like to a numeric numpy dtype, rejecting text and objects."""
    try:
        resolved = np.dtype(dtype)
    except TypeError as exc:
        raise InvalidSampleTypeError(f"Unknown sample type: {dtype!r}") from exc
    if resolved.kind not in "biuf":
        raise InvalidSampleTypeError(
            f"Traces must be stored as numbers, got sample type {resolved}"
        )
    return resolved


def validate_sample_width(sample_width: int, dtype: np.dtype) -> None:
    """Sample width must be 1, 2 or 4 bytes; floats need 2 or 4."""
    if sample_width not in VALID_SAMPLE_WIDTHS:
        raise InvalidSampleWidthError(
            f"Sample length must be either 1, 2 or 4 bytes, got {sample_width}"
        )
    if dtype.kind == "f" and sample_width == 1:
        raise InvalidSampleWidthError("Floating point samples need 2 or 4 bytes")


def sample_coding(sample_width: int, dtype: np.dtype) -> int:
    """Sample coding byte: bits 0-4 are the width, bit 5 flags floating point."""
    if dtype.kind == "f":
        return sample_width | FLOAT_CODING_BIT
    return sample_width


def _is_leaf(node) -> bool:
    if isinstance(node, np.ndarray):
        return node.ndim <= 1
    return all(isinstance(item, (numbers.Number, np.generic)) for item in node)


def count_samples(trace) -> int:
    """Total number of samples in a (possibly nested) trace."""
    if isinstance(trace, np.ndarray):
        return int(trace.size)
    _reject_text(trace)
    if _is_leaf(trace):
        return len(trace)
    return sum(count_samples(child) for child in trace)


def _reject_text(node) -> None:
    if isinstance(node, (str, bytes, bytearray)):
        raise InvalidSampleTypeError("Traces must be stored as numbers, not text")


def validate_equal_length(traces: Sequence) -> None:
    """Raise StructuralMismatchError unless every entry has the same length."""
    lengths = {len(trace) for trace in traces}
    if len(lengths) > 1:
        raise StructuralMismatchError(
            "Traces must all contain the same number of samples; "
            f"got lengths {sorted(lengths)}. Use ragged mode to zero-pad short traces."
        )


def normalise_extra_data(extra_data: Optional[Sequence[ExtraData]], n_traces: int) -> Optional[List[bytes]]:
    """Convert extra data blobs to bytes and check one equal-length blob per trace."""
    if extra_data is None:
        return None
    blobs = [blob.encode("utf-8") if isinstance(blob, str) else bytes(blob) for blob in extra_data]
    if len(blobs) != n_traces:
        raise StructuralMismatchError(
            f"Expected one extra data entry per trace ({n_traces}), got {len(blobs)}"
        )
    validate_equal_length(blobs)
    return blobs


class SampleBytePacker:
    """Convert traces of one sample kind into trace block bytes."""

    def __init__(self, dtype=np.float32, sample_width: Optional[int] = None):
        """
        Args:
            dtype: Sample kind (any numeric numpy dtype-like).
            sample_width: Bytes per sample; defaults to the dtype's item size.
        """
        self.dtype = resolve_sample_dtype(dtype)
        self.sample_width = self.dtype.itemsize if sample_width is None else int(sample_width)
        validate_sample_width(self.sample_width, self.dtype)

        if self.dtype.kind == "f":
            self._wire_dtype = np.dtype(f"<f{self.sample_width}")
        elif self.dtype.kind == "i":
            self._wire_dtype = np.dtype(f">i{self.sample_width}")
        else:
            self._wire_dtype = np.dtype(f">u{self.sample_width}")

    @property
    def sample_coding(self) -> int:
        return sample_coding(self.sample_width, self.dtype)

    def encode_samples(self, samples) -> bytes:
        """Encode a flat sequence of samples, each exactly sample_width bytes."""
        _reject_text(samples)
        values = np.asarray(samples)
        if values.size == 0:
            return b""
        if values.dtype.kind not in "biuf":
            raise InvalidSampleTypeError(
                f"Traces must be stored as numbers, got {values.dtype}"
            )
        if values.ndim > 1:
            values = values.ravel()

        if self._wire_dtype.kind == "f":
            return self._encode_floats(values)
        return self._encode_integers(values)

    def _encode_integers(self, values: np.ndarray) -> bytes:
        if values.dtype.kind == "f":
            if not np.all(np.isfinite(values)):
                raise SampleOverflowError(
                    f"Non-finite sample values cannot be stored as {self.dtype} samples"
                )
            if np.any(values != np.trunc(values)):
                raise InvalidSampleTypeError(
                    f"Fractional sample values cannot be stored as {self.dtype} samples"
                )
        if self.dtype.kind == "b":
            lo, hi = 0, 1
        else:
            sample_info = np.iinfo(self.dtype)
            wire_info = np.iinfo(self._wire_dtype)
            lo = max(sample_info.min, wire_info.min)
            hi = min(sample_info.max, wire_info.max)
        v_min, v_max = values.min(), values.max()
        if v_min < lo or v_max > hi:
            raise SampleOverflowError(
                f"Sample values in [{v_min}, {v_max}] do not fit "
                f"{self.sample_width}-byte {self.dtype} samples (range [{lo}, {hi}])"
            )
        return values.astype(self.dtype).astype(self._wire_dtype).tobytes()

    def _encode_floats(self, values: np.ndarray) -> bytes:
        with np.errstate(over="ignore", invalid="ignore"):
            wire = values.astype(self.dtype).astype(self._wire_dtype)
            overflowed = np.isfinite(values) & ~np.isfinite(wire)
        if np.any(overflowed):
            raise SampleOverflowError(
                f"Sample values overflow {self.sample_width}-byte floating point samples"
            )
        return wire.tobytes()

    def _pack_trace(self, trace) -> bytes:
        _reject_text(trace)
        if isinstance(trace, np.ndarray) or _is_leaf(trace):
            return self.encode_samples(trace)
        # Nested trace: siblings at every level must agree in length.
        validate_equal_length(trace)
        return b"".join(self._pack_trace(child) for child in trace)

    def pack(self, traces: Sequence, extra_data: Optional[Sequence[ExtraData]] = None) -> bytes:
        """Pack equal-length traces into one trace block.

        Args:
            traces: Sequence of traces; each trace is a sequence of samples,
                    optionally nested (a trace of sub-traces).
            extra_data: Optional per-trace blobs written before each trace.

        Returns:
            Concatenated trace block bytes.

        Raises:
            StructuralMismatchError: On unequal trace or extra data lengths.
            SampleOverflowError: If a sample does not fit the sample width.
        """
        if isinstance(traces, np.ndarray) and traces.ndim >= 2 and extra_data is None:
            return self.encode_samples(traces)
        for trace in traces:
            _reject_text(trace)
        validate_equal_length(traces)
        blobs = normalise_extra_data(extra_data, len(traces))

        chunks = []
        for i, trace in enumerate(traces):
            if blobs is not None:
                chunks.append(blobs[i])
            chunks.append(self._pack_trace(trace))
        return b"".join(chunks)

    def pack_ragged(self, traces: Sequence, extra_data: Optional[Sequence[ExtraData]] = None) -> bytes:
        """Pack traces of unequal length, zero-padding each to the longest trace.

        Only flat traces are accepted; padding is added as trailing zero samples.
        """
        for trace in traces:
            _reject_text(trace)
            if not (isinstance(trace, np.ndarray) and trace.ndim <= 1) and not _is_leaf(trace):
                raise StructuralMismatchError("Ragged traces must be flat sequences of samples")
        blobs = normalise_extra_data(extra_data, len(traces))
        longest = max((len(trace) for trace in traces), default=0)

        chunks = []
        for i, trace in enumerate(traces):
            if blobs is not None:
                chunks.append(blobs[i])
            chunks.append(self.encode_samples(trace))
            chunks.append(b"\x00" * (self.sample_width * (longest - len(trace))))
        return b"".join(chunks)
