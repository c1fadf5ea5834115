"""Trace set serialiser: headers plus packed traces, rendered as a .trs byte stream.

Usage:
    serialiser = Serialiser([[1, 2, 3], [4, 5, 6]], dtype=np.uint8)
    serialiser.set_trace_title("AES power traces")
    serialiser.set_axis_scale_x(1e-9)
    serialiser.add_trace([7, 8, 9])
    serialiser.save("traces.trs")
"""

import logging
import numbers
import warnings
from typing import List, Optional, Sequence

import numpy as np

from .codec.samples import (
    ExtraData,
    SampleBytePacker,
    count_samples,
    normalise_extra_data,
)
from .codec.values import HeaderValue
from .config import SerialiserConfig
from .errors import DimensionMismatchError, StructuralMismatchError
from .storage.headers import HeaderStore, is_derived_tag
from .storage.tags import Tag, cast_header_value
from .storage.trs_format import TRSWriter

logger = logging.getLogger(__name__)


def _infer_dtype(traces) -> np.dtype:
    if isinstance(traces, np.ndarray):
        return traces.dtype
    if len(traces) > 0 and isinstance(traces[0], np.ndarray):
        return traces[0].dtype
    # Plain Python numbers default to float samples.
    return np.dtype(np.float32)


def _as_trace_list(traces) -> list:
    if isinstance(traces, np.ndarray) and traces.ndim < 2:
        raise StructuralMismatchError(
            "Expected a sequence of traces; use Serialiser.from_flat for a flat sample array"
        )
    trace_list = list(traces)
    for trace in trace_list:
        if isinstance(trace, (numbers.Number, np.generic)):
            raise StructuralMismatchError(
                "Expected a sequence of traces; use Serialiser.from_flat for a flat sample sequence"
            )
    return trace_list


class Serialiser:
    """Build a trace set (.trs) from traces and header values.

    The three mandatory headers (number of traces, samples per trace and
    sample coding) are derived from the traces and kept up to date by
    add_trace(). Optional headers are set with add_header() or the named
    set_* helpers.

    One instance must not be mutated from several threads at once.
    """

    def __init__(
        self,
        traces: Sequence,
        dtype=None,
        sample_width: Optional[int] = None,
        extra_data: Optional[Sequence[ExtraData]] = None,
        ragged: bool = False,
    ):
        """
        Args:
            traces: Sequence of traces (or a 2D+ numpy array). Each trace is a
                    sequence of samples and may itself be nested.
            dtype: Sample kind. Defaults to the array dtype for numpy input,
                   float32 otherwise.
            sample_width: Bytes per sample (1, 2 or 4). Defaults to the dtype size.
            extra_data: Optional per-trace blobs (e.g. plaintext) written before
                        each trace. All blobs must have the same length.
            ragged: Zero-pad traces shorter than the longest one instead of
                    rejecting unequal lengths. Traces must then be flat.

        Raises:
            InvalidSampleTypeError: dtype is not numeric.
            InvalidSampleWidthError: sample_width is not 1, 2 or 4.
            StructuralMismatchError: Unequal trace or extra data lengths.
        """
        if dtype is None:
            dtype = _infer_dtype(traces)
        self._packer = SampleBytePacker(dtype, sample_width)
        self._ragged = ragged
        self._headers = HeaderStore()

        trace_list = _as_trace_list(traces)
        if extra_data is None and trace_list and all(count_samples(t) == 0 for t in trace_list):
            # A set of blank traces holds no traces at all.
            trace_list = []
        blobs = normalise_extra_data(extra_data, len(trace_list))

        if ragged:
            self._trace_data = self._packer.pack_ragged(trace_list, blobs)
            self._ragged_traces: List[np.ndarray] = [np.array(t) for t in trace_list]
            samples_per_trace = max((len(t) for t in trace_list), default=0)
        else:
            self._check_sample_counts(trace_list)
            self._trace_data = self._packer.pack(trace_list, blobs)
            self._ragged_traces = []
            samples_per_trace = count_samples(trace_list[0]) if trace_list else 0

        self._extra: Optional[List[bytes]] = blobs
        self._n_traces = len(trace_list)
        self._samples_per_trace = samples_per_trace

        self._validate_dimensions(self._n_traces, self._samples_per_trace)
        self._set_required_headers()
        if blobs:
            self.set_cryptographic_data_length(len(blobs[0]))

        logger.debug(
            "Serialiser created: %d traces x %d samples, %d-byte %s samples%s",
            self._n_traces, self._samples_per_trace, self.sample_width, self.dtype,
            " (ragged)" if ragged else "",
        )

    # ---- Alternative constructors ----

    @classmethod
    def from_flat(
        cls,
        samples,
        n_traces: int,
        samples_per_trace: Optional[int] = None,
        dtype=None,
        sample_width: Optional[int] = None,
    ) -> "Serialiser":
        """Build from one flat sample sequence holding all traces back to back.

        Args:
            samples: Flat sequence of n_traces * samples_per_trace samples.
            n_traces: Number of traces in samples.
            samples_per_trace: Samples in each trace. If omitted it is derived
                               as len(samples) / n_traces, which must divide exactly.
            dtype: Sample kind (see Serialiser).
            sample_width: Bytes per sample (see Serialiser).

        Raises:
            DimensionMismatchError: If the dimensions do not match the data volume.
        """
        if dtype is None:
            dtype = samples.dtype if isinstance(samples, np.ndarray) else np.float32
        packer = SampleBytePacker(dtype, sample_width)
        flat = np.asarray(samples).ravel()

        if samples_per_trace is None:
            if n_traces <= 0 or flat.size % n_traces:
                raise DimensionMismatchError(
                    f"{flat.size} samples cannot be split evenly into {n_traces} traces"
                )
            samples_per_trace = flat.size // n_traces
        if n_traces < 0 or samples_per_trace < 0:
            raise DimensionMismatchError(
                f"Dimensions must not be negative, got {n_traces} traces x "
                f"{samples_per_trace} samples per trace"
            )

        packed = packer.encode_samples(flat)
        if n_traces * samples_per_trace * packer.sample_width != len(packed):
            raise DimensionMismatchError(
                "Invalid parameters given. Either the number of traces, number of "
                "samples per trace or the sample length is incorrect: "
                f"{n_traces} x {samples_per_trace} x {packer.sample_width} bytes "
                f"!= {len(packed)} bytes of samples"
            )

        traces = [flat[i * samples_per_trace:(i + 1) * samples_per_trace] for i in range(n_traces)]
        return cls(traces, dtype=packer.dtype, sample_width=packer.sample_width)

    @classmethod
    def from_config(
        cls,
        traces: Sequence,
        config: SerialiserConfig,
        extra_data: Optional[Sequence[ExtraData]] = None,
    ) -> "Serialiser":
        """Build with the sample layout and descriptive headers of a config."""
        serialiser = cls(
            traces,
            dtype=config.sample_dtype,
            sample_width=config.sample_width,
            extra_data=extra_data,
            ragged=config.ragged,
        )
        serialiser.apply_config(config)
        return serialiser

    # ---- State ----

    @property
    def dtype(self) -> np.dtype:
        return self._packer.dtype

    @property
    def sample_width(self) -> int:
        return self._packer.sample_width

    @property
    def sample_coding(self) -> int:
        return self._packer.sample_coding

    @property
    def n_traces(self) -> int:
        return self._n_traces

    @property
    def samples_per_trace(self) -> int:
        return self._samples_per_trace

    @property
    def headers(self) -> HeaderStore:
        return self._headers

    @property
    def trace_data(self) -> bytes:
        return self._trace_data

    # ---- Traces ----

    def add_trace(self, samples, extra_data: Optional[ExtraData] = None) -> None:
        """Append one trace, updating the trace count and samples per trace.

        Bytes of earlier traces are kept unchanged. In ragged mode a trace
        longer than all earlier ones extends their zero padding.

        Raises:
            StructuralMismatchError: Trace length (or extra data presence or
                length) does not match the existing traces.
        """
        if isinstance(samples, (numbers.Number, np.generic)):
            raise StructuralMismatchError("A trace must be a sequence of samples")
        if self._n_traces > 0 and (self._extra is None) != (extra_data is None):
            raise StructuralMismatchError(
                "This trace set has no extra data" if self._extra is None
                else "Extra data must be given for every trace"
            )
        extra = None
        blobs = None
        if extra_data is not None:
            extra = normalise_extra_data((self._extra or []) + [extra_data], self._n_traces + 1)
            blobs = extra[-1:]

        if self._ragged:
            traces = self._ragged_traces + [samples]
            trace_data = self._packer.pack_ragged(traces, extra)
            samples_per_trace = max(len(t) for t in traces)
        else:
            n_samples = count_samples(samples)
            if self._n_traces > 0 and n_samples != self._samples_per_trace:
                raise StructuralMismatchError(
                    f"Trace has {n_samples} samples; existing traces have {self._samples_per_trace}. "
                    "Use ragged mode to zero-pad short traces."
                )
            trace_data = self._trace_data + self._packer.pack([samples], blobs)
            samples_per_trace = n_samples if self._n_traces == 0 else self._samples_per_trace

        if self._ragged:
            self._ragged_traces.append(np.array(samples))
        self._trace_data = trace_data
        self._extra = extra
        self._n_traces += 1
        self._samples_per_trace = samples_per_trace
        self._set_required_headers()
        if blobs and self._n_traces == 1:
            self.set_cryptographic_data_length(len(blobs[0]))

        logger.debug("Added trace %d (%d samples per trace)", self._n_traces, samples_per_trace)

    def _check_sample_counts(self, traces: list) -> None:
        counts = {count_samples(t) for t in traces}
        if len(counts) > 1:
            raise StructuralMismatchError(
                "Traces must all contain the same number of samples; "
                f"got {sorted(counts)}. Use ragged mode to zero-pad short traces."
            )

    def _validate_dimensions(self, n_traces: int, samples_per_trace: int) -> None:
        extra_length = len(self._extra[0]) if self._extra else 0
        expected = n_traces * (samples_per_trace * self.sample_width + extra_length)
        if expected != len(self._trace_data):
            raise DimensionMismatchError(
                f"{n_traces} traces x {samples_per_trace} samples x {self.sample_width} bytes "
                f"does not match {len(self._trace_data)} bytes of trace data"
            )

    def _set_required_headers(self) -> None:
        self._headers.set(Tag.NUMBER_OF_TRACES, cast_header_value(Tag.NUMBER_OF_TRACES, self._n_traces))
        self._headers.set(
            Tag.NUMBER_OF_SAMPLES_PER_TRACE,
            cast_header_value(Tag.NUMBER_OF_SAMPLES_PER_TRACE, self._samples_per_trace),
        )
        self._headers.set(Tag.SAMPLE_CODING, cast_header_value(Tag.SAMPLE_CODING, self.sample_coding))

    # ---- Headers ----

    def add_header(self, tag: int, value: HeaderValue) -> None:
        """Set any header directly. The value is encoded as given.

        Raises:
            InvalidTagError: Reserved tag (0x4F-0x54) or the trace block marker (0x5F).
            PreconditionNotMetError: External clock header set before its gate.
        """
        if is_derived_tag(tag):
            warnings.warn(
                f"Header 0x{int(tag):02X} is derived from the traces and is "
                "recomputed whenever a trace is added"
            )
        self._headers.set(tag, value)

    def _set(self, tag: Tag, value) -> None:
        self._headers.set(tag, cast_header_value(tag, value))

    def apply_config(self, config: SerialiserConfig) -> None:
        """Write the descriptive headers set in config."""
        if config.title is not None:
            self.set_trace_title(config.title)
        if config.description is not None:
            self.set_trace_description(config.description)
        if config.axis_label_x is not None:
            self.set_axis_label_x(config.axis_label_x)
        if config.axis_label_y is not None:
            self.set_axis_label_y(config.axis_label_y)
        if config.axis_scale_x is not None:
            self.set_axis_scale_x(config.axis_scale_x)
        if config.axis_scale_y is not None:
            self.set_axis_scale_y(config.axis_scale_y)
        if config.axis_offset_x is not None:
            self.set_axis_offset_x(config.axis_offset_x)
        if config.scope_id is not None:
            self.set_scope_id(config.scope_id)

    # Named helpers. Defaults follow the trace set format documentation.

    def set_cryptographic_data_length(self, length: int = 0) -> None:
        self._set(Tag.LENGTH_OF_CRYPTOGRAPHIC_DATA, length)

    def set_title_space_per_trace(self, length: int = 0) -> None:
        self._set(Tag.TITLE_SPACE_PER_TRACE, length)

    def set_trace_title(self, title: str = "trace") -> None:
        self._set(Tag.TRACE_TITLE, title)

    def set_trace_description(self, description: str) -> None:
        self._set(Tag.DESCRIPTION, description)

    def set_axis_offset_x(self, offset: int = 0) -> None:
        self._set(Tag.AXIS_OFFSET_X, offset)

    def set_axis_label_x(self, label: str) -> None:
        self._set(Tag.AXIS_LABEL_X, label)

    def set_axis_label_y(self, label: str) -> None:
        self._set(Tag.AXIS_LABEL_Y, label)

    def set_axis_scale_x(self, scale: float = 1.0) -> None:
        self._set(Tag.AXIS_SCALE_X, scale)

    def set_axis_scale_y(self, scale: float = 1.0) -> None:
        self._set(Tag.AXIS_SCALE_Y, scale)

    def set_trace_offset(self, offset: int = 0) -> None:
        self._set(Tag.TRACE_OFFSET, offset)

    def set_logarithmic_scale(self, scale: int = 0) -> None:
        self._set(Tag.LOGARITHMIC_SCALE, scale)

    def set_scope_range(self, scope_range: float = 0.0) -> None:
        self._set(Tag.SCOPE_RANGE, scope_range)

    def set_scope_coupling(self, coupling: int = 0) -> None:
        self._set(Tag.SCOPE_COUPLING, coupling)

    def set_scope_offset(self, offset: float = 0.0) -> None:
        self._set(Tag.SCOPE_OFFSET, offset)

    def set_scope_input_impedance(self, impedance: float = 0.0) -> None:
        self._set(Tag.SCOPE_INPUT_IMPEDANCE, impedance)

    def set_scope_id(self, scope_id: str) -> None:
        self._set(Tag.SCOPE_ID, scope_id)

    def set_filter_type(self, filter_type: int = 0) -> None:
        self._set(Tag.FILTER_TYPE, filter_type)

    def set_filter_frequency(self, frequency: float = 0.0) -> None:
        self._set(Tag.FILTER_FREQUENCY, frequency)

    def set_filter_range(self, filter_range: float = 0.0) -> None:
        self._set(Tag.FILTER_RANGE, filter_range)

    def set_external_clock_used(self, used: bool = True) -> None:
        self._set(Tag.EXTERNAL_CLOCK_USED, used)

    def set_external_clock_threshold(self, threshold: float = 0.0) -> None:
        self._set(Tag.EXTERNAL_CLOCK_THRESHOLD, threshold)

    def set_external_clock_multiplier(self, multiplier: int = 0) -> None:
        self._set(Tag.EXTERNAL_CLOCK_MULTIPLIER, multiplier)

    def set_external_clock_phase_shift(self, phase_shift: int = 0) -> None:
        self._set(Tag.EXTERNAL_CLOCK_PHASE_SHIFT, phase_shift)

    def set_external_clock_resampler_mask(self, mask: int = 0) -> None:
        self._set(Tag.EXTERNAL_CLOCK_RESAMPLER_MASK, mask)

    def set_external_clock_resampler_enabled(self, enabled: bool = True) -> None:
        self._set(Tag.EXTERNAL_CLOCK_RESAMPLER_ENABLED, enabled)

    def set_external_clock_frequency(self, frequency: float = 0.0) -> None:
        self._set(Tag.EXTERNAL_CLOCK_FREQUENCY, frequency)

    def set_external_clock_time_base(self, time_base: int = 0) -> None:
        self._set(Tag.EXTERNAL_CLOCK_TIME_BASE, time_base)

    # ---- Output ----

    def render(self) -> bytes:
        """Header records, trace block marker, then the packed traces."""
        return self._headers.render() + self._trace_data

    to_bytes = render

    def __bytes__(self) -> bytes:
        return self.render()

    def save(self, target) -> int:
        """Write the rendered trace set to a path or binary stream.

        Returns:
            Total bytes written.

        Raises:
            SinkUnavailableError: If the target cannot be opened or written.
        """
        return TRSWriter().write(target, self.render())
