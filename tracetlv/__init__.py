"""tracetlv: write side-channel traces to the TLV-encoded trace set (.trs) format.

    import numpy as np
    import tracetlv

    traces = np.random.randint(0, 256, size=(100, 5000), dtype=np.uint8)
    serialiser = tracetlv.Serialiser(traces)
    serialiser.set_trace_title("AES-128 power")
    serialiser.save("aes.trs")

    # One call, metadata from a config
    data = tracetlv.serialise(traces, "aes.trs", config=tracetlv.SerialiserConfig(title="AES"))
"""

__version__ = "0.1.0"

from typing import Optional, Sequence

from .config import SerialiserConfig
from .errors import (
    DimensionMismatchError,
    InvalidSampleTypeError,
    InvalidSampleWidthError,
    InvalidTagError,
    PreconditionNotMetError,
    SampleOverflowError,
    SinkUnavailableError,
    StructuralMismatchError,
    TraceSerialiserError,
)
from .serialiser import Serialiser
from .storage.tags import Tag


def serialise(traces, path=None, config: Optional[SerialiserConfig] = None,
              extra_data: Optional[Sequence] = None) -> bytes:
    """Render traces (and the headers in config) to .trs bytes.

    Args:
        traces: Sequence of traces or a 2D numpy array (one row per trace).
        path: Optional output path or binary stream; written if given.
        config: Sample layout and descriptive headers. When omitted, the
                sample kind is taken from a numpy input (float32 otherwise).
        extra_data: Optional per-trace blobs written before each trace.

    Returns:
        The rendered trace set bytes.
    """
    if config is None:
        serialiser = Serialiser(traces, extra_data=extra_data)
    else:
        serialiser = Serialiser.from_config(traces, config, extra_data=extra_data)
    data = serialiser.render()
    if path is not None:
        serialiser.save(path)
    return data


__all__ = [
    "Serialiser",
    "SerialiserConfig",
    "Tag",
    "serialise",
    "TraceSerialiserError",
    "InvalidSampleTypeError",
    "InvalidSampleWidthError",
    "SampleOverflowError",
    "DimensionMismatchError",
    "StructuralMismatchError",
    "InvalidTagError",
    "PreconditionNotMetError",
    "SinkUnavailableError",
]
