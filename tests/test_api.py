"""Tests for the top-level tracetlv API."""

import io

import numpy as np
import pytest

import tracetlv
from tracetlv import SerialiserConfig, Tag

from conftest import parse_trs


class TestSerialise:
    """Test tracetlv.serialise()."""

    def test_numpy_input(self, two_traces):
        data = tracetlv.serialise(two_traces)
        assert data == bytes.fromhex("410102 420103 430101 5f00 010203040506")

    def test_with_config(self, two_traces):
        data = tracetlv.serialise(two_traces, config=SerialiserConfig(sample_dtype="uint16", title="t"))
        headers, _, block = parse_trs(data)
        assert headers[Tag.SAMPLE_CODING] == b"\x02"
        assert headers[Tag.TRACE_TITLE] == b"t"
        assert len(block) == 12

    def test_writes_path(self, tmp_path, two_traces):
        path = tmp_path / "out.trs"
        data = tracetlv.serialise(two_traces, path)
        assert path.read_bytes() == data

    def test_writes_stream(self, two_traces):
        buf = io.BytesIO()
        data = tracetlv.serialise(two_traces, buf)
        assert buf.getvalue() == data

    def test_extra_data(self, two_traces):
        data = tracetlv.serialise(two_traces, extra_data=[b"\x00\x01", b"\x02\x03"])
        headers, _, block = parse_trs(data)
        assert headers[Tag.LENGTH_OF_CRYPTOGRAPHIC_DATA] == b"\x02"
        assert block == b"\x00\x01\x01\x02\x03\x02\x03\x04\x05\x06"

    def test_errors_exported(self):
        assert issubclass(tracetlv.SampleOverflowError, tracetlv.InvalidSampleWidthError)
        assert issubclass(tracetlv.SinkUnavailableError, OSError)
        for name in tracetlv.__all__:
            assert hasattr(tracetlv, name)

    def test_version(self):
        assert isinstance(tracetlv.__version__, str)

    def test_invalid_input(self):
        with pytest.raises(tracetlv.TraceSerialiserError):
            tracetlv.serialise(np.array([1, 2, 3]))
