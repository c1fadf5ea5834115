"""Tests for packing trace samples into the trace block."""

import numpy as np
import pytest

from tracetlv.codec.samples import (
    SampleBytePacker,
    count_samples,
    resolve_sample_dtype,
    sample_coding,
    validate_equal_length,
)
from tracetlv.errors import (
    InvalidSampleTypeError,
    InvalidSampleWidthError,
    SampleOverflowError,
    StructuralMismatchError,
)


class TestSampleWidth:
    """Test sample width and sample kind validation."""

    @pytest.mark.parametrize("width", [0, 3, 5, 8])
    def test_invalid_widths(self, width):
        with pytest.raises(InvalidSampleWidthError):
            SampleBytePacker(np.uint32, sample_width=width)

    @pytest.mark.parametrize("width", [1, 2, 4])
    def test_valid_widths(self, width):
        packer = SampleBytePacker(np.uint32, sample_width=width)
        assert packer.sample_width == width

    def test_default_width_is_dtype_size(self):
        assert SampleBytePacker(np.uint8).sample_width == 1
        assert SampleBytePacker(np.int16).sample_width == 2
        assert SampleBytePacker(np.float32).sample_width == 4

    def test_64_bit_needs_explicit_width(self):
        """int64 has a natural width of 8, which the format cannot hold."""
        with pytest.raises(InvalidSampleWidthError):
            SampleBytePacker(np.int64)
        assert SampleBytePacker(np.int64, sample_width=4).sample_width == 4

    def test_float_width_one_rejected(self):
        with pytest.raises(InvalidSampleWidthError):
            SampleBytePacker(np.float32, sample_width=1)

    @pytest.mark.parametrize("dtype", ["U5", "S3", object, np.complex64])
    def test_non_numeric_dtype_rejected(self, dtype):
        with pytest.raises(InvalidSampleTypeError):
            resolve_sample_dtype(dtype)

    def test_invalid_sample_type_is_type_error(self):
        """The kind can be caught as the builtin TypeError."""
        with pytest.raises(TypeError):
            SampleBytePacker(str)


class TestSampleCoding:
    @pytest.mark.parametrize("dtype,width,expected", [
        (np.uint8, 1, 0x01),
        (np.uint16, 2, 0x02),
        (np.uint32, 4, 0x04),
        (np.float32, 4, 0x14),
        (np.float16, 2, 0x12),
    ])
    def test_coding_byte(self, dtype, width, expected):
        assert sample_coding(width, np.dtype(dtype)) == expected
        assert SampleBytePacker(dtype, width).sample_coding == expected


class TestEncodeSamples:
    """Test per-sample byte layout."""

    def test_uint8(self):
        assert SampleBytePacker(np.uint8).encode_samples([1, 2, 3]) == b"\x01\x02\x03"

    def test_uint16_big_endian(self):
        packer = SampleBytePacker(np.uint16)
        assert packer.encode_samples([1, 0x0102]) == b"\x00\x01\x01\x02"

    def test_uint32_padded(self):
        packer = SampleBytePacker(np.uint32)
        assert packer.encode_samples([1]) == b"\x00\x00\x00\x01"
        assert packer.encode_samples([498210113]) == (498210113).to_bytes(4, "big")

    def test_wide_type_narrow_width(self):
        """uint32 samples that fit a single byte pack into one byte each."""
        packer = SampleBytePacker(np.uint32, sample_width=1)
        assert packer.encode_samples([4, 5, 255]) == b"\x04\x05\xff"

    def test_narrow_type_wide_width(self):
        """uint8 samples are zero-left-padded to the declared width."""
        packer = SampleBytePacker(np.uint8, sample_width=2)
        assert packer.encode_samples([1, 2]) == b"\x00\x01\x00\x02"

    def test_signed_twos_complement(self):
        packer = SampleBytePacker(np.int16)
        assert packer.encode_samples([-1, 1]) == b"\xff\xff\x00\x01"

    def test_float32_little_endian(self):
        """Float samples keep the format's little-endian IEEE layout."""
        packer = SampleBytePacker(np.float32)
        assert packer.encode_samples([1.0, 2.0]) == b"\x00\x00\x80\x3f\x00\x00\x00\x40"

    def test_float16(self):
        packer = SampleBytePacker(np.float32, sample_width=2)
        assert packer.encode_samples([1.0]) == np.float16(1.0).astype("<f2").tobytes()

    def test_float64_narrowed(self):
        packer = SampleBytePacker(np.float64, sample_width=4)
        assert packer.encode_samples([0.5]) == np.float32(0.5).tobytes()

    def test_bool_samples(self):
        packer = SampleBytePacker(np.bool_)
        assert packer.encode_samples([True, False]) == b"\x01\x00"

    def test_empty(self):
        assert SampleBytePacker(np.uint8).encode_samples([]) == b""

    def test_integer_overflow_rejected(self):
        """Values that do not fit the width are an error, not truncated."""
        packer = SampleBytePacker(np.uint32, sample_width=1)
        with pytest.raises(SampleOverflowError):
            packer.encode_samples([1, 256])

    def test_negative_in_unsigned_rejected(self):
        with pytest.raises(SampleOverflowError):
            SampleBytePacker(np.uint8).encode_samples([-1])

    def test_overflow_is_width_error(self):
        """Overflow belongs to the invalid sample width family."""
        with pytest.raises(InvalidSampleWidthError):
            SampleBytePacker(np.int32, sample_width=2).encode_samples([70000])

    def test_float_overflow_rejected(self):
        packer = SampleBytePacker(np.float32, sample_width=2)
        with pytest.raises(SampleOverflowError):
            packer.encode_samples([1e6])

    def test_whole_floats_as_integers(self):
        assert SampleBytePacker(np.uint8).encode_samples([1.0, 255.0]) == b"\x01\xff"

    @pytest.mark.parametrize("value", [np.nan, np.inf, -np.inf])
    def test_non_finite_integer_samples_rejected(self, value):
        with pytest.raises(SampleOverflowError):
            SampleBytePacker(np.uint8).encode_samples([1.0, value])

    def test_fractional_integer_samples_rejected(self):
        """Fractions are never truncated into integer samples."""
        with pytest.raises(InvalidSampleTypeError):
            SampleBytePacker(np.uint8).encode_samples([1.7, 2.9])

    def test_text_rejected(self):
        with pytest.raises(InvalidSampleTypeError):
            SampleBytePacker(np.uint8).encode_samples("abc")
        with pytest.raises(InvalidSampleTypeError):
            SampleBytePacker(np.uint8).encode_samples(["a", "b"])


class TestPack:
    """Test packing whole trace sets."""

    def test_two_traces(self):
        packer = SampleBytePacker(np.uint8)
        assert packer.pack([[1, 2, 3], [4, 5, 6]]) == bytes([1, 2, 3, 4, 5, 6])

    def test_two_traces_16_bit(self):
        packer = SampleBytePacker(np.uint16)
        expected = bytes.fromhex("000100020003000400050006")
        assert packer.pack([[1, 2, 3], [4, 5, 6]]) == expected

    def test_numpy_matrix(self, random_traces):
        packer = SampleBytePacker(np.uint8)
        assert packer.pack(random_traces) == random_traces.tobytes()

    def test_unequal_lengths_rejected(self):
        packer = SampleBytePacker(np.uint8)
        with pytest.raises(StructuralMismatchError):
            packer.pack([[1, 2, 3], [4, 5]])

    def test_nested_traces(self):
        """A trace of sub-traces is flattened in order."""
        packer = SampleBytePacker(np.uint8)
        traces = [[[1, 2], [3, 4]], [[5, 6], [7, 8]]]
        assert packer.pack(traces) == bytes(range(1, 9))

    def test_nested_unequal_siblings_rejected(self):
        packer = SampleBytePacker(np.uint8)
        with pytest.raises(StructuralMismatchError):
            packer.pack([[[1, 2], [3]], [[5, 6], [7, 8]]])

    def test_extra_data_before_each_trace(self):
        packer = SampleBytePacker(np.uint8)
        packed = packer.pack([[0, 1, 2], [3, 4, 5]], extra_data=[b"Hello", b"World"])
        assert packed == b"Hello\x00\x01\x02World\x03\x04\x05"

    def test_extra_data_text(self):
        packer = SampleBytePacker(np.uint8)
        packed = packer.pack([[0], [1]], extra_data=["ab", "cd"])
        assert packed == b"ab\x00cd\x01"

    def test_extra_data_count_mismatch(self):
        packer = SampleBytePacker(np.uint8)
        with pytest.raises(StructuralMismatchError):
            packer.pack([[0], [1]], extra_data=[b"a"])

    def test_extra_data_unequal_lengths(self):
        packer = SampleBytePacker(np.uint8)
        with pytest.raises(StructuralMismatchError):
            packer.pack([[0], [1]], extra_data=[b"a", b"bc"])


class TestPackRagged:
    """Test zero-padding of unequal traces."""

    def test_short_trace_padded(self):
        packer = SampleBytePacker(np.uint8)
        assert packer.pack_ragged([[1, 2, 3], [4, 5]]) == bytes([1, 2, 3, 4, 5, 0])

    def test_blank_trace_padded(self):
        packer = SampleBytePacker(np.uint8)
        assert packer.pack_ragged([[1, 2, 3], [], [4, 5, 6]]) == bytes([1, 2, 3, 0, 0, 0, 4, 5, 6])

    def test_padding_uses_sample_width(self):
        packer = SampleBytePacker(np.uint16)
        assert packer.pack_ragged([[1, 2], [3]]) == bytes.fromhex("0001000200030000")

    def test_ragged_with_extra_data(self):
        packer = SampleBytePacker(np.uint8)
        assert packer.pack_ragged([[1, 2], [3]], extra_data=[b"x", b"y"]) == b"x\x01\x02y\x03\x00"

    def test_nested_rejected(self):
        packer = SampleBytePacker(np.uint8)
        with pytest.raises(StructuralMismatchError):
            packer.pack_ragged([[[1], [2]], [3]])


class TestHelpers:
    def test_validate_equal_length(self):
        validate_equal_length([[1, 2], [3, 4]])
        validate_equal_length([])
        with pytest.raises(StructuralMismatchError):
            validate_equal_length([[1], [2, 3]])

    def test_count_samples(self):
        assert count_samples([1, 2, 3]) == 3
        assert count_samples([[1, 2], [3, 4]]) == 4
        assert count_samples([]) == 0
        assert count_samples(np.zeros((3, 4))) == 12
