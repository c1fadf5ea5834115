"""Shared fixtures and a minimal .trs reader used as a round-trip oracle."""

import numpy as np
import pytest

TRACE_BLOCK_MARKER = 0x5F


def parse_trs(data: bytes):
    """Split rendered .trs bytes into ({tag: value}, [tag order], trace block)."""
    headers = {}
    order = []
    pos = 0
    while True:
        tag = data[pos]
        length = data[pos + 1]
        pos += 2
        if length & 0x80:
            n_bytes = length & 0x7F
            length = int.from_bytes(data[pos:pos + n_bytes], "little")
            pos += n_bytes
        if tag == TRACE_BLOCK_MARKER:
            assert length == 0
            return headers, order, data[pos:]
        headers[tag] = data[pos:pos + length]
        order.append(tag)
        pos += length


@pytest.fixture
def two_traces():
    """The two 8-bit traces {1,2,3} and {4,5,6}."""
    return np.array([[1, 2, 3], [4, 5, 6]], dtype=np.uint8)


@pytest.fixture
def random_traces():
    rng = np.random.RandomState(42)
    return rng.randint(0, 256, size=(20, 64)).astype(np.uint8)
