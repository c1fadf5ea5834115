"""Header tags of the trace set (.trs) format.

TAG LAYOUT:
    0x41 - 0x4E   core and display headers
    0x4F - 0x54   reserved, never written
    0x55 - 0x5C   scope and filter headers
    0x5D - 0x5E   undocumented
    0x5F          trace block marker (always length 0, written last)
    0x60          external clock used (gates 0x61 - 0x67)
    0x61 - 0x67   external clock headers

0x64 (resampler mask) additionally requires 0x65 (resampler enabled).
"""

from enum import IntEnum

import numpy as np


class Tag(IntEnum):
    NUMBER_OF_TRACES = 0x41
    NUMBER_OF_SAMPLES_PER_TRACE = 0x42
    SAMPLE_CODING = 0x43
    LENGTH_OF_CRYPTOGRAPHIC_DATA = 0x44
    TITLE_SPACE_PER_TRACE = 0x45
    TRACE_TITLE = 0x46
    DESCRIPTION = 0x47
    AXIS_OFFSET_X = 0x48
    AXIS_LABEL_X = 0x49
    AXIS_LABEL_Y = 0x4A
    AXIS_SCALE_X = 0x4B
    AXIS_SCALE_Y = 0x4C
    TRACE_OFFSET = 0x4D
    LOGARITHMIC_SCALE = 0x4E
    SCOPE_RANGE = 0x55
    SCOPE_COUPLING = 0x56
    SCOPE_OFFSET = 0x57
    SCOPE_INPUT_IMPEDANCE = 0x58
    SCOPE_ID = 0x59
    FILTER_TYPE = 0x5A
    FILTER_FREQUENCY = 0x5B
    FILTER_RANGE = 0x5C
    TRACE_BLOCK_MARKER = 0x5F
    EXTERNAL_CLOCK_USED = 0x60
    EXTERNAL_CLOCK_THRESHOLD = 0x61
    EXTERNAL_CLOCK_MULTIPLIER = 0x62
    EXTERNAL_CLOCK_PHASE_SHIFT = 0x63
    EXTERNAL_CLOCK_RESAMPLER_MASK = 0x64
    EXTERNAL_CLOCK_RESAMPLER_ENABLED = 0x65
    EXTERNAL_CLOCK_FREQUENCY = 0x66
    EXTERNAL_CLOCK_TIME_BASE = 0x67


RESERVED_TAGS = range(0x4F, 0x55)
UNDOCUMENTED_TAGS = range(0x5D, 0x5F)
EXTERNAL_CLOCK_TAGS = range(Tag.EXTERNAL_CLOCK_THRESHOLD, Tag.EXTERNAL_CLOCK_TIME_BASE + 1)

# Headers derived from the trace data itself.
DERIVED_TAGS = (
    Tag.NUMBER_OF_TRACES,
    Tag.NUMBER_OF_SAMPLES_PER_TRACE,
    Tag.SAMPLE_CODING,
)

# Value type written for each documented header.
HEADER_TYPES = {
    Tag.NUMBER_OF_TRACES: np.uint32,
    Tag.NUMBER_OF_SAMPLES_PER_TRACE: np.uint32,
    Tag.SAMPLE_CODING: np.uint8,
    Tag.LENGTH_OF_CRYPTOGRAPHIC_DATA: np.uint16,
    Tag.TITLE_SPACE_PER_TRACE: np.uint8,
    Tag.TRACE_TITLE: str,
    Tag.DESCRIPTION: str,
    Tag.AXIS_OFFSET_X: np.uint32,
    Tag.AXIS_LABEL_X: str,
    Tag.AXIS_LABEL_Y: str,
    Tag.AXIS_SCALE_X: np.float32,
    Tag.AXIS_SCALE_Y: np.float32,
    Tag.TRACE_OFFSET: np.uint32,
    Tag.LOGARITHMIC_SCALE: np.uint8,
    Tag.SCOPE_RANGE: np.float32,
    Tag.SCOPE_COUPLING: np.uint32,
    Tag.SCOPE_OFFSET: np.float32,
    Tag.SCOPE_INPUT_IMPEDANCE: np.float32,
    Tag.SCOPE_ID: str,
    Tag.FILTER_TYPE: np.uint32,
    Tag.FILTER_FREQUENCY: np.float32,
    Tag.FILTER_RANGE: np.float32,
    Tag.EXTERNAL_CLOCK_USED: bool,
    Tag.EXTERNAL_CLOCK_THRESHOLD: np.float32,
    Tag.EXTERNAL_CLOCK_MULTIPLIER: np.uint32,
    Tag.EXTERNAL_CLOCK_PHASE_SHIFT: np.uint32,
    Tag.EXTERNAL_CLOCK_RESAMPLER_MASK: np.uint32,
    Tag.EXTERNAL_CLOCK_RESAMPLER_ENABLED: bool,
    Tag.EXTERNAL_CLOCK_FREQUENCY: np.float32,
    Tag.EXTERNAL_CLOCK_TIME_BASE: np.uint32,
}


def is_external_clock_header(tag: int) -> bool:
    """True for 0x61 - 0x67. 0x60 itself is the gate, not a gated header."""
    return tag in EXTERNAL_CLOCK_TAGS


def tag_name(tag: int) -> str:
    """Readable name for a tag, falling back to its hex value."""
    try:
        return Tag(tag).name
    except ValueError:
        if tag in RESERVED_TAGS:
            return f"RESERVED_0x{tag:02X}"
        return f"0x{tag:02X}"


def cast_header_value(tag: int, value):
    """Cast value to the documented type of tag. Unknown tags pass through."""
    header_type = HEADER_TYPES.get(tag)
    if header_type is None:
        return value
    if header_type is str:
        return str(value)
    if header_type is bool:
        return bool(value)
    return header_type(value)
