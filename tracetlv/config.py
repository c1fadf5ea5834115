"""Central configuration for serialising trace sets."""

import json
from dataclasses import asdict, dataclass, fields
from typing import Optional

import numpy as np


@dataclass
class SerialiserConfig:
    """Sample layout and optional descriptive headers in one place."""

    # --- Samples ---
    sample_dtype: str = "float32"  # any numeric numpy dtype name
    sample_width: Optional[int] = None  # bytes per sample (1, 2, 4); None = dtype size
    ragged: bool = False  # zero-pad short traces instead of rejecting them

    # --- Descriptive headers (None = not written) ---
    title: Optional[str] = None
    description: Optional[str] = None
    axis_label_x: Optional[str] = None
    axis_label_y: Optional[str] = None
    axis_scale_x: Optional[float] = None
    axis_scale_y: Optional[float] = None
    axis_offset_x: Optional[int] = None
    scope_id: Optional[str] = None

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(self.sample_dtype)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SerialiserConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {unknown}. Choose from: {sorted(known)}")
        return cls(**data)

    @classmethod
    def from_json(cls, path: str) -> "SerialiserConfig":
        with open(path) as f:
            return cls.from_dict(json.load(f))
