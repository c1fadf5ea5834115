"""setup.py for tracetlv.

Pure-Python package: numpy does the sample byte conversion, rich and pandas
back the command line interface (tables, logging, CSV input).
"""

import os
import re

from setuptools import find_packages, setup


def _read_version():
    """Read __version__ from tracetlv/__init__.py without importing it."""
    init_path = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                             "tracetlv", "__init__.py")
    with open(init_path) as f:
        match = re.search(r'^__version__ = "([^"]+)"', f.read(), re.MULTILINE)
    if match is None:
        raise RuntimeError("tracetlv: __version__ not found")
    return match.group(1)


setup(
    name="tracetlv",
    version=_read_version(),
    description="Write side-channel traces to the TLV-encoded .trs trace set format",
    python_requires=">=3.9",
    packages=find_packages(include=["tracetlv", "tracetlv.*"]),
    install_requires=[
        "numpy>=1.22",
        "pandas>=1.4",
        "rich>=12.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "tracetlv=tracetlv.__main__:main",
        ],
    },
)
