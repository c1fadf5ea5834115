"""Binary .trs trace set file format (write side).

FILE LAYOUT:
    HEADER RECORDS (ascending tag order):
        tag: uint8
        length: uint8 if <= 127, else 0x80|k followed by k bytes (little-endian)
        value: length bytes

    TRACE BLOCK MARKER:
        tag: uint8 = 0x5F
        length: uint8 = 0x00

    TRACE BLOCK (to end of file):
        n_traces * (extra_data_length + samples_per_trace * sample_width) bytes
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Union

from ..errors import SinkUnavailableError

logger = logging.getLogger(__name__)

TRS_SUFFIX = ".trs"


def _target_mode(path: Path) -> int:
    """Mode of an existing target, else 0o666 filtered by the process umask."""
    try:
        return os.stat(path).st_mode & 0o7777
    except FileNotFoundError:
        pass
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class TRSWriter:
    """Write rendered trace sets to a file or binary stream."""

    def write(self, target: Union[str, os.PathLike, BinaryIO], data: bytes) -> int:
        """Write a rendered trace set.

        Args:
            target: Output path, or a binary file-like object with .write().
            data: Fully rendered trace set bytes.

        Returns:
            Total bytes written.

        Raises:
            SinkUnavailableError: If the target cannot be opened or fully written.
                A path target is never left holding a partial file.
        """
        if hasattr(target, "write"):
            return self._write_stream(target, data)
        return self._write_path(Path(target), data)

    def _write_stream(self, stream: BinaryIO, data: bytes) -> int:
        try:
            written = stream.write(data)
        except OSError as exc:
            raise SinkUnavailableError(f"Could not write trace set to stream: {exc}") from exc
        if written is not None and written != len(data):
            raise SinkUnavailableError(
                f"Short write: {written} of {len(data)} bytes written to stream"
            )
        logger.debug("Wrote %d bytes to stream", len(data))
        return len(data)

    def _write_path(self, path: Path, data: bytes) -> int:
        # Replace the file a symlink points to, not the link itself.
        path = Path(os.path.realpath(path))
        if path.suffix != TRS_SUFFIX:
            logger.warning("Output %s does not use the %s suffix", path, TRS_SUFFIX)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(tmp_path, _target_mode(path))
            os.replace(tmp_path, path)
        except OSError as exc:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise SinkUnavailableError(
                f"An error occurred when writing the trace set to {path}: {exc}"
            ) from exc

        logger.debug("Wrote %d bytes to %s", len(data), path)
        return len(data)
