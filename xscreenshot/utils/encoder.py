"""
PNG encoding for xscreenshot.

Rows of packed RGB triples are collected top-to-bottom and handed to Pillow
once the last row is in. A capture that fails part way never leaves a file
behind.
"""

import logging
import os
from typing import BinaryIO, Iterable, Optional

from PIL import Image

from .errors import EncodingError
from .paths import XScreenshotPaths

logger = logging.getLogger(__name__)


class PngEncoder:
    """Row-based PNG writer.

    Usage::

        with PngEncoder(path, width, height) as encoder:
            for row in rows:
                encoder.write_row(row)
        size = encoder.file_size
    """

    def __init__(self, path: str, width: int, height: int):
        self.path = path
        self.width = width
        self.height = height
        self.file_size = 0
        self._fp: Optional[BinaryIO] = None
        self._buffer = bytearray()
        self._rows = 0

    def open(self):
        """Create the output file. Nothing is written until :meth:`finalize`."""
        try:
            self._fp = open(self.path, "wb")
        except OSError as e:
            raise XScreenshotPaths.describe_open_error(self.path, e)
        self._buffer = bytearray()
        self._rows = 0

    def write_row(self, row: bytes):
        if self._fp is None:
            raise EncodingError("encoder is not open")
        if len(row) != self.width * 3:
            raise EncodingError(
                f"row {self._rows} has {len(row)} bytes, expected {self.width * 3}"
            )
        if self._rows >= self.height:
            raise EncodingError(f"too many rows, image height is {self.height}")
        self._buffer += row
        self._rows += 1

    def finalize(self) -> int:
        """Encode the collected rows and close the file.

        Returns:
            Size of the written file in bytes
        """
        if self._fp is None:
            raise EncodingError("encoder is not open")
        if self._rows != self.height:
            raise EncodingError(f"got {self._rows} rows, expected {self.height}")

        try:
            image = Image.frombytes("RGB", (self.width, self.height), bytes(self._buffer))
            image.save(self._fp, "PNG", optimize=False)
            self._fp.flush()
        except (OSError, ValueError) as e:
            raise EncodingError(f"png encoding failed: {e}")
        finally:
            self._buffer = bytearray()

        self._fp.close()
        self._fp = None
        self.file_size = os.path.getsize(self.path)
        logger.info(f"Screenshot saved: {self.path} ({self.file_size} bytes)")
        return self.file_size

    def abort(self):
        """Close and remove a partially written file."""
        if self._fp is not None:
            self._fp.close()
            self._fp = None
        try:
            os.remove(self.path)
            logger.debug(f"Removed incomplete screenshot: {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove incomplete screenshot {self.path}: {e}")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            try:
                self.finalize()
            except BaseException:
                self.abort()
                raise
        else:
            self.abort()
        return False


def encode_png(path: str, width: int, height: int, rows: Iterable[bytes]) -> int:
    """
    Write ``rows`` as a PNG image.

    Args:
        path: Output file path
        width: Image width in pixels
        height: Image height in pixels
        rows: Packed R, G, B bytes for each row, top to bottom

    Returns:
        Size of the written file in bytes
    """
    with PngEncoder(path, width, height) as encoder:
        for row in rows:
            encoder.write_row(row)
    return encoder.file_size
