"""
Core X11 screen capture functionality for xscreenshot.

This module handles the capture pipeline:
- Target resolution (explicit window or focused screen)
- Frame acquisition with format validation
- Channel mapping for both server byte orders
- Cursor inclusion
- PNG file saving
"""

import enum
import logging
from typing import Iterator, NamedTuple, Optional

from Xlib import X, display
from Xlib.error import DisplayError, XError

from .cursor import XFixesCursor, composite_cursor
from .encoder import encode_png
from .errors import (
    DisplayConnectionError,
    EmptyCapture,
    ServerError,
    UnsupportedFormat,
)
from .paths import XScreenshotPaths
from .window_detect import Rectangle, WindowDetector, format_window_id

# Set up logging
logger = logging.getLogger(__name__)

ALL_PLANES = 0xFFFFFFFF
BYTES_PER_PIXEL = 4
SUPPORTED_BPP = 32


class ByteOrder(enum.Enum):
    """Image byte order announced in the connection setup."""
    LSB_FIRST = X.LSBFirst
    MSB_FIRST = X.MSBFirst

    @classmethod
    def from_setup(cls, value: int) -> "ByteOrder":
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedFormat(f"unsupported image byte order: {value}")


class ChannelOffsets(NamedTuple):
    """Byte offsets of the color channels inside one 4-byte pixel."""
    red: int
    green: int
    blue: int


def channel_offsets(byte_order: ByteOrder) -> ChannelOffsets:
    """
    Map a byte order to channel offsets.

    LSB first pixels are laid out blue, green, red, pad; MSB first pixels are
    pad, red, green, blue.
    """
    if byte_order is ByteOrder.LSB_FIRST:
        return ChannelOffsets(red=2, green=1, blue=0)
    if byte_order is ByteOrder.MSB_FIRST:
        return ChannelOffsets(red=1, green=2, blue=3)
    raise UnsupportedFormat(f"unsupported image byte order: {byte_order}")


class Frame:
    """Pixel buffer for one capture plus the layout needed to read it."""

    def __init__(
        self,
        rect: Rectangle,
        data: bytearray,
        offsets: ChannelOffsets,
        root_id: Optional[int] = None,
    ):
        self.rect = rect
        self.data = data
        self.offsets = offsets
        self.root_id = root_id

    @property
    def width(self) -> int:
        return self.rect.width

    @property
    def height(self) -> int:
        return self.rect.height

    def iter_rgb_rows(self) -> Iterator[bytes]:
        """Yield each row top-to-bottom as packed R, G, B bytes."""
        red, green, blue = self.offsets
        stride = self.width * BYTES_PER_PIXEL
        for y in range(self.height):
            row = self.data[y * stride:(y + 1) * stride]
            out = bytearray(self.width * 3)
            out[0::3] = row[red::BYTES_PER_PIXEL]
            out[1::3] = row[green::BYTES_PER_PIXEL]
            out[2::3] = row[blue::BYTES_PER_PIXEL]
            yield bytes(out)


class CaptureOptions(NamedTuple):
    """Options for one run, built once from the command line."""
    directory: str = XScreenshotPaths.DEFAULT_DIRECTORY
    window_id: Optional[int] = None
    include_cursor: bool = False
    print_path: bool = False


def open_display(display_name: Optional[str] = None):
    """Connect to the X server named by ``display_name`` or ``$DISPLAY``."""
    try:
        xdisplay = display.Display(display_name)
    except (DisplayError, OSError) as e:
        logger.debug(f"Display connection failed: {e}")
        raise DisplayConnectionError("can't open display")

    if xdisplay.screen_count() < 1:
        xdisplay.close()
        raise DisplayConnectionError("can't get default screen")

    return xdisplay


class ScreenCapture:
    """Handles X11 screen capture operations with optional cursor inclusion."""

    def __init__(self, xdisplay=None):
        """
        Initialize the screen capture system.

        Args:
            xdisplay: Open ``Xlib.display.Display`` to use. A new connection
                is opened when omitted and closed again by :meth:`cleanup`.
        """
        self._owns_display = xdisplay is None
        self.display = xdisplay if xdisplay is not None else open_display()
        self.window_detector = WindowDetector(self.display)

    def get_byte_order(self) -> ByteOrder:
        return ByteOrder.from_setup(self.display.display.info.image_byte_order)

    def resolve_target(self, window_id: Optional[int] = None) -> int:
        """Window to capture: ``window_id`` or the focused screen's root."""
        if window_id is not None:
            return window_id
        return self.window_detector.get_focused_root()

    def grab_frame(self, root_id: int, rect: Rectangle) -> Frame:
        """
        Request the pixels of ``rect`` from ``root_id``.

        Raises:
            EmptyCapture: ``rect`` has no area
            ServerError: GetImage was rejected
            UnsupportedFormat: pixels are not 32 bits wide or the byte order
                is unknown
        """
        if rect.is_empty:
            raise EmptyCapture(
                f"nothing to capture, visible area is {rect.width}x{rect.height}"
            )

        root = self.display.create_resource_object("window", root_id)
        try:
            raw_image = root.get_image(
                rect.x, rect.y, rect.width, rect.height, X.ZPixmap, ALL_PLANES
            )
        except XError as e:
            raise ServerError("get_image", e.code)

        data = raw_image.data
        npixels = rect.width * rect.height
        bpp = (len(data) * 8) // npixels
        if bpp != SUPPORTED_BPP:
            raise UnsupportedFormat(
                f"invalid pixel format received, expected: {SUPPORTED_BPP}bpp got: {bpp}bpp"
            )

        byte_order = self.get_byte_order()
        offsets = channel_offsets(byte_order)

        logger.debug(
            f"Captured {rect.width}x{rect.height} at ({rect.x}, {rect.y}), "
            f"depth {raw_image.depth}, {byte_order.name}"
        )

        return Frame(rect, bytearray(data[:npixels * BYTES_PER_PIXEL]), offsets, root_id)

    def add_cursor(self, frame: Frame) -> Frame:
        """Blend the live cursor into ``frame`` in place."""
        sprite = XFixesCursor(self.display).get_cursor_image(frame.root_id)
        composite_cursor(
            frame.data,
            frame.width,
            frame.height,
            frame.offsets,
            sprite,
            frame.rect.x,
            frame.rect.y,
        )
        return frame

    def capture_window(self, window_id: Optional[int] = None, include_cursor: bool = False) -> Frame:
        """
        Capture a window, or the focused screen when ``window_id`` is None.

        Args:
            window_id: X11 window ID
            include_cursor: Whether to include the cursor in the capture

        Returns:
            Frame holding the visible part of the window
        """
        target = self.resolve_target(window_id)
        rect, root_id = self.window_detector.get_capture_geometry(target)

        logger.info(
            f"Capturing window {format_window_id(target)}: "
            f"({rect.x}, {rect.y}) {rect.width}x{rect.height}"
        )

        frame = self.grab_frame(root_id, rect)

        if include_cursor:
            self.add_cursor(frame)

        return frame

    def save_screenshot(self, frame: Frame, directory: Optional[str] = None) -> str:
        """
        Save a frame as a timestamped PNG file.

        Args:
            frame: Captured frame
            directory: Directory to save to (defaults to the current directory)

        Returns:
            Path of the written file
        """
        path = XScreenshotPaths.get_screenshot_path(directory)
        encode_png(path, frame.width, frame.height, frame.iter_rgb_rows())
        return path

    def cleanup(self):
        """Close the X connection if this instance opened it."""
        if self._owns_display:
            self.display.close()


def capture_screenshot(options: CaptureOptions, xdisplay=None) -> str:
    """
    Run one capture from target resolution to the written file.

    Args:
        options: Options for this run
        xdisplay: Open display to use instead of connecting to ``$DISPLAY``

    Returns:
        Absolute path of the written file
    """
    XScreenshotPaths.ensure_output_directory(options.directory)

    capture = ScreenCapture(xdisplay)

    try:
        frame = capture.capture_window(options.window_id, options.include_cursor)
        path = capture.save_screenshot(frame, options.directory)
    finally:
        capture.cleanup()

    return XScreenshotPaths.absolute_path(path)
