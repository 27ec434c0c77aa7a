"""
Window detection functionality for xscreenshot.

This module turns a capture target into something the frame grabber can use:
- Default target selection (root of the focused window's screen)
- Window validation (exists, InputOutput, viewable)
- Root-relative geometry via coordinate translation
- Clamping of the capture rectangle to the visible root window
"""

import logging
from typing import NamedTuple, Tuple

from Xlib import X
from Xlib.error import BadDrawable, BadMatch, BadWindow, XError

from .errors import InvalidTarget, ServerError

# Set up logging
logger = logging.getLogger(__name__)


class Rectangle(NamedTuple):
    """Root-relative capture area."""
    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


def clamp_to_screen(
    x: int, y: int, width: int, height: int, screen_width: int, screen_height: int
) -> Rectangle:
    """
    Clip a root-relative rectangle to ``[0, screen_width) x [0, screen_height)``.

    The result is exactly the overlap between the rectangle and the screen.
    A rectangle with no overlap comes back with zero width and/or height and
    its origin pulled inside the screen bounds.
    """
    if x < 0:
        width += x
        x = 0
    if y < 0:
        height += y
        y = 0

    x = min(x, screen_width)
    y = min(y, screen_height)

    if x + width > screen_width:
        width = screen_width - x
    if y + height > screen_height:
        height = screen_height - y

    return Rectangle(x, y, max(0, width), max(0, height))


def format_window_id(window_id: int) -> str:
    return f"0x{window_id:08x}"


class WindowDetector:
    """Resolves capture targets and their geometry on an open X display."""

    def __init__(self, xdisplay):
        """
        Args:
            xdisplay: An open ``Xlib.display.Display``.
        """
        self.display = xdisplay
        self.screen = self.display.screen()
        self.root = self.screen.root

    def get_default_root(self) -> int:
        """Root window of the default screen."""
        return self.root.id

    def get_focused_root(self) -> int:
        """
        Root window of the screen that currently holds the input focus.

        Falls back to the default screen's root when focus is ``None`` or
        ``PointerRoot`` rather than a real window.
        """
        try:
            focus = self.display.get_input_focus().focus
        except XError as e:
            raise ServerError("get_input_focus", e.code)

        if isinstance(focus, int):
            logger.debug(f"Input focus is {focus}, using default screen root")
            return self.get_default_root()

        try:
            geometry = focus.get_geometry()
        except (BadWindow, BadDrawable):
            # Focus moved away between the two requests
            logger.debug("Focused window vanished, using default screen root")
            return self.get_default_root()
        except XError as e:
            raise ServerError("get_geometry", e.code)

        logger.debug(
            f"Focused window {format_window_id(focus.id)} lives on root {format_window_id(geometry.root.id)}"
        )
        return geometry.root.id

    def get_capture_geometry(self, window_id: int) -> Tuple[Rectangle, int]:
        """
        Get the root-relative capture rectangle for a window.

        Args:
            window_id: X11 window ID

        Returns:
            Tuple of (clamped Rectangle, root window ID)

        Raises:
            InvalidTarget: window missing, not InputOutput, or not viewable
            ServerError: any other protocol error
        """
        window = self.display.create_resource_object("window", window_id)
        name = format_window_id(window_id)

        try:
            attrs = window.get_attributes()
        except BadWindow:
            raise InvalidTarget(f"window does not exist: {name}")
        except XError as e:
            raise ServerError("get_window_attributes", e.code)

        if attrs.win_class != X.InputOutput:
            raise InvalidTarget(f"window is not an InputOutput window: {name}")
        if attrs.map_state != X.IsViewable:
            raise InvalidTarget(f"window is not viewable: {name}")

        try:
            geom = window.get_geometry()
        except (BadWindow, BadDrawable):
            raise InvalidTarget(f"window does not exist: {name}")
        except XError as e:
            raise ServerError("get_geometry", e.code)

        root = geom.root

        # The window's position is relative to its parent, which is not
        # necessarily the root (reparenting window managers)
        try:
            coords = root.translate_coords(window, 0, 0)
        except (BadWindow, BadMatch):
            raise InvalidTarget(f"window does not exist: {name}")
        except XError as e:
            raise ServerError("translate_coordinates", e.code)

        try:
            root_geom = root.get_geometry()
        except XError as e:
            raise ServerError("get_geometry", e.code)

        logger.debug(
            f"Window {name}: ({coords.x}, {coords.y}) {geom.width}x{geom.height}, "
            f"root {format_window_id(root.id)} {root_geom.width}x{root_geom.height}"
        )

        rect = clamp_to_screen(
            coords.x, coords.y, geom.width, geom.height, root_geom.width, root_geom.height
        )

        if rect != (coords.x, coords.y, geom.width, geom.height):
            logger.debug(f"Clamped capture area to ({rect.x}, {rect.y}) {rect.width}x{rect.height}")

        return rect, root.id
