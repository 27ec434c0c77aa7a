from __future__ import annotations

from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from Xlib import X
from Xlib.error import BadWindow


def make_x_error(cls, code: int):
    """Build a python-xlib protocol error without a live connection."""
    err = cls.__new__(cls)
    err._data = {
        "code": code,
        "resource_id": 0,
        "sequence_number": 0,
        "major_opcode": 0,
        "minor_opcode": 0,
    }
    err.code = code
    return err


def source_pixel(x: int, y: int):
    """Color the fake screen shows at root coordinates (x, y)."""
    return (x * 7 % 256, y * 5 % 256, (x + y) % 256)


def encode_pixel(rgb, byte_order: int) -> bytes:
    r, g, b = rgb
    if byte_order == X.LSBFirst:
        return bytes((b, g, r, 0))
    return bytes((0, r, g, b))


class FakeWindow:
    def __init__(
        self,
        display: "FakeDisplay",
        window_id: int,
        x: int = 0,
        y: int = 0,
        width: int = 0,
        height: int = 0,
        parent: Optional["FakeWindow"] = None,
        win_class: int = X.InputOutput,
        map_state: int = X.IsViewable,
    ):
        self.display = display
        self.id = window_id
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.parent = parent
        self.win_class = win_class
        self.map_state = map_state

    @property
    def root(self) -> "FakeWindow":
        window = self
        while window.parent is not None:
            window = window.parent
        return window

    def absolute_origin(self):
        x, y = 0, 0
        window = self
        while window.parent is not None:
            x += window.x
            y += window.y
            window = window.parent
        return x, y

    def get_attributes(self):
        self.display.requests.append(("get_attributes", self.id))
        return SimpleNamespace(win_class=self.win_class, map_state=self.map_state)

    def get_geometry(self):
        self.display.requests.append(("get_geometry", self.id))
        return SimpleNamespace(
            x=self.x, y=self.y, width=self.width, height=self.height, root=self.root
        )

    def translate_coords(self, src_window, src_x: int, src_y: int):
        self.display.requests.append(("translate_coords", src_window.id))
        sx, sy = src_window.absolute_origin()
        dx, dy = self.absolute_origin()
        return SimpleNamespace(x=sx + src_x - dx, y=sy + src_y - dy, child=X.NONE)

    def get_image(self, x: int, y: int, width: int, height: int, fmt: int, plane_mask: int):
        self.display.requests.append(("get_image", self.id, x, y, width, height))
        if self.display.image_error is not None:
            raise self.display.image_error
        if self.display.bytes_per_pixel != 4:
            size = width * height * self.display.bytes_per_pixel
            return SimpleNamespace(depth=self.display.bytes_per_pixel * 8, data=bytes(size))
        order = self.display.display.info.image_byte_order
        data = b"".join(
            encode_pixel(source_pixel(x + col, y + row), order)
            for row in range(height)
            for col in range(width)
        )
        return SimpleNamespace(depth=24, data=data)


class MissingWindow:
    def __init__(self, window_id: int):
        self.id = window_id

    def _fail(self, *args, **kwargs):
        raise make_x_error(BadWindow, X.BadWindow)

    get_attributes = _fail
    get_geometry = _fail
    translate_coords = _fail
    get_image = _fail


class FakeDisplay:
    """Just enough of ``Xlib.display.Display`` for the capture pipeline."""

    def __init__(self, width: int = 100, height: int = 50, byte_order: int = X.LSBFirst):
        self.requests: List[tuple] = []
        self.windows: Dict[int, FakeWindow] = {}
        self.display = SimpleNamespace(info=SimpleNamespace(image_byte_order=byte_order))
        self.root = self.add_window(0x100, 0, 0, width, height, parent=None)
        self.focus = X.PointerRoot
        self.extensions = ["XFIXES"]
        self.xfixes_version = (4, 0)
        self.cursor = None
        self.image_error = None
        self.bytes_per_pixel = 4
        self.closed = False

    def add_window(self, window_id: int, x: int, y: int, width: int, height: int,
                   parent: Optional[FakeWindow] = "root", **kwargs) -> FakeWindow:
        if parent == "root":
            parent = self.root
        window = FakeWindow(self, window_id, x, y, width, height, parent=parent, **kwargs)
        self.windows[window_id] = window
        return window

    def screen(self):
        return SimpleNamespace(root=self.root)

    def screen_count(self) -> int:
        return 1

    def create_resource_object(self, kind: str, window_id: int):
        assert kind == "window"
        return self.windows.get(window_id, MissingWindow(window_id))

    def get_input_focus(self):
        return SimpleNamespace(focus=self.focus, revert_to=X.RevertToParent)

    def has_extension(self, name: str) -> bool:
        return name in self.extensions

    def xfixes_query_version(self):
        major, minor = self.xfixes_version
        return SimpleNamespace(major_version=major, minor_version=minor)

    def xfixes_get_cursor_image(self, window):
        self.requests.append(("xfixes_get_cursor_image", window.id))
        return self.cursor

    def close(self):
        self.closed = True


@pytest.fixture
def fake_display() -> FakeDisplay:
    return FakeDisplay()


@pytest.fixture
def make_display():
    return FakeDisplay


@pytest.fixture
def source_color():
    return source_pixel


@pytest.fixture
def x_error():
    return make_x_error
