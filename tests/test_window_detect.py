from __future__ import annotations

import pytest
from Xlib import X
from Xlib.error import BadAccess

from xscreenshot.utils.errors import InvalidTarget, ServerError
from xscreenshot.utils.window_detect import Rectangle, WindowDetector, clamp_to_screen


@pytest.mark.parametrize(
    "rect, expected",
    [
        ((10, 10, 20, 20), (10, 10, 20, 20)),
        ((-5, 10, 20, 20), (0, 10, 15, 20)),
        ((10, -8, 20, 20), (10, 0, 20, 12)),
        ((90, 10, 20, 20), (90, 10, 10, 20)),
        ((10, 40, 20, 20), (10, 40, 20, 10)),
        ((-5, -5, 200, 200), (0, 0, 100, 50)),
        ((95, 45, 20, 20), (95, 45, 5, 5)),
        ((-10, 45, 30, 20), (0, 45, 20, 5)),
    ],
)
def test_clamp_keeps_exact_overlap(rect, expected) -> None:
    clamped = clamp_to_screen(*rect, 100, 50)
    assert clamped == expected
    assert clamped.x >= 0 and clamped.y >= 0
    assert clamped.x + clamped.width <= 100
    assert clamped.y + clamped.height <= 50


@pytest.mark.parametrize(
    "rect",
    [(-30, 10, 20, 20), (10, -40, 20, 20), (150, 10, 20, 20), (10, 70, 20, 20)],
)
def test_clamp_window_off_screen_is_empty(rect) -> None:
    clamped = clamp_to_screen(*rect, 100, 50)
    assert clamped.is_empty
    assert 0 <= clamped.x <= 100
    assert 0 <= clamped.y <= 50
    assert clamped.x + clamped.width <= 100
    assert clamped.y + clamped.height <= 50


def test_geometry_uses_root_relative_coordinates(fake_display) -> None:
    frame = fake_display.add_window(0x200, 5, 7, 60, 30)
    fake_display.add_window(0x201, 3, 4, 20, 20, parent=frame)

    rect, root_id = WindowDetector(fake_display).get_capture_geometry(0x201)

    assert rect == Rectangle(8, 11, 20, 20)
    assert root_id == fake_display.root.id
    assert ("translate_coords", 0x201) in fake_display.requests


def test_geometry_is_clamped_to_root(fake_display) -> None:
    fake_display.add_window(0x200, -10, 40, 30, 30)

    rect, _ = WindowDetector(fake_display).get_capture_geometry(0x200)

    assert rect == Rectangle(0, 40, 20, 10)


def test_root_window_covers_screen(fake_display) -> None:
    rect, root_id = WindowDetector(fake_display).get_capture_geometry(fake_display.root.id)
    assert rect == Rectangle(0, 0, 100, 50)
    assert root_id == fake_display.root.id


def test_missing_window_is_invalid_target(fake_display) -> None:
    with pytest.raises(InvalidTarget, match="does not exist"):
        WindowDetector(fake_display).get_capture_geometry(0xDEAD)


def test_input_only_window_is_invalid_target(fake_display) -> None:
    fake_display.add_window(0x200, 0, 0, 10, 10, win_class=X.InputOnly)
    with pytest.raises(InvalidTarget, match="InputOutput"):
        WindowDetector(fake_display).get_capture_geometry(0x200)


def test_unmapped_window_is_invalid_target(fake_display) -> None:
    fake_display.add_window(0x200, 0, 0, 10, 10, map_state=X.IsUnmapped)
    with pytest.raises(InvalidTarget, match="not viewable"):
        WindowDetector(fake_display).get_capture_geometry(0x200)


def test_other_protocol_errors_carry_code(fake_display, x_error, monkeypatch) -> None:
    window = fake_display.add_window(0x200, 0, 0, 10, 10)

    def get_geometry():
        raise x_error(BadAccess, X.BadAccess)

    monkeypatch.setattr(window, "get_geometry", get_geometry)

    with pytest.raises(ServerError) as excinfo:
        WindowDetector(fake_display).get_capture_geometry(0x200)
    assert excinfo.value.code == X.BadAccess
    assert str(X.BadAccess) in str(excinfo.value)


def test_focused_root_follows_focus(make_display) -> None:
    display = make_display()
    other_root = display.add_window(0x900, 0, 0, 300, 200, parent=None)
    display.focus = display.add_window(0x901, 10, 10, 50, 50, parent=other_root)

    assert WindowDetector(display).get_focused_root() == 0x900


@pytest.mark.parametrize("focus", [X.NONE, X.PointerRoot])
def test_focused_root_without_focus_window(fake_display, focus) -> None:
    fake_display.focus = focus
    assert WindowDetector(fake_display).get_focused_root() == fake_display.root.id
