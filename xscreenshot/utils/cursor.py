"""
Cursor compositing for xscreenshot.

The X server never includes the pointer in GetImage replies, so the cursor
sprite is fetched separately through the XFIXES extension and alpha-blended
onto the captured frame by the client.
"""

import logging
import struct
from typing import NamedTuple, Optional, Sequence, Tuple

from Xlib.error import XError

from .errors import FeatureUnavailable, ServerError, UnsupportedFormat

logger = logging.getLogger(__name__)

# GetCursorImage is part of XFIXES 1.0
XFIXES_EXTENSION = "XFIXES"
XFIXES_MIN_VERSION = (1, 0)

# Cursor pixel layout, independent of the server's image byte order
CURSOR_BLUE = 0
CURSOR_GREEN = 1
CURSOR_RED = 2
CURSOR_ALPHA = 3


class CursorSprite(NamedTuple):
    """Cursor image with its absolute position and hotspot.

    ``pixels`` holds ``width * height`` pixels of 4 bytes each, ordered
    blue, green, red, alpha.
    """
    x: int
    y: int
    width: int
    height: int
    xhot: int
    yhot: int
    pixels: bytes


def argb_words_to_bgra(words: Sequence[int]) -> bytes:
    """Pack 32-bit ARGB words as little-endian bytes, i.e. B, G, R, A."""
    return struct.pack(f"<{len(words)}I", *(w & 0xFFFFFFFF for w in words))


def blend_channel(src: int, cursor: int, alpha: int) -> int:
    """Linear alpha blend of one 8-bit channel.

    Both weighted terms are truncated separately, so alpha 128 over
    (src=100, cursor=200) gives 149.
    """
    return src * (255 - alpha) // 255 + cursor * alpha // 255


def composite_cursor(
    frame: bytearray,
    frame_width: int,
    frame_height: int,
    offsets: Tuple[int, int, int],
    sprite: CursorSprite,
    origin_x: int,
    origin_y: int,
) -> int:
    """
    Blend ``sprite`` into ``frame`` in place.

    Args:
        frame: 4-byte-per-pixel frame buffer, row-major
        frame_width: Frame width in pixels
        frame_height: Frame height in pixels
        offsets: (red, green, blue) byte offsets inside each frame pixel
        sprite: Cursor sprite with absolute root coordinates
        origin_x: Root-relative X of the frame's top-left pixel
        origin_y: Root-relative Y of the frame's top-left pixel

    Returns:
        Number of sprite pixels that landed inside the frame
    """
    red, green, blue = offsets
    rel_x = sprite.x - sprite.xhot - origin_x
    rel_y = sprite.y - sprite.yhot - origin_y
    pixels = sprite.pixels
    written = 0

    for sy in range(sprite.height):
        dy = sy + rel_y
        if dy < 0 or dy >= frame_height:
            continue
        for sx in range(sprite.width):
            dx = sx + rel_x
            if dx < 0 or dx >= frame_width:
                continue

            c = (sy * sprite.width + sx) * 4
            alpha = pixels[c + CURSOR_ALPHA]
            d = (dy * frame_width + dx) * 4

            frame[d + red] = blend_channel(frame[d + red], pixels[c + CURSOR_RED], alpha)
            frame[d + green] = blend_channel(frame[d + green], pixels[c + CURSOR_GREEN], alpha)
            frame[d + blue] = blend_channel(frame[d + blue], pixels[c + CURSOR_BLUE], alpha)
            written += 1

    logger.debug(
        f"Cursor {sprite.width}x{sprite.height} at ({rel_x}, {rel_y}) relative to frame, "
        f"{written} pixels blended"
    )
    return written


class XFixesCursor:
    """Cursor image access through the XFIXES extension of python-xlib."""

    def __init__(self, xdisplay):
        """
        Args:
            xdisplay: An open ``Xlib.display.Display``.

        Raises:
            FeatureUnavailable: XFIXES missing or older than 1.0
        """
        self.display = xdisplay

        if not self.display.has_extension(XFIXES_EXTENSION):
            raise FeatureUnavailable("XFixes extension not available")

        try:
            reply = self.display.xfixes_query_version()
        except XError as e:
            raise ServerError("xfixes_query_version", e.code)

        version = (reply.major_version, reply.minor_version)
        if version < XFIXES_MIN_VERSION:
            raise FeatureUnavailable(
                "XFixes version {}.{} is too old, need {}.{}".format(*version, *XFIXES_MIN_VERSION)
            )

        logger.debug(f"XFixes version {version[0]}.{version[1]}")

    def get_cursor_image(self, root_id: Optional[int] = None) -> CursorSprite:
        """Fetch the current cursor sprite.

        Args:
            root_id: Root window of the captured screen. Defaults to the
                default screen's root.
        """
        if root_id is None:
            root = self.display.screen().root
        else:
            root = self.display.create_resource_object("window", root_id)
        try:
            reply = self.display.xfixes_get_cursor_image(root)
        except XError as e:
            raise ServerError("xfixes_get_cursor_image", e.code)

        count = reply.width * reply.height
        if len(reply.cursor_image) < count:
            raise UnsupportedFormat(
                f"cursor image too short, expected: {count} pixels got: {len(reply.cursor_image)}"
            )

        return CursorSprite(
            x=reply.x,
            y=reply.y,
            width=reply.width,
            height=reply.height,
            xhot=reply.xhot,
            yhot=reply.yhot,
            pixels=argb_words_to_bgra(reply.cursor_image[:count]),
        )
