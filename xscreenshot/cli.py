#!/usr/bin/env python3
"""
xscreenshot CLI interface.

This module handles command-line argument parsing, runs the capture and turns
every failure into a single ``xscreenshot: <message>`` line on stderr.

Main entry point: xscreenshot/__main__.py or the ``xscreenshot`` script.
"""

import argparse
import logging
import os
import string
import sys
from typing import List, Optional

from Xlib.error import ConnectionClosedError

from xscreenshot.utils.capture import CaptureOptions, capture_screenshot
from xscreenshot.utils.errors import UsageError, XScreenshotError
from xscreenshot.utils.paths import XScreenshotPaths

PROG = "xscreenshot"
VERSION = "1.2.0"

LOG_LEVEL_ENV = "XSCREENSHOT_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

# const for flags given without their value; not a str so argparse skips type=
MISSING_VALUE = object()

# Window ids are 32-bit XIDs
MAX_WINDOW_ID = 0xFFFFFFFF


class ArgumentParser(argparse.ArgumentParser):
    """argparse parser that raises instead of printing usage and exiting."""

    def error(self, message):
        raise UsageError(message)


def parse_window_id(value: str) -> int:
    """Parse a ``0x``-prefixed hexadecimal window id."""
    digits = value[2:]
    if not value.startswith("0x") or not digits or any(c not in string.hexdigits for c in digits):
        raise UsageError("invalid window id format")
    window_id = int(digits, 16)
    if window_id > MAX_WINDOW_ID:
        raise UsageError("invalid window id format")
    return window_id


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog=PROG,
        usage="%(prog)s [-chpv] [-d directory] [-w id]",
        description="Take a screenshot of an X11 screen or window and save it as PNG",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
        epilog="""
Examples:
  %(prog)s                        # Capture the screen that has input focus
  %(prog)s -c                     # Include the mouse cursor
  %(prog)s -w 0x1e00007 -p        # Capture one window and print the file path
  %(prog)s -d ~/Pictures          # Save into another directory

Files are named YYYYMMDDHHMMSS_N.png.
Set XSCREENSHOT_LOG_LEVEL=DEBUG to see what happens during a capture.
        """,
    )

    parser.add_argument(
        "-v", "--version", action="version", version=f"{PROG} version {VERSION}",
        help="display the program version"
    )
    parser.add_argument('-p', '--print', action='store_true', dest='print_path',
                       help='print the path of the saved screenshot')
    parser.add_argument('-c', '--cursor', action='store_true', dest='include_cursor',
                       help='include the mouse cursor in the screenshot')
    parser.add_argument(
        "-d", "--directory",
        metavar="directory",
        nargs="?",
        const=None,
        default=XScreenshotPaths.DEFAULT_DIRECTORY,
        help="set the directory to save the screenshot (default: current directory)",
    )
    parser.add_argument(
        "-w",
        metavar="id",
        dest="window_id",
        nargs="?",
        const=MISSING_VALUE,
        type=parse_window_id,
        help="capture the window with this id (format: 0x1e00007)",
    )

    return parser


def parse_options(argv: Optional[List[str]] = None) -> CaptureOptions:
    """Build the run options from ``argv``.

    Raises:
        UsageError: unknown flag, stray argument or missing/invalid value
    """
    parser = build_parser()
    args, extras = parser.parse_known_args(argv)

    for token in extras:
        if token.startswith("-") and token != "-":
            raise UsageError(f"invalid option {token}")
        raise UsageError(f"unexpected argument: {token}")

    if args.directory is None:
        raise UsageError("expected a directory")
    if args.window_id is MISSING_VALUE:
        raise UsageError("expected a window id")

    return CaptureOptions(
        directory=args.directory,
        window_id=args.window_id,
        include_cursor=args.include_cursor,
        print_path=args.print_path,
    )


def setup_logging():
    level_name = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def fail(message: str) -> int:
    print(f"{PROG}: {message}", file=sys.stderr)
    return 1


def cmd_screenshot(options: CaptureOptions) -> int:
    """Handle screenshot command."""
    try:
        path = capture_screenshot(options)
    except XScreenshotError as e:
        return fail(str(e))
    except ConnectionClosedError:
        return fail("connection to the X server was closed")

    if options.print_path:
        print(path)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI interface."""
    try:
        options = parse_options(argv)
    except UsageError as e:
        return fail(str(e))

    setup_logging()

    return cmd_screenshot(options)
