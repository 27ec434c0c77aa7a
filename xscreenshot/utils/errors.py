"""
Error types for xscreenshot.

Every failure in the capture pipeline is terminal. Library code raises one of
the exceptions below and only the CLI entry point turns it into a message on
stderr and a non-zero exit status.
"""

from typing import Optional


class XScreenshotError(Exception):
    """Base class for all xscreenshot failures."""


class UsageError(XScreenshotError):
    """Bad command-line flags or arguments."""


class DisplayConnectionError(XScreenshotError):
    """The X server could not be reached or has no default screen."""


class InvalidTarget(XScreenshotError):
    """Target window is missing, not InputOutput, or not viewable."""


class EmptyCapture(XScreenshotError):
    """The clamped capture rectangle has no area."""


class ServerError(XScreenshotError):
    """An X protocol request came back with an error."""

    def __init__(self, request: str, code: Optional[int]):
        self.request = request
        self.code = code
        super().__init__(f"{request} failed with error code: {code}")


class UnsupportedFormat(XScreenshotError):
    """Unexpected bits-per-pixel or image byte order."""


class FeatureUnavailable(XScreenshotError):
    """A required X extension is missing or too old."""


class FilesystemError(XScreenshotError):
    """Output directory or file cannot be used."""


class EncodingError(XScreenshotError):
    """The image encoder failed."""
