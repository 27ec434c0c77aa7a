"""Output path management for xscreenshot.

This module owns the screenshot file naming convention and the checks run
against the output directory before anything is captured.
"""

import errno
import os
import stat
from datetime import datetime
from typing import Optional

from .errors import FilesystemError


class XScreenshotPaths:
    """Centralized path management for xscreenshot.

    Provides the default output directory and the file naming convention
    used for every capture.
    """

    DEFAULT_DIRECTORY = "."

    # File naming configuration
    SCREENSHOT_EXTENSION = ".png"
    TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

    @staticmethod
    def generate_screenshot_filename(
        now: Optional[datetime] = None, pid: Optional[int] = None
    ) -> str:
        """Generate a timestamped screenshot filename.

        The single digit suffix only lowers the odds of two captures taken
        within the same second colliding; it does not rule it out.

        Args:
            now: Timestamp to use. Defaults to the current local time.
            pid: Process id to derive the suffix from. Defaults to ours.

        Returns:
            str: Filename in format: YYYYMMDDHHMMSS_<pid % 10>.png

        Example:
            >>> XScreenshotPaths.generate_screenshot_filename(datetime(2022, 6, 12, 9, 39, 50), 1234)
            '20220612093950_4.png'
        """
        if now is None:
            now = datetime.now()
        if pid is None:
            pid = os.getpid()
        timestamp = now.strftime(XScreenshotPaths.TIMESTAMP_FORMAT)
        return f"{timestamp}_{pid % 10}{XScreenshotPaths.SCREENSHOT_EXTENSION}"

    @staticmethod
    def get_screenshot_path(directory: Optional[str] = None, **kwargs) -> str:
        """Get full path for a new screenshot file inside ``directory``."""
        if directory is None:
            directory = XScreenshotPaths.DEFAULT_DIRECTORY
        return os.path.join(directory, XScreenshotPaths.generate_screenshot_filename(**kwargs))

    @staticmethod
    def ensure_output_directory(directory: str) -> str:
        """Check that ``directory`` exists, is a directory and is writable.

        Raises:
            FilesystemError: with a message telling apart a missing directory,
                a permission problem and anything else.
        """
        try:
            st = os.stat(directory)
        except FileNotFoundError:
            raise FilesystemError(f"directory does not exist: {directory}")
        except PermissionError:
            raise FilesystemError(f"permission denied: {directory}")
        except OSError as e:
            raise FilesystemError(f"stat failed: {e.strerror or e}")

        if not stat.S_ISDIR(st.st_mode):
            raise FilesystemError(f"not a directory: {directory}")

        if not os.access(directory, os.W_OK | os.X_OK):
            raise FilesystemError(f"permission denied: {directory}")

        return directory

    @staticmethod
    def describe_open_error(path: str, error: OSError) -> FilesystemError:
        """Translate an error raised while creating ``path``."""
        if isinstance(error, PermissionError) or error.errno == errno.EACCES:
            return FilesystemError(f"permission denied: {path}")
        return FilesystemError(f"open failed: {error.strerror or error}")

    @staticmethod
    def absolute_path(path: str) -> str:
        """Resolve ``path`` the way it is printed with ``--print``."""
        return os.path.realpath(path)
