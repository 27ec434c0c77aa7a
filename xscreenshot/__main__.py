#!/usr/bin/env python3
"""
Entry point for python -m xscreenshot execution.

This module enables running xscreenshot as a Python module:
    python3 -m xscreenshot
    python3 -m xscreenshot -c -p
    python3 -m xscreenshot -w 0x1e00007 -d /tmp

The actual CLI logic is in xscreenshot.cli module.
"""

from xscreenshot.cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
