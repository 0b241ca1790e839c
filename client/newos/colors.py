"""ANSI terminal color support for NewOS shell output."""

import os
import sys


def _supports_color(stream=None):
    """Detect whether the terminal supports ANSI color."""
    stream = stream if stream is not None else sys.stdout
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("NEWOS_COLOR", "").lower() == "never":
        return False
    if os.environ.get("NEWOS_COLOR", "").lower() == "always":
        return True
    if not hasattr(stream, "isatty"):
        return False
    if not stream.isatty():
        return False
    # Windows-specific VT processing check
    if sys.platform == "win32":
        # Windows Terminal natively supports ANSI
        if os.environ.get("WT_SESSION"):
            return True
        try:
            import ctypes
            kernel32 = ctypes.windll.kernel32
            handle = kernel32.GetStdHandle(-11)  # STD_OUTPUT_HANDLE
            mode = ctypes.c_ulong()
            kernel32.GetConsoleMode(handle, ctypes.byref(mode))
            # ENABLE_VIRTUAL_TERMINAL_PROCESSING = 0x0004
            if mode.value & 0x0004:
                return True
            kernel32.SetConsoleMode(handle, mode.value | 0x0004)
            return True
        except Exception:
            return False
    return True


# ANSI escape sequences
RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
GREEN = "\033[32m"
BLUE = "\033[34m"
MAGENTA = "\033[35m"
CYAN = "\033[36m"
WHITE_ON_BLUE = "\033[37;44m"


class ColorWriter:
    """Colorize text, falling back to plain text if unsupported.

    Usage:
        cw = ColorWriter()
        cw.error("Something failed")     # red
        cw.success("[ Completed ]")      # green
        cw.file("notes.txt")             # magenta
        cw.directory("docs")             # blue
        cw.key("CPU")                    # cyan
        cw.header("NewOS")               # white on blue
    """

    def __init__(self, force_color=None, stream=None):
        if force_color is not None:
            self.enabled = force_color
        else:
            self.enabled = _supports_color(stream)

    def _wrap(self, code, text):
        if self.enabled:
            return "{}{}{}".format(code, text, RESET)
        return text

    def error(self, text):
        return self._wrap(RED, text)

    def success(self, text):
        return self._wrap(GREEN, text)

    def file(self, text):
        return self._wrap(MAGENTA, text)

    def directory(self, text):
        return self._wrap(BLUE, text)

    def key(self, text):
        return self._wrap(CYAN, text)

    def bold(self, text):
        return self._wrap(BOLD, text)

    def dim(self, text):
        return self._wrap(DIM, text)

    def header(self, text):
        return self._wrap(WHITE_ON_BLUE, text)
