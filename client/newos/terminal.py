"""Terminal adapter: raw key input and line-oriented output primitives."""

import contextlib
import shutil
import sys

from .keys import KeyEvent, read_key

# platform keypress utilities
try:
    import msvcrt  # Windows-only
except ImportError:
    msvcrt = None

try:
    import termios
    import tty
except ImportError:
    termios = None
    tty = None


class Terminal:
    """Read key events from stdin and write text to stdout.

    In raw mode (see raw_mode()) stdin delivers one character per key
    press with no local echo; all echoing is done by the line editor.
    When stdin is not a TTY (piped input, tests) characters are simply
    read one at a time.
    """

    def __init__(self, stdin=None, stdout=None):
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        # Undecodable bytes arrive as U+FFFD, which read_key ignores
        if hasattr(self.stdin, "reconfigure"):
            self.stdin.reconfigure(errors="replace")
        self._after_cr = False

    # -- Input -------------------------------------------------------------

    def _console(self):
        return msvcrt is not None and self.stdin is sys.stdin \
            and self.stdin.isatty()

    def _read_char(self):
        if self._console():
            return msvcrt.getwch()
        ch = self.stdin.read(1)
        # Piped CRLF is one line end
        if ch == "\n" and self._after_cr:
            ch = self.stdin.read(1)
        self._after_cr = ch == "\r" and not self.stdin.isatty()
        return ch

    def read_key(self) -> KeyEvent:
        """Block until the next key press and return it."""
        return read_key(self._read_char, windows=self._console())

    @contextlib.contextmanager
    def raw_mode(self):
        """Put a TTY stdin into cbreak mode for the duration of the block.

        Ctrl-C still raises KeyboardInterrupt (cbreak keeps ISIG).  The
        previous terminal settings are always restored.
        """
        if termios is None or not self.stdin.isatty():
            yield
            return
        fd = self.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            tty.setcbreak(fd)
            yield
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)

    # -- Output ------------------------------------------------------------

    def write(self, text: str) -> None:
        self.stdout.write(text)
        self.stdout.flush()

    def width(self) -> int:
        return shutil.get_terminal_size((80, 24)).columns

    def clear_line(self) -> None:
        """Blank the current line and return the cursor to column 0."""
        self.write("\r" + " " * (self.width() - 1) + "\r")

    def move_to_column(self, column: int) -> None:
        if column > 0:
            self.write("\r\033[{}C".format(column))
        else:
            self.write("\r")

    def clear_screen(self) -> None:
        self.write("\033[2J\033[H")
