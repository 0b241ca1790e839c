"""Line editing with command history recall."""

import logging
from collections import namedtuple
from typing import List, Optional

from .keys import BACKSPACE, CHAR, DOWN, ENTER, EOF, UP

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

class History:
    """Append-only log of submitted lines with a recall cursor.

    The cursor counts back from the most recent entry: 0 is the newest
    line, 1 the one before it, and so on.  None means "no recall".
    """

    def __init__(self):
        self._entries = []  # type: List[str]
        self._cursor = None  # type: Optional[int]

    def __len__(self):
        return len(self._entries)

    @property
    def cursor(self):
        return self._cursor

    def entries(self):
        """Return a copy of the log, oldest first."""
        return list(self._entries)

    def append(self, line: str) -> None:
        """Record a submitted line and reset recall."""
        self._entries.append(line)
        self._cursor = None

    def _entry(self, index):
        return self._entries[len(self._entries) - 1 - index]

    def older(self) -> Optional[str]:
        """Step one entry back in time and return it.

        At the oldest entry the cursor stays put and that entry is
        returned again.  Returns None only when the log is empty.
        """
        if not self._entries:
            return None
        if self._cursor is None:
            self._cursor = 0
        elif self._cursor + 1 < len(self._entries):
            self._cursor += 1
        return self._entry(self._cursor)

    def newer(self) -> Optional[str]:
        """Step one entry toward the present and return it.

        Returns None when there is nothing newer; recall is then reset
        and the caller should clear its input.
        """
        if self._cursor is None:
            return None
        if self._cursor == 0:
            self._cursor = None
            return None
        self._cursor -= 1
        return self._entry(self._cursor)


# ---------------------------------------------------------------------------
# Line editor
# ---------------------------------------------------------------------------

EditorAction = namedtuple("EditorAction", "submitted line")

CONTINUE = EditorAction(False, None)


class LineEditor:
    """Assemble key events into a line, echoing through a Terminal.

    Only end-of-line editing is supported: characters are inserted at
    the cursor and Backspace removes the one before it.  Up and Down
    recall lines from the shared History.
    """

    def __init__(self, terminal, history):
        self.terminal = terminal
        self.history = history
        self.prompt = ""
        self._buffer = []  # type: List[str]
        self._cursor = 0

    @property
    def buffer(self) -> str:
        return "".join(self._buffer)

    @property
    def cursor(self) -> int:
        return self._cursor

    def reset(self, prompt: str = "") -> None:
        self.prompt = prompt
        self._buffer = []
        self._cursor = 0

    def _replace(self, text):
        self._buffer = list(text)
        self._cursor = len(self._buffer)
        self._redraw()

    def _redraw(self):
        self.terminal.clear_line()
        self.terminal.write(self.prompt + self.buffer)
        self.terminal.move_to_column(len(self.prompt) + self._cursor)

    def handle_key(self, event) -> EditorAction:
        """Apply one key event.  Returns CONTINUE or a submitted action."""
        if event.key == CHAR:
            self._buffer.insert(self._cursor, event.char)
            self._cursor += 1
            self.terminal.write(event.char)
        elif event.key == BACKSPACE:
            if self._cursor > 0:
                self._cursor -= 1
                del self._buffer[self._cursor]
                self.terminal.write("\b \b")
        elif event.key == ENTER:
            line = self.buffer
            self.terminal.write("\n")
            self._buffer = []
            self._cursor = 0
            return EditorAction(True, line)
        elif event.key == UP:
            line = self.history.older()
            if line is not None:
                self._replace(line)
        elif event.key == DOWN:
            line = self.history.newer()
            self._replace(line if line is not None else "")
        return CONTINUE

    def readline(self, prompt: str = "") -> str:
        """Read one complete line and record it in history.

        End of input on a non-empty line submits it; on an empty line
        it raises EOFError.
        """
        self.reset(prompt)
        self.terminal.write(prompt)
        while True:
            event = self.terminal.read_key()
            if event.key == EOF:
                if not self._buffer:
                    self.terminal.write("\n")
                    raise EOFError
                event = event._replace(key=ENTER)
            action = self.handle_key(event)
            if action.submitted:
                logger.debug("submitted %r", action.line)
                self.history.append(action.line)
                return action.line
