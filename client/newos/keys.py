"""Key event decoding for the NewOS line editor.

Turns the raw character stream of a terminal in cbreak mode into
discrete key events.  ANSI/VT100 cursor keys arrive as ``ESC [ A`` and
friends; the Windows console (msvcrt) prefixes them with ``\\xe0`` or
``\\x00`` instead.
"""

from collections import namedtuple
from typing import Callable


CHAR = "char"
ENTER = "enter"
BACKSPACE = "backspace"
UP = "up"
DOWN = "down"
OTHER = "other"
EOF = "eof"


class KeyEvent(namedtuple("KeyEvent", "key char")):
    """A single decoded key press.

    Attributes:
        key: One of CHAR, ENTER, BACKSPACE, UP, DOWN, OTHER, EOF.
        char: The character for CHAR events, otherwise "".
    """

    __slots__ = ()

    def __new__(cls, key, char=""):
        return super().__new__(cls, key, char)


ESC = "\x1b"

# What a stream opened with errors="replace" yields for bad input
UNDECODABLE = "\ufffd"

_CSI_KEYS = {
    "A": UP,
    "B": DOWN,
}

# Second byte after a Windows console prefix
_WIN_KEYS = {
    "H": UP,
    "P": DOWN,
}


def read_key(read_char: Callable[[], str],
             windows: bool = False) -> KeyEvent:
    """Read one key event, pulling characters from read_char.

    read_char must return one character per call, or "" at end of
    input.  With windows set, the msvcrt extended-key prefixes are
    decoded; elsewhere "\\xe0" is an ordinary character.
    """
    return _decode(read_char(), read_char, windows)


def _decode(ch, read_char, windows):
    if not ch or ch == "\x04":
        return KeyEvent(EOF)
    if ch in ("\r", "\n"):
        return KeyEvent(ENTER)
    if ch in ("\x7f", "\x08"):
        return KeyEvent(BACKSPACE)
    if ch == ESC:
        return _read_escape(read_char, windows)
    if windows and ch in ("\xe0", "\x00"):
        return KeyEvent(_WIN_KEYS.get(read_char(), OTHER))
    if ch == UNDECODABLE:
        return KeyEvent(OTHER)
    if ch.isprintable():
        return KeyEvent(CHAR, ch)
    return KeyEvent(OTHER)


def _read_escape(read_char, windows):
    """Decode the remainder of an escape sequence after ESC."""
    ch = read_char()
    if ch not in ("[", "O"):
        # Bare ESC is dropped; the key typed after it still counts
        return _decode(ch, read_char, windows)
    # CSI: parameter bytes, then one final byte in @..~
    while True:
        ch = read_char()
        if not ch:
            return KeyEvent(EOF)
        if "@" <= ch <= "~":
            return KeyEvent(_CSI_KEYS.get(ch, OTHER))
