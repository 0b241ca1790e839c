"""Session state and the volume command layer.

FileCommands composes the session's current directory (or the volume
root) with a user-supplied name and calls into the volume.  Every
operation returns a ``(value, error)`` tuple: error is None on success
and otherwise a printable description.  Volume exceptions never escape.
"""

import logging
from typing import List, Optional, Tuple

from . import NEWLINE, ROOT_DIRECTORY, NewOSError

logger = logging.getLogger(__name__)


class Session:
    """REPL-lifetime state: the current directory and the volume."""

    def __init__(self, volume, current_directory=ROOT_DIRECTORY):
        self.volume = volume
        self._current_directory = current_directory

    def get(self) -> str:
        return self._current_directory

    def set(self, path: str) -> None:
        """Change directory.  The path is stored verbatim, unvalidated."""
        logger.debug("cd %r -> %r", self._current_directory, path)
        self._current_directory = path

    current_directory = property(get, set)


class FileCommands:
    """Volume operations on behalf of shell handlers."""

    def __init__(self, session):
        self.session = session

    @property
    def volume(self):
        return self.session.volume

    # -- Path composition --------------------------------------------------

    def relative(self, name: str) -> str:
        """Path of name inside the current directory."""
        return self.session.get() + name

    @staticmethod
    def rooted(name: str) -> str:
        """Path of name at the volume root."""
        return ROOT_DIRECTORY + name

    # -- Error handling wrapper --------------------------------------------

    def _run(self, func, *args, **kwargs):
        """Call a volume primitive, turning NewOSError into an error value."""
        try:
            return func(*args, **kwargs), None
        except NewOSError as e:
            logger.debug("volume call failed: %s", e)
            return None, e.message

    # -- Current-directory operations --------------------------------------

    def create_file(self, name: str) -> Tuple[None, Optional[str]]:
        return self._run(self.volume.create_file, self.relative(name))

    def create_directory(self, name: str) -> Tuple[None, Optional[str]]:
        return self._run(self.volume.create_directory, self.relative(name))

    def delete_file(self, name: str) -> Tuple[None, Optional[str]]:
        return self._run(self.volume.delete_file, self.relative(name))

    def delete_directory(self, name: str) -> Tuple[None, Optional[str]]:
        return self._run(self.volume.delete_directory,
                         self.relative(name), recursive=True)

    def list_directory(self):
        # type: () -> Tuple[Optional[List[tuple]], Optional[str]]
        """List the current directory.

        Returns (entries, error).  Each entry is (kind, name, error)
        where kind is "FILE" or "DIR".  Entries of any other kind are
        skipped.  An entry that cannot be classified has kind None and
        carries its own error; the rest of the listing still follows.
        """
        directory = self.session.get()
        names, error = self._run(self.volume.listing, directory)
        if error is not None:
            return None, error
        entries = []
        for name in names:
            info, entry_error = self._run(
                self.volume.stat, _join(directory, name))
            if entry_error is not None:
                entries.append((None, name, entry_error))
                continue
            if info["type"] in ("FILE", "DIR"):
                entries.append((info["type"], name, None))
        return entries, None

    # -- Volume-root operations --------------------------------------------

    def read_text(self, name: str) -> Tuple[Optional[str], Optional[str]]:
        return self._run(self.volume.read_text, self.rooted(name))

    def read_bytes(self, name: str) -> Tuple[Optional[bytes], Optional[str]]:
        return self._run(self.volume.read_bytes, self.rooted(name))

    def append_text(self, name: str, text: str) -> Tuple[None, Optional[str]]:
        return self._run(self.volume.append_text, self.rooted(name),
                         NEWLINE + text)

    def delete_last_line(self, name: str):
        # type: (str) -> Tuple[Optional[str], Optional[str]]
        """Drop the final line of a file.

        Returns (removed_line, error).  A file with no lines yields
        (None, None) and is not rewritten.
        """
        path = self.rooted(name)
        lines, error = self._run(self.volume.read_lines, path)
        if error is not None:
            return None, error
        if not lines:
            return None, None
        _result, error = self._run(self.volume.write_lines, path, lines[:-1])
        if error is not None:
            return None, error
        return lines[-1], None

    # -- Queries -----------------------------------------------------------

    def free_space(self) -> Tuple[Optional[int], Optional[str]]:
        return self._run(self.volume.free_space, ROOT_DIRECTORY)

    def filesystem_type(self) -> Tuple[Optional[str], Optional[str]]:
        return self._run(self.volume.filesystem_type, ROOT_DIRECTORY)


def _join(directory, name):
    """Join a directory path and an entry name with a backslash."""
    if directory.endswith("\\") or directory.endswith("/"):
        return directory + name
    return directory + "\\" + name
