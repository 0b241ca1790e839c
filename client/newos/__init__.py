"""newos -- a small interactive command shell over a virtual volume.

Provides LocalVolume, the storage engine that maps the NewOS volume
``0:\\`` onto a directory on the host, plus an exception hierarchy that
maps host filesystem errors to shell-level errors.

Usage::

    volume = LocalVolume("/home/me/.newos/disk0")
    volume.create_directory("0:\\notes")
    print(volume.listing("0:\\"))
"""

import errno
import logging
import os
import shutil
from stat import S_ISDIR, S_ISREG
from typing import Dict, List, Optional, Type


__all__ = [
    "LocalVolume",
    "NewOSError",
    "NotFoundError",
    "PermissionDeniedError",
    "AlreadyExistsError",
    "VolumeIOError",
    "ROOT_DIRECTORY",
    "NEWLINE",
]

logger = logging.getLogger(__name__)

ROOT_DIRECTORY = "0:\\"
NEWLINE = "\n"


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------

class NewOSError(Exception):
    """Base exception for volume failures.

    Attributes:
        code: Numeric error class (e.g. 200, 300).
        message: Human-readable description.
    """

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class NotFoundError(NewOSError):
    """Error 200 -- file, directory or volume not found."""

    def __init__(self, message: str) -> None:
        super().__init__(200, message)


class PermissionDeniedError(NewOSError):
    """Error 201 -- operation not permitted."""

    def __init__(self, message: str) -> None:
        super().__init__(201, message)


class AlreadyExistsError(NewOSError):
    """Error 202 -- target already exists."""

    def __init__(self, message: str) -> None:
        super().__init__(202, message)


class VolumeIOError(NewOSError):
    """Error 300 -- any other I/O failure on the volume."""

    def __init__(self, message: str) -> None:
        super().__init__(300, message)


# Map host errno values to exception classes.  Unknown errnos fall back
# to VolumeIOError.
_ERROR_MAP = {
    errno.ENOENT: NotFoundError,
    errno.EEXIST: AlreadyExistsError,
    errno.EACCES: PermissionDeniedError,
    errno.EPERM: PermissionDeniedError,
}  # type: Dict[int, Type[NewOSError]]

_DESCRIPTIONS = {
    NotFoundError: "Not found",
    AlreadyExistsError: "Already exists",
    PermissionDeniedError: "Permission denied",
}


def _within(root: str, path: str) -> bool:
    return os.path.commonpath([root, path]) == root


def _raise_for_oserror(exc: OSError, path: str) -> None:
    """Re-raise a host OSError as the matching NewOSError subclass.

    The message names the volume path, never the host path, so the
    backing directory stays invisible to the user.
    """
    exc_class = _ERROR_MAP.get(exc.errno, VolumeIOError)
    description = _DESCRIPTIONS.get(exc_class) or exc.strerror or str(exc)
    raise exc_class("{}: {}".format(description, path)) from exc


# ---------------------------------------------------------------------------
# Volume
# ---------------------------------------------------------------------------

class LocalVolume:
    """The ``0:`` volume, backed by a host directory.

    Paths are volume-qualified strings such as ``0:\\notes\\todo.txt``.
    Both ``\\`` and ``/`` are accepted as separators.  A path may not
    escape the backing directory.
    """

    def __init__(self, root_dir: str, label: str = "0:") -> None:
        self.root_dir = os.path.abspath(root_dir)
        self._real_root = os.path.realpath(self.root_dir)
        self.label = label

    def __repr__(self) -> str:
        return "LocalVolume({!r}, label={!r})".format(
            self.root_dir, self.label)

    # -- Internal helpers --------------------------------------------------

    def _host_path(self, path: str) -> str:
        """Translate a volume path to an absolute host path."""
        if path != self.label and not path.startswith(self.label + "\\") \
                and not path.startswith(self.label + "/"):
            raise NotFoundError("Volume not found: {}".format(path))
        relative = path[len(self.label):].replace("\\", "/").strip("/")
        host = os.path.normpath(os.path.join(self.root_dir, relative))
        parent = host if host == self.root_dir else os.path.dirname(host)
        # The final component may be a link; the directories above it
        # must resolve inside the volume
        if not _within(self.root_dir, host) or \
                not _within(self._real_root, os.path.realpath(parent)):
            raise PermissionDeniedError(
                "Path escapes volume root: {}".format(path))
        return host

    # -- Primitives --------------------------------------------------------

    def create_file(self, path: str) -> None:
        """Create an empty file.  Fails if it already exists."""
        host = self._host_path(path)
        logger.debug("create_file %s -> %s", path, host)
        try:
            with open(host, "x"):
                pass
        except OSError as e:
            _raise_for_oserror(e, path)

    def create_directory(self, path: str) -> None:
        """Create a directory.  The parent must already exist."""
        host = self._host_path(path)
        logger.debug("create_directory %s -> %s", path, host)
        try:
            os.mkdir(host)
        except OSError as e:
            _raise_for_oserror(e, path)

    def delete_file(self, path: str) -> None:
        host = self._host_path(path)
        logger.debug("delete_file %s -> %s", path, host)
        if os.path.isdir(host):
            raise VolumeIOError("Is a directory: {}".format(path))
        try:
            os.remove(host)
        except OSError as e:
            _raise_for_oserror(e, path)

    def delete_directory(self, path: str, recursive: bool = False) -> None:
        """Delete a directory, with its contents when recursive is set."""
        host = self._host_path(path)
        logger.debug("delete_directory %s -> %s (recursive=%s)",
                     path, host, recursive)
        if host == self.root_dir:
            raise PermissionDeniedError(
                "Cannot delete volume root: {}".format(path))
        if not os.path.isdir(host):
            if os.path.exists(host):
                raise VolumeIOError("Not a directory: {}".format(path))
            raise NotFoundError("Not found: {}".format(path))
        try:
            if recursive:
                shutil.rmtree(host)
            else:
                os.rmdir(host)
        except OSError as e:
            _raise_for_oserror(e, path)

    def listing(self, path: str) -> List[str]:
        """Return the entry names of a directory, sorted."""
        host = self._host_path(path)
        logger.debug("listing %s -> %s", path, host)
        try:
            return sorted(os.listdir(host))
        except OSError as e:
            _raise_for_oserror(e, path)

    def stat(self, path: str) -> dict:
        """Return metadata for a path.

        Returns a dict with keys: type ("FILE", "DIR" or "OTHER"),
        name (str) and size (int).
        """
        host = self._host_path(path)
        try:
            st = os.lstat(host)
        except OSError as e:
            _raise_for_oserror(e, path)
        if S_ISDIR(st.st_mode):
            entry_type = "DIR"
        elif S_ISREG(st.st_mode):
            entry_type = "FILE"
        else:
            # Symlinks, devices, fifos
            entry_type = "OTHER"
        return {
            "type": entry_type,
            "name": os.path.basename(host),
            "size": st.st_size,
        }

    def read_text(self, path: str) -> str:
        host = self._host_path(path)
        logger.debug("read_text %s -> %s", path, host)
        try:
            with open(host, "r", encoding="utf-8",
                      errors="replace", newline="") as f:
                return f.read()
        except OSError as e:
            _raise_for_oserror(e, path)

    def read_bytes(self, path: str) -> bytes:
        host = self._host_path(path)
        logger.debug("read_bytes %s -> %s", path, host)
        try:
            with open(host, "rb") as f:
                return f.read()
        except OSError as e:
            _raise_for_oserror(e, path)

    def append_text(self, path: str, text: str) -> None:
        """Append text to an existing file.  Missing files are not created."""
        host = self._host_path(path)
        logger.debug("append_text %s -> %s (%d chars)",
                     path, host, len(text))
        if not os.path.exists(host):
            raise NotFoundError("Not found: {}".format(path))
        try:
            with open(host, "a", encoding="utf-8", newline="") as f:
                f.write(text)
        except OSError as e:
            _raise_for_oserror(e, path)

    def read_lines(self, path: str) -> List[str]:
        """Return the lines of a text file without line terminators."""
        return self.read_text(path).splitlines()

    def write_lines(self, path: str, lines: List[str]) -> None:
        """Replace a file's contents with lines joined by NEWLINE."""
        host = self._host_path(path)
        logger.debug("write_lines %s -> %s (%d lines)",
                     path, host, len(lines))
        try:
            with open(host, "w", encoding="utf-8", newline="") as f:
                f.write(NEWLINE.join(lines))
        except OSError as e:
            _raise_for_oserror(e, path)

    # -- Queries -----------------------------------------------------------

    def free_space(self, path: str) -> int:
        """Return the free bytes available to the volume."""
        host = self._host_path(path)
        try:
            return shutil.disk_usage(host).free
        except OSError as e:
            _raise_for_oserror(e, path)

    def filesystem_type(self, path: str) -> str:
        """Return the host filesystem type backing the volume.

        Reads the mount table and picks the longest mount point that
        contains the root.  Returns "unknown" where no mount table
        exists.
        """
        host = self._host_path(path)
        return _mount_fstype(host) or "unknown"


def _mount_fstype(host_path, mounts_file="/proc/mounts"):
    # type: (str, str) -> Optional[str]
    """Find the filesystem type for host_path in a mounts(5) table."""
    try:
        with open(mounts_file, "r") as f:
            lines = f.readlines()
    except OSError:
        return None

    best = None
    best_len = -1
    for line in lines:
        parts = line.split()
        if len(parts) < 3:
            continue
        # Mount points escape spaces as \040
        mount_point = parts[1].replace("\\040", " ")
        if host_path == mount_point or host_path.startswith(
                mount_point.rstrip("/") + "/"):
            if len(mount_point) > best_len:
                best = parts[2]
                best_len = len(mount_point)
    return best
