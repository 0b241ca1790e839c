"""Shared fixtures and helpers for NewOS tests.

The shell is driven through a real Terminal whose stdin is a StringIO of
scripted keystrokes, so the full key-decode / line-edit / dispatch path
runs without a TTY.  Volume tests use a LocalVolume rooted in tmp_path.

Usage:
    pytest tests/ -v
"""

import datetime
import io
import os
import sys

import pytest

# Add the client library to the path so tests can import newos
_client_dir = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "client",
)
if _client_dir not in sys.path:
    sys.path.insert(0, _client_dir)

from newos import LocalVolume  # noqa: E402
from newos.shell import NewOSShell  # noqa: E402
from newos.terminal import Terminal  # noqa: E402


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------

class FakeMachine:
    """Records power calls and returns canned system information."""

    def __init__(self):
        self.calls = []

    def shutdown(self):
        self.calls.append("shutdown")

    def reboot(self):
        self.calls.append("reboot")

    def sysinfo(self):
        return {"cpu": "Test CPU 3000", "vendor": "TestVendor",
                "ram": 1073741824, "used_ram": 1048576}

    def collect(self):
        self.calls.append("collect")
        return 7


class FixedClock:
    """Always reports 2025-06-15 10:30:00 (June 2025 starts on a Sunday)."""

    def __init__(self, when=None):
        self.when = when or datetime.datetime(2025, 6, 15, 10, 30, 0)

    def now(self):
        return self.when


def make_terminal(keys=""):
    """Create a Terminal fed from a string of raw keystrokes."""
    return Terminal(stdin=io.StringIO(keys), stdout=io.StringIO())


def make_shell(volume, keys="", machine=None, clock=None):
    """Create a NewOSShell with scripted input and fake collaborators."""
    return NewOSShell(
        volume,
        terminal=make_terminal(keys),
        machine=machine if machine is not None else FakeMachine(),
        clock=clock if clock is not None else FixedClock(),
        color=False,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def volume(tmp_path):
    """A LocalVolume backed by an empty temporary directory."""
    return LocalVolume(str(tmp_path))
