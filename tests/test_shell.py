"""Unit tests for the NewOS command dispatcher and its helpers.

Shell commands run against either a mocked volume (to check exact
collaborator calls) or a real LocalVolume in tmp_path.  Prompted
parameters are fed through the scripted terminal.
"""

import datetime
import io
import math
import os
from unittest import mock

import pytest

from newos import NotFoundError, VolumeIOError
from newos.shell import (
    CALENDAR_HEADER, COMMANDS, NewOSShell, format_hexdump, format_size,
    render_calendar,
)
from newos.terminal import Terminal
from conftest import FakeMachine, FixedClock, make_shell


def _mock_volume():
    return mock.MagicMock()


def _output(shell):
    return shell.terminal.stdout.getvalue()


# ---------------------------------------------------------------------------
# format_size()
# ---------------------------------------------------------------------------

class TestFormatSize:
    """Tests for the human-readable byte-count formatter."""

    def test_zero(self):
        assert format_size(0) == "0"

    def test_just_under_1k(self):
        assert format_size(1023) == "1023"

    def test_exactly_1k(self):
        assert format_size(1024) == "1K"

    def test_fractional_kilobytes(self):
        assert format_size(1536) == "1.5K"

    def test_exactly_1g(self):
        assert format_size(1073741824) == "1G"


# ---------------------------------------------------------------------------
# format_hexdump()
# ---------------------------------------------------------------------------

class TestFormatHexdump:

    def test_empty(self):
        assert format_hexdump(b"") == []

    def test_single_row(self):
        (line,) = format_hexdump(b"Hi\n")
        assert line.startswith("00000000  48 69 0a")
        assert line.endswith("|Hi.|")

    def test_row_wrap(self):
        lines = format_hexdump(bytes(range(20)))
        assert len(lines) == 2
        assert lines[1].startswith("00000010  10 11 12 13")


# ---------------------------------------------------------------------------
# render_calendar()
# ---------------------------------------------------------------------------

class TestRenderCalendar:
    """Tests for the Monday-first month grid."""

    def test_month_starting_monday(self):
        # February 2021: starts Monday, 28 days -> exactly 4 rows
        lines = render_calendar(2021, 2)
        assert len(lines) == 4
        assert lines[0] == "1  2  3  4  5  6  7"
        assert lines[1] == "8  9  10 11 12 13 14"
        assert lines[3] == "22 23 24 25 26 27 28"

    def test_thirty_day_month_starting_sunday(self):
        # June 2025: starts Sunday (offset 6), 30 days
        lines = render_calendar(2025, 6)
        assert len(lines) == math.ceil((6 + 30) / 7)
        assert lines[0] == " " * 18 + "1"
        assert lines[-1] == "30"

    def test_thirty_day_month_starting_monday(self):
        # September 2025: starts Monday, 30 days
        lines = render_calendar(2025, 9)
        assert len(lines) == math.ceil((0 + 30) / 7)
        assert lines[-1] == "29 30"

    def test_leap_february(self):
        lines = render_calendar(2024, 2)
        assert lines[-1].split()[-1] == "29"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestDispatch:
    """Tests for exact keyword lookup and unknown commands."""

    def test_unknown_command(self):
        shell = make_shell(_mock_volume())
        shell.onecmd("format")
        out = _output(shell)
        assert "format" in out
        assert "Unknown Command" in out
        assert shell.session.get() == "0:\\"

    @pytest.mark.parametrize("line", ["LS", "ls ", " ls", "ls -l", "cd x"])
    def test_match_is_exact(self, line):
        volume = _mock_volume()
        shell = make_shell(volume)
        shell.onecmd(line)
        out = _output(shell)
        assert "{}: Unknown Command".format(line) in out
        volume.listing.assert_not_called()
        assert shell.session.get() == "0:\\"

    def test_empty_line_is_unknown(self):
        shell = make_shell(_mock_volume())
        shell.onecmd("")
        assert ": Unknown Command" in _output(shell)

    def test_every_keyword_has_handler(self):
        shell = make_shell(_mock_volume())
        for name in COMMANDS:
            assert callable(getattr(shell, "do_" + name))

    def test_help_lists_all_commands(self):
        shell = make_shell(_mock_volume())
        shell.onecmd("help")
        out = _output(shell)
        for name in COMMANDS:
            assert "{} - ".format(name) in out
        assert "Help" in out


# ---------------------------------------------------------------------------
# Current-directory commands
# ---------------------------------------------------------------------------

class TestDirectoryCommands:

    def test_mkdir_composes_path(self):
        volume = _mock_volume()
        shell = make_shell(volume, "notes\n")
        shell.onecmd("mkdir")
        volume.create_directory.assert_called_once_with("0:\\notes")
        out = _output(shell)
        assert "being created" in out
        assert "Completed" in out

    def test_del_not_found(self):
        volume = _mock_volume()
        volume.delete_file.side_effect = NotFoundError(
            "File not found: 0:\\missing.txt")
        shell = make_shell(volume, "missing.txt\n")
        shell.onecmd("del")
        out = _output(shell)
        assert "being deleted" in out
        assert "File not found: 0:\\missing.txt" in out
        assert "Completed" not in out

    def test_deldir_is_recursive(self):
        volume = _mock_volume()
        shell = make_shell(volume, "old\n")
        shell.onecmd("deldir")
        volume.delete_directory.assert_called_once_with(
            "0:\\old", recursive=True)

    def test_makefile_uses_current_directory(self):
        volume = _mock_volume()
        shell = make_shell(volume, "0:\\docs\\\nreadme.txt\n")
        shell.onecmd("cd")
        shell.onecmd("makefile")
        volume.create_file.assert_called_once_with("0:\\docs\\readme.txt")

    def test_cd_stores_verbatim(self):
        shell = make_shell(_mock_volume(), "no such place\n")
        shell.onecmd("cd")
        assert shell.session.get() == "no such place"

    def test_parameter_reads_go_to_history(self):
        shell = make_shell(_mock_volume(), "notes\n")
        shell.onecmd("mkdir")
        assert shell.history.entries() == ["notes"]

    def test_ls_real_volume(self, volume, tmp_path):
        (tmp_path / "a.txt").write_text("x")
        (tmp_path / "docs").mkdir()
        shell = make_shell(volume)
        shell.onecmd("ls")
        out = _output(shell)
        assert "| <FILE>       a.txt" in out
        assert "| <DIR>      docs" in out

    def test_ls_skips_other_entries(self, volume, tmp_path):
        (tmp_path / "a.txt").write_text("x")
        try:
            os.symlink(str(tmp_path / "a.txt"), str(tmp_path / "link"))
        except (OSError, NotImplementedError):
            pytest.skip("symlinks unavailable")
        shell = make_shell(volume)
        shell.onecmd("ls")
        out = _output(shell)
        assert "link" not in out
        assert "a.txt" in out

    def test_ls_entry_error_does_not_abort(self):
        volume = _mock_volume()
        volume.listing.return_value = ["bad", "good.txt"]
        volume.stat.side_effect = [
            VolumeIOError("I/O error: 0:\\bad"),
            {"type": "FILE", "name": "good.txt", "size": 1},
        ]
        shell = make_shell(volume)
        shell.onecmd("ls")
        out = _output(shell)
        assert "Error: bad: I/O error" in out
        assert "| <FILE>       good.txt" in out

    def test_ls_listing_failure(self):
        volume = _mock_volume()
        volume.listing.side_effect = NotFoundError("Not found: 0:\\gone\\")
        shell = make_shell(volume, "0:\\gone\\\n")
        shell.onecmd("cd")
        shell.onecmd("ls")
        out = _output(shell)
        assert "Error: Not found: 0:\\gone\\" in out
        volume.stat.assert_not_called()


# ---------------------------------------------------------------------------
# Volume-root commands
# ---------------------------------------------------------------------------

class TestRootCommands:

    def test_read_ignores_current_directory(self):
        volume = _mock_volume()
        volume.read_text.return_value = "hello"
        shell = make_shell(volume, "0:\\sub\\\nnote.txt\n")
        shell.onecmd("cd")
        shell.onecmd("read")
        volume.read_text.assert_called_once_with("0:\\note.txt")
        assert "hello" in _output(shell)

    def test_read_missing(self, volume):
        shell = make_shell(volume, "nope.txt\n")
        shell.onecmd("read")
        out = _output(shell)
        assert "Error: Not found: 0:\\nope.txt" in out
        assert "Completed" not in out

    def test_readbytes(self, volume, tmp_path):
        (tmp_path / "b.bin").write_bytes(b"Hi")
        shell = make_shell(volume, "b.bin\n")
        shell.onecmd("readbytes")
        out = _output(shell)
        assert "48 69" in out
        assert "2 bytes" in out

    def test_write_appends_line(self, volume, tmp_path):
        (tmp_path / "log.txt").write_text("first")
        shell = make_shell(volume, "log.txt\nsecond\n")
        shell.onecmd("write")
        assert (tmp_path / "log.txt").read_text() == "first\nsecond"
        assert "Completed" in _output(shell)

    def test_write_missing_file_not_created(self, volume, tmp_path):
        shell = make_shell(volume, "new.txt\ntext\n")
        shell.onecmd("write")
        assert not (tmp_path / "new.txt").exists()
        assert "Error:" in _output(shell)

    def test_dellastl(self, volume, tmp_path):
        (tmp_path / "list.txt").write_text("one\ntwo\nthree")
        shell = make_shell(volume, "list.txt\n")
        shell.onecmd("dellastl")
        assert (tmp_path / "list.txt").read_text() == "one\ntwo"
        out = _output(shell)
        assert "Removed: three" in out
        assert "Completed" in out

    def test_dellastl_empty_file(self):
        volume = _mock_volume()
        volume.read_lines.return_value = []
        shell = make_shell(volume, "empty.txt\n")
        shell.onecmd("dellastl")
        volume.write_lines.assert_not_called()
        out = _output(shell)
        assert "nothing to delete" in out
        assert "Completed" not in out

    def test_space(self):
        volume = _mock_volume()
        volume.free_space.return_value = 2048
        shell = make_shell(volume)
        shell.onecmd("space")
        volume.free_space.assert_called_once_with("0:\\")
        assert "Available Space: 2048 (2K)" in _output(shell)

    def test_fs(self):
        volume = _mock_volume()
        volume.filesystem_type.return_value = "ext4"
        shell = make_shell(volume)
        shell.onecmd("fs")
        assert "File System Type: ext4" in _output(shell)


# ---------------------------------------------------------------------------
# Machine and clock commands
# ---------------------------------------------------------------------------

class TestMachineCommands:

    def test_shutdown_ends_session(self):
        machine = FakeMachine()
        shell = make_shell(_mock_volume(), machine=machine)
        assert shell.onecmd("shutdown") is True
        assert machine.calls == ["shutdown"]
        assert shell.rebooting is False

    def test_reboot_ends_session(self):
        machine = FakeMachine()
        shell = make_shell(_mock_volume(), machine=machine)
        assert shell.onecmd("reboot") is True
        assert machine.calls == ["reboot"]
        assert shell.rebooting is True

    def test_sysinfo(self):
        shell = make_shell(_mock_volume())
        shell.onecmd("sysinfo")
        out = _output(shell)
        assert "CPU: Test CPU 3000" in out
        assert "CPU Vendor: TestVendor" in out
        assert "Amount of RAM: 1G" in out
        assert "Used RAM: 1M" in out

    def test_sysinfo_failure(self):
        machine = FakeMachine()
        machine.sysinfo = mock.Mock(side_effect=OSError("no /proc"))
        shell = make_shell(_mock_volume(), machine=machine)
        shell.onecmd("sysinfo")
        assert "Error: no /proc" in _output(shell)

    def test_clearram(self):
        machine = FakeMachine()
        shell = make_shell(_mock_volume(), machine=machine)
        shell.onecmd("clearram")
        assert machine.calls == ["collect"]
        out = _output(shell)
        assert "Freed 7 objects" in out
        assert "Used RAM: 1M" in out
        assert "Completed" in out

    def test_clearram_sysinfo_failure(self):
        machine = FakeMachine()
        machine.sysinfo = mock.Mock(side_effect=OSError("no /proc"))
        shell = make_shell(_mock_volume(), machine=machine)
        shell.onecmd("clearram")
        out = _output(shell)
        assert "Freed 7 objects" in out
        assert "Error: no /proc" in out
        assert "Completed" not in out

    def test_datetime(self):
        shell = make_shell(_mock_volume())
        shell.onecmd("datetime")
        assert "2025-06-15 10:30:00" in _output(shell)

    def test_clear_redraws_header(self):
        shell = make_shell(_mock_volume())
        shell.onecmd("clear")
        out = _output(shell)
        assert out.startswith("\033[2J\033[HNewOS")
        assert "2025-06-15 10:30:00" in out

    def test_calendar(self):
        shell = make_shell(_mock_volume())
        shell.onecmd("calendar")
        lines = _output(shell).splitlines()
        assert lines[0] == "June 2025"
        assert lines[1] == CALENDAR_HEADER == "M T W T F S S"
        assert len(lines[2:]) == math.ceil((6 + 30) / 7)

    def test_calendar_other_month(self):
        clock = FixedClock(datetime.datetime(2021, 2, 3))
        shell = make_shell(_mock_volume(), clock=clock)
        shell.onecmd("calendar")
        lines = _output(shell).splitlines()
        assert len(lines[2:]) == 4


# ---------------------------------------------------------------------------
# Full loop
# ---------------------------------------------------------------------------

class TestCmdloop:
    """Tests that drive the shell through its prompt loop."""

    def test_cd_scenario(self, volume):
        shell = make_shell(volume, "ls\ncd\n0:\\notes\n")
        shell.cmdloop()
        assert shell.session.get() == "0:\\notes"
        assert shell.history.older() == "0:\\notes"
        assert shell.history.older() == "cd"
        assert shell.history.older() == "ls"
        assert "Session ended." in _output(shell)

    def test_unknown_then_mkdir(self, volume, tmp_path):
        shell = make_shell(volume, "bogus\nmkdir\nnotes\n")
        shell.cmdloop()
        out = _output(shell)
        assert "bogus: Unknown Command" in out
        assert (tmp_path / "notes").is_dir()
        assert shell.history.entries() == ["bogus", "mkdir", "notes"]

    def test_failure_does_not_end_loop(self, volume):
        shell = make_shell(volume, "del\nmissing.txt\ndatetime\n")
        shell.cmdloop()
        out = _output(shell)
        assert "Error: Not found" in out
        assert "2025-06-15 10:30:00" in out

    def test_shutdown_stops_loop(self, volume):
        machine = FakeMachine()
        shell = make_shell(volume, "shutdown\nls\n", machine=machine)
        shell.cmdloop()
        assert machine.calls == ["shutdown"]
        assert shell.history.entries() == ["shutdown"]

    def test_recall_and_resubmit(self, volume):
        shell = make_shell(volume, "datetime\n\x1b[A\n")
        shell.cmdloop()
        out = _output(shell)
        assert out.count("2025-06-15 10:30:00") == 3
        assert shell.history.entries() == ["datetime", "datetime"]

    def test_eof_in_nested_prompt_ends_loop(self, volume):
        shell = make_shell(volume, "mkdir\n")
        shell.cmdloop()
        assert "Session ended." in _output(shell)

    def test_crlf_input_adds_no_empty_line(self, volume):
        shell = make_shell(volume, "datetime\r\n")
        shell.cmdloop()
        assert shell.history.entries() == ["datetime"]
        assert "Unknown Command" not in _output(shell)

    def test_undecodable_input_keeps_loop_alive(self, volume):
        stdin = io.TextIOWrapper(io.BytesIO(b"ab\xff\ndatetime\n"),
                                 encoding="utf-8")
        terminal = Terminal(stdin=stdin, stdout=io.StringIO())
        shell = NewOSShell(volume, terminal=terminal, machine=FakeMachine(),
                           clock=FixedClock(), color=False)
        shell.cmdloop()
        out = _output(shell)
        assert "ab: Unknown Command" in out
        assert out.count("2025-06-15 10:30:00") == 2
        assert shell.history.entries() == ["ab", "datetime"]

    def test_all_output_goes_through_terminal(self, volume, capsys):
        shell = make_shell(volume, "help\nls\n")
        shell.cmdloop()
        assert capsys.readouterr().out == ""
        out = _output(shell)
        assert "Welcome to NewOS!" in out
        assert "help - " in out
        assert "Session ended." in out
