"""Interactive shell for NewOS."""

import calendar
import cmd
import logging

from .colors import ColorWriter
from .editor import History, LineEditor
from .filesystem import FileCommands, Session
from .machine import Clock, HostMachine
from .terminal import Terminal

logger = logging.getLogger(__name__)


# Keywords recognized at the top-level prompt.  Matching is exact.
COMMANDS = (
    "help", "shutdown", "reboot", "sysinfo", "clear", "makefile", "mkdir",
    "del", "deldir", "ls", "cd", "space", "fs", "datetime", "read",
    "readbytes", "write", "dellastl", "clearram", "calendar",
)

CALENDAR_HEADER = "M T W T F S S"


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------

def format_size(nbytes):
    """Format a byte count as a human-readable string.

    Returns the value with a suffix: B, K, M, G, T.
    Values under 1024 are shown as plain integers.
    """
    if nbytes < 1024:
        return str(nbytes)
    for unit in ("K", "M", "G", "T"):
        nbytes = nbytes / 1024.0
        if nbytes < 999.95 or unit == "T":
            if nbytes == int(nbytes):
                return "{:.0f}{}".format(int(nbytes), unit)
            return "{:.1f}{}".format(nbytes, unit)
    return str(nbytes)


def format_hexdump(data, width=16):
    """Render bytes as offset / hex / printable-ASCII rows."""
    lines = []
    for offset in range(0, len(data), width):
        chunk = data[offset:offset + width]
        hex_part = " ".join("{:02x}".format(b) for b in chunk)
        text = "".join(chr(b) if 32 <= b < 127 else "." for b in chunk)
        lines.append("{:08x}  {:<{hw}}  |{}|".format(
            offset, hex_part, text, hw=width * 3 - 1))
    return lines


def render_calendar(year, month):
    """Lay out one month as rows of a Monday-first 7-column grid.

    Leading cells before the 1st are blank.  Each day is its number
    padded to two characters, followed by a space.  Returns one string
    per grid row, so there are ceil((offset + days) / 7) rows.
    """
    offset, days = calendar.monthrange(year, month)
    lines = []
    cells = ["   "] * offset
    for day in range(1, days + 1):
        cells.append("{:<2} ".format(day))
        if len(cells) == 7 or day == days:
            lines.append("".join(cells).rstrip())
            cells = []
    return lines


# ---------------------------------------------------------------------------
# Interactive shell
# ---------------------------------------------------------------------------

class NewOSShell(cmd.Cmd):
    """Command dispatcher driven by the line editor."""

    prompt = "OS >> "

    def __init__(self, volume, terminal=None, machine=None, clock=None,
                 color=None):
        super().__init__()
        self.terminal = terminal if terminal is not None else Terminal()
        self.history = History()
        self.editor = LineEditor(self.terminal, self.history)
        self.session = Session(volume)
        self.files = FileCommands(self.session)
        self.machine = machine if machine is not None else HostMachine()
        self.clock = clock if clock is not None else Clock()
        self.cw = ColorWriter(force_color=color, stream=self.terminal.stdout)
        self.rebooting = False

    # -- Lifecycle ---------------------------------------------------------

    def preloop(self):
        """Draw the header bar and greeting."""
        self._clear_console()
        self._print(self.cw.bold("Welcome to NewOS!"))
        self._print(self.cw.error("0.1 Alpha Console"))
        self._print('Type "help" for a list of commands.')

    def postloop(self):
        if self.rebooting:
            self._print("Rebooting...")
        else:
            self._print("Session ended.")

    def cmdloop(self, intro=None):
        """Prompt, read a line through the editor, dispatch; repeat.

        Ends when a handler returns True (shutdown, reboot) or input
        reaches EOF.  Ctrl-C abandons the current line or handler and
        returns to the prompt.
        """
        self.preloop()
        with self.terminal.raw_mode():
            stop = None
            while not stop:
                try:
                    line = self.editor.readline(self.prompt)
                    line = self.precmd(line)
                    stop = self.onecmd(line)
                    stop = self.postcmd(stop, line)
                except EOFError:
                    break
                except KeyboardInterrupt:
                    self._print("^C")
        self.postloop()

    def onecmd(self, line):
        """Dispatch a line by exact keyword match."""
        self.lastcmd = line
        if line in COMMANDS:
            logger.debug("dispatch %s", line)
            return getattr(self, "do_" + line)("")
        return self.default(line)

    def default(self, line):
        """Handle unknown commands."""
        self._print(self.cw.error("{}: Unknown Command".format(line)))

    # -- Helpers -----------------------------------------------------------

    def _print(self, text=""):
        self.terminal.write(text + "\n")

    def _ask(self, message):
        """Prompt for one more line of input (recorded in history)."""
        return self.editor.readline(message + " ")

    def _begin(self, text):
        self._print(self.cw.dim("[ {} ]".format(text)))

    def _completed(self):
        self._print(self.cw.success("[ Completed ]"))

    def _error(self, message):
        self._print(self.cw.error("Error: {}".format(message)))

    def _clear_console(self):
        self.terminal.clear_screen()
        stamp = self.clock.now().strftime("%Y-%m-%d %H:%M:%S")
        width = max(self.terminal.width() - len(stamp) - 1, 6)
        self._print(self.cw.header("{:<{w}}{}".format("NewOS", stamp, w=width)))

    # -- Session and machine -----------------------------------------------

    def do_help(self, arg):
        """Show this list of commands"""
        self._print(self.cw.bold("==================Help=================="))
        for name in COMMANDS:
            doc = getattr(self, "do_" + name).__doc__ or ""
            summary = (doc.strip().splitlines() or [""])[0]
            self._print("{} - {}".format(name, summary))
        self._print(self.cw.bold("========================================"))

    def do_shutdown(self, arg):
        """Power off the computer"""
        self._clear_console()
        self.machine.shutdown()
        return True

    def do_reboot(self, arg):
        """Reboot the computer"""
        self.machine.reboot()
        self.rebooting = True
        return True

    def do_sysinfo(self, arg):
        """Show CPU and memory information"""
        try:
            info = self.machine.sysinfo()
        except OSError as e:
            self._error(e)
            return
        self._print("{}: {}".format(self.cw.key("CPU"), info["cpu"]))
        self._print("{}: {}".format(self.cw.key("CPU Vendor"), info["vendor"]))
        self._print("{}: {}".format(self.cw.key("Amount of RAM"),
                              format_size(info["ram"])))
        self._print("{}: {}".format(self.cw.key("Used RAM"),
                              format_size(info["used_ram"])))

    def do_clear(self, arg):
        """Clear the screen"""
        self._clear_console()

    def do_clearram(self, arg):
        """Reclaim unused memory"""
        self._begin("RAM is being cleared...")
        freed = self.machine.collect()
        self._print("Freed {} objects".format(freed))
        try:
            info = self.machine.sysinfo()
        except OSError as e:
            self._error(e)
            return
        self._print("{}: {}".format(self.cw.key("Used RAM"),
                                    format_size(info["used_ram"])))
        self._completed()

    def do_datetime(self, arg):
        """Show the current date and time"""
        self._print(self.clock.now().strftime("%Y-%m-%d %H:%M:%S"))

    def do_calendar(self, arg):
        """Show this month's calendar"""
        today = self.clock.now()
        self._print(self.cw.bold("{} {}".format(
            calendar.month_name[today.month], today.year)))
        self._print(CALENDAR_HEADER)
        for line in render_calendar(today.year, today.month):
            self._print(line)

    # -- Current directory -------------------------------------------------

    def do_cd(self, arg):
        """Move to a directory"""
        path = self._ask("Directory:")
        self.session.set(path)

    def do_ls(self, arg):
        """Show all files in the current directory"""
        entries, error = self.files.list_directory()
        if error is not None:
            self._error(error)
            return
        for kind, name, entry_error in entries:
            if entry_error is not None:
                self._error("{}: {}".format(name, entry_error))
            elif kind == "FILE":
                self._print(self.cw.file("| <FILE>       " + name))
            else:
                self._print(self.cw.directory("| <DIR>      " + name))

    def do_makefile(self, arg):
        """Create a file in the current directory"""
        name = self._ask("File name:")
        self._begin("File {} is being created...".format(
            self.files.relative(name)))
        _result, error = self.files.create_file(name)
        if error is not None:
            self._error(error)
            return
        self._completed()

    def do_mkdir(self, arg):
        """Create a directory in the current directory"""
        name = self._ask("Directory name:")
        self._begin("Directory {} is being created...".format(
            self.files.relative(name)))
        _result, error = self.files.create_directory(name)
        if error is not None:
            self._error(error)
            return
        self._completed()

    def do_del(self, arg):
        """Delete a file in the current directory"""
        name = self._ask("File name:")
        self._begin("File {} is being deleted...".format(
            self.files.relative(name)))
        _result, error = self.files.delete_file(name)
        if error is not None:
            self._error(error)
            return
        self._completed()

    def do_deldir(self, arg):
        """Delete a directory and everything in it"""
        name = self._ask("Directory name:")
        self._begin("Directory {} is being deleted...".format(
            self.files.relative(name)))
        _result, error = self.files.delete_directory(name)
        if error is not None:
            self._error(error)
            return
        self._completed()

    # -- Volume root -------------------------------------------------------

    def do_space(self, arg):
        """Get available space"""
        free, error = self.files.free_space()
        if error is not None:
            self._error(error)
            return
        self._print("Available Space: {} ({})".format(free, format_size(free)))

    def do_fs(self, arg):
        """File system type"""
        fs_type, error = self.files.filesystem_type()
        if error is not None:
            self._error(error)
            return
        self._print("File System Type: {}".format(fs_type))

    def do_read(self, arg):
        """Print a text file from the volume root"""
        name = self._ask("File name:")
        self._begin("File {} is being read...".format(
            FileCommands.rooted(name)))
        text, error = self.files.read_text(name)
        if error is not None:
            self._error(error)
            return
        self._print(text)
        self._completed()

    def do_readbytes(self, arg):
        """Print the bytes of a file from the volume root"""
        name = self._ask("File name:")
        self._begin("File {} is being read...".format(
            FileCommands.rooted(name)))
        data, error = self.files.read_bytes(name)
        if error is not None:
            self._error(error)
            return
        for line in format_hexdump(data):
            self._print(line)
        self._print("{} bytes".format(len(data)))
        self._completed()

    def do_write(self, arg):
        """Append a line of text to a file at the volume root"""
        name = self._ask("File name:")
        text = self._ask("Text:")
        self._begin("Text is being written to {}...".format(
            FileCommands.rooted(name)))
        _result, error = self.files.append_text(name, text)
        if error is not None:
            self._error(error)
            return
        self._completed()

    def do_dellastl(self, arg):
        """Delete the last line of a file at the volume root"""
        name = self._ask("File name:")
        self._begin("Last line of {} is being deleted...".format(
            FileCommands.rooted(name)))
        removed, error = self.files.delete_last_line(name)
        if error is not None:
            self._error(error)
            return
        if removed is None:
            self._print("File is empty, nothing to delete.")
            return
        self._print("Removed: {}".format(removed))
        self._completed()
