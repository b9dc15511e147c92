""" console.py

The terminal, shared by everything that wants to tell the operator something.

Two kinds of output share the same screen:
- log lines, which scroll up like normal output.
- the status line, a single line pinned below the log that is redrawn in place (connected, reconnecting in N seconds, etc).

Writing a log line clears whatever is on the current line (the status), writes the log line, then draws the status again beneath it.
That read-clear-write-redraw sequence is not atomic on its own, and the Steam callback poller writes from a worker thread while the relay task writes from the event loop.
So every public call holds one lock for its whole sequence. Whoever gets the lock first writes first, nobody gets torn output.
"""
import logging
import sys
import textwrap
import threading
from typing import Optional, TextIO

CLEAR_CURRENT_LINE = "\x1b[2K"
MOVE_TO_COLUMN_0 = "\x1b[1G"


class StatusConsole:
    """Serialises terminal writes between the relay task and background tasks.

    Owns the status line. Build one per process and pass it to whoever needs to print.
    I/O errors from the underlying streams are not swallowed.
    """

    def __init__(self, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None, ansi: Optional[bool] = None):
        self._stdout: TextIO = stdout if stdout is not None else sys.stdout
        self._stderr: TextIO = stderr if stderr is not None else sys.stderr
        # escape codes only make sense on a terminal. when piped to a file we fall back to plain lines.
        self._ansi: bool = ansi if ansi is not None else _is_terminal(self._stdout)
        self._lock = threading.Lock()
        self._status: str = ""

    @property
    def status(self) -> str:
        with self._lock:
            return self._status

    def clear_line(self, stream: Optional[TextIO] = None):
        """Clear the terminal's current line. Does not flush and does not take the lock."""
        if self._ansi:
            (stream if stream is not None else self._stdout).write(CLEAR_CURRENT_LINE)

    def set_status(self, text: str):
        with self._lock:
            self._status = text
            if self._ansi:
                self._render_status()
            else:
                self._stdout.write(text + "\n")
                self._stdout.flush()

    def print_line(self, text: str, error: bool = False):
        stream = self._stderr if error else self._stdout
        with self._lock:
            self.clear_line()
            if stream is not self._stdout:
                # the clear has to reach the terminal before the other stream does.
                self._stdout.flush()
            stream.write(text + "\n")
            if stream is not self._stdout:
                stream.flush()
            if self._ansi:
                self._render_status()
            else:
                self._stdout.flush()

    def print_error(self, text: str):
        self.print_line(text, error=True)

    def print_block(self, text: str, error: bool = False):
        """Print a multi-line block.

        Common leading indentation and the first newline are removed, so triple quoted text can be indented with the code.
        """
        block = textwrap.dedent(text)
        if block.startswith("\n"):
            block = block[1:]
        if block.endswith("\n"):
            block = block[:-1]
        self.print_line(block, error)

    def _render_status(self):
        # caller holds the lock.
        self._stdout.write(CLEAR_CURRENT_LINE)
        self._stdout.write(self._status)
        self._stdout.write(MOVE_TO_COLUMN_0)
        self._stdout.flush()


def _is_terminal(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty()) if isatty is not None else False
    except ValueError:
        # closed stream
        return False


class ConsoleLogHandler(logging.Handler):
    """Routes logging records through the console so library warnings do not tear the status line."""

    def __init__(self, console: StatusConsole, level: int = logging.NOTSET):
        super().__init__(level)
        self._console = console

    def emit(self, record: logging.LogRecord):
        try:
            message = self.format(record)
            self._console.print_line(message, error=record.levelno >= logging.WARNING)
        except Exception:
            self.handleError(record)


def configure_logging(console: StatusConsole, level: str = "WARNING") -> logging.Handler:
    """Send every log record through the console. Returns the installed handler."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handler = ConsoleLogHandler(console)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, ConsoleLogHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(numeric_level)

    logging.getLogger("aiohttp").setLevel(max(numeric_level, logging.WARNING))
    logging.getLogger("websockets").setLevel(max(numeric_level, logging.WARNING))
    return handler
