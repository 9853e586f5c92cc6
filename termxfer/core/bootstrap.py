"""Terminal bootstrap helpers for termxfer startup and cleanup."""

import curses
import logging
import sys
import termios
from contextlib import contextmanager

LOGGER = logging.getLogger(__name__)


def configure_terminal(stdscr, timeout_ms=50):
    """Apply core curses terminal setup."""
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    curses.noecho()
    stdscr.keypad(True)
    stdscr.nodelay(False)
    stdscr.timeout(timeout_ms)


def disable_flow_control(stdin_stream=None):
    """Disable XON/XOFF so Ctrl+Q/Ctrl+S reach the app."""
    stream = sys.stdin if stdin_stream is None else stdin_stream
    try:
        fd = stream.fileno()
        attrs = termios.tcgetattr(fd)
    except (AttributeError, ValueError, OSError, termios.error):
        return
    attrs[0] &= ~(termios.IXON | termios.IXOFF)
    try:
        termios.tcsetattr(fd, termios.TCSANOW, attrs)
    except termios.error as exc:
        LOGGER.debug('cannot disable flow control: %s', exc)


class Terminal:
    """Curses screen wrapper used by activities."""

    def __init__(self, stdscr):
        self.stdscr = stdscr
        self.raw_mode = False

    def enable_raw_mode(self, timeout_ms=50):
        curses.raw()
        configure_terminal(self.stdscr, timeout_ms)
        disable_flow_control()
        self.raw_mode = True

    def disable_raw_mode(self):
        if not self.raw_mode:
            return
        curses.noraw()
        curses.echo()
        self.stdscr.keypad(False)
        self.raw_mode = False

    def clear_screen(self):
        self.stdscr.erase()
        self.stdscr.refresh()

    def size(self):
        """Return (rows, cols)."""
        return self.stdscr.getmaxyx()

    def read_key(self, timeout_ms=None):
        """Read one key, returning None on timeout/no input."""
        if timeout_ms is not None:
            self.stdscr.timeout(timeout_ms)
        try:
            return self.stdscr.get_wch()
        except curses.error:
            return None

    @contextmanager
    def suspend(self):
        """Hand the terminal to an external program for the block's duration."""
        curses.def_prog_mode()
        curses.endwin()
        try:
            yield
        finally:
            curses.reset_prog_mode()
            self.stdscr.refresh()
