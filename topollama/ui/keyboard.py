import asyncio
import os
import sys
import termios
import tty
from collections.abc import Callable
from typing import TextIO

import structlog

logger = structlog.get_logger()

QUIT_KEYS = frozenset({"q", "Q", "\x1b", "\x03"})  # q, Escape, Ctrl-C
REFRESH_KEYS = frozenset({"r", "R"})


class KeyboardInput:
    """Reads single keypresses from a tty on the running event loop."""

    def __init__(
        self,
        on_quit: Callable[[], None],
        on_refresh: Callable[[], None],
        stream: TextIO | None = None,
    ):
        self._on_quit = on_quit
        self._on_refresh = on_refresh
        self._stream = stream or sys.stdin
        self._fd: int | None = None
        self._saved_attrs: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> bool:
        """Switch the tty to cbreak mode and watch it. False if not a tty."""
        if not self._stream.isatty():
            logger.info("keyboard_unavailable", reason="stdin is not a tty")
            return False
        self._loop = loop or asyncio.get_running_loop()
        self._fd = self._stream.fileno()
        self._saved_attrs = termios.tcgetattr(self._fd)
        tty.setcbreak(self._fd)
        self._loop.add_reader(self._fd, self._on_readable)
        return True

    def stop(self) -> None:
        if self._fd is None:
            return
        if self._loop is not None:
            self._loop.remove_reader(self._fd)
        if self._saved_attrs is not None:
            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
            except termios.error as e:
                logger.warning("keyboard_restore_failed", reason=str(e))
        self._fd = None
        self._saved_attrs = None

    def _on_readable(self) -> None:
        data = os.read(self._fd, 32)
        if not data:
            # tty hung up; the fd stays readable forever
            logger.warning("keyboard_closed")
            self.stop()
            return
        if data.startswith(b"\x1b") and len(data) > 1:
            return  # arrow/function key sequence, not a bare Escape
        for key in data.decode("utf-8", errors="ignore"):
            self.handle_key(key)

    def handle_key(self, key: str) -> None:
        if key in QUIT_KEYS:
            self._on_quit()
        elif key in REFRESH_KEYS:
            self._on_refresh()
