import io
import os
from unittest.mock import MagicMock, patch

from structlog.testing import capture_logs

from topollama.ui.keyboard import KeyboardInput


class _Keys:
    def __init__(self):
        self.quits = 0
        self.refreshes = 0

    def quit(self):
        self.quits += 1

    def refresh(self):
        self.refreshes += 1


def test_quit_keys():
    keys = _Keys()
    kb = KeyboardInput(on_quit=keys.quit, on_refresh=keys.refresh, stream=io.StringIO())
    for key in ("q", "Q", "\x1b", "\x03"):
        kb.handle_key(key)
    assert keys.quits == 4
    assert keys.refreshes == 0


def test_refresh_keys_and_others_ignored():
    keys = _Keys()
    kb = KeyboardInput(on_quit=keys.quit, on_refresh=keys.refresh, stream=io.StringIO())
    for key in ("r", "R", "x", " "):
        kb.handle_key(key)
    assert keys.refreshes == 2
    assert keys.quits == 0


async def test_start_without_tty_is_a_noop():
    keys = _Keys()
    kb = KeyboardInput(on_quit=keys.quit, on_refresh=keys.refresh, stream=io.StringIO())
    assert kb.start() is False
    kb.stop()


class _PipeStream:
    def __init__(self, fd):
        self._fd = fd

    def isatty(self):
        return True

    def fileno(self):
        return self._fd


def _started_on_pipe(keys):
    read_fd, write_fd = os.pipe()
    loop = MagicMock()
    kb = KeyboardInput(on_quit=keys.quit, on_refresh=keys.refresh, stream=_PipeStream(read_fd))
    with patch("topollama.ui.keyboard.termios.tcgetattr", return_value=None), \
            patch("topollama.ui.keyboard.tty.setcbreak"):
        assert kb.start(loop) is True
    callback = loop.add_reader.call_args.args[1]
    return kb, loop, callback, read_fd, write_fd


def test_keys_read_from_tty_are_dispatched():
    keys = _Keys()
    kb, loop, callback, read_fd, write_fd = _started_on_pipe(keys)
    try:
        os.write(write_fd, b"rq")
        callback()
        assert (keys.refreshes, keys.quits) == (1, 1)
    finally:
        kb.stop()
        os.close(read_fd)
        os.close(write_fd)


def test_hangup_stops_watching_the_tty():
    keys = _Keys()
    kb, loop, callback, read_fd, write_fd = _started_on_pipe(keys)
    os.close(write_fd)
    try:
        with capture_logs() as logs:
            callback()
        loop.remove_reader.assert_called_once_with(read_fd)
        assert [e["event"] for e in logs] == ["keyboard_closed"]
        assert keys.quits == 0

        kb.stop()
        loop.remove_reader.assert_called_once()
    finally:
        os.close(read_fd)
