"""Blocking terminal reader: raw bytes in, KeyPress/Paste events out."""

import os
import select
import sys
from typing import List, Optional

from waybar_finance.events import (
    BACKSPACE, CTRL_C, DELETE, DOWN, ENTER, ESC, TAB, UP, KeyPress, Paste,
)

PASTE_START = "\x1b[200~"
PASTE_END = "\x1b[201~"
BRACKETED_PASTE_ON = "\x1b[?2004h"
BRACKETED_PASTE_OFF = "\x1b[?2004l"

# Escape sequences we act on; anything else after ESC is swallowed
_SEQUENCES = {
    "\x1b[A": KeyPress(UP),
    "\x1bOA": KeyPress(UP),
    "\x1b[B": KeyPress(DOWN),
    "\x1bOB": KeyPress(DOWN),
    "\x1b[3~": KeyPress(DELETE),
}

_CONTROL = {
    "\r": KeyPress(ENTER),
    "\n": KeyPress(ENTER),
    "\t": KeyPress(TAB),
    "\x7f": KeyPress(BACKSPACE),
    "\x08": KeyPress(BACKSPACE),
    "\x03": KeyPress(CTRL_C),
}


def decode(data: str) -> List[object]:
    """Split a chunk of terminal input into events, in arrival order."""
    events: List[object] = []
    i = 0
    while i < len(data):
        if data.startswith(PASTE_START, i):
            end = data.find(PASTE_END, i + len(PASTE_START))
            if end == -1:
                end = len(data)
            events.append(Paste(data[i + len(PASTE_START):end]))
            i = end + len(PASTE_END)
            continue
        ch = data[i]
        if ch == "\x1b":
            if i + 1 == len(data):
                events.append(KeyPress(ESC))
                i += 1
                continue
            for seq, ev in _SEQUENCES.items():
                if data.startswith(seq, i):
                    events.append(ev)
                    i += len(seq)
                    break
            else:
                # Unknown CSI: skip through its final byte
                j = i + 1
                if j < len(data) and data[j] in "[O":
                    j += 1
                    while j < len(data) and not ("@" <= data[j] <= "~"):
                        j += 1
                    i = j + 1
                else:
                    events.append(KeyPress(ESC))
                    i += 1
            continue
        if ch in _CONTROL:
            events.append(_CONTROL[ch])
        elif ch.isprintable():
            events.append(KeyPress.of(ch))
        i += 1
    return events


class KeyReader:
    """Puts stdin in cbreak mode and hands out decoded events one at a time."""

    def __init__(self, fd: Optional[int] = None):
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._old_settings = None
        self._pending: List[object] = []
        self._closed = False

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()

    def start(self):
        import termios
        import tty

        self._old_settings = termios.tcgetattr(self.fd)
        tty.setcbreak(self.fd)
        sys.stdout.write(BRACKETED_PASTE_ON)
        sys.stdout.flush()

    def stop(self):
        self._closed = True
        if self._old_settings is None:
            return
        import termios

        sys.stdout.write(BRACKETED_PASTE_OFF)
        sys.stdout.flush()
        termios.tcsetattr(self.fd, termios.TCSADRAIN, self._old_settings)
        self._old_settings = None

    def read(self) -> Optional[object]:
        """Block until one event is available. None once the reader is closed."""
        while not self._pending:
            if self._closed:
                return None
            ready, _, _ = select.select([self.fd], [], [], 0.5)
            if not ready:
                continue
            chunk = os.read(self.fd, 4096)
            if not chunk:
                return None
            data = chunk.decode("utf-8", errors="replace")
            # A lone ESC may be the start of a sequence split across reads
            if data.endswith("\x1b") or (data.startswith(PASTE_START) and PASTE_END not in data):
                data += self._drain()
            self._pending.extend(decode(data))
        return self._pending.pop(0)

    def _drain(self) -> str:
        parts = []
        while True:
            ready, _, _ = select.select([self.fd], [], [], 0.05)
            if not ready:
                break
            chunk = os.read(self.fd, 4096)
            if not chunk:
                break
            parts.append(chunk.decode("utf-8", errors="replace"))
        return "".join(parts)
