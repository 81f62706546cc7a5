"""Levelled, colourised diagnostic messages written to standard error."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import TextIO

_COLOR_CODES = {
    "black": 30,
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "magenta": 35,
    "cyan": 36,
    "white": 37,
}
_RESET = "\x1b[0m"
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def colorize(text: str, color: str, bold: bool = False) -> str:
    """Wrap ``text`` in ANSI escape codes for ``color``, optionally bold."""
    try:
        code = _COLOR_CODES[color]
    except KeyError:
        raise ValueError(f"unknown color: {color}") from None
    params = f"{code};1" if bold else str(code)
    return f"\x1b[{params}m{text}{_RESET}"


def _stream_supports_color(stream: TextIO) -> bool:
    if "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


@dataclass
class Logger:
    """Writes tagged messages; every level but errors can be switched off."""

    stream: TextIO | None = None
    color: bool | None = None
    disable_warn: bool = False
    disable_info: bool = False
    disable_debug: bool = False
    disable_success: bool = False
    enable_timestamp: bool = False

    def _out(self) -> TextIO:
        return self.stream if self.stream is not None else sys.stderr

    def _use_color(self, out: TextIO) -> bool:
        if self.color is None:
            return _stream_supports_color(out)
        return self.color

    def _format(self, message: str, use_color: bool) -> str:
        if not self.enable_timestamp:
            return message
        stamp = f"[{datetime.now().strftime(_TIMESTAMP_FORMAT)}]"
        if use_color:
            stamp = colorize(stamp, "magenta", True)
        return f"{stamp} {message}"

    def _emit(self, tag: str, color: str, message: str) -> None:
        out = self._out()
        use_color = self._use_color(out)
        prefix = f"[{tag}] "
        if use_color:
            prefix = colorize(prefix, color, True)
        out.write(prefix + self._format(message, use_color) + "\n")
        out.flush()

    def error(self, message: str) -> None:
        self._emit("error", "red", message)

    def info(self, message: str) -> None:
        if not self.disable_info:
            self._emit("info", "cyan", message)

    def success(self, message: str) -> None:
        if not self.disable_success:
            self._emit("ok", "green", message)

    def warn(self, message: str) -> None:
        if not self.disable_warn:
            self._emit("warn", "yellow", message)

    def debug(self, message: str) -> None:
        if not self.disable_debug:
            self._emit("debug", "blue", message)


logger = Logger()