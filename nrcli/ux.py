"""Progress indicators shown while installation steps run."""

from __future__ import annotations

import itertools
import logging
import os
import sys
import threading
from typing import IO, Protocol, runtime_checkable

log = logging.getLogger(__name__)

INTERVAL = 0.1
CHECKMARK = "\u2705"
CROSSMARK = "\u274C"
INDENTATION = "    "
CHARSET = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")

_CYAN = "\033[36m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_ERASE_LINE = "\r\033[K"


@runtime_checkable
class ProgressIndicator(Protocol):
    """Reports the progress of a long-running step."""

    def fail(self, msg: str) -> None: ...

    def success(self, msg: str) -> None: ...

    def start(self, msg: str) -> None: ...

    def stop(self) -> None: ...


def _is_tty(stream: IO[str]) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class PlainProgress:
    """Prints one line per step event, coloured on a terminal."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdout

    def _paint(self, text: str, code: str) -> str:
        if _is_tty(self.stream) and "NO_COLOR" not in os.environ:
            return f"{code}{text}{_RESET}"
        return text

    def _emit(self, msg: str, ending: str) -> None:
        stream = self.stream
        stream.write(self._paint("==>", _CYAN) + self._paint(f" {msg}", _BOLD) + ending)
        stream.flush()

    def start(self, msg: str) -> None:
        """Announce a step."""
        self._emit(msg, "...\n")

    def success(self, msg: str) -> None:
        """Report that a step succeeded."""
        self._emit(msg, "...success.\n\n")

    def fail(self, msg: str) -> None:
        """Report that a step failed."""
        self._emit(msg, "...failed.\n\n")

    def stop(self) -> None:
        """Flush any output still pending on the stream."""
        self.stream.flush()


class Spinner:
    """An animated spinner; with debug logging it logs messages instead."""

    def __init__(
        self,
        stream: IO[str] | None = None,
        charset: tuple[str, ...] = CHARSET,
        interval: float = INTERVAL,
    ) -> None:
        self._stream = stream
        self.charset = charset
        self.interval = interval
        self.prefix = ""
        self.suffix = ""
        self.final_msg = ""
        self._active = False
        self._lock = threading.Lock()
        self._halt = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdout

    def _animate(self, halt: threading.Event, stream: IO[str]) -> None:
        for frame in itertools.cycle(self.charset):
            with self._lock:
                stream.write(f"{_ERASE_LINE}{self.prefix}{frame}{self.suffix}")
                stream.flush()
            if halt.wait(self.interval):
                return

    def _halt_animation(self) -> None:
        if self._thread is not None:
            self._halt.set()
            self._thread.join()
            self._thread = None

    def start(self, msg: str) -> None:
        """Start spinning with the message, or log it when debugging."""
        if log.isEnabledFor(logging.DEBUG):
            log.debug(msg)
            return
        self._halt_animation()
        self.prefix = INDENTATION
        self.suffix = f" {msg}"
        self.final_msg = ""
        self._active = True
        stream = self.stream
        if _is_tty(stream):
            self._halt = threading.Event()
            self._thread = threading.Thread(
                target=self._animate, args=(self._halt, stream), daemon=True
            )
            self._thread.start()

    def stop(self) -> None:
        """Stop spinning and print the final line.

        Nothing is printed when logging is set above the default warning level.
        """
        if log.getEffectiveLevel() > logging.WARNING:
            return
        stream = self.stream
        if self._active:
            self._halt_animation()
            with self._lock:
                if _is_tty(stream):
                    stream.write(_ERASE_LINE)
                if self.final_msg:
                    stream.write(self.final_msg)
            self._active = False
        stream.write(f"{self.suffix}\n")
        stream.flush()

    def fail(self, msg: str) -> None:
        """Mark the step as failed; shown when the spinner stops."""
        self.final_msg = INDENTATION + CROSSMARK
        self.suffix = self.suffix + "failed."

    def success(self, msg: str) -> None:
        """Mark the step as successful; shown when the spinner stops."""
        self.final_msg = INDENTATION + CHECKMARK
        self.suffix = self.suffix + "success."