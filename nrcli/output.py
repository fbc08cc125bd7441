"""Rendering command results as JSON, YAML or text tables."""

from __future__ import annotations

import dataclasses
import io
import json
import os
import sys
import textwrap
from collections.abc import Mapping
from enum import Enum, IntEnum
from typing import IO, Any

import yaml

DEFAULT_TERMINAL_WIDTH = 80

_RESET = "\033[0m"
_BOLD = "\033[1m"
_KEY = "\033[1;34m"
_STRING = "\033[32m"
_NUMBER = "\033[36m"
_BOOL = "\033[33m"
_NULL = "\033[1;30m"


class Format(IntEnum):
    """The supported output formats."""

    JSON = 0
    TEXT = 1
    YAML = 2

    def __str__(self) -> str:
        return _FORMAT_NAMES[self]

    @classmethod
    def parse(cls, name: str) -> "Format":
        """Return the format with the given name, ignoring case; JSON if unknown."""
        wanted = name.casefold()
        for fmt, label in _FORMAT_NAMES.items():
            if label.casefold() == wanted:
                return fmt
        return DEFAULT_FORMAT


_FORMAT_NAMES = {
    Format.JSON: "JSON",
    Format.TEXT: "Text",
    Format.YAML: "YAML",
}

DEFAULT_FORMAT = Format.JSON
DEFAULT_PRETTY = True


def format_options() -> str:
    """Return the names of the supported formats, comma separated."""
    return ", ".join(str(fmt) for fmt in Format)


def _plain(value: Any) -> Any:
    """Convert dataclasses, enums and containers into plain serialisable data."""
    if isinstance(value, Enum):
        return _plain(value.value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(item) for item in value]
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    raise TypeError(f"unable to marshal data type: {type(value).__name__}")


def _is_tty(stream: IO[str]) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty()) and "NO_COLOR" not in os.environ


def _detect_terminal_width() -> int:
    try:
        return os.get_terminal_size(0).columns
    except (OSError, ValueError):
        return DEFAULT_TERMINAL_WIDTH


class _JSONWriter:
    """Writes plain data as JSON with sorted keys and optional colour."""

    def __init__(self, indent: int, colour: bool) -> None:
        self.indent = indent
        self.colour = colour
        self.newline = "\n" if indent else ""

    def _paint(self, text: str, code: str) -> str:
        return f"{code}{text}{_RESET}" if self.colour else text

    def format(self, value: Any, level: int = 0) -> str:
        outer = " " * (self.indent * level)
        inner = " " * (self.indent * (level + 1))
        if isinstance(value, dict):
            if not value:
                return "{}"
            items = [
                f"{inner}{self._paint(json.dumps(key, ensure_ascii=False), _KEY)}: "
                f"{self.format(value[key], level + 1)}"
                for key in sorted(value)
            ]
            body = ("," + self.newline).join(items)
            return "{" + self.newline + body + self.newline + outer + "}"
        if isinstance(value, list):
            if not value:
                return "[]"
            items = [f"{inner}{self.format(item, level + 1)}" for item in value]
            body = ("," + self.newline).join(items)
            return "[" + self.newline + body + self.newline + outer + "]"
        if isinstance(value, str):
            return self._paint(json.dumps(value, ensure_ascii=False), _STRING)
        if isinstance(value, bool):
            return self._paint("true" if value else "false", _BOOL)
        if value is None:
            return self._paint("null", _NULL)
        return self._paint(json.dumps(value), _NUMBER)


def _cell_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _row_values(item: Any, columns: list[str]) -> list[Any]:
    if isinstance(item, Mapping):
        return [item.get(column, "") for column in columns]
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return [getattr(item, column) for column in columns]
    raise TypeError(f"unable to format data as table - type: {type(item).__name__}")


def _columns_of(item: Any) -> list[str]:
    if isinstance(item, Mapping):
        return [str(key) for key in item]
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return [f.name for f in dataclasses.fields(item)]
    raise TypeError(f"unable to format data as table - type: {type(item).__name__}")


class Output:
    """Renders data to a stream in the configured format."""

    def __init__(
        self,
        format: Format = DEFAULT_FORMAT,
        pretty_print: bool = DEFAULT_PRETTY,
        terminal_width: int | None = None,
        stream: IO[str] | None = None,
    ) -> None:
        self.format = format
        self.pretty_print = pretty_print
        self.terminal_width = (
            terminal_width if terminal_width is not None else _detect_terminal_width()
        )
        self._stream = stream

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdout

    def _write(self, text: str) -> None:
        stream = self.stream
        stream.write(text)
        stream.flush()

    def render_json(self, data: Any) -> None:
        """Write the data as JSON; bytes and buffers are parsed and reformatted."""
        if data is None:
            return
        if isinstance(data, (io.BytesIO, io.StringIO)):
            data = data.getvalue()
            value = json.loads(data)
        elif isinstance(data, (bytes, bytearray)):
            value = json.loads(data)
        else:
            value = _plain(data)

        if self.pretty_print:
            writer = _JSONWriter(indent=2, colour=_is_tty(self.stream))
        else:
            writer = _JSONWriter(indent=0, colour=False)
        self._write(writer.format(value) + "\n")

    def render_text(self, data: Any) -> None:
        """Write strings as they are, and sequences or records as a table."""
        if data is None:
            return
        if isinstance(data, str):
            self._write(data + "\n")
            return
        if (
            isinstance(data, (list, tuple, Mapping))
            or (dataclasses.is_dataclass(data) and not isinstance(data, type))
        ):
            self.render_table(data)
            return
        raise TypeError(f"unable to format data type: {type(data).__name__}")

    def render_table(self, data: Any) -> None:
        """Write a sequence of records as rows, or one record as field/value pairs."""
        if data is None:
            return
        if isinstance(data, (list, tuple)):
            if not data:
                return
            columns = _columns_of(data[0])
            rows = [_row_values(item, columns) for item in data]
            header = list(columns)
        elif isinstance(data, Mapping):
            header = ["Field", "Value"]
            rows = [[str(key), value] for key, value in data.items()]
        elif dataclasses.is_dataclass(data) and not isinstance(data, type):
            header = ["Field", "Value"]
            rows = [[f.name, getattr(data, f.name)] for f in dataclasses.fields(data)]
        else:
            raise TypeError(
                f"unable to format data as table - type: {type(data).__name__}"
            )
        self._write("".join(line + "\n" for line in self._table_lines(header, rows)))

    def _wrap(self, text: str, width: int) -> list[str]:
        lines: list[str] = []
        for paragraph in text.split("\n"):
            lines.extend(
                textwrap.wrap(
                    paragraph,
                    width,
                    break_long_words=True,
                    break_on_hyphens=False,
                    drop_whitespace=True,
                )
                or [""]
            )
        return lines

    def _table_lines(self, header: list[str], rows: list[list[Any]]) -> list[str]:
        max_width = max(1, self.terminal_width * 3 // 4)
        wrapped_header = [self._wrap(name, max(max_width, len(name))) for name in header]
        wrapped_rows = [
            [(self._wrap(_cell_text(value), max_width), _is_number(value)) for value in row]
            for row in rows
        ]

        widths = [len(name) for name in header]
        for row in wrapped_rows:
            for index, (lines, _) in enumerate(row):
                widths[index] = max(widths[index], *(len(line) for line in lines))

        colour = _is_tty(self.stream)

        def render(cells: list[tuple[list[str], bool]], bold: bool) -> list[str]:
            height = max(len(lines) for lines, _ in cells)
            out = []
            for line_no in range(height):
                parts = []
                for (lines, numeric), width in zip(cells, widths):
                    text = lines[line_no] if line_no < len(lines) else ""
                    parts.append(text.rjust(width) if numeric else text.ljust(width))
                line = self._truncate(" ".join(parts).rstrip())
                out.append(f"{_BOLD}{line}{_RESET}" if bold and colour else line)
            return out

        lines = render([(cell, False) for cell in wrapped_header], bold=True)
        lines.append(self._truncate(" ".join("-" * width for width in widths)))
        for row in wrapped_rows:
            lines.extend(render(row, bold=False))
        return lines

    def _truncate(self, line: str) -> str:
        width = self.terminal_width
        if width > 0 and len(line) > width:
            return line[: width - 1] + "~"
        return line

    def render_yaml(self, data: Any) -> None:
        """Write the data as YAML."""
        if data is None:
            return
        formatted = yaml.safe_dump(
            _plain(data), default_flow_style=False, allow_unicode=True, sort_keys=True
        )
        self._write(formatted + "\n")

    def print(self, data: Any) -> None:
        """Write the data in the configured format."""
        if self.format == Format.TEXT:
            self.render_text(data)
        elif self.format == Format.YAML:
            self.render_yaml(data)
        else:
            self.render_json(data)


_global: Output | None = None


def _ensure_global() -> Output:
    global _global
    if _global is None:
        _global = Output()
    return _global


def set_format(fmt: Format) -> None:
    """Set the format used by the shared output."""
    _ensure_global().format = fmt


def set_pretty_print(pretty: bool) -> None:
    """Turn pretty printing of the shared output on or off."""
    _ensure_global().pretty_print = pretty


def print_output(data: Any) -> None:
    """Print the data in the shared output's format."""
    _ensure_global().print(data)


def printf(fmt: str, *args: Any) -> None:
    """Format the arguments into the template and print the result as text."""
    _ensure_global().render_text(fmt % args if args else fmt)


def print_json(data: Any) -> None:
    """Print the data as JSON regardless of the configured format."""
    _ensure_global().render_json(data)


def print_text(data: Any) -> None:
    """Print the data as text regardless of the configured format."""
    _ensure_global().render_text(data)


def print_yaml(data: Any) -> None:
    """Print the data as YAML regardless of the configured format."""
    _ensure_global().render_yaml(data)