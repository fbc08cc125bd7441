"""Reading JSON from standard input and picking out selected values.

Call :func:`get_input` once with the selectors of interest; afterwards
:func:`exists` and :func:`get` report what was found on standard input.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable, Iterable
from typing import IO, Any, Protocol

from nrcli.utils import stdin_exists

log = logging.getLogger(__name__)

_MISSING = object()


class PipeReader(Protocol):
    """Something that yields the whole text of a pipe."""

    def read_pipe(self) -> str: ...


class StdinPipeReader:
    """Reads all lines from a stream, joining them trimmed with single spaces."""

    def __init__(self, input: IO[str] | None = None) -> None:
        self.input = input

    def read_pipe(self) -> str:
        """Return the stream's lines, each trimmed, joined by spaces."""
        stream = self.input if self.input is not None else sys.stdin
        if stream is None:
            return ""
        return " ".join(line.strip() for line in stream).strip()


class _RawNumber(str):
    """A JSON number kept in its original text form."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _first_key_wins(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        result.setdefault(key, value)
    return result


def _parse(text: str) -> Any:
    try:
        return json.loads(
            text,
            parse_int=_RawNumber,
            parse_float=_RawNumber,
            parse_constant=_reject_constant,
            object_pairs_hook=_first_key_wins,
        )
    except ValueError as err:
        raise ValueError("invalid JSON received by stdin") from err


def _split_path(selector: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    chars = iter(selector)
    for char in chars:
        if char == "\\":
            current.append(next(chars, ""))
        elif char == ".":
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _lookup(value: Any, selector: str) -> Any:
    for part in _split_path(selector):
        if isinstance(value, dict):
            if part not in value:
                return _MISSING
            value = value[part]
        elif isinstance(value, list):
            if part == "#":
                value = _RawNumber(str(len(value)))
            elif part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            else:
                return _MISSING
        else:
            return _MISSING
    return value


def _dump(value: Any) -> str:
    if isinstance(value, _RawNumber):
        return str(value)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, list):
        return "[" + ",".join(_dump(item) for item in value) + "]"
    return "{" + ",".join(f"{json.dumps(k)}:{_dump(v)}" for k, v in value.items()) + "}"


def _to_text(value: Any) -> str:
    if isinstance(value, _RawNumber):
        return str(value)
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return _dump(value)


def json_to_filtered_map(text: str, selectors: Iterable[str]) -> list[dict[str, str]]:
    """Pick the selected values from each object of a JSON document.

    A single object is treated as a list of one. Every found value is
    converted to its text form.
    """
    parsed = _parse(text)
    if isinstance(parsed, list):
        items = parsed
    elif parsed is None:
        items = []
    else:
        items = [parsed]

    selectors = list(selectors)
    results: list[dict[str, str]] = []
    for item in items:
        found: dict[str, str] = {}
        for selector in selectors:
            value = _lookup(item, selector)
            if value is not _MISSING:
                found[selector] = _to_text(value)
        results.append(found)
    return results


def read_stdin(pipe: PipeReader, selectors: Iterable[str]) -> list[dict[str, str]]:
    """Read the pipe and pick the selected values from its JSON."""
    return json_to_filtered_map(pipe.read_pipe(), selectors)


def collect_pipe_input(
    pipe: PipeReader, input_exists: bool, accepted_keys: Iterable[str]
) -> dict[str, list[str]]:
    """Gather, for each accepted key, its value from every piped object.

    Returns an empty mapping when there is no input or it cannot be read.
    """
    if not input_exists:
        return {}
    accepted_keys = list(accepted_keys)
    try:
        rows = read_stdin(pipe, accepted_keys)
    except (ValueError, OSError) as err:
        log.error("%s", err)
        return {}
    return {key: [row.get(key, "") for row in rows] for key in accepted_keys}


class PipeInput:
    """Values read once from a pipe and kept for later lookups."""

    def __init__(
        self,
        reader: PipeReader | None = None,
        predicate: Callable[[], bool] | None = None,
        values: dict[str, list[str]] | None = None,
    ) -> None:
        self.reader = reader if reader is not None else StdinPipeReader()
        self.predicate = predicate if predicate is not None else stdin_exists
        self.values = values

    def load(self, accepted_keys: Iterable[str]) -> None:
        """Read the pipe on the first call; later calls do nothing."""
        if self.values is None:
            self.values = collect_pipe_input(self.reader, self.predicate(), accepted_keys)

    def get(self, key: str) -> list[str] | None:
        """Return the values found for the key, or None if there are none."""
        if self.values is None:
            return None
        return self.values.get(key)

    def exists(self, key: str) -> bool:
        """Whether the key was found in the piped input."""
        return self.values is not None and key in self.values


_default = PipeInput()


def get_input(accepted_keys: Iterable[str]) -> None:
    """Read standard input once, keeping the values of the accepted keys."""
    _default.load(accepted_keys)


def get(key: str) -> list[str] | None:
    """Return the values piped in for the key, or None."""
    return _default.get(key)


def exists(key: str) -> bool:
    """Whether values were piped in for the key."""
    return _default.exists(key)