"""Small helpers shared across the command line tools."""

from __future__ import annotations

import base64
import dataclasses
import os
import stat
import sys
import time
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class NRDBClient(Protocol):
    """A client able to run an NRQL query against an account."""

    def query(self, account_id: int, nrql: str) -> Sequence[Mapping[str, Any]]:
        """Run the query and return its result rows."""
        ...


def struct_to_map(item: Any, fields: Iterable[str]) -> dict[str, Any]:
    """Pick the named fields of a dataclass instance into a dictionary.

    Fields are addressed by their ``json`` metadata key (the part before any
    comma), falling back to the attribute name. A key of ``"-"`` hides the field.
    """
    if not dataclasses.is_dataclass(item) or isinstance(item, type):
        raise TypeError(f"expected a dataclass instance, got {type(item).__name__}")

    by_key: dict[str, str] = {}
    for fld in dataclasses.fields(item):
        key = str(fld.metadata.get("json", fld.name)).split(",")[0]
        if key and key != "-":
            by_key[key] = fld.name

    return {name: getattr(item, by_key[name]) for name in fields if name in by_key}


def get_default_config_directory() -> str:
    """Return the path of the ``.newrelic`` directory in the user's home."""
    home = Path.home()
    return f"{home}/.newrelic"


def min_of(*args: int) -> int:
    """Return the smallest of the given values."""
    if not args:
        raise ValueError("min_of requires at least one value")
    return min(args)


def get_timestamp() -> int:
    """Return the current epoch timestamp in seconds."""
    return int(time.time())


def make_range(low: int, high: int) -> list[int]:
    """Return the integers from ``low`` to ``high``, both included."""
    if high < low - 1:
        raise ValueError(f"invalid range: {low}..{high}")
    return list(range(low, high + 1))


def base64_encode(data: str) -> str:
    """Base64-encode a string using the standard alphabet."""
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def stdin_exists() -> bool:
    """Whether standard input is a pipe or file rather than a terminal."""
    stream = sys.stdin
    if stream is None:
        return False
    try:
        mode = os.fstat(stream.fileno()).st_mode
    except (AttributeError, OSError, ValueError):
        return False
    return not stat.S_ISCHR(mode)