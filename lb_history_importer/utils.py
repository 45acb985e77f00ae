# -*- coding: utf-8 -*-
"""
Console output, the debug log and timestamp helpers shared by the importer.
"""

from __future__ import annotations

import datetime as dt
import sys
from pathlib import Path
from typing import Optional

DEBUG_LOG_DEFAULT = Path("lb_import_debug.log")

_debug_log: Optional[Path] = None

# ---------------------------
# Output
# ---------------------------

def enable_debug_log(path: Path = DEBUG_LOG_DEFAULT) -> None:
    global _debug_log
    _debug_log = path


def disable_debug_log() -> None:
    global _debug_log
    _debug_log = None


def debug_enabled() -> bool:
    return _debug_log is not None


def log_debug(line: str) -> None:
    if _debug_log is None:
        return
    try:
        _debug_log.parent.mkdir(parents=True, exist_ok=True)
        with _debug_log.open("a", encoding="utf-8") as lf:
            lf.write(line + "\n")
    except OSError:
        pass


def warn(msg: str) -> None:
    print(f"Warning: {msg}", file=sys.stderr)


def error(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)

# ---------------------------
# Timestamps
# ---------------------------

# Fallbacks tried after RFC3339, most specific first.
DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H",
)
DATE_FORMATS = ("%Y-%m-%d",)


def parse_rfc3339(s: str) -> dt.datetime:
    """
    Parse an RFC3339 timestamp ('2018-07-10T06:58:55Z', '...+02:00').
    Raises ValueError when the string has no offset or is not RFC3339.
    """
    if "T" not in s and "t" not in s:
        raise ValueError(f"not an RFC3339 timestamp: {s!r}")
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    d = dt.datetime.fromisoformat(s)
    if d.tzinfo is None:
        raise ValueError(f"RFC3339 timestamp without offset: {s!r}")
    return d


def parse_datetime(s: str) -> dt.datetime:
    """
    Flexible user-facing timestamp parsing: RFC3339 first, then
    'YYYY-MM-DD HH:MM:SS', 'YYYY-MM-DD HH:MM', 'YYYY-MM-DD HH' and a bare
    'YYYY-MM-DD' (midnight). Values without an offset are in local time.
    """
    s = s.strip()
    try:
        return parse_rfc3339(s)
    except ValueError:
        pass
    for fmt in DATETIME_FORMATS + DATE_FORMATS:
        try:
            naive = dt.datetime.strptime(s, fmt)
        except ValueError:
            continue
        return naive.astimezone()
    raise ValueError(f"unrecognized date/time: {s!r}")


def format_timestamp(ts: int) -> str:
    """Unix seconds -> RFC3339 UTC, the form parse_datetime accepts back."""
    d = dt.datetime.fromtimestamp(ts, tz=dt.timezone.utc)
    return d.isoformat().replace("+00:00", "Z")
