"""
Utility functions for the MongoDB output.

Includes time helpers and NDJSON reading for the CLI.
"""

import gzip
import json
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, IO, Iterator, Union

# seconds fraction, e.g. the ".12" of "03:04:05.12"
_FRACTION = re.compile(r"(?<=\d\d:\d\d:\d\d)\.(\d+)")


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def _normalize_fraction(m: re.Match) -> str:
    return "." + (m.group(1) + "000000")[:6]


def parse_datetime(dt: Union[str, datetime]) -> datetime:
    """Parse datetime from string or return datetime object, always UTC-aware.

    Fractions of any length are padded or truncated to microseconds, which
    fromisoformat before Python 3.11 requires.
    """
    if isinstance(dt, str):
        s = _FRACTION.sub(_normalize_fraction, dt.strip().replace("Z", "+00:00"), count=1)
        dt = datetime.fromisoformat(s)
    if not isinstance(dt, datetime):
        raise TypeError(f"expected datetime or ISO-8601 string, got {type(dt).__name__}")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso8601(dt: datetime) -> str:
    """ISO-8601 text with millisecond precision and a trailing Z."""
    dt = parse_datetime(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def _open_text(path: str) -> IO[str]:
    if path == "-":
        return sys.stdin
    if path.endswith(".gz"):
        return gzip.open(path, "rt", encoding="utf-8")
    return open(path, "r", encoding="utf-8")


def iter_ndjson(path: str) -> Iterator[Dict[str, Any]]:
    """Yield one dict per non-blank line of ``path`` ('-' for stdin, .gz ok).

    Raises ValueError on a line that is not a JSON object.
    """
    fh = _open_text(path)
    try:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            obj = json.loads(line)
            if not isinstance(obj, dict):
                raise ValueError(f"line {lineno}: expected a JSON object, got {type(obj).__name__}")
            yield obj
    finally:
        if fh is not sys.stdin:
            fh.close()
