"""
Event abstraction for the MongoDB output.

An Event is an open, ordered mapping of field name to value that always
carries an ``@timestamp``. Fields are looked up by plain name (``msg``) or by
nested reference (``[http][status]``). ``sprintf`` renders ``%{field}``
templates against the event and is what selects collections and upsert
queries per event.
"""

from __future__ import annotations

import copy
import json
import re
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from loguru import logger

from .utils import iso8601, parse_datetime, utc_now

TIMESTAMP = "@timestamp"
TAGS = "tags"
TIMESTAMP_FAILURE_TAG = "_timestampparsefailure"
TIMESTAMP_FAILURE_FIELD = "_@timestamp"

_PLACEHOLDER = re.compile(r"%\{([^}]+)\}")
_REF_SEGMENT = re.compile(r"\[([^\[\]]+)\]")
_JODA_TOKEN = re.compile(r"YYYY|yyyy|YY|yy|MM|dd|HH|mm|ss|SSS|Z|'[^']*'")

_JODA_FIELDS: Dict[str, Callable[[datetime], str]] = {
    "YYYY": lambda dt: f"{dt.year:04d}",
    "yyyy": lambda dt: f"{dt.year:04d}",
    "YY": lambda dt: f"{dt.year % 100:02d}",
    "yy": lambda dt: f"{dt.year % 100:02d}",
    "MM": lambda dt: f"{dt.month:02d}",
    "dd": lambda dt: f"{dt.day:02d}",
    "HH": lambda dt: f"{dt.hour:02d}",
    "mm": lambda dt: f"{dt.minute:02d}",
    "ss": lambda dt: f"{dt.second:02d}",
    "SSS": lambda dt: f"{dt.microsecond // 1000:03d}",
    "Z": lambda dt: "+0000",
}

_MISSING = object()


def parse_field_reference(ref: str) -> List[str]:
    """Split ``[a][b]`` into ``["a", "b"]``; a plain name is a single segment."""
    if ref.startswith("["):
        segments = _REF_SEGMENT.findall(ref)
        if segments and "".join(f"[{s}]" for s in segments) == ref:
            return segments
    return [ref]


def format_joda(pattern: str, dt: datetime) -> str:
    """Render a Joda-style date pattern (``YYYY.MM.dd``) for a UTC datetime."""

    def _sub(m: re.Match) -> str:
        tok = m.group(0)
        if tok.startswith("'"):
            return tok[1:-1]
        return _JODA_FIELDS[tok](dt)

    return _JODA_TOKEN.sub(_sub, pattern)


def stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, datetime):
        return iso8601(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


class Event:
    """Mutable event record owned by the upstream pipeline.

    Usage:
        event = Event({"@timestamp": "2024-05-01T12:00:00Z", "host": "web-1"})
        event.sprintf("logs-%{host}-%{+YYYY.MM.dd}")  # "logs-web-1-2024.05.01"
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = dict(data or {})
        ts = self._data.get(TIMESTAMP)
        if ts is None:
            self._data[TIMESTAMP] = utc_now()
            return
        try:
            self._data[TIMESTAMP] = parse_datetime(ts)
        except (TypeError, ValueError) as e:
            # keep the event and tag it
            logger.warning("Unparseable {} {!r}, using current time: {}", TIMESTAMP, ts, e)
            self._data[TIMESTAMP] = utc_now()
            self._data[TIMESTAMP_FAILURE_FIELD] = ts
            self._tag(TIMESTAMP_FAILURE_TAG)

    def _tag(self, tag: str) -> None:
        tags = self._data.get(TAGS)
        if tags is None:
            tags = []
        elif not isinstance(tags, list):
            tags = [tags]
        else:
            tags = list(tags)
        if tag not in tags:
            tags.append(tag)
        self._data[TAGS] = tags

    @property
    def timestamp(self) -> datetime:
        return self._data[TIMESTAMP]

    def get(self, ref: str, default: Any = None) -> Any:
        value = self._lookup(ref)
        return default if value is _MISSING else value

    def _lookup(self, ref: str) -> Any:
        node: Any = self._data
        for segment in parse_field_reference(ref):
            if not isinstance(node, Mapping) or segment not in node:
                return _MISSING
            node = node[segment]
        return node

    def __getitem__(self, ref: str) -> Any:
        value = self._lookup(ref)
        if value is _MISSING:
            raise KeyError(ref)
        return value

    def __setitem__(self, ref: str, value: Any) -> None:
        segments = parse_field_reference(ref)
        if segments == [TIMESTAMP]:
            value = parse_datetime(value)
        node = self._data
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = node[segment] = {}
            node = child
        node[segments[-1]] = value

    def __contains__(self, ref: object) -> bool:
        return isinstance(ref, str) and self._lookup(ref) is not _MISSING

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Event({self._data!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Deep copy of the fields; changes to it never reach the event."""
        return copy.deepcopy(self._data)

    def sprintf(self, template: str) -> str:
        """Replace ``%{ref}`` placeholders; unknown fields are left as written."""
        if "%{" not in template:
            return template

        def _sub(m: re.Match) -> str:
            key = m.group(1)
            if key.startswith("+"):
                if key == "+%s":
                    return str(int(self.timestamp.timestamp()))
                return format_joda(key[1:], self.timestamp)
            value = self._lookup(key)
            if value is _MISSING:
                return m.group(0)
            return stringify(value)

        return _PLACEHOLDER.sub(_sub, template)


def render(template: str, event: Event) -> str:
    """Render a ``%{field}`` template against an event. Never raises."""
    return event.sprintf(template)
