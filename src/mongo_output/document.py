"""
Document building: Event -> storable MongoDB document.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict

from bson import ObjectId

from .event import TIMESTAMP, Event
from .utils import iso8601

ID_FIELD = "_id"


def timestamp_to_text(ts: datetime) -> str:
    return iso8601(ts)


def derive_id(ts: datetime) -> ObjectId:
    """ObjectId whose generation time is the event timestamp (rest zeroed)."""
    return ObjectId.from_datetime(ts)


def _to_bson_value(value: Any) -> Any:
    # BSON has no arbitrary-precision decimal; store as double
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: _to_bson_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_bson_value(v) for v in value]
    return value


def build_document(event: Event, isodate: bool = False, generate_id: bool = False) -> Dict[str, Any]:
    """Build the document for one write.

    Args:
        event: Source event; never modified
        isodate: Keep ``@timestamp`` as a native datetime (BSON date) instead of text
        generate_id: Set ``_id`` from the event timestamp, overwriting any copied ``_id``

    Returns:
        A fresh dict owned by the caller
    """
    document = _to_bson_value(event.to_dict())
    if not isodate:
        document[TIMESTAMP] = timestamp_to_text(event.timestamp)
    if generate_id:
        document[ID_FIELD] = derive_id(event.timestamp)
    return document
