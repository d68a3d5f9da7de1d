"""
Write intents and the strategy that picks one per event.

Selection is a pure translation from event to intent: no I/O and no retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

from .config import MongoOutputSettings
from .document import build_document
from .event import Event, render


@dataclass(frozen=True)
class Insert:
    document: Dict[str, Any]
    collection: str


@dataclass(frozen=True)
class Upsert:
    """Update the first document matching ``query`` with ``$set``, inserting if none match."""

    document: Dict[str, Any]
    collection: str
    query: Dict[str, str]


WriteIntent = Union[Insert, Upsert]


def render_query(template: Mapping[str, str], event: Event) -> Dict[str, str]:
    return {key: render(value, event) for key, value in template.items()}


def select_intent(event: Event, settings: MongoOutputSettings) -> WriteIntent:
    collection = render(settings.collection, event)
    document = build_document(event, settings.isodate, settings.generate_id)
    if not settings.upsert:
        return Insert(document, collection)
    return Upsert(document, collection, render_query(settings.upsert, event))
