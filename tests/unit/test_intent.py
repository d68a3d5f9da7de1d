"""
Unit tests for write intent selection.
"""

from mongo_output.event import Event
from mongo_output.intent import Insert, Upsert, render_query, select_intent


def test_insert_without_upsert(make_settings, ts):
    s = make_settings(collection="logs-%{app}")
    intent = select_intent(Event({"@timestamp": ts, "app": "web"}), s)
    assert isinstance(intent, Insert)
    assert intent.collection == "logs-web"
    assert intent.document["app"] == "web"


def test_upsert_renders_query(make_settings, ts):
    s = make_settings(upsert={"key": "%{id}", "fixed": "static"})
    intent = select_intent(Event({"@timestamp": ts, "id": "42"}), s)
    assert isinstance(intent, Upsert)
    assert intent.query == {"key": "42", "fixed": "static"}
    assert intent.collection == "events"


def test_selection_honours_document_settings(make_settings, ts):
    s = make_settings(isodate=True, generate_id=True)
    intent = select_intent(Event({"@timestamp": ts}), s)
    assert intent.document["@timestamp"] == ts
    assert "_id" in intent.document


def test_render_query_keeps_keys(ts):
    e = Event({"@timestamp": ts, "a": "1"})
    assert render_query({"x.y": "%{a}", "z": "%{missing}"}, e) == {"x.y": "1", "z": "%{missing}"}
