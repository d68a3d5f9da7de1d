"""
MongoDB Event Output

Writes structured log events into MongoDB, one document per event. The target
collection is rendered per event from a ``%{field}`` template; writes are
plain inserts or upserts against a rendered query. Transient failures block
and retry; duplicate-key failures are logged and dropped.

Usage:
    from mongo_output import MongoOutput, MongoOutputSettings

    settings = MongoOutputSettings(
        uri="mongodb://localhost:27017",
        database="logs",
        collection="events-%{+YYYY.MM.dd}",
    )
    with MongoOutput(settings) as out:
        out.receive({"message": "hello"})
"""

from .config import MongoOutputSettings, check_config_validity, get_settings
from .document import build_document, derive_id
from .errors import (
    ConfigurationError,
    DuplicateKeyViolation,
    MongoOutputError,
    RetryableWriteError,
    is_duplicate_key_error,
)
from .event import Event, render
from .intent import Insert, Upsert, select_intent
from .output import MongoOutput, OutputContext
from .retry import WriteState, execute

__version__ = "1.0.0"
__all__ = [
    "MongoOutput",
    "OutputContext",
    "MongoOutputSettings",
    "check_config_validity",
    "get_settings",
    "Event",
    "render",
    "build_document",
    "derive_id",
    "Insert",
    "Upsert",
    "select_intent",
    "WriteState",
    "execute",
    "MongoOutputError",
    "ConfigurationError",
    "DuplicateKeyViolation",
    "RetryableWriteError",
    "is_duplicate_key_error",
]
