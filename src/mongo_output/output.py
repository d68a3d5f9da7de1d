from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from loguru import logger
from pymongo import MongoClient

from .config import MongoOutputSettings, check_config_validity
from .errors import DuplicateKeyPredicate, MongoOutputError, is_duplicate_key_error
from .event import Event
from .intent import select_intent
from .logging_utils import intercept_driver_logging
from .retry import WriteState, execute


@dataclass(frozen=True)
class OutputContext:
    """Everything a write needs, fixed once at register time."""

    settings: MongoOutputSettings
    db: Any
    is_duplicate: DuplicateKeyPredicate
    sleep: Callable[[float], None]


class MongoOutput:
    """
    Event output writing one document per event into MongoDB.

    Usage:
        settings = MongoOutputSettings(uri="mongodb://localhost", database="logs",
                                       collection="app-%{service}")
        with MongoOutput(settings) as out:
            out.receive({"service": "billing", "message": "charged"})

    ``receive`` blocks while a transient failure is being retried and never
    raises for write errors; duplicate-key failures are logged and dropped.
    """

    def __init__(
        self,
        settings: MongoOutputSettings,
        *,
        client_factory: Callable[[str], Any] = MongoClient,
        is_duplicate: DuplicateKeyPredicate = is_duplicate_key_error,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._settings = settings
        self._client_factory = client_factory
        self._is_duplicate = is_duplicate
        self._sleep = sleep
        self._client: Optional[Any] = None
        self._ctx: Optional[OutputContext] = None

    @property
    def context(self) -> OutputContext:
        if self._ctx is None:
            raise MongoOutputError("output is not registered; call register() first")
        return self._ctx

    def register(self) -> None:
        check_config_validity(self._settings)
        intercept_driver_logging()
        self._client = self._client_factory(self._settings.uri)
        db = self._client[self._settings.database]
        self._ctx = OutputContext(
            settings=self._settings,
            db=db,
            is_duplicate=self._is_duplicate,
            sleep=self._sleep,
        )
        logger.info(
            "MongoDB output registered: database={} collection={} mode={}",
            self._settings.database,
            self._settings.collection,
            "upsert" if self._settings.upsert else "insert",
        )

    def receive(self, event: Union[Event, Mapping[str, Any]]) -> WriteState:
        ctx = self.context
        if not isinstance(event, Event):
            event = Event(event)
        intent = select_intent(event, ctx.settings)
        return execute(
            intent,
            ctx.db,
            ctx.settings.retry_delay,
            is_duplicate=ctx.is_duplicate,
            sleep=ctx.sleep,
            event=event,
        )

    def multi_receive(self, events: Iterable[Union[Event, Mapping[str, Any]]]) -> List[WriteState]:
        return [self.receive(e) for e in events]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        self._ctx = None

    def __enter__(self) -> "MongoOutput":
        self.register()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
