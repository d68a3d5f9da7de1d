"""
Write execution with failure classification and blocking retry.

State machine::

    ATTEMPTING --ok--------------> SUCCEEDED
    ATTEMPTING --duplicate key---> SUPPRESSED
    ATTEMPTING --other error-----> RETRYING --sleep(retry_delay)--> ATTEMPTING

A duplicate-key failure fails identically on every attempt, so the event is
dropped after logging. Every other failure is treated as transient and the
*same* intent (same document object) is retried until it succeeds or turns
into a duplicate-key failure. There is no attempt limit and no timeout.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Callable, Optional

from loguru import logger

from .errors import (
    DuplicateKeyPredicate,
    DuplicateKeyViolation,
    classify_write_error,
    is_duplicate_key_error,
)
from .intent import Insert, WriteIntent


class WriteState(str, Enum):
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    SUPPRESSED = "suppressed"


def perform_write(intent: WriteIntent, db: Any) -> None:
    """Issue the single driver call for an intent."""
    collection = db[intent.collection]
    if isinstance(intent, Insert):
        collection.insert_one(intent.document)
    else:
        collection.update_one(intent.query, {"$set": intent.document}, upsert=True)


def execute(
    intent: WriteIntent,
    db: Any,
    retry_delay: float,
    *,
    is_duplicate: DuplicateKeyPredicate = is_duplicate_key_error,
    sleep: Callable[[float], None] = time.sleep,
    event: Optional[Any] = None,
) -> WriteState:
    """Run one intent to a terminal state, blocking the caller while retrying.

    Args:
        intent: Insert or Upsert to perform
        db: Database handle supporting ``db[name]`` collection lookup
        retry_delay: Seconds to wait between attempts
        is_duplicate: Predicate recognising uniqueness-constraint violations
        sleep: Blocking pause, injectable for tests
        event: Source event for failure logs; the document is logged when omitted

    Returns:
        SUCCEEDED or SUPPRESSED. Write errors are never raised.
    """
    logged = intent.document if event is None else event
    state = WriteState.ATTEMPTING
    attempt = 0
    while True:
        if state is WriteState.RETRYING:
            sleep(retry_delay)
            state = WriteState.ATTEMPTING

        attempt += 1
        try:
            perform_write(intent, db)
        except Exception as e:
            err = classify_write_error(e, is_duplicate)
            logger.opt(exception=e).warning(
                "Failed to send event to MongoDB: collection={} attempt={} event={} exception={!r}",
                intent.collection,
                attempt,
                logged,
                e,
            )
            if isinstance(err, DuplicateKeyViolation):
                return WriteState.SUPPRESSED
            state = WriteState.RETRYING
            continue

        state = WriteState.SUCCEEDED
        if attempt > 1:
            logger.info(
                "Write to collection={} succeeded after {} attempts", intent.collection, attempt
            )
        return state
