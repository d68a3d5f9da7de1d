"""
Custom exceptions for the MongoDB event output.

Provides structured error handling: a fatal configuration error raised at
register time, and two write-error classes that drive the retry decision.
"""

from typing import Callable

from pymongo.errors import DuplicateKeyError, OperationFailure

# 11000: duplicate key, 11001: legacy duplicate key on update,
# 12582: duplicate key on mongos
DUPLICATE_KEY_CODES = frozenset({11000, 11001, 12582})
DUPLICATE_KEY_PREFIX = "E11000"


class MongoOutputError(Exception):
    """Base error for the MongoDB output."""

    pass


class ConfigurationError(MongoOutputError):
    """Settings that cannot work together. Fatal, raised before any write."""

    pass


class DuplicateKeyViolation(MongoOutputError):
    """Uniqueness constraint violated. Retrying the same write cannot succeed."""

    pass


class RetryableWriteError(MongoOutputError):
    """Any other write failure; assumed transient and retried."""

    pass


DuplicateKeyPredicate = Callable[[BaseException], bool]


def is_duplicate_key_error(e: BaseException) -> bool:
    """Default duplicate-key predicate for pymongo errors."""
    if isinstance(e, DuplicateKeyError):
        return True
    if isinstance(e, OperationFailure) and e.code in DUPLICATE_KEY_CODES:
        return True
    return str(e).startswith(DUPLICATE_KEY_PREFIX)


def classify_write_error(
    e: Exception, is_duplicate: DuplicateKeyPredicate = is_duplicate_key_error
) -> MongoOutputError:
    if is_duplicate(e):
        return DuplicateKeyViolation(str(e))
    return RetryableWriteError(str(e))
