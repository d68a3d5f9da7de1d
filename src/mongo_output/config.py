from functools import lru_cache
from typing import Dict, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from .errors import ConfigurationError


class MongoOutputSettings(BaseSettings):
    """Output settings, read from MONGO_OUTPUT_* environment variables or .env.

    ``collection`` and the values of ``upsert`` may use ``%{field}`` placeholders.
    ``upsert`` is given as JSON in the environment, e.g.
    MONGO_OUTPUT_UPSERT='{"request_id": "%{request_id}"}'.
    """

    uri: str
    database: str
    collection: str
    isodate: bool = False
    generate_id: bool = False
    upsert: Optional[Dict[str, str]] = None
    retry_delay: float = 3.0
    log_level: str = "INFO"

    @field_validator("uri", "database", "collection")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("retry_delay")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("retry_delay must be >= 0")
        return v

    @field_validator("log_level")
    @classmethod
    def _upcase(cls, v: str) -> str:
        return v.upper()

    # ConfigurationError is not a ValueError, so pydantic lets it through unwrapped
    @model_validator(mode="after")
    def _exclusive_upsert_and_id(self) -> "MongoOutputSettings":
        check_config_validity(self)
        return self

    class Config:
        env_prefix = "MONGO_OUTPUT_"
        env_file = ".env"
        case_sensitive = False
        frozen = True


def check_config_validity(settings: MongoOutputSettings) -> None:
    """Reject setting combinations that cannot be honoured per event."""
    if settings.upsert and settings.generate_id:
        raise ConfigurationError("You cannot enable both generate_id and make use of upsert.")


@lru_cache()
def get_settings() -> MongoOutputSettings:
    return MongoOutputSettings()
