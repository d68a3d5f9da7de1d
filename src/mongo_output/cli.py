from __future__ import annotations

import json
from collections import Counter
from typing import Any, Dict, Optional

import typer
from pydantic import ValidationError
from pymongo import MongoClient

from .config import MongoOutputSettings
from .errors import ConfigurationError
from .logging_utils import configure_logging
from .output import MongoOutput
from .utils import iter_ndjson

app = typer.Typer(help="mongo-output operational CLI")

PING_COLLECTION = "ping"

# ---------------------------
# Common options
# ---------------------------
# Unset options fall back to MONGO_OUTPUT_* environment variables / .env


def uri_opt() -> Optional[str]:
    return typer.Option(None, "--uri", help="MongoDB connection string")


def database_opt() -> Optional[str]:
    return typer.Option(None, "--database", help="Database name")


def collection_opt() -> Optional[str]:
    return typer.Option(None, "--collection", help="Collection name, may use %{field}")


def isodate_opt() -> Optional[bool]:
    return typer.Option(None, "--isodate/--no-isodate", help="Store @timestamp as a BSON date")


def generate_id_opt() -> Optional[bool]:
    return typer.Option(
        None, "--generate-id/--no-generate-id", help="Derive _id from @timestamp"
    )


def upsert_opt() -> Optional[str]:
    return typer.Option(None, "--upsert", help='Upsert query as JSON, e.g. \'{"id": "%{id}"}\'')


def retry_delay_opt() -> Optional[float]:
    return typer.Option(None, "--retry-delay", help="Seconds between retries")


def _load_settings(**overrides: Any) -> MongoOutputSettings:
    upsert = overrides.pop("upsert", None)
    if upsert is not None:
        try:
            overrides["upsert"] = json.loads(upsert)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"--upsert is not valid JSON: {e}")
    kwargs: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    try:
        return MongoOutputSettings(**kwargs)
    except (ConfigurationError, ValidationError) as e:
        typer.echo(f"configuration error: {e}", err=True)
        raise typer.Exit(code=1)


# ---------------------------
# Config / Health
# ---------------------------


@app.command("check-config")
def check_config(
    uri: Optional[str] = uri_opt(),
    database: Optional[str] = database_opt(),
    collection: Optional[str] = collection_opt(),
    isodate: Optional[bool] = isodate_opt(),
    generate_id: Optional[bool] = generate_id_opt(),
    upsert: Optional[str] = upsert_opt(),
    retry_delay: Optional[float] = retry_delay_opt(),
):
    """Validate settings and print the effective configuration."""
    s = _load_settings(
        uri=uri,
        database=database,
        collection=collection,
        isodate=isodate,
        generate_id=generate_id,
        upsert=upsert,
        retry_delay=retry_delay,
    )
    typer.echo(json.dumps(s.model_dump(), indent=2))


@app.command("ping")
def ping(
    uri: Optional[str] = uri_opt(),
    database: Optional[str] = database_opt(),
):
    """Connect and run the ping admin command."""
    # collection is required by the settings but never used here
    s = _load_settings(uri=uri, database=database, collection=PING_COLLECTION)
    client = MongoClient(s.uri)
    try:
        res = client[s.database].command("ping")
    finally:
        client.close()
    typer.echo(json.dumps({"ok": bool(res.get("ok"))}, indent=2))


# ---------------------------
# NDJSON shipping
# ---------------------------


@app.command("ship")
def ship(
    path: str = typer.Argument("-", help="File path or '-' for stdin (.gz ok)"),
    uri: Optional[str] = uri_opt(),
    database: Optional[str] = database_opt(),
    collection: Optional[str] = collection_opt(),
    isodate: Optional[bool] = isodate_opt(),
    generate_id: Optional[bool] = generate_id_opt(),
    upsert: Optional[str] = upsert_opt(),
    retry_delay: Optional[float] = retry_delay_opt(),
):
    """Send every NDJSON event through the output, one at a time."""
    s = _load_settings(
        uri=uri,
        database=database,
        collection=collection,
        isodate=isodate,
        generate_id=generate_id,
        upsert=upsert,
        retry_delay=retry_delay,
    )
    configure_logging(s.log_level)

    outcomes: Counter = Counter()
    n = 0
    with MongoOutput(s, client_factory=MongoClient) as out:
        for obj in iter_ndjson(path):
            outcomes[out.receive(obj).value] += 1
            n += 1

    typer.echo(json.dumps({"received": n, **dict(outcomes)}, indent=2))


if __name__ == "__main__":
    app()
