"""
Example usage of the MongoDB event output.

Demonstrates plain inserts into a per-day collection and upserts keyed by a
request id. Needs a MongoDB reachable at MONGO_URI (default localhost).
"""

import os
from datetime import datetime, timezone

from mongo_output import Event, MongoOutput, MongoOutputSettings
from mongo_output.logging_utils import configure_logging

MONGO_URI = os.environ.get("MONGO_URI", "mongodb://127.0.0.1:27017")


def insert_example():
    """Insert mode: one document per event, collection picked per event."""
    print("=== Insert ===")

    settings = MongoOutputSettings(
        uri=MONGO_URI,
        database="logs",
        collection="%{service}-%{+YYYY.MM.dd}",
        isodate=True,
        retry_delay=1,
    )

    with MongoOutput(settings) as out:
        for i in range(3):
            state = out.receive(
                Event(
                    {
                        "@timestamp": datetime.now(timezone.utc),
                        "service": "billing",
                        "message": f"charge #{i} accepted",
                        "http": {"status": 200},
                    }
                )
            )
            print(f"event {i}: {state.value}")


def upsert_example():
    """Upsert mode: repeated request ids update the same document."""
    print("=== Upsert ===")

    settings = MongoOutputSettings(
        uri=MONGO_URI,
        database="logs",
        collection="requests",
        upsert={"request_id": "%{request_id}"},
    )

    with MongoOutput(settings) as out:
        for status in ("started", "finished"):
            state = out.receive({"request_id": "req-42", "status": status})
            print(f"req-42 {status}: {state.value}")


if __name__ == "__main__":
    configure_logging("INFO")
    insert_example()
    upsert_example()
