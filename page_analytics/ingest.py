"""
Event ingestion: enrich a client beacon with location, id and server time,
then write it to the event store.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from page_analytics.errors import ValidationError

logger = logging.getLogger(__name__)

# Always set by the server; client values for these keys are discarded.
SERVER_FIELDS = ("id", "ip_address", "location", "timestamp")


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-15T12:00:00.123Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_event_id() -> str:
    return str(uuid.uuid4())


def validate_payload(payload: Any) -> Dict:
    """Returns the payload when it is a JSON object carrying a session_id."""
    if not isinstance(payload, dict):
        raise ValidationError("Event payload must be a JSON object")

    session_id = payload.get("session_id")
    if not isinstance(session_id, str) or not session_id.strip():
        raise ValidationError("Missing required field: session_id")

    return payload


class EventIngestor:
    def __init__(
        self,
        store,
        resolver,
        id_factory: Callable[[], str] = new_event_id,
        clock: Callable[[], str] = utc_timestamp,
    ):
        self.store = store
        self.resolver = resolver
        self.id_factory = id_factory
        self.clock = clock

    def build_record(self, payload: Dict, source_ip: str) -> Dict:
        record = {k: v for k, v in payload.items() if k not in SERVER_FIELDS}
        if payload.get("timestamp") is not None:
            record["client_timestamp"] = payload["timestamp"]

        record["session_id"] = payload["session_id"].strip()
        record["id"] = self.id_factory()
        record["ip_address"] = source_ip
        record["location"] = self.resolver.resolve(source_ip)
        record["timestamp"] = self.clock()
        return record

    def ingest(self, payload: Any, source_ip: str) -> Dict:
        """
        Validate, enrich and persist one event.

        Enrichment happens entirely in memory before the single store write,
        so a failed write leaves nothing behind.
        """
        payload = validate_payload(payload)
        record = self.build_record(payload, source_ip)
        created = self.store.create(record)
        logger.debug(f"Stored event {created['id']} for session {created['session_id']}")
        return created
