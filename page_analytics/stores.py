"""
DynamoDB-backed event and aggregate stores.

Events table:
    PK = "SESSION#{session_id}", SK = "EVENT#{timestamp}#{id}"
    GSI1: GSI1PK = "DATE#{date}", GSI1SK = "{timestamp}#{id}"

Aggregates table:
    PK = "PAGE#{page}", SK = "{date}#{hour:02d}#{source}"

source names the producer of a row, so several upstream jobs may each
contribute a row for the same page and hour.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from page_analytics.errors import StorageQueryError, StorageWriteError

logger = logging.getLogger(__name__)

KEY_ATTRIBUTES = ("PK", "SK", "GSI1PK", "GSI1SK")

DEFAULT_SOURCE = "rollup-builder"


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types from DynamoDB."""

    def default(self, obj):
        if isinstance(obj, Decimal):
            if obj % 1 == 0:
                return int(obj)
            return float(obj)
        return super().default(obj)


def to_dynamodb(value: Any) -> Any:
    """DynamoDB rejects floats; round-trip through JSON to turn them into Decimals."""
    return json.loads(json.dumps(value, cls=DecimalEncoder), parse_float=Decimal)


def _strip_keys(item: Dict) -> Dict:
    return {k: v for k, v in item.items() if k not in KEY_ATTRIBUTES}


def _query_all(table, **kwargs) -> List[Dict]:
    """Run a query and follow LastEvaluatedKey until exhausted."""
    response = table.query(**kwargs)
    items = response.get("Items", [])

    while "LastEvaluatedKey" in response:
        response = table.query(ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs)
        items.extend(response.get("Items", []))

    return items


class EventStore:
    """Raw page-view events, keyed by session."""

    def __init__(self, table):
        self.table = table

    def create(self, record: Dict) -> Dict:
        """
        Write one event. The put is conditional on the key being new, so an id
        collision fails the write instead of replacing an existing event.
        """
        timestamp = record["timestamp"]
        item = to_dynamodb({
            **record,
            "PK": f"SESSION#{record['session_id']}",
            "SK": f"EVENT#{timestamp}#{record['id']}",
            "GSI1PK": f"DATE#{timestamp[:10]}",
            "GSI1SK": f"{timestamp}#{record['id']}",
        })
        try:
            self.table.put_item(Item=item, ConditionExpression=Attr("PK").not_exists())
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"Failed to write event {record['id']}: {e}") from e
        return _strip_keys(item)

    def query_session(self, session_id: str) -> List[Dict]:
        """All events for a session, in sort-key (timestamp) order."""
        try:
            items = _query_all(self.table, KeyConditionExpression=Key("PK").eq(f"SESSION#{session_id}"))
        except (ClientError, BotoCoreError) as e:
            raise StorageQueryError(f"Failed to query session {session_id}: {e}") from e
        return [_strip_keys(item) for item in items]

    def query_date(self, date: str) -> List[Dict]:
        """All events received on a UTC date (YYYY-MM-DD)."""
        try:
            items = _query_all(
                self.table,
                IndexName="GSI1",
                KeyConditionExpression=Key("GSI1PK").eq(f"DATE#{date}"),
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageQueryError(f"Failed to query events for {date}: {e}") from e
        return [_strip_keys(item) for item in items]

    def recent(self, limit: int) -> List[Dict]:
        """Up to `limit` events in scan order (no ordering guarantee)."""
        items: List[Dict] = []
        kwargs: Dict[str, Any] = {"Limit": limit}
        try:
            while len(items) < limit:
                response = self.table.scan(**kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
                kwargs["Limit"] = limit - len(items)
        except (ClientError, BotoCoreError) as e:
            raise StorageQueryError(f"Failed to list events: {e}") from e
        return [_strip_keys(item) for item in items[:limit]]


class AggregateStore:
    """Pre-computed hourly rollups per page and date."""

    def __init__(self, table):
        self.table = table

    def query(self, page: str, date: str | None = None) -> List[Dict]:
        condition = Key("PK").eq(f"PAGE#{page}")
        if date:
            condition = condition & Key("SK").begins_with(f"{date}#")
        try:
            items = _query_all(self.table, KeyConditionExpression=condition)
        except (ClientError, BotoCoreError) as e:
            raise StorageQueryError(f"Failed to query aggregates for {page}: {e}") from e
        return [_strip_keys(item) for item in items]

    def put_many(self, records: Iterable[Dict]) -> int:
        """Upsert rollup records; returns the number written."""
        written = 0
        try:
            with self.table.batch_writer(overwrite_by_pkeys=["PK", "SK"]) as writer:
                for record in records:
                    source = record.get("source", DEFAULT_SOURCE)
                    hour = int(record["hour"])
                    writer.put_item(Item=to_dynamodb({
                        **record,
                        "source": source,
                        "PK": f"PAGE#{record['page']}",
                        "SK": f"{record['date']}#{hour:02d}#{source}",
                    }))
                    written += 1
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"Failed to write rollups: {e}") from e
        return written
