"""
Hourly rollup builder.

Turns one day of raw events into AggregatedRecords, one per page and hour
with traffic. A visitor is identified by user_id, falling back to
session_id and then ip_address.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from page_analytics.aggregation import HOURS_PER_DAY

logger = logging.getLogger(__name__)


def _visitor_key(event: Dict) -> str | None:
    for field in ("user_id", "session_id", "ip_address"):
        value = event.get(field)
        if value:
            return str(value)
    return None


def _event_hour(event: Dict) -> int | None:
    ts = str(event.get("timestamp", ""))
    if len(ts) < 13 or not ts[11:13].isdigit():  # YYYY-MM-DDTHH minimum
        return None
    hour = int(ts[11:13])
    return hour if hour < HOURS_PER_DAY else None


def recent_dates(days: int, today=None) -> List[str]:
    """The last `days` UTC dates, oldest first, ending today."""
    today = today or datetime.now(timezone.utc).date()
    return sorted((today - timedelta(days=i)).strftime("%Y-%m-%d") for i in range(days))


def build_hourly_records(events: List[Dict], date: str) -> List[Dict]:
    """
    Roll one date's events up per page and hour.

    new_users counts visitors whose first event of the day on that page falls
    in the hour; cumulative_daily_distinct_users is the number of distinct
    visitors on the page from hour 0 through the hour.
    """
    # page -> hour -> {"loads": int, "visitors": set}
    buckets: Dict[str, Dict[int, Dict]] = defaultdict(
        lambda: defaultdict(lambda: {"loads": 0, "visitors": set()})
    )
    skipped = 0

    for event in events:
        hour = _event_hour(event)
        if hour is None or not str(event.get("timestamp", "")).startswith(date):
            skipped += 1
            continue
        page = event.get("page") or "/"
        bucket = buckets[str(page)][hour]
        bucket["loads"] += 1
        visitor = _visitor_key(event)
        if visitor:
            bucket["visitors"].add(visitor)

    if skipped:
        logger.debug(f"Skipped {skipped} events without a usable timestamp for {date}")

    records = []
    for page in sorted(buckets):
        seen: set = set()
        for hour in sorted(buckets[page]):
            bucket = buckets[page][hour]
            new_visitors = bucket["visitors"] - seen
            seen |= bucket["visitors"]
            records.append({
                "page": page,
                "date": date,
                "hour": hour,
                "page_loads": bucket["loads"],
                "distinct_users": len(bucket["visitors"]),
                "new_users": len(new_visitors),
                "cumulative_daily_distinct_users": len(seen),
            })

    return records
