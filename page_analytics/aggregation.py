"""
Hourly aggregation reducer.

Folds pre-computed AggregatedRecords for one page (optionally one date) into
running totals and a fixed 24-slot hourly breakdown.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24

COUNTER_FIELDS = (
    "page_loads",
    "distinct_users",
    "new_users",
    "cumulative_daily_distinct_users",
)

TOTAL_KEYS = {
    "page_loads": "totalPageViews",
    "distinct_users": "totalDistinctUsers",
    "new_users": "totalNewUsers",
    "cumulative_daily_distinct_users": "totalCumulativeDailyDistinctUsers",
}


def _parse_hour(value: Any) -> int | None:
    """Integer hour in 0..23, or None for anything else."""
    if isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (ArithmeticError, ValueError):
        return None
    if not number.is_finite() or number % 1 != 0:
        return None
    hour = int(number)
    if 0 <= hour < HOURS_PER_DAY:
        return hour
    return None


def _counter(record: Dict, field: str) -> int:
    value = record.get(field) or 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def empty_breakdown() -> List[Dict[str, int]]:
    return [{"hour": hour, **{field: 0 for field in COUNTER_FIELDS}} for hour in range(HOURS_PER_DAY)]


def reduce_records(records: Iterable[Dict]) -> Dict[str, Any]:
    """
    Sum counters into totals and the hourly slot given by each record's hour.

    Records with an hour outside 0..23 (or no usable hour at all) are skipped
    and logged; they contribute to neither the totals nor the breakdown.
    """
    totals = {key: 0 for key in TOTAL_KEYS.values()}
    hourly = empty_breakdown()
    skipped = 0

    for record in records:
        hour = _parse_hour(record.get("hour"))
        if hour is None:
            skipped += 1
            logger.warning(
                f"Ignoring aggregate record with invalid hour {record.get('hour')!r} "
                f"(page={record.get('page')}, date={record.get('date')})"
            )
            continue

        slot = hourly[hour]
        for field in COUNTER_FIELDS:
            value = _counter(record, field)
            slot[field] += value
            totals[TOTAL_KEYS[field]] += value

    if skipped:
        logger.debug(f"Skipped {skipped} aggregate records with invalid hours")

    return {**totals, "hourlyBreakdown": hourly}


def aggregate(store, page: str, date: str | None = None) -> Dict[str, Any]:
    """Fetch matching rollups from the aggregate store and reduce them."""
    return reduce_records(store.query(page, date))
