"""
Rollup Builder Lambda

Rebuilds hourly AggregatedRecords from raw events.
Triggered by EventBridge on an hourly schedule; an invocation payload of
{"date": "YYYY-MM-DD"} rebuilds just that date.
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List

from page_analytics.app import App, build_app
from page_analytics.config import Settings
from page_analytics.errors import AnalyticsError
from page_analytics.rollups import build_hourly_records, recent_dates

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO")
logging.basicConfig(level=log_level)
logger = logging.getLogger(__name__)

HANDLER_NAME = "rollup-builder"

# Cached per container
_app = None


def _get_app() -> App:
    global _app
    if _app is None:
        settings = Settings.from_env()
        _app = build_app(settings)
        logger.info(f"{HANDLER_NAME}: Initialized {settings.app_name} ({settings.env})")
    return _app


def _target_dates(event: Dict, app: App) -> List[str]:
    date = (event or {}).get("date") or ((event or {}).get("detail") or {}).get("date")
    if date:
        datetime.strptime(date, "%Y-%m-%d")
        return [date]
    return recent_dates(app.settings.rollup_lookback_days)


def build(event: Dict, app: App) -> Dict:
    if app.events is None or app.aggregates is None:
        logger.error(f"{HANDLER_NAME}: EVENTS_TABLE and AGGREGATES_TABLE must be configured")
        return {"statusCode": 500, "body": "EVENTS_TABLE and AGGREGATES_TABLE must be configured"}

    try:
        dates = _target_dates(event, app)
    except ValueError:
        logger.error(f"{HANDLER_NAME}: Invalid date in event: {event}")
        return {"statusCode": 400, "body": "Invalid date"}

    logger.info(f"{HANDLER_NAME}: Building rollups for {dates}")

    results = {}
    for date in dates:
        try:
            events = app.events.query_date(date)
            records = build_hourly_records(events, date)
            written = app.aggregates.put_many(records)
            results[date] = {"events": len(events), "records": written}
            logger.info(f"{HANDLER_NAME}: {date}: {len(events)} events -> {written} records")
        except AnalyticsError as e:
            logger.exception(f"{HANDLER_NAME}: Failed to build rollups for {date}")
            results[date] = f"error: {e}"

    return {
        "statusCode": 200,
        "body": json.dumps({
            "message": "Rollup build complete",
            "results": results,
        }),
    }


def lambda_handler(event: Dict, context: Any) -> Dict:
    """Main Lambda handler - triggered by EventBridge schedule."""
    logger.info(f"{HANDLER_NAME}: Starting rollup build")
    return build(event, _get_app())
