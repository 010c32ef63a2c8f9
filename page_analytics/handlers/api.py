"""
Analytics Query API Lambda

Read endpoints over the event and aggregate tables.

Routes:
    GET /api/events/{sessionId}  - All events for one session
    GET /api/events              - Up to EVENTS_LIST_LIMIT stored events
    GET /api/aggregated-data     - Hourly rollup totals for ?page=&date=
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict

from page_analytics.aggregation import aggregate
from page_analytics.app import App, build_app
from page_analytics.config import Settings
from page_analytics.errors import AnalyticsError
from page_analytics.handlers.responses import error, method_of, response
from page_analytics.network import get_header

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO")
logging.basicConfig(level=log_level)
logger = logging.getLogger(__name__)

HANDLER_NAME = "analytics-api"

# Cached per container (reused across warm invocations)
_app = None


def _get_app() -> App:
    global _app
    if _app is None:
        settings = Settings.from_env()
        _app = build_app(settings)
        logger.info(f"{HANDLER_NAME}: Initialized {settings.app_name} ({settings.env})")
    return _app


def _valid_date(value: str) -> bool:
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def _storage_error(e: AnalyticsError, what: str, cors: Dict[str, str]) -> Dict:
    logger.exception(f"{HANDLER_NAME}: Error querying {what}")
    return error(e.status_code, e.public_message, cors)


def handle_session_events(event: Dict, app: App, cors: Dict[str, str]) -> Dict:
    """
    GET /api/events/{sessionId}

    Returns every event stored for the session, oldest first (DynamoDB
    sort-key order). An unknown session returns an empty list.
    """
    session_id = (event.get("pathParameters") or {}).get("sessionId")
    if not session_id:
        return error(400, "Session ID required", cors)

    if app.events is None:
        return error(500, "Events table not configured", cors)

    logger.info(f"{HANDLER_NAME}: Getting events for session {session_id}")

    try:
        events = app.events.query_session(session_id)
    except AnalyticsError as e:
        return _storage_error(e, f"session {session_id}", cors)

    return response(200, events, cors)


def handle_recent_events(event: Dict, app: App, cors: Dict[str, str]) -> Dict:
    """
    GET /api/events

    Returns up to `limit` stored events in no particular order.
    """
    params = event.get("queryStringParameters") or {}
    max_limit = app.settings.events_list_limit

    try:
        limit = int(params.get("limit", max_limit))
    except ValueError:
        return error(400, "limit must be an integer", cors)
    if limit < 1:
        return error(400, "limit must be positive", cors)
    limit = min(limit, max_limit)

    if app.events is None:
        return error(500, "Events table not configured", cors)

    try:
        events = app.events.recent(limit)
    except AnalyticsError as e:
        return _storage_error(e, "recent events", cors)

    return response(200, events, cors)


def handle_aggregated_data(event: Dict, app: App, cors: Dict[str, str]) -> Dict:
    """
    GET /api/aggregated-data?page=&date=

    Sums the hourly rollups for a page into totals plus a 24-entry hourly
    breakdown. Without a date, every stored day for the page is included.
    """
    params = event.get("queryStringParameters") or {}
    page = params.get("page")
    date = params.get("date") or None

    if not page:
        return error(400, "Missing required parameter: page", cors)
    if date and not _valid_date(date):
        return error(400, f"Invalid date: {date}", cors)

    if app.aggregates is None:
        return error(500, "Aggregates table not configured", cors)

    logger.info(f"{HANDLER_NAME}: Aggregating {page} for {date or 'all dates'}")

    try:
        result = aggregate(app.aggregates, page, date)
    except AnalyticsError as e:
        return _storage_error(e, f"aggregates for {page}", cors)

    return response(200, result, cors)


def handle(event: Dict, app: App) -> Dict:
    """Route one API Gateway request."""
    origin = get_header(event, "origin")
    if not app.origins.is_allowed(origin):
        logger.info(f"{HANDLER_NAME}: Rejected origin {origin}")
        return error(403, "Origin not allowed")
    cors = app.origins.cors_headers(origin)

    # Handle CORS preflight
    if method_of(event) == "OPTIONS":
        return response(200, {}, cors)

    route_key = event.get("routeKey", "")

    routes = {
        "GET /api/events/{sessionId}": handle_session_events,
        "GET /api/events": handle_recent_events,
        "GET /api/aggregated-data": handle_aggregated_data,
    }

    handler = routes.get(route_key)
    if handler is None:
        return error(404, f"Route not found: {route_key}", cors)

    try:
        return handler(event, app, cors)
    except Exception:
        logger.exception(f"{HANDLER_NAME}: Error handling request")
        return error(500, "Internal error", cors)


def lambda_handler(event: Dict, context: Any) -> Dict:
    """Main Lambda handler - routes requests to appropriate handlers."""
    logger.info(f"{HANDLER_NAME}: Received event: {json.dumps(event)}")
    return handle(event, _get_app())
