"""
Event Tracker Lambda handler.

Receives page-view beacons from the client-side script, enriches them with
the caller's IP and geolocation, and writes them to DynamoDB.

Routes:
    POST /api/event  - Single tracking event
"""

import json
import logging
import os
from typing import Any, Dict

from page_analytics.app import App, build_app
from page_analytics.config import Settings
from page_analytics.errors import AnalyticsError
from page_analytics.handlers.responses import InvalidBody, error, method_of, parse_json_body, response
from page_analytics.network import get_header, is_file_origin, source_ip

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO")
logging.basicConfig(level=log_level)
logger = logging.getLogger(__name__)

HANDLER_NAME = "event-tracker"

# Cached per container (reused across warm invocations)
_app = None


def _get_app() -> App:
    global _app
    if _app is None:
        settings = Settings.from_env()
        _app = build_app(settings)
        logger.info(f"{HANDLER_NAME}: Initialized {settings.app_name} ({settings.env})")
    return _app


def _client_ip(event: Dict, app: App) -> str:
    """Caller IP; pages opened from disk get the configured placeholder."""
    if is_file_origin(get_header(event, "origin")):
        return app.settings.local_placeholder_ip
    return source_ip(event)


def handle_event(event: Dict, app: App, cors: Dict[str, str]) -> Dict:
    """POST /api/event - Store one tracking event."""
    if app.events is None:
        return error(500, "Events table not configured", cors)

    try:
        payload = parse_json_body(event)
    except InvalidBody as e:
        return error(400, str(e), cors)

    ip_address = _client_ip(event, app)

    try:
        created = app.ingestor.ingest(payload, ip_address)
    except AnalyticsError as e:
        if e.status_code >= 500:
            logger.exception(f"{HANDLER_NAME}: Error saving event")
        else:
            logger.info(f"{HANDLER_NAME}: Rejected event: {e}")
        return error(e.status_code, e.public_message, cors)

    logger.info(f"{HANDLER_NAME}: Stored event {created['id']} from {ip_address}")
    return response(201, created, cors)


def handle(event: Dict, app: App) -> Dict:
    """Route one API Gateway request."""
    origin = get_header(event, "origin")
    if not app.origins.is_allowed(origin):
        logger.info(f"{HANDLER_NAME}: Rejected origin {origin}")
        return error(403, "Origin not allowed")
    cors = app.origins.cors_headers(origin)

    # Handle OPTIONS for CORS preflight
    if method_of(event) == "OPTIONS":
        return response(200, {}, cors)

    route_key = event.get("routeKey", "")

    routes = {
        "POST /api/event": handle_event,
    }

    handler = routes.get(route_key)
    if handler is None:
        return error(404, f"Route not found: {route_key}", cors)

    try:
        return handler(event, app, cors)
    except Exception:
        logger.exception(f"{HANDLER_NAME}: Unexpected error")
        return error(500, "Internal error", cors)


def lambda_handler(event: Dict, context: Any) -> Dict:
    """Main Lambda handler."""
    logger.info(f"{HANDLER_NAME}: Received event: {json.dumps(event)}")
    return handle(event, _get_app())
