"""API Gateway response and request helpers shared by the HTTP handlers."""

import base64
import json
from typing import Any, Dict

from page_analytics.stores import DecimalEncoder


class InvalidBody(ValueError):
    pass


def _reject_constant(name: str):
    raise InvalidBody(f"Invalid JSON value: {name}")


def response(status_code: int, body: Any, headers: Dict[str, str] | None = None) -> Dict:
    """Return standardized API response, with CORS headers when given."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json", **(headers or {})},
        "body": json.dumps(body, cls=DecimalEncoder),
    }


def error(status_code: int, message: str, headers: Dict[str, str] | None = None) -> Dict:
    return response(status_code, {"error": message}, headers)


def parse_json_body(event: Dict) -> Any:
    body_str = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            body_str = base64.b64decode(body_str).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidBody("Invalid body encoding") from e

    if not body_str:
        return {}
    try:
        return json.loads(body_str, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise InvalidBody("Invalid JSON body") from e


def method_of(event: Dict) -> str:
    return event.get("requestContext", {}).get("http", {}).get("method", "")
