"""
Best-effort IP geolocation.

One HTTP lookup per public address, no retries. Any failure degrades to the
"unknown" location; callers never see an exception from resolve().
"""

import ipaddress
import logging
from typing import Dict

import httpx

from page_analytics.network import is_local_address, strip_port

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"
LOCALHOST = "localhost"


def unknown_location() -> Dict[str, str]:
    return {"city": UNKNOWN, "region": UNKNOWN, "country": UNKNOWN}


def localhost_location() -> Dict[str, str]:
    return {"city": LOCALHOST, "region": LOCALHOST, "country": LOCALHOST}


def _field(data: Dict, *names: str) -> str:
    for name in names:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return UNKNOWN


def _parse_provider_body(data) -> Dict[str, str] | None:
    """Map a provider response onto a location, or None if it reports a failure."""
    if not isinstance(data, dict):
        return None
    # ip-api.com signals failure with status=fail, ipinfo/ipapi with an error key
    if data.get("status") == "fail" or data.get("error"):
        return None
    return {
        "city": _field(data, "city"),
        "region": _field(data, "region", "regionName"),
        "country": _field(data, "country", "country_name"),
    }


class GeolocationResolver:
    """Resolves client IPs through an HTTP geolocation provider."""

    def __init__(self, url_template: str, timeout: float = 3.0, client: httpx.Client | None = None):
        self.url_template = url_template
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def resolve(self, ip: str) -> Dict[str, str]:
        if not ip:
            return unknown_location()

        if is_local_address(ip):
            return localhost_location()

        host = strip_port(ip)
        try:
            ipaddress.ip_address(host)
        except ValueError:
            logger.warning(f"Skipping geolocation for unparseable address: {ip!r}")
            return unknown_location()

        try:
            url = self.url_template.format(ip=host)
            response = self._client.get(url, timeout=self.timeout)
            response.raise_for_status()
            location = _parse_provider_body(response.json())
        except httpx.TimeoutException:
            logger.warning(f"Geolocation lookup timed out for {host}")
            return unknown_location()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Geolocation provider returned {e.response.status_code} for {host}")
            return unknown_location()
        except Exception as e:
            logger.warning(f"Geolocation lookup failed for {host}: {e}")
            return unknown_location()

        if location is None:
            logger.warning(f"Geolocation provider could not locate {host}")
            return unknown_location()
        return location

    def close(self) -> None:
        self._client.close()
