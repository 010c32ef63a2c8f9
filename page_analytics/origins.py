"""
CORS origin allow-list.

Entries:
    https://example.com   exact origin match (scheme, host and port)
    null                  pages opened from disk ("Origin: null")
    localhost             any scheme/port whose parsed host equals the entry
    .example.com          the host itself or any subdomain of it
"""

from typing import Dict, Iterable
from urllib.parse import urlsplit

ALLOWED_METHODS = "OPTIONS,GET,POST"
ALLOWED_HEADERS = "Content-Type"


def _normalize_origin(origin: str) -> str | None:
    """scheme://host[:port] in lower case, or None if it does not parse."""
    try:
        parts = urlsplit(origin.strip())
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}" if port is not None else host
    return f"{parts.scheme.lower()}://{netloc}"


def _origin_host(origin: str) -> str | None:
    try:
        return urlsplit(origin.strip()).hostname
    except ValueError:
        return None


class OriginPolicy:
    def __init__(self, entries: Iterable[str]):
        self.allow_null = False
        self.exact_origins = set()
        self.hosts = set()
        self.host_suffixes = set()

        for entry in entries:
            entry = entry.strip().lower()
            if not entry:
                continue
            if entry == "null":
                self.allow_null = True
            elif "://" in entry:
                normalized = _normalize_origin(entry)
                if normalized:
                    self.exact_origins.add(normalized)
            elif entry.startswith("."):
                self.host_suffixes.add(entry)
                self.hosts.add(entry[1:])
            else:
                self.hosts.add(entry.strip("[]"))

    def is_allowed(self, origin: str | None) -> bool:
        """Requests without an Origin header (same-origin, curl, beacons) are allowed."""
        if origin is None or not origin.strip():
            return True

        origin = origin.strip()
        if origin.lower() == "null" or origin.lower().startswith("file://"):
            return self.allow_null

        normalized = _normalize_origin(origin)
        if normalized is None:
            return False
        if normalized in self.exact_origins:
            return True

        host = _origin_host(origin)
        if not host:
            return False
        if host in self.hosts:
            return True
        return any(host.endswith(suffix) for suffix in self.host_suffixes)

    def cors_headers(self, origin: str | None) -> Dict[str, str]:
        """Headers to attach for an allowed cross-origin request."""
        if origin is None or not origin.strip():
            return {}
        return {
            "Access-Control-Allow-Origin": origin.strip(),
            "Vary": "Origin",
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            "Access-Control-Max-Age": "600",
        }
