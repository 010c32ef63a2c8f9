"""Client IP extraction and classification helpers."""

import ipaddress
from typing import Any, Dict

# RFC 1918 and IPv6 unique-local ranges. ipaddress.is_private also covers the
# documentation ranges, which must still be geolocated.
LOCAL_NETWORKS = tuple(
    ipaddress.ip_network(net)
    for net in ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16", "fc00::/7")
)


def get_header(event: Dict, name: str) -> str | None:
    """Case-insensitive header lookup on an API Gateway event."""
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def strip_port(value: str) -> str:
    """
    Drop a trailing port from an address.

    Handles "1.2.3.4:5678" and "[2001:db8::1]:443". Bare IPv6 addresses are
    returned untouched.
    """
    value = value.strip()
    if value.startswith("["):
        end = value.find("]")
        return value[1:end] if end != -1 else value[1:]
    if value.count(":") == 1:
        return value.split(":", 1)[0]
    return value


def normalize_ip(value: str) -> str:
    """Strip the port and unwrap IPv4-mapped IPv6 addresses (::ffff:1.2.3.4)."""
    host = strip_port(value)
    try:
        ip_obj = ipaddress.ip_address(host)
    except ValueError:
        return host
    if isinstance(ip_obj, ipaddress.IPv6Address) and ip_obj.ipv4_mapped:
        return str(ip_obj.ipv4_mapped)
    return str(ip_obj)


def source_ip(event: Dict[str, Any]) -> str:
    """
    Client IP for an API Gateway HTTP API event.

    First X-Forwarded-For entry wins; falls back to requestContext.http.sourceIp.
    """
    forwarded = get_header(event, "x-forwarded-for")
    if forwarded:
        candidate = forwarded.split(",")[0]
    else:
        candidate = event.get("requestContext", {}).get("http", {}).get("sourceIp", "")
    return normalize_ip(candidate or "")


def is_file_origin(origin: str | None) -> bool:
    """Pages opened from disk send "Origin: null" (or a file:// origin)."""
    if origin is None:
        return False
    origin = origin.strip().lower()
    return origin == "null" or origin.startswith("file://")


def is_local_address(value: str) -> bool:
    """True for loopback, RFC 1918, unique-local, link-local and unspecified addresses."""
    if value.strip().lower() == "localhost":
        return True
    try:
        ip_obj = ipaddress.ip_address(strip_port(value))
    except ValueError:
        return False
    if isinstance(ip_obj, ipaddress.IPv6Address) and ip_obj.ipv4_mapped:
        ip_obj = ip_obj.ipv4_mapped
    if ip_obj.is_loopback or ip_obj.is_link_local or ip_obj.is_unspecified:
        return True
    return any(ip_obj in net for net in LOCAL_NETWORKS if net.version == ip_obj.version)
