"""Viewer device and network context captured at registration and session start."""

from collections.abc import Mapping
from typing import Any

DEVICE_FIELDS = ("deviceType", "userAgent", "browser", "os", "screen", "timezone")


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _coordinate(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def extract_network_context(
    headers: Mapping[str, str], client_host: str | None = None
) -> dict[str, Any]:
    """
    Build the network context from CloudFront viewer headers.

    Args:
        headers: Case-insensitive request headers
        client_host: Socket peer address used when no forwarded address exists

    Returns:
        Dict with ``ip``, ``geo`` (country, region, city, latitude, longitude,
        asn) and ``network`` (protocol, tls, edgePop, requestId)
    """
    forwarded = _header(headers, "x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else client_host

    return {
        "ip": ip or None,
        "geo": {
            "country": _header(headers, "cloudfront-viewer-country"),
            "region": _header(headers, "cloudfront-viewer-country-region"),
            "city": _header(headers, "cloudfront-viewer-city"),
            "latitude": _coordinate(_header(headers, "cloudfront-viewer-latitude")),
            "longitude": _coordinate(_header(headers, "cloudfront-viewer-longitude")),
            "asn": _header(headers, "cloudfront-viewer-asn"),
        },
        "network": {
            "protocol": _header(headers, "cloudfront-forwarded-proto"),
            "tls": (_header(headers, "cloudfront-is-tls-viewer") or "").lower() == "true",
            "edgePop": _header(headers, "x-amz-cf-pop"),
            "requestId": _header(headers, "x-amz-cf-id"),
        },
    }


def normalize_device(device: Mapping[str, Any] | None) -> dict[str, Any]:
    """Keep the known device fields, mapping absent ones to None."""
    device = device or {}
    normalized = {field: device.get(field) for field in DEVICE_FIELDS}
    # Older clients send "type" instead of "deviceType"
    if normalized["deviceType"] is None and device.get("type") is not None:
        normalized["deviceType"] = device.get("type")
    return normalized
