"""
Viewer identity normalization and the registration identity key.

The identity key is a SHA-256 fingerprint over the canonical JSON of the
normalized name, email and submitted form fields. It lets a returning viewer
on a new device be matched to an earlier registration without storing the
raw values in an index.
"""

import hashlib
import json
import re
from typing import Any

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")
_WHITESPACE = re.compile(r"\s+")


def normalize_email(email: str | None) -> str | None:
    """Trim and lower-case an email address; blank becomes None."""
    if email is None:
        return None
    normalized = str(email).strip().lower()
    return normalized or None


def is_valid_email(email: str | None) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def normalize_name(name: str | None) -> str | None:
    """Collapse internal whitespace and trim; blank becomes None."""
    if name is None:
        return None
    normalized = _WHITESPACE.sub(" ", str(name)).strip()
    return normalized or None


def _normalize_value(key: str, value: Any) -> Any:
    if isinstance(value, str):
        text = _WHITESPACE.sub(" ", value).strip()
        return text.lower() if key.lower() == "email" else text
    if isinstance(value, dict):
        return normalize_form_data(value)
    if isinstance(value, list):
        return [_normalize_value(key, item) for item in value]
    return value


def normalize_form_data(form_data: dict[str, Any] | None) -> dict[str, Any]:
    """
    Normalize submitted registration fields.

    Keys are trimmed and emitted in sorted order, strings have whitespace
    collapsed, email-like fields are lower-cased and empty values dropped.

    Args:
        form_data: Raw form submission (may be None)

    Returns:
        Normalized dict with canonically ordered keys
    """
    if not form_data:
        return {}
    normalized: dict[str, Any] = {}
    for raw_key in sorted(form_data, key=lambda k: str(k).strip()):
        key = str(raw_key).strip()
        if not key:
            continue
        value = _normalize_value(key, form_data[raw_key])
        if value is None or value == "":
            continue
        normalized[key] = value
    return normalized


def derive_name(name: str | None, form_data: dict[str, Any]) -> str | None:
    """Use the explicit name, else ``firstName lastName`` from the form."""
    explicit = normalize_name(name)
    if explicit:
        return explicit
    parts = [form_data.get("firstName"), form_data.get("lastName")]
    return normalize_name(" ".join(str(p) for p in parts if p)) or None


def registration_identity_key(
    name: str | None,
    email: str | None,
    fields: dict[str, Any],
    salt: str | None = None,
) -> str:
    """
    Compute the registration identity key.

    Args:
        name: Normalized display name
        email: Normalized email
        fields: Normalized form data
        salt: Optional per-event salt so keys do not correlate across events

    Returns:
        Hex SHA-256 digest
    """
    document: dict[str, Any] = {
        "name": name.lower() if name else None,
        "email": email,
        "fields": fields,
    }
    if salt:
        document["salt"] = salt
    content = json.dumps(document, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
