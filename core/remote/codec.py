"""
Firestore REST value codec.

Converts plain Python values to the typed JSON encoding used by the Firestore
REST API (``{"stringValue": "x"}``, ``{"mapValue": {"fields": {...}}}``) and back.
"""

import base64
from datetime import datetime, timezone
from typing import Any, Dict


def encode_value(value: Any) -> Dict[str, Any]:
    """
    Encode one Python value as a Firestore ``Value``.

    Raises:
        TypeError: If the value has no Firestore representation.
    """
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (bytes, bytearray)):
        return {"bytesValue": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        stamp = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"timestampValue": stamp}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Encode a flat or nested dict as a Firestore ``fields`` map."""
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(value: Dict[str, Any]) -> Any:
    """
    Decode one Firestore ``Value`` into a Python value.

    Unknown value kinds decode to None so malformed documents degrade
    field-by-field instead of failing.
    """
    if not isinstance(value, dict) or not value:
        return None

    kind, raw = next(iter(value.items()))

    if kind == "nullValue":
        return None
    if kind == "booleanValue":
        return bool(raw)
    if kind == "integerValue":
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None
    if kind == "doubleValue":
        try:
            return float(raw)
        except (TypeError, ValueError):
            return None
    if kind in ("stringValue", "referenceValue"):
        return raw if isinstance(raw, str) else None
    if kind == "bytesValue":
        try:
            return base64.b64decode(raw)
        except (TypeError, ValueError):
            return None
    if kind == "timestampValue":
        try:
            return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            return None
    if kind == "geoPointValue":
        return dict(raw) if isinstance(raw, dict) else None
    if kind == "arrayValue":
        items = (raw or {}).get("values", []) if isinstance(raw, dict) else []
        return [decode_value(item) for item in items]
    if kind == "mapValue":
        fields = (raw or {}).get("fields", {}) if isinstance(raw, dict) else {}
        return decode_fields(fields)
    return None


def decode_fields(fields: Dict[str, Any] | None) -> Dict[str, Any]:
    """Decode a Firestore ``fields`` map into a plain dict."""
    if not fields:
        return {}
    return {key: decode_value(value) for key, value in fields.items()}
