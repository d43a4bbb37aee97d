"""Write-payload cleanup shared by the typed and raw resource paths."""
from typing import Any, Dict, Optional

from bson import ObjectId

from panelgen.core.errors import ValidationError

STRIPPED_KEYS = ("id", "_id", "createdAt", "updatedAt", "isPublished")

KEY_ALIASES = {
    "isVisible": "is_visible",
    "iconType": "icon_type",
    "isSystem": "is_system",
}


def sanitize_create_data(payload: Any) -> Dict[str, Any]:
    """Drop server-managed keys, remap camelCase aliases, force a boolean isPublished."""
    if not isinstance(payload, dict):
        return {"isPublished": False}
    is_published = payload.get("isPublished")
    data = {
        KEY_ALIASES.get(key, key): value
        for key, value in payload.items()
        if key not in STRIPPED_KEYS
    }
    data["isPublished"] = is_published if isinstance(is_published, bool) else False
    return data


def normalize_document(doc: Any) -> Optional[Dict[str, Any]]:
    """Expose the native ``_id`` as a string ``id``."""
    if not isinstance(doc, dict):
        return None
    mapped = dict(doc)
    if "_id" in mapped:
        raw_id = mapped.pop("_id")
        mapped["id"] = str(raw_id) if isinstance(raw_id, ObjectId) else raw_id
    return mapped


def require_array(payload: Any, key: str) -> list:
    """Pull a list out of a JSON body, rejecting a missing or non-list value."""
    value = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be an array")
    return value
