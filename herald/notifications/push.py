"""
Decoding of push-transport payloads.

The push service owns the payload schema; it is treated as opaque JSON whose
keys follow the browser notification conventions (camelCase).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

PushPayload = Union[bytes, bytearray, str, Dict[str, Any], None]

# push key -> request field
_KEY_MAP = {
    "data": "payload",
    "userId": "recipient_user_id",
    "recipientUserId": "recipient_user_id",
    "requireInteraction": "require_interaction",
}

_PASSTHROUGH = {
    "title",
    "body",
    "category",
    "priority",
    "payload",
    "recipient_user_id",
    "tag",
    "actions",
    "image",
    "icon",
    "badge",
    "vibrate",
    "require_interaction",
    "silent",
}


class PushDecodeError(ValueError):
    pass


def _load(raw: PushPayload) -> Dict[str, Any]:
    if raw is None:
        raise PushDecodeError("push event has no data")
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise PushDecodeError(f"payload is not utf-8: {e}") from e
    if not isinstance(raw, str):
        raise PushDecodeError(f"unsupported payload type {type(raw).__name__}")
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PushDecodeError(f"payload is not JSON: {e}") from e
    if not isinstance(obj, dict):
        raise PushDecodeError("payload is not a JSON object")
    return obj


def decode_push_payload(raw: PushPayload) -> Optional[Dict[str, Any]]:
    """Turn a push payload into notification request fields.

    Raises :class:`PushDecodeError` for malformed payloads and returns None
    for payloads without a body. Category and title validation is left to
    the dispatcher.
    """
    obj = _load(raw)
    if not obj.get("body"):
        logger.debug("Push payload without body dropped")
        return None

    fields: Dict[str, Any] = {}
    for key, value in obj.items():
        name = _KEY_MAP.get(key, key)
        if name in _PASSTHROUGH and value is not None:
            fields[name] = value
    fields.setdefault("title", "")
    return fields
