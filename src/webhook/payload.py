"""Parser for the processing engine's button and quick-reply payloads.

The engine emits payloads either as a bare action path (``"/start"``) or as
a JSON object ``{"action": ..., "data": {...}, "setState": {...}}``; it may
also hand over the object already parsed.
"""

from __future__ import annotations

import json
from typing import Any

from src.webhook.errors import ActionPayloadError
from src.webhook.models import ActionToken


def parse_action_payload(payload: str | dict[str, Any] | None) -> ActionToken:
    """Return the action, data and state patch carried by an engine payload."""
    if payload is None or payload == "":
        raise ActionPayloadError("Empty action payload")

    obj: object = payload
    if isinstance(payload, str):
        try:
            obj = json.loads(payload)
        except json.JSONDecodeError:
            return ActionToken(action=payload)
        if not isinstance(obj, dict):
            return ActionToken(action=payload)

    if not isinstance(obj, dict):
        raise ActionPayloadError(f"Unsupported action payload: {payload!r}")

    action = obj.get("action")
    if not isinstance(action, str) or not action:
        raise ActionPayloadError(f"Action payload without action: {payload!r}")

    data = obj.get("data") or {}
    set_state = obj.get("setState") or None
    if not isinstance(data, dict):
        raise ActionPayloadError(f"Action data must be an object: {payload!r}")
    if set_state is not None and not isinstance(set_state, dict):
        raise ActionPayloadError(f"State patch must be an object: {payload!r}")

    return ActionToken(action=action, data=data, set_state=set_state)
