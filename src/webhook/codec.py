"""Action token codecs.

Daktela round-trips button and quick-reply identifiers through a short
``name`` field. The codecs here pack an action, its data and an optional
state patch into that field and unpack them again when the user clicks.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Protocol

from src.webhook.errors import TokenDecodeError
from src.webhook.models import ActionToken

logger = logging.getLogger(__name__)


class TokenCodec(Protocol):
    """Strategy for encoding actions into Daktela ``name`` tokens."""

    name: str

    def encode(
        self,
        action: str,
        data: dict[str, Any] | None = None,
        set_state: dict[str, Any] | None = None,
    ) -> str: ...

    def decode(self, token: str) -> ActionToken: ...


def _dumps(value: object) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _unpack(token: str, raw: str) -> ActionToken:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise TokenDecodeError(token, f"not JSON ({exc.msg})") from exc

    if not isinstance(parsed, list) or not parsed or not isinstance(parsed[0], str):
        raise TokenDecodeError(token, "expected [action, data?, state?]")

    action = parsed[0]
    data = parsed[1] if len(parsed) > 1 and parsed[1] is not None else {}
    set_state = parsed[2] if len(parsed) > 2 and parsed[2] else None
    if not isinstance(data, dict):
        raise TokenDecodeError(token, "action data must be an object")
    if set_state is not None and not isinstance(set_state, dict):
        raise TokenDecodeError(token, "state patch must be an object")

    return ActionToken(action=action, data=data, set_state=set_state)


class StructuredTokenCodec:
    """Base64 over JSON ``[action, data, set_state?]``.

    Safe for any JSON-representable data; token length grows with the data.
    """

    name = "structured"

    def encode(
        self,
        action: str,
        data: dict[str, Any] | None = None,
        set_state: dict[str, Any] | None = None,
    ) -> str:
        parts: list[object] = [action, data or {}]
        if set_state:
            parts.append(set_state)
        return base64.b64encode(_dumps(parts).encode()).decode("ascii")

    def decode(self, token: str) -> ActionToken:
        padded = token + "=" * (-len(token) % 4)
        try:
            raw = base64.b64decode(padded).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise TokenDecodeError(token, "not base64") from exc
        return _unpack(token, raw)


class CompactTokenCodec:
    """Plain JSON ``[action, data]``.

    State patches are not carried. If the platform escapes JSON inside its
    own identifier field the token no longer decodes.
    """

    name = "compact"

    def encode(
        self,
        action: str,
        data: dict[str, Any] | None = None,
        set_state: dict[str, Any] | None = None,
    ) -> str:
        if set_state:
            logger.warning("Compact tokens drop the state patch for action %s", action)
        return _dumps([action, data or {}])

    def decode(self, token: str) -> ActionToken:
        token_action = _unpack(token, token)
        return ActionToken(action=token_action.action, data=token_action.data)


CODECS: dict[str, type[StructuredTokenCodec] | type[CompactTokenCodec]] = {
    StructuredTokenCodec.name: StructuredTokenCodec,
    CompactTokenCodec.name: CompactTokenCodec,
}


def get_codec(name: str) -> TokenCodec:
    """Instantiate the codec registered under ``name``."""
    try:
        return CODECS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown codec strategy {name!r}, expected one of {sorted(CODECS)}"
        ) from None
