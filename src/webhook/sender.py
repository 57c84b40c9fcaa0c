"""Outbound reply sender: engine payloads to Daktela wire bodies.

One sender is bound to one conversation. Each ``send`` transforms a single
engine payload (thread transfer, button template or text with quick
replies) and POSTs it to the conversation's response URL. Sends are
serialized so that Daktela receives replies in the order the engine
produced them.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import re
from typing import TYPE_CHECKING, Any

import httpx

from src.models import ChatLogEntry, SendStatus
from src.webhook.errors import DaktelaError, DeliveryError, InvalidTransferTargetError
from src.webhook.payload import parse_action_payload

if TYPE_CHECKING:
    from src.audit.logger import ChatLogger
    from src.webhook.codec import TokenCodec
    from src.webhook.models import Conversation

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json; charset:utf-8"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def link_identifier(title: str | None, url: str | None) -> str:
    """Stable, non-decodable ``name`` for URL buttons."""
    digest = hashlib.sha1()
    digest.update((title or "").encode())
    digest.update((url or "").encode())
    return digest.hexdigest()


def parse_app_id(target_app_id: object) -> int:
    """Parse a transfer target as a base-10 integer from its leading digits.

    Non-numeric ids raise InvalidTransferTargetError.
    """
    if isinstance(target_app_id, bool):
        raise InvalidTransferTargetError(target_app_id)
    if isinstance(target_app_id, int):
        return target_app_id
    match = _LEADING_INT.match(str(target_app_id))
    if not match:
        raise InvalidTransferTargetError(target_app_id)
    return int(match.group(1))


def _is_button_template(message: dict[str, Any]) -> bool:
    attachment = message.get("attachment")
    return (
        isinstance(attachment, dict)
        and attachment.get("type") == "template"
        and isinstance(attachment.get("payload"), dict)
        and attachment["payload"].get("template_type") == "button"
    )


def _is_text_quick_reply(qr: dict[str, Any]) -> bool:
    # Location, phone and email chips carry no action
    return qr.get("content_type", "text") == "text" and bool(qr.get("payload"))


class DaktelaSender:
    """Sends engine reply payloads to a single Daktela conversation."""

    waits = True

    def __init__(
        self,
        conversation: Conversation,
        sender_id: str,
        codec: TokenCodec,
        page_id: str = "daktela",
        client: httpx.AsyncClient | None = None,
        chat_logger: ChatLogger | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._conversation = conversation
        self._sender_id = sender_id
        self._codec = codec
        self._page_id = page_id
        self._client = client
        self._chat_logger = chat_logger
        self._timeout = timeout
        self._lock = asyncio.Lock()
        self.results: list[ChatLogEntry] = []

    @property
    def conversation_name(self) -> str:
        return self._conversation.name

    @property
    def response_url(self) -> str:
        return self._conversation.response_url

    async def send(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        """Deliver one engine payload.

        Returns the parsed Daktela response, or None when the payload has
        no Daktela representation. Raises DeliveryError when Daktela does
        not answer with result OK.
        """
        async with self._lock:
            return await self._send(payload)

    async def _send(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        try:
            body = self.transform_payload(payload)
        except DaktelaError as exc:
            self._record(SendStatus.FAILED, payload, error=str(exc))
            raise

        if body is None:
            logger.debug("Skipping payload without Daktela representation: %s", payload)
            self._record(SendStatus.SKIPPED, payload)
            return None

        # Conversation identity is applied last so payloads cannot override it
        body = {
            "quickreply": [],
            **body,
            "conversation": {"name": self._conversation.name},
        }

        try:
            response = await self._post(body)
        except httpx.HTTPError as exc:
            logger.warning("Daktela request to %s failed: %s", self.response_url, exc)
            self._record(SendStatus.FAILED, payload, body, error=str(exc))
            raise

        if response.get("result") != "OK":
            error = DeliveryError(response.get("error"), response)
            logger.warning("Daktela rejected reply for %s: %s", self._sender_id, error)
            self._record(SendStatus.FAILED, payload, body, response, str(error))
            raise error

        self._record(SendStatus.SENT, payload, body, response)
        return response

    def transform_payload(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        """Translate an engine payload to the Daktela body, without identity."""
        if payload.get("target_app_id"):
            return {"transfer": parse_app_id(payload["target_app_id"])}

        message = payload.get("message")
        if not isinstance(message, dict):
            return None

        if _is_button_template(message):
            template = message["attachment"]["payload"]
            buttons = [self._create_button(btn) for btn in template.get("buttons") or []]
            return {
                "text": template.get("text"),
                "button": [btn for btn in buttons if btn is not None],
            }

        if not message.get("text"):
            return None

        body: dict[str, Any] = {"text": str(message["text"])}
        if message.get("quick_replies"):
            body["quickreply"] = [
                {"text": qr.get("title"), "name": self._encode_payload(qr.get("payload"))}
                for qr in message["quick_replies"]
                if _is_text_quick_reply(qr)
            ]
        return body

    def _create_button(self, btn: dict[str, Any]) -> dict[str, Any] | None:
        kind = btn.get("type")
        if kind == "web_url":
            return {
                "text": btn.get("title"),
                "url": btn.get("url"),
                "name": link_identifier(btn.get("title"), btn.get("url")),
            }
        if kind == "postback":
            return {
                "text": btn.get("title"),
                "name": self._encode_payload(btn.get("payload")),
            }
        return None

    def _encode_payload(self, payload: str | dict[str, Any] | None) -> str:
        token = parse_action_payload(payload)
        return self._codec.encode(token.action, token.data, token.set_state)

    async def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        headers = {"Content-Type": CONTENT_TYPE}
        content = json.dumps(body, ensure_ascii=False).encode("utf-8")

        if self._client is not None:
            resp = await self._client.post(
                self.response_url, content=content, headers=headers, timeout=self._timeout,
            )
        else:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    self.response_url, content=content, headers=headers,
                    timeout=self._timeout,
                )

        logger.debug("Daktela responded %s for %s", resp.status_code, self._sender_id)
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _record(
        self,
        status: SendStatus,
        payload: dict[str, Any],
        request: dict[str, Any] | None = None,
        response: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        entry = ChatLogEntry(
            sender_id=self._sender_id,
            page_id=self._page_id,
            status=status,
            payload=payload,
            request=request,
            response=response,
            error=error,
        )
        self.results.append(entry)
        if self._chat_logger:
            self._chat_logger.log(entry)
