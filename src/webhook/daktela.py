"""Daktela webhook connector.

Translates Daktela chat webhook events into normalized chatbot requests,
hands them to the processing engine and gives the engine a DaktelaSender
bound to the originating conversation.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from src.webhook.codec import TokenCodec, get_codec
from src.webhook.config import ConnectorConfig
from src.webhook.errors import EventFormatError
from src.webhook.models import (
    ChatRequest,
    DaktelaEvent,
    EventKind,
    PostBackRequest,
    QuickReplyTextRequest,
    SessionStartRequest,
    TextRequest,
)
from src.webhook.sender import DaktelaSender

if TYPE_CHECKING:
    from src.audit.logger import ChatLogger
    from src.webhook.processor import Processor

logger = logging.getLogger(__name__)

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def reconstruct_timestamp(
    time: str | None,
    name: str | None,
    now: Callable[[], datetime] = datetime.now,
) -> datetime:
    """Combine the event's second-resolution time with milliseconds from its name.

    Daktela only reports ``time`` to the second; the trailing digits of the
    event ``name`` (up to three) restore the sub-second ordering.
    """
    if time:
        try:
            moment = datetime.strptime(time, TIME_FORMAT)
        except ValueError:
            try:
                moment = datetime.fromisoformat(time)
            except ValueError as exc:
                raise EventFormatError(f"Unparseable event time: {time!r}") from exc
    else:
        moment = now()

    digits = re.sub(r"\D+", "", name or "000")
    millis = int(digits[-3:]) if digits else 0
    return moment.replace(microsecond=millis * 1000)


def to_epoch_millis(moment: datetime) -> int:
    return int(moment.replace(microsecond=0).timestamp()) * 1000 + moment.microsecond // 1000


# --- Dispatch ---
#
# Each row pairs an extractor, returning the value the event is dispatched on
# or None, with a builder turning that value into the engine request.

Extractor = Callable[[DaktelaEvent, ConnectorConfig], Any]
Builder = Callable[[Any, DaktelaEvent, TokenCodec, int], ChatRequest]


def _button_name(event: DaktelaEvent, config: ConnectorConfig) -> str | None:
    return event.button.name if event.button is not None else None


def _quick_reply_name(event: DaktelaEvent, config: ConnectorConfig) -> str | None:
    return event.quickreply.name if event.quickreply is not None else None


def _terminate_action(event: DaktelaEvent, config: ConnectorConfig) -> str | None:
    return (config.terminate_action or None) if event.terminate else None


def _text(event: DaktelaEvent, config: ConnectorConfig) -> str | None:
    return event.text or None


def _welcome_action(event: DaktelaEvent, config: ConnectorConfig) -> str | None:
    if event.name or event.time:
        return None
    return config.welcome_action or None


def _build_postback(
    name: str, event: DaktelaEvent, codec: TokenCodec, timestamp: int,
) -> PostBackRequest:
    token = codec.decode(name)
    return PostBackRequest(
        sender_id=event.conversation.name,
        action=token.action,
        data=token.data,
        timestamp=timestamp,
        set_state=token.set_state,
    )


def _build_quick_reply(
    name: str, event: DaktelaEvent, codec: TokenCodec, timestamp: int,
) -> QuickReplyTextRequest:
    token = codec.decode(name)
    packed: dict[str, Any] = {"action": token.action, "data": token.data}
    if token.set_state:
        packed["setState"] = token.set_state
    return QuickReplyTextRequest(
        sender_id=event.conversation.name,
        text=event.text or token.action,
        payload=json.dumps(packed, separators=(",", ":"), ensure_ascii=False),
        timestamp=timestamp,
    )


def _build_termination(
    action: str, event: DaktelaEvent, codec: TokenCodec, timestamp: int,
) -> PostBackRequest:
    return PostBackRequest(
        sender_id=event.conversation.name,
        action=action,
        data={"terminate": event.terminate},
        timestamp=timestamp,
    )


def _build_text(
    text: str, event: DaktelaEvent, codec: TokenCodec, timestamp: int,
) -> TextRequest:
    return TextRequest(sender_id=event.conversation.name, text=text, timestamp=timestamp)


def _build_session_start(
    action: str, event: DaktelaEvent, codec: TokenCodec, timestamp: int,
) -> SessionStartRequest:
    return SessionStartRequest(
        sender_id=event.conversation.name, action=action, timestamp=timestamp,
    )


# First row whose extractor yields a value wins
DISPATCH_TABLE: tuple[tuple[EventKind, Extractor, Builder], ...] = (
    (EventKind.BUTTON, _button_name, _build_postback),
    (EventKind.QUICK_REPLY, _quick_reply_name, _build_quick_reply),
    (EventKind.TERMINATE, _terminate_action, _build_termination),
    (EventKind.TEXT, _text, _build_text),
    (EventKind.SESSION_START, _welcome_action, _build_session_start),
)


def _match(
    event: DaktelaEvent, config: ConnectorConfig,
) -> tuple[EventKind, Any, Builder] | None:
    for kind, extract, build in DISPATCH_TABLE:
        value = extract(event, config)
        if value is not None:
            return kind, value, build
    return None


def classify_event(event: DaktelaEvent, config: ConnectorConfig) -> EventKind | None:
    """Return the kind of the first matching dispatch row, if any."""
    matched = _match(event, config)
    return matched[0] if matched else None


class DaktelaConnector:
    """Daktela connector for a chatbot processing engine."""

    def __init__(
        self,
        processor: Processor,
        config: ConnectorConfig | None = None,
        client: httpx.AsyncClient | None = None,
        chat_logger: ChatLogger | None = None,
    ) -> None:
        self.processor = processor
        self.config = config or ConnectorConfig()
        self._codec = get_codec(self.config.codec_strategy)
        self._client = client
        self._chat_logger = chat_logger

    @property
    def codec(self) -> TokenCodec:
        return self._codec

    async def process_event(self, body: dict[str, Any]) -> Any:
        """Process one Daktela webhook event.

        Returns the engine's result, or an empty list when the event carries
        nothing to act on.
        """
        conversation = body.get("conversation") if isinstance(body, dict) else None
        if not isinstance(conversation, dict):
            logger.debug("Ignoring event without conversation")
            return []

        try:
            event = DaktelaEvent.model_validate(body)
        except ValidationError as exc:
            logger.warning("Ignoring malformed Daktela event: %s", exc)
            return []

        timestamp = to_epoch_millis(reconstruct_timestamp(event.time, event.name))
        request = self.build_request(event, timestamp)
        if request is None:
            logger.debug("No actionable field in event %s", event.name)
            return []

        sender = self._create_sender(event)
        return await self.processor.process_message(
            request, self.config.page_id, sender, {"conversation": conversation},
        )

    def build_request(self, event: DaktelaEvent, timestamp: int) -> ChatRequest | None:
        """Build the normalized request for the event's dispatch kind."""
        matched = _match(event, self.config)
        if matched is None:
            return None
        _, value, build = matched
        return build(value, event, self._codec, timestamp)

    def _create_sender(self, event: DaktelaEvent) -> DaktelaSender:
        return DaktelaSender(
            conversation=event.conversation,
            sender_id=event.conversation.name,
            codec=self._codec,
            page_id=self.config.page_id,
            client=self._client,
            chat_logger=self._chat_logger,
            timeout=self.config.request_timeout,
        )

    async def verify_request(self, body: dict[str, Any], headers: dict[str, str]) -> None:
        """Verify that a webhook event comes from Daktela.

        Raises AuthorizationError when the event cannot be authenticated.
        Daktela events carry no signature yet, so every event is accepted.
        """
        logger.debug("Webhook verification not enforced for %s", body.get("name"))
