"""Contracts between the connector and the chatbot processing engine."""

from __future__ import annotations

from typing import Any, Protocol

from src.webhook.models import ChatRequest


class ResponseSender(Protocol):
    """Delivers engine reply payloads back to the chat platform.

    ``waits`` tells the engine to await every ``send`` before it considers
    the turn complete.
    """

    waits: bool

    async def send(self, payload: dict[str, Any]) -> dict[str, Any] | None: ...


class Processor(Protocol):
    """The processing engine, as seen by the connector."""

    async def process_message(
        self,
        request: ChatRequest,
        page_id: str,
        sender: ResponseSender,
        context: dict[str, Any],
    ) -> Any: ...
