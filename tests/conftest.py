"""Shared test fixtures for the Daktela connector."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from typing import Any

import httpx
import pytest

from src.webhook.models import (
    ChatRequest,
    Conversation,
    PostBackRequest,
    ProcessResult,
    QuickReplyTextRequest,
    SessionStartRequest,
)

SENDER_ID = "senderid"
TEST_URL = "http://www.foobar.com/api"


class RecordingTransport:
    """httpx transport handler that records requests and replays responses."""

    def __init__(self, responses: list[dict[str, Any]] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self._responses = list(responses or [])

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self._responses.pop(0) if self._responses else {"result": "OK"}
        return httpx.Response(200, json=body)

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def http_client(transport: RecordingTransport) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(transport))


Handler = Callable[[ChatRequest], Iterable[dict[str, Any]]]


def request_action(request: ChatRequest) -> str | None:
    if isinstance(request, (PostBackRequest, SessionStartRequest)):
        return request.action
    if isinstance(request, QuickReplyTextRequest):
        return request.action_token().action
    return None


class ScriptedProcessor:
    """Minimal processing engine: routes by action, text goes to ``text_handler``."""

    def __init__(
        self,
        routes: dict[str, Handler] | None = None,
        text_handler: Handler | None = None,
    ) -> None:
        self.routes = routes or {}
        self.text_handler = text_handler
        self.calls: list[tuple[ChatRequest, str, dict[str, Any]]] = []

    async def process_message(
        self,
        request: ChatRequest,
        page_id: str,
        sender: Any,
        context: dict[str, Any],
    ) -> ProcessResult:
        self.calls.append((request, page_id, context))
        action = request_action(request)
        handler = self.routes.get(action) if action else self.text_handler
        if handler is None:
            return ProcessResult(status=204)

        responses = []
        for payload in handler(request):
            responses.append(await sender.send(payload))
        return ProcessResult(status=200, responses=responses)


# --- Factory functions for test data ---


def make_event(**kwargs: Any) -> dict[str, Any]:
    """Factory for a Daktela webhook event with sensible defaults."""
    defaults: dict[str, Any] = {
        "conversation": {"name": SENDER_ID, "response_url": TEST_URL},
        "direction": "IN",
        "name": "1542192866123",
        "time": "2018-11-14 11:54:26",
    }
    defaults.update(kwargs)
    return defaults


def make_conversation(**kwargs: Any) -> Conversation:
    defaults: dict[str, Any] = {"name": SENDER_ID, "response_url": TEST_URL}
    defaults.update(kwargs)
    return Conversation(**defaults)


def text_payload(text: str, quick_replies: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {"text": text}
    if quick_replies is not None:
        message["quick_replies"] = quick_replies
    return {"recipient": {"id": SENDER_ID}, "message": message}


def quick_reply(title: str, action: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "content_type": "text",
        "title": title,
        "payload": json.dumps({"action": action, "data": data or {}}),
    }


def button_template(text: str, buttons: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "recipient": {"id": SENDER_ID},
        "message": {
            "attachment": {
                "type": "template",
                "payload": {
                    "template_type": "button",
                    "text": text,
                    "buttons": buttons,
                },
            },
        },
    }
