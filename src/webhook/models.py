"""Data models for the Daktela connector.

- Inbound webhook schema (DaktelaEvent, Conversation)
- Decoded action tokens (ActionToken)
- Normalized chatbot requests handed to the processing engine
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

# --- Webhook schema ---


class Conversation(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    name: str
    response_url: str


class NamedChoice(BaseModel):
    """``button`` and ``quickreply`` objects; ``name`` holds the action token."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str


class DaktelaEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    name: str | None = None
    time: str | None = None
    conversation: Conversation
    text: str | None = None
    quickreply: NamedChoice | None = None
    button: NamedChoice | None = None
    terminate: Any = None


class ActionToken(BaseModel):
    """Action, data and optional state patch carried by a token."""

    model_config = ConfigDict(frozen=True)

    action: str
    data: dict[str, Any] = {}
    set_state: dict[str, Any] | None = None


class EventKind(str, Enum):
    BUTTON = "button"
    QUICK_REPLY = "quick_reply"
    TERMINATE = "terminate"
    TEXT = "text"
    SESSION_START = "session_start"


# --- Normalized requests ---


@dataclass(frozen=True)
class PostBackRequest:
    """Button click, termination signal or any other directed action."""

    sender_id: str
    action: str
    data: dict[str, Any]
    timestamp: int
    set_state: dict[str, Any] | None = None

    def to_message(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"action": self.action, "data": self.data}
        if self.set_state:
            payload["setState"] = self.set_state
        return {
            "sender": {"id": self.sender_id},
            "timestamp": self.timestamp,
            "postback": {"payload": payload},
        }


@dataclass(frozen=True)
class QuickReplyTextRequest:
    """Quick-reply selection; ``payload`` is the decoded token as JSON."""

    sender_id: str
    text: str
    payload: str
    timestamp: int

    def to_message(self) -> dict[str, Any]:
        return {
            "sender": {"id": self.sender_id},
            "timestamp": self.timestamp,
            "message": {
                "text": self.text,
                "quick_reply": {"payload": self.payload},
            },
        }

    def action_token(self) -> ActionToken:
        raw = json.loads(self.payload)
        return ActionToken(
            action=raw["action"],
            data=raw.get("data") or {},
            set_state=raw.get("setState"),
        )


@dataclass(frozen=True)
class TextRequest:
    sender_id: str
    text: str
    timestamp: int

    def to_message(self) -> dict[str, Any]:
        return {
            "sender": {"id": self.sender_id},
            "timestamp": self.timestamp,
            "message": {"text": self.text},
        }


@dataclass(frozen=True)
class SessionStartRequest:
    """First event of a conversation, routed to the welcome action."""

    sender_id: str
    action: str
    timestamp: int
    data: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {
            "sender": {"id": self.sender_id},
            "timestamp": self.timestamp,
            "postback": {"payload": {"action": self.action, "data": self.data}},
        }


ChatRequest = PostBackRequest | QuickReplyTextRequest | TextRequest | SessionStartRequest


@dataclass
class ProcessResult:
    """Engine outcome for one request."""

    status: int
    responses: list[Any] = field(default_factory=list)
