"""Shared Pydantic data models for the Daktela connector."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SendStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ChatLogEntry(BaseModel):
    """One outbound send attempt, as written to the chat log."""

    timestamp: str = Field(default_factory=_now_iso)
    sender_id: str
    page_id: str
    status: SendStatus
    payload: dict[str, Any]
    request: dict[str, Any] | None = None
    response: dict[str, Any] | None = None
    error: str | None = None
