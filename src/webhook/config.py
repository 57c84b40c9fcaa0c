"""Connector configuration."""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.webhook.codec import CODECS


class ConnectorConfig(BaseModel):
    """Immutable connector settings, validated once at startup.

    ``terminate_action`` and ``welcome_action`` disable their features when
    left as None.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    terminate_action: str | None = None
    welcome_action: str | None = None
    page_id: str = "daktela"
    codec_strategy: str = "structured"
    request_timeout: float = Field(default=30.0, gt=0)

    @field_validator("codec_strategy")
    @classmethod
    def _known_codec(cls, value: str) -> str:
        if value not in CODECS:
            raise ValueError(
                f"unknown codec strategy {value!r}, expected one of {sorted(CODECS)}"
            )
        return value

    @classmethod
    def from_env(cls) -> ConnectorConfig:
        """Build the configuration from DAKTELA_* environment variables."""
        return cls(
            terminate_action=os.environ.get("DAKTELA_TERMINATE_ACTION") or None,
            welcome_action=os.environ.get("DAKTELA_WELCOME_ACTION") or None,
            page_id=os.environ.get("DAKTELA_PAGE_ID", "daktela"),
            codec_strategy=os.environ.get("DAKTELA_CODEC", "structured"),
            request_timeout=float(os.environ.get("DAKTELA_REQUEST_TIMEOUT", "30")),
        )
