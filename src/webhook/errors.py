"""Exceptions raised by the Daktela connector."""

from __future__ import annotations

from typing import Any


class DaktelaError(Exception):
    """Base class for connector failures."""


class TokenDecodeError(DaktelaError, ValueError):
    """Raised when an action token cannot be decoded."""

    def __init__(self, token: str, reason: str) -> None:
        self.token = token
        super().__init__(f"Invalid action token {token!r}: {reason}")


class ActionPayloadError(DaktelaError, ValueError):
    """Raised when an engine button/quick-reply payload cannot be parsed."""


class EventFormatError(DaktelaError, ValueError):
    """Raised when a webhook event carries an unparseable field."""


class InvalidTransferTargetError(DaktelaError, ValueError):
    """Raised when a thread transfer targets a non-numeric application id."""

    def __init__(self, target_app_id: object) -> None:
        self.target_app_id = target_app_id
        super().__init__(f"Transfer target is not numeric: {target_app_id!r}")


class DeliveryError(DaktelaError):
    """Raised when Daktela does not acknowledge a reply with result OK."""

    def __init__(
        self,
        platform_error: str | None,
        response: dict[str, Any] | None = None,
    ) -> None:
        self.platform_error = platform_error
        self.response = response
        super().__init__(f"Daktela error: {platform_error or 'unknown error'}")


class AuthorizationError(DaktelaError):
    """Raised when a webhook event cannot be authenticated."""
