"""Daktela chat connector.

This package provides:
- Inbound event translation (DaktelaConnector)
- Outbound reply delivery (DaktelaSender)
- Action token codecs for Daktela button and quick-reply names
"""

from src.webhook.codec import CompactTokenCodec, StructuredTokenCodec, TokenCodec, get_codec
from src.webhook.config import ConnectorConfig
from src.webhook.daktela import DaktelaConnector, classify_event, reconstruct_timestamp
from src.webhook.errors import (
    ActionPayloadError,
    AuthorizationError,
    DaktelaError,
    DeliveryError,
    EventFormatError,
    InvalidTransferTargetError,
    TokenDecodeError,
)
from src.webhook.models import (
    ActionToken,
    ChatRequest,
    DaktelaEvent,
    EventKind,
    PostBackRequest,
    ProcessResult,
    QuickReplyTextRequest,
    SessionStartRequest,
    TextRequest,
)
from src.webhook.payload import parse_action_payload
from src.webhook.processor import Processor, ResponseSender
from src.webhook.sender import DaktelaSender, link_identifier

__all__ = [
    # Exceptions
    "ActionPayloadError",
    "AuthorizationError",
    "DaktelaError",
    "DeliveryError",
    "EventFormatError",
    "InvalidTransferTargetError",
    "TokenDecodeError",
    # Components
    "CompactTokenCodec",
    "ConnectorConfig",
    "DaktelaConnector",
    "DaktelaSender",
    "StructuredTokenCodec",
    # Protocols
    "Processor",
    "ResponseSender",
    "TokenCodec",
    # Functions
    "classify_event",
    "get_codec",
    "link_identifier",
    "parse_action_payload",
    "reconstruct_timestamp",
    # Models
    "ActionToken",
    "ChatRequest",
    "DaktelaEvent",
    "EventKind",
    "PostBackRequest",
    "ProcessResult",
    "QuickReplyTextRequest",
    "SessionStartRequest",
    "TextRequest",
]
