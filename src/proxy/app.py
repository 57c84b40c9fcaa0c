"""FastAPI application exposing the Daktela webhook."""

from __future__ import annotations

import json
import logging
import os

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.audit.logger import ChatLogger
from src.webhook.config import ConnectorConfig
from src.webhook.daktela import DaktelaConnector
from src.webhook.errors import (
    ActionPayloadError,
    AuthorizationError,
    DeliveryError,
    EventFormatError,
    InvalidTransferTargetError,
    TokenDecodeError,
)
from src.webhook.models import ProcessResult
from src.webhook.processor import Processor

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook/daktela"


def create_app_from_env(processor: Processor) -> FastAPI:
    """Build the app for ``processor`` with configuration from environment variables."""
    config = ConnectorConfig.from_env()
    chat_log = os.environ.get("DAKTELA_CHAT_LOG")
    chat_logger = ChatLogger.from_env(chat_log) if chat_log else None
    return create_app(DaktelaConnector(processor, config, chat_logger=chat_logger))


def create_app(connector: DaktelaConnector) -> FastAPI:
    """Create the webhook app around a configured connector."""
    app = FastAPI(docs_url=None, redoc_url=None)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post(WEBHOOK_PATH)
    async def daktela_webhook(request: Request) -> JSONResponse:
        try:
            body = json.loads(await request.body())
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)
        if not isinstance(body, dict):
            return JSONResponse({"error": "Invalid event"}, status_code=400)

        try:
            await connector.verify_request(body, dict(request.headers))
        except AuthorizationError:
            return JSONResponse({"error": "Invalid webhook signature"}, status_code=401)

        try:
            result = await connector.process_event(body)
        except (TokenDecodeError, EventFormatError) as exc:
            logger.warning("Rejected Daktela event: %s", exc)
            return JSONResponse({"error": str(exc)}, status_code=400)
        except (DeliveryError, InvalidTransferTargetError, ActionPayloadError) as exc:
            logger.warning("Reply delivery failed: %s", exc)
            return JSONResponse({"error": str(exc)}, status_code=502)
        except httpx.HTTPError as exc:
            logger.warning("Daktela unreachable: %s", exc)
            return JSONResponse({"error": "Daktela unavailable"}, status_code=502)

        if isinstance(result, ProcessResult):
            status = result.status
        elif isinstance(result, dict):
            status = result.get("status", 200)
        else:
            status = 204
        return JSONResponse({"status": status})

    return app
