"""Keep-alive endpoints polled by the hosting platform's health check."""

import logging
import threading

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from orderbot import config

logger = logging.getLogger(__name__)


def _state(value):
    return "configured" if value else "missing"


def create_app(settings=config):
    app = FastAPI(title="OrderBot", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/", response_class=PlainTextResponse)
    def index():
        return "Telegram Bot is running!"

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "googleScriptUrl": _state(settings.GOOGLE_SCRIPT_URL),
            "openaiKey": _state(settings.OPENAI_API_KEY),
            "telegramToken": _state(settings.TELEGRAM_BOT_TOKEN),
        }

    return app


def start_health_server(port=None):
    """Serve the health app from a daemon thread next to the polling loop."""
    port = port or config.PORT
    server = uvicorn.Server(
        uvicorn.Config(create_app(), host="0.0.0.0", port=port, log_level="warning")
    )
    thread = threading.Thread(target=server.run, daemon=True, name="health-server")
    thread.start()
    logger.info("Health server listening on port %d", port)
    return thread
