"""Configuration loaded from environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()


def _int_list(raw):
    return [int(part.strip()) for part in raw.split(",") if part.strip()]


def _str_list(raw):
    return [part.strip() for part in raw.split(",") if part.strip()]


# Telegram
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
ADMIN_USER_IDS = _int_list(os.getenv("ADMIN_USER_IDS", ""))

# LLM classifier (OpenAI-compatible chat completions)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
CLASSIFIER_API_URL = os.getenv(
    "CLASSIFIER_API_URL", "https://api.openai.com/v1/chat/completions"
)
CLASSIFIER_MODEL = os.getenv("CLASSIFIER_MODEL", "gpt-4o-mini")
CLASSIFIER_TIMEOUT = float(os.getenv("CLASSIFIER_TIMEOUT", "30"))

# Google Sheets (Apps Script web app)
GOOGLE_SCRIPT_URL = os.getenv("GOOGLE_SCRIPT_URL", "")
STORE_TIMEOUT = float(os.getenv("STORE_TIMEOUT", "30"))

# Broadcast
BROADCAST_TIMES = _str_list(os.getenv("BROADCAST_TIMES", "08:00,12:00,18:00"))
BROADCAST_TIMEZONE = os.getenv("BROADCAST_TIMEZONE", "Asia/Jakarta")
BROADCAST_DELAY_SECONDS = float(os.getenv("BROADCAST_DELAY_SECONDS", "0.1"))

# Server
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def missing_settings():
    """Names of required settings that are not configured."""
    required = {
        "TELEGRAM_BOT_TOKEN": TELEGRAM_BOT_TOKEN,
        "OPENAI_API_KEY": OPENAI_API_KEY,
        "GOOGLE_SCRIPT_URL": GOOGLE_SCRIPT_URL,
    }
    return [name for name, value in required.items() if not value]
