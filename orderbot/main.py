import logging

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from orderbot import config
from orderbot.bot.telegram_handler import (
    handle_broadcast,
    handle_error,
    handle_message,
    handle_start,
    handle_status,
    handle_test,
)
from orderbot.core.classifier import OrderClassifier
from orderbot.core.pipeline import DispatchPipeline
from orderbot.integrations.sheets_store import SheetsStore
from orderbot.memory.user_registry import InMemoryUserRegistry
from orderbot.scheduler.broadcast import BroadcastJob, broadcast_loop, load_schedule
from orderbot.web.health import start_health_server

logger = logging.getLogger(__name__)


def build_application(token=None, registry=None):
    """Wire the clients, pipeline and broadcast job into a PTB Application."""
    app = Application.builder().token(token or config.TELEGRAM_BOT_TOKEN).post_init(_post_init).build()

    registry = registry if registry is not None else InMemoryUserRegistry()
    store = SheetsStore()

    async def send(user_id, text):
        await app.bot.send_message(chat_id=user_id, text=text)

    app.bot_data.update(
        registry=registry,
        pipeline=DispatchPipeline(OrderClassifier(), store, registry),
        broadcast_job=BroadcastJob(store, registry, send),
        admin_ids=config.ADMIN_USER_IDS,
    )

    app.add_handler(CommandHandler("start", handle_start))
    app.add_handler(CommandHandler("status", handle_status))
    app.add_handler(CommandHandler("test", handle_test))
    app.add_handler(CommandHandler("broadcast", handle_broadcast))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    app.add_error_handler(handle_error)
    return app


async def _post_init(app):
    # Scheduled broadcasts share the bot's event loop.
    app.create_task(broadcast_loop(app.bot_data["broadcast_job"]))


def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    missing = config.missing_settings()
    if missing:
        logger.error("Set %s in .env", ", ".join(missing))
        return

    try:
        load_schedule()
    except ValueError as e:
        logger.error("Invalid broadcast schedule: %s", e)
        return

    logger.info("Starting OrderBot...")
    logger.info("Classifier model: %s", config.CLASSIFIER_MODEL)
    logger.info("Broadcast at %s (%s)", ", ".join(config.BROADCAST_TIMES), config.BROADCAST_TIMEZONE)
    if not config.ADMIN_USER_IDS:
        logger.warning("ADMIN_USER_IDS not set, /broadcast is disabled")

    start_health_server()

    app = build_application()
    logger.info("Bot is running. Send a message on Telegram.")
    app.run_polling()


if __name__ == "__main__":
    main()
