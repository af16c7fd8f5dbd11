import logging

from telegram import Update
from telegram.constants import ChatAction
from telegram.ext import ContextTypes

from orderbot.core.pipeline import IncomingMessage, RepliedMessage

logger = logging.getLogger(__name__)

WELCOME_TEXT = (
    "🤖 Selamat datang di Bot Order!\n\n"
    "Silakan kirim pesan untuk membuat order.\n"
    "Reply pesan order Anda untuk mengubah atau membatalkannya.\n"
    "Ketik /status untuk melihat order Anda.\n"
    "Semua pesan akan diproses otomatis dan tersimpan di sistem."
)


def display_name(user):
    if user is None:
        return "Unknown"
    return user.username or user.first_name or "Unknown"


def to_incoming(message, bot_id):
    """Convert a PTB Message into the pipeline's platform-neutral shape."""
    reply_to = None
    replied = message.reply_to_message
    if replied is not None:
        author = replied.from_user
        reply_to = RepliedMessage(
            message_id=replied.message_id,
            text=replied.text,
            from_bot=author is not None and author.id == bot_id,
        )
    return IncomingMessage(
        chat_id=message.chat.id,
        user_id=message.from_user.id,
        username=display_name(message.from_user),
        text=message.text,
        message_id=message.message_id,
        reply_to=reply_to,
    )


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle incoming order messages and replies to earlier orders."""
    if update.message is None or update.effective_user is None:
        return

    pipeline = context.application.bot_data["pipeline"]
    await update.message.chat.send_action(ChatAction.TYPING)

    incoming = to_incoming(update.message, context.bot.id)
    reply_text = await pipeline.handle(incoming)
    await update.message.reply_text(reply_text)


async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start — welcome text."""
    context.application.bot_data["registry"].add(update.effective_user.id)
    await update.message.reply_text(WELCOME_TEXT)


async def handle_status(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /status — list the user's orders from the sheet."""
    pipeline = context.application.bot_data["pipeline"]
    context.application.bot_data["registry"].add(update.effective_user.id)
    await update.message.chat.send_action(ChatAction.TYPING)
    await update.message.reply_text(await pipeline.status_text(update.effective_user.id))


async def handle_test(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /test — write a test row to check the sheet connection."""
    pipeline = context.application.bot_data["pipeline"]
    await update.message.reply_text("🧪 Testing connection to Google Sheets...")
    user = update.effective_user
    await update.message.reply_text(
        await pipeline.connection_test(user.id, user.username or "Test")
    )


async def handle_broadcast(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /broadcast — admin-only manual run of the broadcast job."""
    admin_ids = context.application.bot_data.get("admin_ids") or []
    user_id = update.effective_user.id
    if user_id not in admin_ids:
        logger.warning("Unauthorized /broadcast from %s", user_id)
        await update.message.reply_text("❌ Anda tidak memiliki akses untuk broadcast.")
        return

    job = context.application.bot_data["broadcast_job"]
    await update.message.reply_text("📢 Memulai broadcast...")
    report = await job.run()
    await update.message.reply_text(report.summary())


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log errors raised by handlers and the polling loop."""
    logger.error("Update %s caused error", update, exc_info=context.error)
