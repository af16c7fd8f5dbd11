"""Per-message control flow: classify, write to the sheet, build the reply.

Nothing here knows about Telegram. The bot layer turns an Update into an
IncomingMessage, awaits ``DispatchPipeline.handle`` and sends the one reply
string it gets back.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from orderbot.core.classifier import OrderType
from orderbot.core.reply_resolver import ResolutionError, format_marker, resolve_target
from orderbot.util.async_helpers import run_sync

logger = logging.getLogger(__name__)

CANCEL_KEYWORDS = ("batal", "cancel")

RESOLUTION_FAILED_TEXT = (
    "❌ Tidak dapat menemukan ID pesan.\n"
    "Silakan reply langsung ke pesan order Anda atau ke konfirmasi yang berisi #MSG."
)


@dataclass(frozen=True)
class RepliedMessage:
    message_id: int
    text: Optional[str]
    from_bot: bool


@dataclass(frozen=True)
class IncomingMessage:
    chat_id: int
    user_id: int
    username: str
    text: str
    message_id: int
    reply_to: Optional[RepliedMessage] = None


def wants_cancel(text, classification):
    if classification.order_type is OrderType.CANCEL:
        return True
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in CANCEL_KEYWORDS)


def _error_detail(response):
    return (response or {}).get("message") or "Unknown error"


def format_submission_reply(message_id, response, classification):
    if not (response and response.get("success")):
        return f"❌ Maaf, terjadi kesalahan sistem.\nPesan: {_error_detail(response)}"

    closing = response.get("aiResponse") or classification.suggested_reply
    return (
        f"✅ Pesan Anda telah tercatat!\n\n"
        f"📌 Message ID: {format_marker(message_id)}\n"
        f"🔢 Row: {response.get('rowNumber')}\n\n"
        f"{closing}"
    )


def format_cancel_reply(target_id, response):
    marker = format_marker(target_id)
    if not (response and response.get("success")):
        return f"❌ Gagal membatalkan order {marker}.\nPesan: {_error_detail(response)}"

    text = f"✅ Order {marker} berhasil dibatalkan."
    if response.get("originalMessage"):
        text += f"\n\n📝 Pesan asli: {response['originalMessage']}"
    return text


def format_update_reply(target_id, new_text, response):
    marker = format_marker(target_id)
    if not (response and response.get("success")):
        return f"❌ Gagal mengupdate order {marker}.\nPesan: {_error_detail(response)}"

    text = f"✅ Order {marker} berhasil diupdate!\n"
    if response.get("originalMessage"):
        text += f"\n📝 Pesan asli: {response['originalMessage']}"
    text += f"\n✏️ Update: {new_text}"
    return text


def format_status_reply(response):
    if not (response and response.get("success")):
        return f"❌ Gagal mengambil status order.\nPesan: {_error_detail(response)}"

    orders = response.get("orders") or []
    if not orders:
        return "📭 Anda belum memiliki order."

    count = response.get("count", len(orders))
    lines = [f"📋 Order Anda ({count}):", ""]
    for order in orders:
        line = (
            f"{format_marker(order.get('messageId'))} | "
            f"{order.get('orderType', '-')} | {order.get('status', '-')}"
        )
        if order.get("message"):
            line += f"\n   {str(order['message'])[:80]}"
        lines.append(line)
    return "\n".join(lines)


class DispatchPipeline:

    def __init__(self, classifier, store, registry):
        self.classifier = classifier
        self.store = store
        self.registry = registry

    async def handle(self, msg: IncomingMessage) -> str:
        """Process one incoming chat message and return the reply text."""
        trace_id = str(uuid.uuid4())[:8]
        self.registry.add(msg.user_id)
        logger.info(
            "[%s] message from %s (%s, MSG:%s): %s",
            trace_id, msg.username, msg.user_id, msg.message_id, (msg.text or "")[:50],
        )

        if msg.reply_to is None:
            return await self._fresh_submission(trace_id, msg)
        return await self._reply_to_existing(trace_id, msg)

    async def _fresh_submission(self, trace_id, msg):
        analysis = await run_sync(self.classifier.classify, msg.text, msg.user_id, msg.username)
        logger.info(
            "[%s] classified as %s (%.2f)%s",
            trace_id, analysis.order_type.value, analysis.confidence,
            f" fallback={analysis.fallback.value}" if analysis.is_fallback else "",
        )

        response = await run_sync(self.store.add, {
            "messageId": msg.message_id,
            "userId": msg.user_id,
            "username": msg.username,
            "message": msg.text,
            "orderType": analysis.order_type.value,
            "status": "pending",
            "notes": analysis.extracted_info,
        })
        logger.info("[%s] add -> success=%s", trace_id, (response or {}).get("success"))
        return format_submission_reply(msg.message_id, response, analysis)

    async def _reply_to_existing(self, trace_id, msg):
        try:
            target_id = resolve_target(msg.reply_to)
        except ResolutionError:
            logger.warning("[%s] reply without resolvable #MSG marker", trace_id)
            return RESOLUTION_FAILED_TEXT

        analysis = await run_sync(self.classifier.classify, msg.text, msg.user_id, msg.username)

        if wants_cancel(msg.text, analysis):
            logger.info("[%s] cancel %s", trace_id, format_marker(target_id))
            response = await run_sync(self.store.cancel, target_id)
            return format_cancel_reply(target_id, response)

        logger.info("[%s] update %s", trace_id, format_marker(target_id))
        response = await run_sync(
            self.store.update, target_id, msg.text, "updated", analysis.extracted_info
        )
        return format_update_reply(target_id, msg.text, response)

    async def status_text(self, user_id):
        response = await run_sync(self.store.search, user_id)
        return format_status_reply(response)

    async def connection_test(self, user_id, username):
        response = await run_sync(self.store.add, {
            "messageId": "99999",
            "userId": user_id,
            "username": username,
            "message": "Test connection",
            "orderType": OrderType.TEST.value,
            "status": "testing",
            "notes": "Connection test from /test command",
        })
        if response and response.get("success"):
            return f"✅ Connection OK!\nRow: {response.get('rowNumber')}\nCheck your spreadsheet."
        return f"❌ Connection FAILED!\nError: {_error_detail(response)}"
