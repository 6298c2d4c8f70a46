"""Bridge between python-telegram-bot updates and the controller."""
import logging
from typing import Optional

from telegram import CopyTextButton, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters

from . import events
from .events import Event
from .keyboards import Keyboard

logger = logging.getLogger(__name__)


def to_markup(keyboard: Optional[Keyboard]) -> Optional[InlineKeyboardMarkup]:
    if not keyboard:
        return None
    rows = []
    for row in keyboard:
        buttons = []
        for button in row:
            if button.copy_text is not None:
                buttons.append(InlineKeyboardButton(button.text, copy_text=CopyTextButton(button.copy_text)))
            else:
                buttons.append(InlineKeyboardButton(button.text, callback_data=button.data))
        rows.append(buttons)
    return InlineKeyboardMarkup(rows)


def to_sender(user) -> events.Sender:
    return events.Sender(id=user.id, username=user.username or "", first_name=user.first_name or "")


def to_event(update: Update) -> Optional[Event]:
    user = update.effective_user
    if user is None:
        return None
    sender = to_sender(user)

    query = update.callback_query
    if query is not None:
        return events.callback(sender, query.data or "", query.id)

    message = update.effective_message
    if message is None:
        return None
    if message.photo:
        # largest size comes last
        return events.photo(sender, message.photo[-1].file_id)
    if message.text:
        if message.text.startswith("/start"):
            _, _, payload = message.text.partition(" ")
            return events.start(sender, payload)
        return events.text(sender, message.text)
    return None


class TelegramTransport:
    """Outbound side: what the controller and notifier use to reach users."""

    def __init__(self, bot):
        self.bot = bot

    async def send_message(self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None, html: bool = False):
        await self.bot.send_message(
            chat_id=chat_id,
            text=text,
            reply_markup=to_markup(keyboard),
            parse_mode=ParseMode.HTML if html else None,
        )

    async def send_photo(self, chat_id: int, media_id: str, caption: str = "", keyboard: Optional[Keyboard] = None):
        await self.bot.send_photo(
            chat_id=chat_id,
            photo=media_id,
            caption=caption or None,
            reply_markup=to_markup(keyboard),
            parse_mode=ParseMode.HTML if caption else None,
        )

    async def answer_callback(self, callback_id: str):
        await self.bot.answer_callback_query(callback_id)


def register_handlers(application: Application, controller) -> None:
    async def on_update(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        event = to_event(update)
        if event is None:
            return
        await controller.handle(event)

    async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error("Error while handling update %s", update, exc_info=context.error)

    application.add_handler(CommandHandler("start", on_update))
    application.add_handler(CallbackQueryHandler(on_update))
    application.add_handler(MessageHandler(filters.PHOTO, on_update))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, on_update))
    application.add_error_handler(on_error)
