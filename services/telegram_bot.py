import html
import logging

from aiogram import Bot, Dispatcher, types
from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import CommandStart

from core.config import settings

bot = Bot(
    token=settings.TELEGRAM_BOT_TOKEN,
    session=AiohttpSession(proxy=settings.PROXY) if settings.PROXY else None,
)
dp = Dispatcher()

logger = logging.getLogger(__name__)

START_TEXT = (
    "Привет! 👋 Это бот сервиса поиска партнёров для тенниса. "
    "Сюда будут приходить уведомления о ваших матчах: заявки, подтверждения "
    "и отмены из-за погоды 🎾"
)


def build_notification_text(title: str | None, content: str) -> str:
    if not title:
        return html.escape(content)
    return f"<b>{html.escape(title)}</b>\n{html.escape(content)}"


async def send_user_notification(telegram_user_id: int, text: str) -> None:
    try:
        await bot.send_message(chat_id=telegram_user_id, text=text, parse_mode="HTML")
    except TelegramAPIError as exc:
        logger.warning(
            "Failed to notify user %s: %s", telegram_user_id, exc, exc_info=exc
        )


@dp.message(CommandStart())
async def cmd_start(message: types.Message) -> None:
    await message.answer(START_TEXT)


async def start_bot() -> None:
    await dp.start_polling(bot)
