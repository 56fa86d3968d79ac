from __future__ import annotations

import asyncio
import html
import logging
from functools import partial

from aiogram import Bot, Dispatcher, Router, F
from aiogram.client.default import DefaultBotProperties
from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.filters.callback_data import CallbackData
from aiogram.types import CallbackQuery, Message
from aiogram.utils.keyboard import InlineKeyboardBuilder

from .config import Config
from .formatter import badge_text, order_text, status_html
from .models import label_for
from .ordering import CARD_ORDER_KEY, KeyOrderResolver, move_key
from .poller import PollOrchestrator, now_ms, poll_loop
from .state import RuntimeState
from .storage import JsonStore
from .usage_api import fetch_snapshot

logger = logging.getLogger("usage_watch.bot")

CHAT_ID_KEY = "chatId"
BADGE_MESSAGE_KEY = "badgeMessage"

router = Router()


class OrderCb(CallbackData, prefix="order"):
    act: str
    key: str


def order_kb(order: list[str]):
    kb = InlineKeyboardBuilder()
    for key in order:
        kb.button(text=f"⤒ {label_for(key)}", callback_data=OrderCb(act="top", key=key).pack())
    for key in order[1:]:
        kb.button(text=f"⬆️ {label_for(key)}", callback_data=OrderCb(act="up", key=key).pack())
    kb.adjust(1)
    return kb.as_markup()


class App:
    def __init__(self, cfg: Config, bot: Bot, store: JsonStore | None = None):
        self.cfg = cfg
        self.bot = bot
        self.state = RuntimeState(target_chat_id=cfg.chat_id)
        self.store = store or JsonStore(cfg.state_path)
        self.resolver = KeyOrderResolver(self.store)
        self.orchestrator = PollOrchestrator(
            self.store,
            partial(fetch_snapshot, cfg),
            self.notify,
            self.set_badge,
            resolver=self.resolver,
        )
        self.stop_event = asyncio.Event()
        self.poll_task: asyncio.Task | None = None

        self.store.subscribe(CARD_ORDER_KEY, self._on_order_changed)

    async def _on_order_changed(self, new, old) -> None:
        await self.orchestrator.reproject()

    async def restore(self) -> None:
        if self.state.target_chat_id is None:
            chat_id = await self.store.get(CHAT_ID_KEY)
            if isinstance(chat_id, int):
                self.state.target_chat_id = chat_id
        self.start_polling()

    async def set_target_chat(self, chat_id: int) -> None:
        self.state.target_chat_id = chat_id
        await self.store.set(CHAT_ID_KEY, chat_id)

    def is_running(self) -> bool:
        return self.poll_task is not None and not self.poll_task.done()

    def start_polling(self) -> None:
        if self.is_running():
            return
        self.stop_event.clear()
        self.poll_task = asyncio.create_task(
            poll_loop(self.orchestrator, self.state, self.stop_event, self.cfg.poll_interval_seconds)
        )
        logger.info("Usage polling started, every %ss", self.cfg.poll_interval_seconds)

    async def shutdown(self) -> None:
        self.stop_event.set()
        if self.poll_task is not None:
            await self.poll_task

    async def notify(self, nid: str, title: str, body: str) -> None:
        chat_id = self.state.target_chat_id
        if not chat_id:
            logger.info("No target chat, dropping alert %s", nid)
            return
        await self.bot.send_message(
            chat_id=chat_id,
            text=f"<b>{html.escape(title)}</b>\n{html.escape(body)}",
        )

    async def set_badge(self, text: str, background_color: str, text_color: str) -> None:
        chat_id = self.state.target_chat_id
        if not chat_id:
            return

        line = badge_text(text, background_color)
        ref = await self.store.get(BADGE_MESSAGE_KEY)
        if isinstance(ref, dict) and ref.get("chat_id") == chat_id:
            if ref.get("text") == line:
                return
            try:
                await self.bot.edit_message_text(chat_id=chat_id, message_id=ref["message_id"], text=line)
                await self.store.set(BADGE_MESSAGE_KEY, {**ref, "text": line})
                return
            except TelegramBadRequest as e:
                if "not modified" in str(e):
                    return
                logger.info("Badge message is gone, sending a new one: %s", e)

        m = await self.bot.send_message(chat_id=chat_id, text=line, disable_notification=True)
        try:
            await self.bot.pin_chat_message(chat_id=chat_id, message_id=m.message_id, disable_notification=True)
        except TelegramBadRequest:
            logger.debug("Could not pin badge message", exc_info=True)
        await self.store.set(BADGE_MESSAGE_KEY, {"chat_id": chat_id, "message_id": m.message_id, "text": line})

    async def status(self) -> str:
        state = await self.orchestrator.load_state()
        snapshot = state.snapshot if state else None
        order = await self.resolver.resolve(snapshot)
        return status_html(state, order, now_ms=now_ms())


def setup_bot(cfg: Config) -> tuple[Bot, Dispatcher, App]:
    session = AiohttpSession(timeout=90)

    bot = Bot(
        token=cfg.bot_token,
        session=session,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )

    dp = Dispatcher()
    app = App(cfg, bot)

    @router.message(Command("start"))
    async def cmd_start(message: Message):
        await app.set_target_chat(message.chat.id)

        if app.is_running():
            await app.orchestrator.reproject()
            await message.answer("Already running. /status, /order, /stop.")
            return

        app.start_polling()
        await message.answer("✅ Monitoring started. Alerts fire at 50%, 75% and 90%.")

    @router.message(Command("stop"))
    async def cmd_stop(message: Message):
        if not app.is_running():
            await message.answer("Monitoring is not started yet. /start")
            return

        app.stop_event.set()
        await message.answer("Stopping…")

    @router.message(Command("status"))
    async def cmd_status(message: Message):
        await message.answer(await app.status(), disable_web_page_preview=True)

    @router.message(Command("refresh"))
    async def cmd_refresh(message: Message):
        progress = await message.answer("⏳ Checking usage…")
        await app.orchestrator.poll()
        await progress.edit_text(await app.status(), disable_web_page_preview=True)

    @router.message(Command("order"))
    async def cmd_order(message: Message):
        state = await app.orchestrator.load_state()
        order = await app.resolver.resolve(state.snapshot if state else None)
        await message.answer(order_text(order), reply_markup=order_kb(order) if order else None)

    @router.callback_query(OrderCb.filter())
    async def on_order(query: CallbackQuery, callback_data: OrderCb):
        state = await app.orchestrator.load_state()
        order = await app.resolver.resolve(state.snapshot if state else None)

        if callback_data.key not in order:
            await query.answer("Card is no longer available")
            return

        if callback_data.act == "top":
            new_order = move_key(order, callback_data.key, 0)
        else:
            new_order = move_key(order, callback_data.key, order.index(callback_data.key) - 1)

        await app.resolver.save(new_order)

        if query.message:
            try:
                await query.message.edit_text(order_text(new_order), reply_markup=order_kb(new_order))
            except TelegramBadRequest:
                pass
        await query.answer("Order saved")

    dp.include_router(router)
    return bot, dp, app
