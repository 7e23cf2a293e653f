"""
Telegram bot: admin notifications and webhook command handling.

The bot token and admin chat id come from the `telegram_bot_token` and
`telegram_chat_id` settings. Commands that trigger work (/crawl, /publish)
are only accepted from the admin chat.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from django.conf import settings
from django.utils import timezone

from drcarcold.models import CompanyInfo, CrawlRun, News, NewsSource
from drcarcold.services.settings_store import SettingsStore, get_settings_store

logger = logging.getLogger(__name__)

NOTIFY_SETTINGS = {
    "crawl": "notify_on_crawl",
    "publish": "notify_on_publish",
    "error": "notify_on_error",
    "contact": "notify_on_contact",
}

HELP_TEXT = (
    "🤖 *車冷博士助手機器人*\n\n"
    "*可用指令:*\n"
    "/help - 顯示此幫助信息\n"
    "/status - 查看服務狀態\n"
    "/info - 公司資訊\n"
    "/crawl - 立即爬取新聞 (管理員)\n"
    "/publish - 立即發布排程文章 (管理員)"
)

GREETING_TEXT = "您好！我是車冷博士的助手機器人。\n\n使用 /help 查看可用指令。"


class TelegramBot:
    """Thin Bot API client plus command dispatch."""

    def __init__(
        self,
        token: Optional[str] = None,
        chat_id: Optional[str] = None,
        store: Optional[SettingsStore] = None,
        timeout: float = 10.0,
    ):
        self.store = store or get_settings_store()
        self.token = token if token is not None else (self.store.get("telegram_bot_token") or "")
        self.chat_id = chat_id if chat_id is not None else (self.store.get("telegram_chat_id") or "")
        self.timeout = timeout
        self.api_base = getattr(settings, "TELEGRAM_API_BASE", "https://api.telegram.org")

    @property
    def configured(self) -> bool:
        return bool(self.token and self.chat_id)

    def send_message(self, text: str, chat_id: Optional[str] = None, parse_mode: str = "Markdown") -> bool:
        target = chat_id or self.chat_id
        if not self.token or not target:
            logger.debug("Telegram not configured, message dropped")
            return False

        url = f"{self.api_base}/bot{self.token}/sendMessage"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    url,
                    json={"chat_id": target, "text": text, "parse_mode": parse_mode},
                )
        except httpx.HTTPError as e:
            logger.warning(f"Telegram sendMessage failed: {e}")
            return False

        if response.status_code != 200:
            logger.warning(f"Telegram sendMessage returned {response.status_code}: {response.text[:200]}")
            return False
        return True

    # -- webhook -------------------------------------------------------

    def handle_update(self, update: Dict[str, Any]) -> Optional[str]:
        """
        Handle one webhook update; returns the reply text, if any.
        """
        message = update.get("message") or {}
        if not message:
            logger.debug("Ignoring non-message Telegram update")
            return None

        chat_id = str((message.get("chat") or {}).get("id", ""))
        text = (message.get("text") or "").strip()
        logger.info(f"Telegram message from {chat_id}: {text[:50]}")

        if text.startswith("/"):
            reply = self.handle_command(text, chat_id)
        else:
            reply = GREETING_TEXT

        self.send_message(reply, chat_id=chat_id)
        return reply

    def handle_command(self, text: str, chat_id: str) -> str:
        # "/status@DrCarColdBot args" -> "/status"
        command = text.split()[0].split("@")[0].lower()
        handlers = {
            "/start": self._help,
            "/help": self._help,
            "/status": self._status,
            "/info": self._info,
            "/crawl": self._crawl,
            "/publish": self._publish,
        }
        handler = handlers.get(command)
        if handler is None:
            return f"❓ 未知指令: {command}\n\n使用 /help 查看可用指令。"

        if command in ("/crawl", "/publish") and chat_id != str(self.chat_id):
            return "⛔ 此指令僅限管理員使用。"

        try:
            return handler()
        except Exception as e:
            logger.error(f"Telegram command {command} failed: {e}")
            return "❌ 處理指令時發生錯誤，請稍後再試。"

    def _help(self) -> str:
        return HELP_TEXT

    def _status(self) -> str:
        last_run = CrawlRun.objects.select_related("source").first()
        last_crawl = (
            timezone.localtime(last_run.created_at).strftime("%Y-%m-%d %H:%M")
            if last_run else "尚未爬取"
        )
        auto_crawl = "運行中" if self.store.get_bool("auto_crawl_enabled") else "已停止"
        auto_publish = "開啟" if self.store.get_bool("auto_publish_enabled") else "關閉"
        return (
            "✅ *系統狀態*\n\n"
            f"🔄 自動爬蟲: {auto_crawl}\n"
            f"📢 自動發布: {auto_publish}\n"
            f"📰 已發布文章: {News.objects.filter(is_published=True).count()}\n"
            f"📝 草稿: {News.objects.filter(is_published=False).count()}\n"
            f"🌐 啟用來源: {NewsSource.objects.filter(enabled=True).count()}\n"
            f"🕒 最後爬取: {last_crawl}"
        )

    def _info(self) -> str:
        info = CompanyInfo.load()
        return (
            f"🏢 *{info.company_name}*\n\n"
            f"📍 地址: {info.address}\n"
            f"📞 電話: {info.phone}\n"
            f"📠 傳真: {info.fax}\n"
            f"📧 Email: {info.email}\n"
            f"🕒 營業時間: {info.business_hours}"
        )

    def _crawl(self) -> str:
        from drcarcold.tasks import crawl_all_news_sources

        task = crawl_all_news_sources.delay()
        return f"🚀 已開始爬取新聞 (task {task.id})"

    def _publish(self) -> str:
        from drcarcold.tasks import publish_scheduled_news

        task = publish_scheduled_news.delay(force=True)
        return f"📢 已開始發布文章 (task {task.id})"


def notify(event: str, text: str, store: Optional[SettingsStore] = None) -> bool:
    """
    Send an admin notification if the `notify_on_<event>` switch is on.
    """
    store = store or get_settings_store()
    setting_key = NOTIFY_SETTINGS.get(event)
    if setting_key and not store.get_bool(setting_key, default=True):
        return False

    bot = TelegramBot(store=store)
    if not bot.configured:
        return False
    return bot.send_message(text)
