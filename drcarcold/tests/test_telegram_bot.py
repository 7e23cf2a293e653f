"""
Tests for the Telegram bot commands and notifications.
"""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from drcarcold.services.settings_store import SettingsStore
from drcarcold.services.telegram_bot import HELP_TEXT, TelegramBot, notify

ADMIN_CHAT = "1001"


@pytest.fixture
def bot(db):
    return TelegramBot(token="123:ABC", chat_id=ADMIN_CHAT, store=SettingsStore())


def mock_http_client(status_code=200):
    client = MagicMock()
    client.__enter__.return_value = client
    client.post.return_value = MagicMock(status_code=status_code, text="")
    return client


@pytest.mark.django_db
class TestCommands:
    def test_help(self, bot):
        assert bot.handle_command("/help", "42") == HELP_TEXT
        assert bot.handle_command("/start@DrCarColdBot", "42") == HELP_TEXT

    def test_unknown_command(self, bot):
        assert "未知指令: /weather" in bot.handle_command("/weather now", "42")

    def test_admin_commands_refused_for_other_chats(self, bot):
        assert bot.handle_command("/crawl", "42") == "⛔ 此指令僅限管理員使用。"

    def test_crawl_from_admin_chat(self, bot):
        with patch("drcarcold.tasks.crawl_all_news_sources") as mock_task:
            mock_task.delay.return_value = MagicMock(id="task-9")

            reply = bot.handle_command("/crawl", ADMIN_CHAT)

        assert "task-9" in reply
        mock_task.delay.assert_called_once_with()

    def test_publish_from_admin_chat(self, bot):
        with patch("drcarcold.tasks.publish_scheduled_news") as mock_task:
            mock_task.delay.return_value = MagicMock(id="task-10")

            bot.handle_command("/publish", ADMIN_CHAT)

        mock_task.delay.assert_called_once_with(force=True)

    def test_status(self, bot, news_source):
        reply = bot.handle_command("/status", "42")

        assert "自動爬蟲: 已停止" in reply
        assert "啟用來源: 1" in reply

    def test_info_uses_company_record(self, bot):
        reply = bot.handle_command("/info", "42")

        assert "車冷博士" in reply

    def test_handler_error_is_reported(self, bot):
        with patch.object(TelegramBot, "_status", side_effect=RuntimeError("db down")):
            reply = bot.handle_command("/status", "42")

        assert reply.startswith("❌")


@pytest.mark.django_db
class TestUpdates:
    def test_non_message_update_is_ignored(self, bot):
        assert bot.handle_update({"edited_message": {}}) is None

    def test_plain_text_gets_greeting(self, bot):
        with patch.object(TelegramBot, "send_message") as mock_send:
            reply = bot.handle_update({"message": {"chat": {"id": 42}, "text": "你好"}})

        assert "使用 /help" in reply
        mock_send.assert_called_once_with(reply, chat_id="42")


@pytest.mark.django_db
class TestSendMessage:
    def test_not_configured(self):
        bot = TelegramBot(token="", chat_id="", store=SettingsStore())

        assert bot.configured is False
        assert bot.send_message("hi") is False

    def test_posts_to_bot_api(self, bot):
        client = mock_http_client()

        with patch("drcarcold.services.telegram_bot.httpx.Client", return_value=client):
            assert bot.send_message("hi") is True

        url = client.post.call_args.args[0]
        assert url == "https://api.telegram.org/bot123:ABC/sendMessage"
        assert client.post.call_args.kwargs["json"]["chat_id"] == ADMIN_CHAT

    def test_api_error(self, bot):
        with patch("drcarcold.services.telegram_bot.httpx.Client", return_value=mock_http_client(400)):
            assert bot.send_message("hi") is False

    def test_network_error(self, bot):
        client = mock_http_client()
        client.post.side_effect = httpx.ConnectError("unreachable")

        with patch("drcarcold.services.telegram_bot.httpx.Client", return_value=client):
            assert bot.send_message("hi") is False


@pytest.mark.django_db
class TestNotify:
    def test_switched_off_event(self):
        store = SettingsStore()
        store.set("telegram_bot_token", "123:ABC")
        store.set("telegram_chat_id", ADMIN_CHAT)
        store.set("notify_on_crawl", False)

        with patch.object(TelegramBot, "send_message") as mock_send:
            assert notify("crawl", "done", store=store) is False

        mock_send.assert_not_called()

    def test_not_configured(self):
        assert notify("error", "boom", store=SettingsStore()) is False

    def test_sends_when_configured(self):
        store = SettingsStore()
        store.set("telegram_bot_token", "123:ABC")
        store.set("telegram_chat_id", ADMIN_CHAT)

        with patch.object(TelegramBot, "send_message", return_value=True) as mock_send:
            assert notify("publish", "📢 published", store=store) is True

        mock_send.assert_called_once_with("📢 published")
