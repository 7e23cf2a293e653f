"""
Tests for the automation endpoints: auto crawler, scheduled publisher,
smart schedule, SEO generator and the Telegram webhook.
"""

from unittest.mock import MagicMock, patch

import pytest

from drcarcold.services.settings_store import get_settings_store


@pytest.mark.django_db
class TestAutoCrawler:
    """/api/auto-crawler/"""

    def test_requires_staff(self, api_client):
        assert api_client.get("/api/auto-crawler/").status_code == 401

    def test_stats(self, staff_client, news_source):
        response = staff_client.get("/api/auto-crawler/")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["enabled"] is False
        assert data["interval"] == 60
        assert data["sources"] == {"total": 1, "enabled": 1}
        assert data["today"]["runs"] == 0
        assert data["ai_providers"] == []

    def test_start_with_interval(self, staff_client):
        response = staff_client.post(
            "/api/auto-crawler/", {"action": "start", "interval": 45}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Auto crawler started"
        store = get_settings_store()
        assert store.get_bool("auto_crawl_enabled") is True
        assert store.get_int("auto_crawl_interval") == 45

    def test_start_rejects_bad_interval(self, staff_client):
        response = staff_client.post(
            "/api/auto-crawler/", {"action": "start", "interval": 0}, format="json"
        )

        assert response.status_code == 400
        assert get_settings_store().get_bool("auto_crawl_enabled") is False

    def test_stop(self, staff_client):
        get_settings_store().set("auto_crawl_enabled", True)

        response = staff_client.post("/api/auto-crawler/", {"action": "stop"}, format="json")

        assert response.json()["data"]["enabled"] is False

    @patch("drcarcold.tasks.crawl_all_news_sources")
    def test_crawl_now_dispatches_task(self, mock_task, staff_client):
        mock_task.delay.return_value = MagicMock(id="task-123")

        response = staff_client.post("/api/auto-crawler/", {"action": "crawl-now"}, format="json")

        assert response.status_code == 202
        assert response.json()["data"] == {"task_id": "task-123"}
        mock_task.delay.assert_called_once_with()

    def test_unknown_action(self, staff_client):
        response = staff_client.post("/api/auto-crawler/", {"action": "explode"}, format="json")

        assert response.status_code == 400
        assert response.json()["error"] == "Unknown action: explode"


@pytest.mark.django_db
class TestScheduledPublisherApi:
    """/api/scheduled-publisher/"""

    def test_stats(self, staff_client, published_news, draft_news):
        data = staff_client.get("/api/scheduled-publisher/").json()["data"]

        assert data["total_published"] == 1
        assert data["draft_count"] == 1
        assert data["schedule"] == ["09:00", "15:00", "21:00"]

    def test_start_with_schedule(self, staff_client):
        response = staff_client.post(
            "/api/scheduled-publisher/",
            {"action": "start", "schedule": "8:30, 18:00"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["data"]["schedule"] == ["08:30", "18:00"]
        assert get_settings_store().get("publish_schedule") == "08:30,18:00"

    def test_start_rejects_invalid_schedule(self, staff_client):
        response = staff_client.post(
            "/api/scheduled-publisher/",
            {"action": "start", "schedule": "09:00,25:99"},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["details"] == {"invalid": ["25:99"]}

    def test_stop(self, staff_client):
        response = staff_client.post("/api/scheduled-publisher/", {"action": "stop"}, format="json")

        assert response.json()["data"]["enabled"] is False

    def test_manual_publish(self, staff_client, draft_news):
        response = staff_client.post(
            "/api/scheduled-publisher/", {"action": "manual-publish"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["data"]["published"] == 1
        assert response.json()["message"] == "Published 1 articles"
        draft_news.refresh_from_db()
        assert draft_news.is_published is True


@pytest.mark.django_db
class TestSmartScheduleApi:
    """/api/smart-schedule/"""

    def test_default_config(self, staff_client):
        data = staff_client.get("/api/smart-schedule/").json()["data"]

        assert data["crawler_interval"] == 240
        assert data["seo_generator_interval"] == 360

    def test_usage_report_lists_all_providers(self, staff_client):
        data = staff_client.get("/api/smart-schedule/", {"action": "usage-report"}).json()["data"]

        assert set(data) == {"deepseek", "groq", "gemini", "cohere", "openai"}
        assert data["deepseek"]["configured"] is False
        assert data["deepseek"]["limits"]["daily"] == 10000

    def test_recommended_provider(self, staff_client):
        get_settings_store().set("groq_api_key", "gsk-test")

        data = staff_client.get("/api/smart-schedule/", {"action": "recommended-provider"}).json()["data"]

        assert data == {"provider": "groq"}

    def test_optimize(self, staff_client):
        get_settings_store().set("deepseek_api_key", "sk-test")

        response = staff_client.post("/api/smart-schedule/", {"action": "optimize"}, format="json")

        data = response.json()["data"]
        assert data["active_provider"] == "deepseek"
        assert data["crawler_interval"] == 30
        assert data["seo_generator_interval"] == 60
        assert get_settings_store().get_int("auto_crawl_interval") == 30

    def test_record_usage(self, staff_client):
        response = staff_client.post(
            "/api/smart-schedule/",
            {"action": "record-usage", "provider": "deepseek", "success": False},
            format="json",
        )

        data = response.json()["data"]
        assert data["request_count"] == 1
        assert data["error_count"] == 1

    def test_record_usage_rejects_unknown_provider(self, staff_client):
        response = staff_client.post(
            "/api/smart-schedule/", {"action": "record-usage", "provider": "claude"}, format="json"
        )

        assert response.status_code == 400

    def test_can_call(self, staff_client):
        response = staff_client.post(
            "/api/smart-schedule/", {"action": "can-call", "provider": "cohere"}, format="json"
        )

        assert response.json()["data"] == {"provider": "cohere", "can_call": True}


@pytest.mark.django_db
class TestSEOGeneratorApi:
    """/api/seo-generator/"""

    def test_stats(self, staff_client):
        data = staff_client.get("/api/seo-generator/").json()["data"]

        assert data["total_seo_articles"] == 0
        assert data["total_topics"] == 8
        assert data["available_topics"] == 8

    def test_count_out_of_range(self, staff_client):
        response = staff_client.post("/api/seo-generator/", {"count": 11}, format="json")

        assert response.status_code == 400

    def test_no_provider_configured(self, staff_client):
        response = staff_client.post("/api/seo-generator/", {"count": 1}, format="json")

        assert response.status_code == 400
        assert response.json()["error"] == "No AI provider configured"

    @patch("drcarcold.tasks.generate_scheduled_seo_articles")
    def test_dispatches_generation(self, mock_task, staff_client):
        get_settings_store().set("deepseek_api_key", "sk-test")
        mock_task.delay.return_value = MagicMock(id="seo-1")

        response = staff_client.post("/api/seo-generator/", {"count": 2}, format="json")

        assert response.status_code == 202
        assert response.json()["data"] == {"task_id": "seo-1", "count": 2}
        mock_task.delay.assert_called_once_with(force=True, count=2)


@pytest.mark.django_db
class TestTelegramWebhook:
    """/api/telegram-webhook/"""

    def test_get_describes_usage(self, api_client):
        data = api_client.get("/api/telegram-webhook/").json()

        assert data["ok"] is True
        assert data["configured"] is False
        assert "/crawl" in data["commands"]

    def test_post_handles_command(self, api_client):
        bot = MagicMock()

        with patch("drcarcold.api.automation._get_telegram_bot", return_value=bot):
            response = api_client.post(
                "/api/telegram-webhook/",
                {"message": {"chat": {"id": 42}, "text": "/help"}},
                format="json",
            )

        assert response.json() == {"ok": True}
        bot.handle_update.assert_called_once_with({"message": {"chat": {"id": 42}, "text": "/help"}})

    def test_post_answers_ok_when_handler_fails(self, api_client):
        bot = MagicMock()
        bot.handle_update.side_effect = RuntimeError("boom")

        with patch("drcarcold.api.automation._get_telegram_bot", return_value=bot):
            response = api_client.post("/api/telegram-webhook/", {"message": {}}, format="json")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    @patch("drcarcold.services.telegram_bot.httpx.Client")
    def test_post_without_bot_token_sends_nothing(self, mock_client, api_client, db):
        response = api_client.post(
            "/api/telegram-webhook/",
            {"message": {"chat": {"id": 1}, "text": "hello"}},
            format="json",
        )

        assert response.json() == {"ok": True}
        mock_client.assert_not_called()
