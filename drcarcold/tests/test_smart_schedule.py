"""
Tests for SmartScheduleManager.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from drcarcold.services.settings_store import SettingsStore
from drcarcold.services.smart_schedule import (
    PROVIDER_LIMITS,
    ScheduleConfig,
    SmartScheduleManager,
)


@pytest.fixture
def store(db):
    return SettingsStore()


@pytest.fixture
def manager(store):
    return SmartScheduleManager(store)


def configure(store, *providers):
    for provider in providers:
        store.set(f"{provider}_api_key", f"{provider}-key")


@pytest.mark.django_db
class TestOptimalSchedule:
    def test_no_providers_returns_default(self, manager, store):
        config = manager.calculate_optimal_schedule()

        assert config.crawler_interval == 240
        assert config.seo_generator_interval == 360
        assert store.get("smart_schedule_config") is None

    def test_deepseek_only(self, manager, store):
        configure(store, "deepseek")

        config = manager.calculate_optimal_schedule()

        assert config.active_provider == "deepseek"
        assert config.crawler_interval == 30
        assert config.seo_generator_interval == 60
        assert config.seo_generator_count == 3
        assert config.max_article_count == 10
        assert config.backup_providers == []
        assert store.get_int("auto_crawl_interval") == 30

    def test_cohere_only(self, manager, store):
        configure(store, "cohere")

        config = manager.calculate_optimal_schedule()

        assert config.crawler_interval == 30
        assert config.seo_generator_interval == 60
        assert config.seo_generator_count == 0
        assert config.max_article_count == 10

    def test_best_provider_and_backups(self, manager, store):
        configure(store, "gemini", "groq", "deepseek")

        config = manager.calculate_optimal_schedule()

        assert config.active_provider == "deepseek"
        assert config.backup_providers == ["groq", "gemini"]
        assert config.crawler_interval == 30

    def test_low_daily_quota_slows_down(self, manager, store):
        configure(store, "deepseek")
        usage = manager.get_current_usage("deepseek")
        usage["request_count"] = PROVIDER_LIMITS["deepseek"].requests_per_day - 40
        store.set(manager._usage_key("deepseek"), usage)

        config = manager.calculate_optimal_schedule()

        assert config.crawler_interval == 180
        assert config.seo_generator_interval == 360
        assert config.max_article_count == 6

    def test_saved_config_round_trip(self, manager, store):
        configure(store, "deepseek")
        manager.calculate_optimal_schedule()

        saved = manager.get_saved_schedule_config()

        assert isinstance(saved, ScheduleConfig)
        assert saved.active_provider == "deepseek"

    def test_malformed_saved_config_falls_back(self, manager, store):
        store.set(SmartScheduleManager.CONFIG_KEY, {"unexpected": 1})

        assert manager.get_saved_schedule_config().crawler_interval == 240


@pytest.mark.django_db
class TestUsageTracking:
    def test_record_api_usage(self, manager):
        manager.record_api_usage("groq", True)
        usage = manager.record_api_usage("groq", False)

        assert usage["request_count"] == 2
        assert usage["success_count"] == 1
        assert usage["error_count"] == 1

    def test_high_error_rate_reoptimises(self, manager):
        with patch.object(SmartScheduleManager, "calculate_optimal_schedule") as mock_optimize:
            for _ in range(6):
                manager.record_api_usage("deepseek", False)

        mock_optimize.assert_called_once()

    def test_can_make_api_call(self, manager, store):
        assert manager.can_make_api_call("deepseek") is True
        assert manager.can_make_api_call("unknown") is False

        usage = manager.get_current_usage("cohere")
        usage["request_count"] = 100
        store.set(manager._usage_key("cohere"), usage)

        assert manager.can_make_api_call("cohere") is False

    def test_recommended_provider(self, manager, store):
        assert manager.get_recommended_provider() is None

        configure(store, "openai", "gemini")

        assert manager.get_recommended_provider() == "gemini"

    def test_reset_daily_counters(self, manager, store):
        yesterday = timezone.localdate() - timedelta(days=1)
        store.set(manager._usage_key("groq", yesterday), {"request_count": 5})
        store.set(manager._usage_key("groq"), {"request_count": 1})

        assert manager.reset_daily_counters() == 1
        assert store.get_json(manager._usage_key("groq")) == {"request_count": 1}

    def test_usage_report(self, manager, store):
        configure(store, "deepseek")
        manager.record_api_usage("deepseek", True)

        report = manager.get_usage_report()

        assert report["deepseek"]["configured"] is True
        assert report["deepseek"]["usage"]["request_count"] == 1
        assert report["deepseek"]["usage_percentage"] == 0.01
        assert report["groq"]["configured"] is False
