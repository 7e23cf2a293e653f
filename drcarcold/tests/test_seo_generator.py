"""
Tests for SEO article generation.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from drcarcold.models import News, NewsOrigin
from drcarcold.services.ai_providers import RewriteResult
from drcarcold.services.seo_generator import (
    SEO_AUTHOR,
    SEO_TOPICS,
    SEOContentGenerator,
    build_description,
    split_generated_article,
)
from drcarcold.services.settings_store import SettingsStore

GENERATED = (
    "冷媒洩漏完整攻略\n"
    "## 冷媒洩漏的症狀\n"
    "冷氣出風不夠冷、壓縮機頻繁啟動，都是冷媒可能洩漏的警訊，車主應該盡快到專業保養廠進行檢測與修復，避免壓縮機因缺油而損壞，造成更高的維修費用。\n"
    "## 常見洩漏位置\n"
    "管路接頭、冷凝器與壓縮機軸封是最常見的洩漏位置。"
)


def ai_manager_returning(result):
    manager = MagicMock()
    manager.has_providers = True
    manager.generate_text = AsyncMock(return_value=result)
    return manager


class TestHelpers:
    def test_split_title_and_body(self):
        title, body = split_generated_article(GENERATED, "預設標題")

        assert title == "冷媒洩漏完整攻略"
        assert body.startswith("## 冷媒洩漏的症狀")

    def test_sentence_first_line_stays_in_body(self):
        text = "冷氣不冷時，第一步是檢查冷媒壓力。\n接著檢查壓縮機。"

        title, body = split_generated_article(text, "預設標題")

        assert title == "預設標題"
        assert body == text

    def test_empty_output(self):
        assert split_generated_article("", "預設標題") == ("預設標題", "")

    def test_build_description_uses_first_long_paragraph(self):
        body = split_generated_article(GENERATED, "")[1]

        description = build_description(body)

        assert description.startswith("冷氣出風不夠冷")
        assert "#" not in description

    def test_build_description_truncates(self):
        description = build_description("冷" * 300)

        assert len(description) == 160
        assert description.endswith("...")


@pytest.mark.django_db
class TestSEOContentGenerator:
    def test_next_topic_skips_used_topics(self):
        for index, topic in enumerate(SEO_TOPICS[:-1]):
            News.objects.create(
                title=topic.title, slug=f"seo-{index}", content="內容",
                origin=NewsOrigin.SEO, seo_title=topic.title,
            )

        topic = SEOContentGenerator(SettingsStore()).next_topic()

        assert topic == SEO_TOPICS[-1]

    def test_generate_article_saves_published_news(self):
        store = SettingsStore()
        manager = ai_manager_returning(
            RewriteResult(
                success=True,
                content=GENERATED,
                provider="deepseek",
                attempts=[{"provider": "deepseek", "success": True}],
            )
        )
        generator = SEOContentGenerator(store, ai_manager=manager)

        news = generator.generate_article(SEO_TOPICS[5])

        assert news.pk is not None
        assert news.title == "冷媒洩漏完整攻略"
        assert news.origin == NewsOrigin.SEO
        assert news.is_published is True
        assert news.author == SEO_AUTHOR
        assert news.seo_title == SEO_TOPICS[5].title
        assert "冷媒洩漏" in news.seo_keywords
        prompt = manager.generate_text.call_args.args[0]
        assert "文章大綱" in prompt
        assert generator.schedule_manager.get_current_usage("deepseek")["request_count"] == 1

    def test_generate_article_failure(self):
        manager = ai_manager_returning(
            RewriteResult(
                success=False,
                error="All AI providers failed",
                attempts=[{"provider": "groq", "success": False}],
            )
        )
        generator = SEOContentGenerator(SettingsStore(), ai_manager=manager)

        assert generator.generate_article(SEO_TOPICS[0]) is None
        assert not News.objects.exists()
        assert generator.schedule_manager.get_current_usage("groq")["error_count"] == 1

    def test_generate_articles_records_stats(self):
        store = SettingsStore()
        manager = ai_manager_returning(
            RewriteResult(success=True, content=GENERATED, provider="groq", attempts=[])
        )
        generator = SEOContentGenerator(store, ai_manager=manager, delay_between=0)

        articles = generator.generate_articles(2)

        assert len(articles) == 2
        assert articles[0].slug != articles[1].slug
        stats = generator.get_stats()
        assert stats["today_generated"] == 2
        assert stats["total_seo_articles"] == 2
        assert stats["total_topics"] == len(SEO_TOPICS)
