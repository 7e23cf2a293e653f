"""
SEO article generation.

Picks a car air-conditioning topic that has not been written yet, asks the
AI provider chain for an article and stores it as a published News row with
origin "seo". Runs from the `generate_scheduled_seo_articles` task at the
times in `seo_generation_schedule`, or on demand from the admin API.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.utils import timezone

from drcarcold.models import News, NewsOrigin
from drcarcold.services.ai_providers import (
    AIProviderManager,
    build_seo_article_prompt,
    clean_title,
    run_async,
)
from drcarcold.services.settings_store import SettingsStore, get_settings_store
from drcarcold.services.smart_schedule import SmartScheduleManager
from drcarcold.utils.text import unique_slug

logger = logging.getLogger(__name__)

SEO_AUTHOR = "DrCarCold 編輯部"
SEO_SOURCE_NAME = "AI Generated - SEO"
SEO_TAGS = ["教育性內容", "SEO優化"]
DESCRIPTION_MAX_LENGTH = 160


@dataclass(frozen=True)
class SEOTopic:
    title: str
    keywords: List[str] = field(default_factory=list)
    outline: List[str] = field(default_factory=list)


SEO_TOPICS = [
    SEOTopic(
        "汽車冷氣系統維修保養完整指南",
        ["汽車冷氣維修", "冷氣保養", "冷媒添加", "R134a", "R1234yf"],
        ["汽車冷氣系統的基本組成", "常見的冷氣故障症狀", "定期保養的重要性", "專業維修 vs DIY", "選擇合適的維修廠"],
    ),
    SEOTopic(
        "R134a vs R1234yf 冷媒比較分析",
        ["R134a", "R1234yf", "冷媒種類", "環保冷媒", "冷媒更換"],
        ["冷媒的演進歷史", "R134a 的特性與應用", "R1234yf 的環保優勢", "兩種冷媒的成本比較", "更換冷媒的注意事項"],
    ),
    SEOTopic(
        "夏季汽車冷氣效能提升秘訣",
        ["冷氣效能", "冷氣不冷", "冷氣保養", "夏季保養", "冷氣濾網"],
        ["影響冷氣效能的因素", "日常使用的正確方法", "提升冷氣效能的技巧", "冷氣濾網的重要性", "專業檢測的時機"],
    ),
    SEOTopic(
        "電動車冷氣系統特點與保養",
        ["電動車冷氣", "熱泵系統", "電動車保養", "節能冷氣", "電池溫控"],
        ["電動車冷氣系統原理", "與傳統汽車的差異", "電動車冷氣保養要點", "節能使用技巧", "未來發展趨勢"],
    ),
    SEOTopic(
        "汽車冷氣異味問題解決方案",
        ["冷氣異味", "冷氣清潔", "濾網更換", "除霉", "冷氣消毒"],
        ["冷氣異味的常見原因", "預防異味的方法", "清潔冷氣系統的步驟", "專業除臭服務", "定期保養的重要性"],
    ),
    SEOTopic(
        "冷媒洩漏檢測與修復指南",
        ["冷媒洩漏", "洩漏檢測", "冷媒補充", "密封件更換", "冷氣維修"],
        ["冷媒洩漏的症狀", "洩漏檢測的方法", "常見洩漏位置", "修復冷媒洩漏", "預防洩漏的措施"],
    ),
    SEOTopic(
        "汽車冷氣壓縮機保養維修詳解",
        ["冷氣壓縮機", "壓縮機維修", "壓縮機更換", "冷氣核心", "壓縮機保養"],
        ["壓縮機的工作原理", "壓縮機故障的症狀", "延長壓縮機壽命的方法", "壓縮機維修 vs 更換", "選擇優質壓縮機的標準"],
    ),
    SEOTopic(
        "車輛冷氣系統升級改造指南",
        ["冷氣升級", "冷氣改裝", "冷氣效能提升", "後座冷氣", "獨立冷氣"],
        ["冷氣系統升級的必要性", "常見的升級方案", "後座獨立冷氣安裝", "升級後的保養重點", "成本效益分析"],
    ),
]


def build_description(content: str) -> str:
    """First substantial paragraph, markdown stripped, max 160 chars."""
    paragraph = next(
        (p.strip() for p in (content or "").splitlines() if len(p.strip()) > 50),
        (content or "").strip(),
    )
    description = paragraph.replace("#", "").replace("*", "").strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        description = description[: DESCRIPTION_MAX_LENGTH - 3] + "..."
    return description


def split_generated_article(text: str, fallback_title: str):
    """
    Split model output into (title, body).

    The prompt asks for the title on the first line; a first line that
    reads like a sentence is kept as body text.
    """
    lines = (text or "").strip().splitlines()
    if not lines:
        return fallback_title, ""
    first = lines[0].strip()
    if first and len(first) <= 60 and not first.endswith(("。", "！", "？")):
        title = clean_title(first) or fallback_title
        body = "\n".join(lines[1:]).strip()
        return title, body
    return fallback_title, "\n".join(lines).strip()


class SEOContentGenerator:
    """Writes SEO articles through AIProviderManager."""

    def __init__(
        self,
        store: Optional[SettingsStore] = None,
        ai_manager: Optional[AIProviderManager] = None,
        delay_between: float = 2.0,
    ):
        self.store = store or get_settings_store()
        self._ai_manager = ai_manager
        self.delay_between = delay_between
        self.schedule_manager = SmartScheduleManager(self.store)

    @property
    def ai_manager(self) -> AIProviderManager:
        if self._ai_manager is None:
            self._ai_manager = AIProviderManager.from_settings(self.store)
        return self._ai_manager

    def used_topics(self) -> set:
        titles = News.objects.filter(origin=NewsOrigin.SEO).values_list("seo_title", flat=True)
        return set(titles)

    def next_topic(self) -> SEOTopic:
        """A random unused topic; every topic is eligible again once all are used."""
        used = self.used_topics()
        available = [t for t in SEO_TOPICS if t.title not in used]
        return random.choice(available or SEO_TOPICS)

    def generate_article(self, topic: Optional[SEOTopic] = None) -> Optional[News]:
        """
        Generate and save one published SEO article.

        Returns None when no provider could produce text.
        """
        topic = topic or self.next_topic()
        prompt = build_seo_article_prompt(topic.title, topic.keywords)
        if topic.outline:
            prompt += "\n\n文章大綱：\n" + "\n".join(
                f"{i}. {item}" for i, item in enumerate(topic.outline, start=1)
            )

        logger.info(f"Generating SEO article: {topic.title}")
        result = run_async(self.ai_manager.generate_text(prompt))
        for attempt in result.attempts:
            self.schedule_manager.record_api_usage(attempt["provider"], attempt["success"])

        if not result.success:
            logger.warning(f"SEO generation failed for '{topic.title}': {result.error}")
            return None

        title, body = split_generated_article(result.content, topic.title)
        if not body:
            logger.warning(f"SEO generation for '{topic.title}' returned no body")
            return None

        description = build_description(body)
        news = News(
            title=title[:300],
            slug=unique_slug(News, title),
            content=body,
            excerpt=description,
            author=SEO_AUTHOR,
            tags=list(SEO_TAGS),
            origin=NewsOrigin.SEO,
            source_name=SEO_SOURCE_NAME,
            content_hash=News.compute_content_hash(body),
            reading_time=News.compute_reading_time(body),
            is_ai_rewritten=True,
            ai_provider=result.provider,
            seo_title=topic.title,
            seo_description=description,
            seo_keywords=", ".join(topic.keywords)[:500],
        )
        news.publish()
        news.save()
        logger.info(f"Saved SEO article: {news.title}")
        return news

    def generate_articles(self, count: int = 1) -> List[News]:
        articles = []
        for index in range(count):
            if index and self.delay_between:
                time.sleep(self.delay_between)
            article = self.generate_article()
            if article is not None:
                articles.append(article)
        if articles:
            self.record_stats(len(articles))
        return articles

    def record_stats(self, count: int) -> int:
        key = f"seo_generation_stats_{timezone.localdate().isoformat()}"
        return self.store.increment_counter(key, count)

    def get_stats(self) -> Dict[str, Any]:
        seo_news = News.objects.filter(origin=NewsOrigin.SEO)
        used = self.used_topics()
        used_count = sum(1 for t in SEO_TOPICS if t.title in used)
        return {
            "total_seo_articles": seo_news.count(),
            "published_seo_articles": seo_news.filter(is_published=True).count(),
            "today_generated": self.store.get_int(
                f"seo_generation_stats_{timezone.localdate().isoformat()}"
            ),
            "total_topics": len(SEO_TOPICS),
            "used_topics": used_count,
            "available_topics": len(SEO_TOPICS) - used_count,
            "enabled": self.store.get_bool("auto_seo_enabled"),
            "schedule": self.store.get("seo_generation_schedule"),
            "daily_count": self.store.get_int("seo_daily_count", 1),
        }
