"""
Celery tasks for DrCarCold automation.

Periodic (Celery Beat, see config/celery.py):
- check_due_news_sources: every 5 minutes, dispatches crawl_news_source
  for enabled sources whose interval elapsed (when auto crawl is on)
- publish_scheduled_news: every minute, publishes drafts at the
  `publish_schedule` times
- generate_scheduled_seo_articles: every minute, writes SEO articles at the
  `seo_generation_schedule` times
- optimize_smart_schedule: hourly
- reset_daily_api_counters: daily at 00:05

On demand:
- crawl_news_source / crawl_all_news_sources
"""

import logging
from typing import Any, Dict, Optional

from celery import shared_task
from django.core.exceptions import ValidationError

from drcarcold.models import NewsSource
from drcarcold.monitoring import capture_task_error
from drcarcold.services.news_crawler import NewsCrawler
from drcarcold.services.scheduled_publisher import ScheduledPublisher, claim_slot, is_due
from drcarcold.services.seo_generator import SEOContentGenerator
from drcarcold.services.settings_store import get_settings_store
from drcarcold.services.smart_schedule import SmartScheduleManager
from drcarcold.services.telegram_bot import notify
from drcarcold.utils.text import parse_times

logger = logging.getLogger(__name__)


@shared_task(name="drcarcold.tasks.check_due_news_sources")
def check_due_news_sources() -> Dict[str, Any]:
    """
    Find enabled sources due for crawling and dispatch them to the crawl queue.

    A source is due once max(source.crawl_interval, auto_crawl_interval)
    minutes passed since its last crawl.
    """
    store = get_settings_store()
    if not store.get_bool("auto_crawl_enabled"):
        logger.debug("Auto crawl disabled, skipping due source check")
        return {"status": "skipped", "reason": "auto_crawl_disabled", "dispatched": 0}

    min_interval = store.get_int("auto_crawl_interval", 60)
    dispatched = []
    for source in NewsSource.objects.filter(enabled=True):
        if not source.is_due_for_crawl(min_interval=min_interval):
            continue
        crawl_news_source.apply_async(args=[str(source.id)], queue="crawl")
        dispatched.append(str(source.id))
        logger.info(f"Dispatched crawl for {source.name}")

    return {"status": "ok", "dispatched": len(dispatched), "source_ids": dispatched}


@shared_task(name="drcarcold.tasks.crawl_news_source", bind=True)
def crawl_news_source(self, source_id: str) -> Dict[str, Any]:
    """Crawl one NewsSource and save its new articles."""
    try:
        source = NewsSource.objects.get(id=source_id)
    except (NewsSource.DoesNotExist, ValidationError):
        logger.error(f"News source {source_id} not found")
        return {"error": "Source not found", "status": "failed"}

    try:
        with NewsCrawler() as crawler:
            result = crawler.crawl_source(source)
    except Exception as e:
        logger.exception(f"Crawl failed for {source.name}: {e}")
        capture_task_error(e, task="crawl_news_source", context={"source_id": source_id, "source": source.name})
        notify("error", f"❌ 爬取 {source.name} 失敗: {e}")
        return {"error": str(e), "status": "failed", "source_id": source_id}

    return {"status": "completed", **result.to_dict()}


@shared_task(name="drcarcold.tasks.crawl_all_news_sources", bind=True)
def crawl_all_news_sources(self) -> Dict[str, Any]:
    """Crawl every enabled source now, one after the other."""
    totals = {"sources": 0, "articles_found": 0, "articles_processed": 0, "articles_published": 0}
    results = []

    with NewsCrawler() as crawler:
        for source in NewsSource.objects.filter(enabled=True):
            try:
                result = crawler.crawl_source(source)
            except Exception as e:
                logger.exception(f"Crawl failed for {source.name}: {e}")
                capture_task_error(e, task="crawl_all_news_sources", context={"source_id": str(source.id)})
                results.append({"source_id": str(source.id), "source_name": source.name, "error": str(e)})
                continue
            totals["sources"] += 1
            totals["articles_found"] += result.articles_found
            totals["articles_processed"] += result.articles_processed
            totals["articles_published"] += result.articles_published
            results.append(result.to_dict())

    logger.info(
        f"Crawl-all finished: {totals['sources']} sources, "
        f"{totals['articles_processed']} articles processed"
    )
    return {"status": "completed", **totals, "results": results}


@shared_task(name="drcarcold.tasks.publish_scheduled_news", bind=True)
def publish_scheduled_news(self, force: bool = False) -> Dict[str, Any]:
    """
    Publish drafts at the configured times.

    With force=True, publish a manual batch immediately.
    """
    publisher = ScheduledPublisher()
    try:
        if force:
            return {"status": "completed", **publisher.manual_publish()}

        if not publisher.is_publish_due():
            return {"status": "skipped", "reason": "not_due"}
        if not claim_slot("publish"):
            return {"status": "skipped", "reason": "already_ran"}
        return {"status": "completed", **publisher.publish_scheduled_articles()}
    except Exception as e:
        logger.exception(f"Scheduled publishing failed: {e}")
        capture_task_error(e, task="publish_scheduled_news")
        return {"status": "failed", "error": str(e)}


@shared_task(name="drcarcold.tasks.generate_scheduled_seo_articles", bind=True)
def generate_scheduled_seo_articles(self, force: bool = False, count: Optional[int] = None) -> Dict[str, Any]:
    """
    Generate `seo_daily_count` SEO articles at the `seo_generation_schedule` times.
    """
    store = get_settings_store()
    if not force:
        if not store.get_bool("auto_seo_enabled"):
            return {"status": "skipped", "reason": "auto_seo_disabled"}
        if not is_due(parse_times(store.get("seo_generation_schedule") or "")):
            return {"status": "skipped", "reason": "not_due"}
        if not claim_slot("seo_generation"):
            return {"status": "skipped", "reason": "already_ran"}

    count = count or store.get_int("seo_daily_count", 1)
    generator = SEOContentGenerator(store=store)
    if not generator.ai_manager.has_providers:
        logger.warning("SEO generation requested but no AI provider is configured")
        return {"status": "failed", "error": "No AI provider configured"}

    try:
        articles = generator.generate_articles(count)
    except Exception as e:
        logger.exception(f"SEO generation failed: {e}")
        capture_task_error(e, task="generate_scheduled_seo_articles", context={"count": count})
        return {"status": "failed", "error": str(e)}

    if articles:
        notify("publish", f"✍️ 已生成 {len(articles)} 篇 SEO 文章", store=store)
    return {
        "status": "completed",
        "requested": count,
        "generated": len(articles),
        "titles": [a.title for a in articles],
    }


@shared_task(name="drcarcold.tasks.optimize_smart_schedule")
def optimize_smart_schedule() -> Dict[str, Any]:
    config = SmartScheduleManager().calculate_optimal_schedule()
    return {"status": "completed", "config": config.to_dict()}


@shared_task(name="drcarcold.tasks.reset_daily_api_counters")
def reset_daily_api_counters() -> Dict[str, Any]:
    removed = SmartScheduleManager().reset_daily_counters()
    return {"status": "completed", "removed": removed}
