"""
Scheduled publishing of draft news and smart cleanup of old articles.

Celery Beat runs `publish_scheduled_news` every minute; the task only acts at
the `HH:MM` times listed in the `publish_schedule` setting. Each run
publishes the oldest drafts, records daily stats in Setting rows and then
trims the published list down to the best MAX_PUBLISHED_NEWS articles.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

from drcarcold.models import News
from drcarcold.services.settings_store import SettingsStore, get_settings_store
from drcarcold.services.telegram_bot import notify
from drcarcold.utils.text import parse_times

logger = logging.getLogger(__name__)

SCHEDULED_BATCH_SIZE = 3
MANUAL_BATCH_SIZE = 5
MAX_PUBLISHED_NEWS = 20
MIN_VIEWS_THRESHOLD = 10

TRAFFIC_WEIGHT = 0.6
FRESHNESS_WEIGHT = 0.3
QUALITY_WEIGHT = 0.1


@dataclass
class CleanupResult:
    total_news: int = 0
    deleted_count: int = 0
    deleted_titles: List[str] = field(default_factory=list)
    dry_run: bool = False


def is_due(times: List[str], now=None) -> bool:
    """Check whether the current local HH:MM is one of `times`."""
    now = timezone.localtime(now) if now else timezone.localtime()
    return now.strftime("%H:%M") in times


def claim_slot(name: str, now=None) -> bool:
    """
    Claim the current minute for a scheduled job.

    Returns False if another worker already ran `name` in this minute.
    """
    now = timezone.localtime(now) if now else timezone.localtime()
    key = f"schedule_slot:{name}:{now:%Y-%m-%d-%H:%M}"
    return cache.add(key, True, 120)


def news_score(views: int, published_at, now=None) -> float:
    """
    Retention score used by the cleanup.

    traffic = min(views * 2, 100), freshness = max(50 - days old, 0),
    quality bonus = 20 when views >= 10.
    """
    now = now or timezone.now()
    days_old = (now - published_at).days
    traffic = min(views * 2, 100)
    freshness = max(50 - days_old, 0)
    quality_bonus = 20 if views >= MIN_VIEWS_THRESHOLD else 0
    score = traffic * TRAFFIC_WEIGHT + freshness * FRESHNESS_WEIGHT + quality_bonus * QUALITY_WEIGHT
    return round(score, 2)


class ScheduledPublisher:
    """Publishes drafts at configured times and cleans up old news."""

    def __init__(self, store: Optional[SettingsStore] = None):
        self.store = store or get_settings_store()

    def get_publish_times(self) -> List[str]:
        return parse_times(self.store.get("publish_schedule") or "")

    def is_publish_due(self, now=None) -> bool:
        if not self.store.get_bool("scheduled_publishing_enabled", default=True):
            return False
        return is_due(self.get_publish_times(), now)

    # -- publishing ----------------------------------------------------

    def _publish_drafts(self, limit: int) -> List[News]:
        drafts = list(
            News.objects.filter(is_published=False, published_at__isnull=True)
            .order_by("created_at")[:limit]
        )
        published = []
        for article in drafts:
            article.publish()
            article.save(update_fields=["is_published", "published_at"])
            published.append(article)
            logger.info(f"Published article: {article.title}")
        return published

    def publish_scheduled_articles(self) -> Dict[str, Any]:
        """
        Publish up to SCHEDULED_BATCH_SIZE of the oldest drafts.

        Does nothing unless `auto_publish_enabled` is on.
        """
        if not self.store.get_bool("auto_publish_enabled"):
            logger.info("Auto publish disabled, skipping scheduled publishing")
            return {"published": 0, "skipped": "auto_publish_disabled"}
        return self._run(SCHEDULED_BATCH_SIZE)

    def manual_publish(self) -> Dict[str, Any]:
        """Publish up to MANUAL_BATCH_SIZE drafts right away."""
        return self._run(MANUAL_BATCH_SIZE)

    def _run(self, limit: int) -> Dict[str, Any]:
        with transaction.atomic():
            published = self._publish_drafts(limit)
        if not published:
            logger.info("No drafts waiting to be published")
            return {"published": 0, "titles": [], "cleanup": None}

        self.record_publish_stats(len(published))
        notify(
            "publish",
            f"📢 已發布 {len(published)} 篇文章:\n" + "\n".join(f"• {a.title}" for a in published),
            store=self.store,
        )

        cleanup = self.smart_cleanup()
        return {
            "published": len(published),
            "titles": [a.title for a in published],
            "cleanup": cleanup.deleted_count,
        }

    # -- stats ---------------------------------------------------------

    @staticmethod
    def _stats_key(prefix: str, day=None) -> str:
        day = day or timezone.localdate()
        return f"{prefix}_{day.isoformat()}"

    def record_publish_stats(self, count: int) -> int:
        return self.store.increment_counter(self._stats_key("publish_stats"), count)

    def get_publish_stats(self) -> Dict[str, Any]:
        today = timezone.localdate()
        yesterday = today - timedelta(days=1)
        return {
            "today_published": self.store.get_int(self._stats_key("publish_stats", today)),
            "yesterday_published": self.store.get_int(self._stats_key("publish_stats", yesterday)),
            "total_published": News.objects.filter(is_published=True).count(),
            "draft_count": News.objects.filter(is_published=False).count(),
            "enabled": self.store.get_bool("scheduled_publishing_enabled", default=True),
            "auto_publish_enabled": self.store.get_bool("auto_publish_enabled"),
            "schedule": self.get_publish_times(),
        }

    # -- cleanup -------------------------------------------------------

    def smart_cleanup(self, keep: int = MAX_PUBLISHED_NEWS, dry_run: bool = False) -> CleanupResult:
        """
        Delete published news beyond the `keep` best scored articles.
        """
        published = list(
            News.objects.filter(is_published=True, published_at__isnull=False)
            .only("id", "title", "view_count", "published_at")
        )
        result = CleanupResult(total_news=len(published), dry_run=dry_run)
        if len(published) <= keep:
            return result

        now = timezone.now()
        ranked = sorted(
            published,
            key=lambda n: (news_score(n.view_count, n.published_at, now), n.published_at),
            reverse=True,
        )
        to_delete = ranked[keep:]
        result.deleted_count = len(to_delete)
        result.deleted_titles = [n.title for n in to_delete]

        if dry_run:
            return result

        News.objects.filter(id__in=[n.id for n in to_delete]).delete()
        logger.info(f"Smart cleanup removed {result.deleted_count} articles")
        self.store.set(
            self._stats_key("cleanup_stats"),
            {
                "count": result.deleted_count,
                "titles": ", ".join(result.deleted_titles),
                "timestamp": now.isoformat(),
            },
        )
        return result


def get_scheduled_publisher() -> ScheduledPublisher:
    return ScheduledPublisher()
