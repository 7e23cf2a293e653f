"""
Smart Schedule - sizes crawl/SEO intervals to the AI providers' free quotas.

Usage is recorded per provider and day in the Setting row
`api_usage_<provider>_<YYYY-MM-DD>` (JSON). `calculate_optimal_schedule`
picks the provider with the most remaining daily requests (weighted by
priority), derives safe intervals from its remaining hourly/daily budget and
stores the result in `smart_schedule_config`; the crawler interval is also
written to `auto_crawl_interval`, which the periodic crawl check honours.
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from django.utils import timezone

from drcarcold.services.settings_store import SettingsStore, get_settings_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderLimits:
    provider: str
    name: str
    requests_per_day: int
    requests_per_hour: int
    requests_per_minute: int
    priority: int


PROVIDER_LIMITS: Dict[str, ProviderLimits] = {
    limits.provider: limits
    for limits in (
        ProviderLimits("deepseek", "DeepSeek", 10000, 500, 10, 1),
        ProviderLimits("groq", "Groq", 14400, 600, 30, 2),
        ProviderLimits("gemini", "Google Gemini", 1500, 60, 15, 3),
        ProviderLimits("cohere", "Cohere", 100, 10, 1, 4),
        ProviderLimits("openai", "OpenAI", 200, 20, 3, 10),
    )
}

SAFETY_MARGIN = 0.8
CALLS_PER_CRAWL = 2  # title + body rewrite
CALLS_PER_SEO = 1
MIN_CRAWLER_INTERVAL = 30
MIN_SEO_INTERVAL = 60
LOW_QUOTA_DAILY = 50
LOW_QUOTA_CRAWLER_INTERVAL = 180
LOW_QUOTA_SEO_INTERVAL = 360
CLEANUP_INTERVAL = 1440
ERROR_REOPTIMIZE_COUNT = 5
ERROR_REOPTIMIZE_RATE = 0.3


@dataclass
class ScheduleConfig:
    crawler_interval: int
    seo_generator_interval: int
    seo_generator_count: int
    max_article_count: int
    cleanup_interval: int
    active_provider: str
    backup_providers: List[str] = field(default_factory=list)
    last_optimized: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_schedule() -> ScheduleConfig:
    return ScheduleConfig(
        crawler_interval=240,
        seo_generator_interval=360,
        seo_generator_count=1,
        max_article_count=3,
        cleanup_interval=CLEANUP_INTERVAL,
        active_provider="deepseek",
        backup_providers=[],
        last_optimized=timezone.now().isoformat(),
    )


class SmartScheduleManager:
    """
    Tracks per-provider AI usage and computes crawl/SEO intervals from it.
    """

    CONFIG_KEY = "smart_schedule_config"

    def __init__(self, store: Optional[SettingsStore] = None):
        self.store = store or get_settings_store()

    # -- usage records -------------------------------------------------

    @staticmethod
    def _usage_key(provider: str, day=None) -> str:
        day = day or timezone.localdate()
        return f"api_usage_{provider}_{day.isoformat()}"

    def get_current_usage(self, provider: str) -> Dict[str, Any]:
        now = timezone.localtime()
        usage = self.store.get_json(self._usage_key(provider))
        if usage:
            return usage
        return {
            "provider": provider,
            "date": now.date().isoformat(),
            "hour": now.hour,
            "minute": now.minute,
            "request_count": 0,
            "success_count": 0,
            "error_count": 0,
            "hour_count": 0,
            "minute_count": 0,
        }

    def calculate_available_requests(self, limits: ProviderLimits, usage: Dict[str, Any]) -> Dict[str, int]:
        now = timezone.localtime()
        daily = max(0, limits.requests_per_day - usage.get("request_count", 0))
        if usage.get("hour") == now.hour:
            hourly = max(0, limits.requests_per_hour - usage.get("hour_count", 0))
        else:
            hourly = limits.requests_per_hour
        if usage.get("hour") == now.hour and usage.get("minute") == now.minute:
            minute = max(0, limits.requests_per_minute - usage.get("minute_count", 0))
        else:
            minute = limits.requests_per_minute
        return {"daily": daily, "hourly": min(hourly, daily), "minute": min(minute, daily)}

    def record_api_usage(self, provider: str, success: bool) -> Dict[str, Any]:
        """
        Count one API call; re-optimise when the error rate gets high.
        """
        now = timezone.localtime()
        usage = self.get_current_usage(provider)

        if usage.get("hour") != now.hour:
            usage["hour_count"] = 0
            usage["minute_count"] = 0
        elif usage.get("minute") != now.minute:
            usage["minute_count"] = 0

        usage["hour"] = now.hour
        usage["minute"] = now.minute
        usage["request_count"] = usage.get("request_count", 0) + 1
        usage["hour_count"] = usage.get("hour_count", 0) + 1
        usage["minute_count"] = usage.get("minute_count", 0) + 1
        if success:
            usage["success_count"] = usage.get("success_count", 0) + 1
        else:
            usage["error_count"] = usage.get("error_count", 0) + 1

        self.store.set(self._usage_key(provider), usage)

        errors = usage["error_count"]
        if errors > ERROR_REOPTIMIZE_COUNT and errors / usage["request_count"] > ERROR_REOPTIMIZE_RATE:
            logger.warning(f"{provider} error rate too high, recalculating schedule")
            self.calculate_optimal_schedule()

        return usage

    # -- providers -----------------------------------------------------

    def get_available_providers(self) -> List[str]:
        """Providers with an API key configured, in priority order."""
        providers = [
            name for name in PROVIDER_LIMITS
            if (self.store.get(f"{name}_api_key") or "").strip()
        ]
        return sorted(providers, key=lambda name: PROVIDER_LIMITS[name].priority)

    def get_best_provider(self, providers: List[str]) -> str:
        best_provider = providers[0]
        best_score = 0.0
        for name in providers:
            limits = PROVIDER_LIMITS[name]
            available = self.calculate_available_requests(limits, self.get_current_usage(name))
            score = available["daily"] / limits.priority
            if score > best_score:
                best_score = score
                best_provider = name
        return best_provider

    def can_make_api_call(self, provider: str) -> bool:
        limits = PROVIDER_LIMITS.get(provider)
        if limits is None:
            return False
        available = self.calculate_available_requests(limits, self.get_current_usage(provider))
        return available["daily"] > 0 and available["hourly"] > 0 and available["minute"] > 0

    def get_recommended_provider(self) -> Optional[str]:
        for provider in self.get_available_providers():
            if self.can_make_api_call(provider):
                return provider
        return None

    # -- schedule ------------------------------------------------------

    def calculate_intervals(
        self,
        limits: ProviderLimits,
        available: Dict[str, int],
        providers: List[str],
    ) -> ScheduleConfig:
        safe_hourly = math.floor(available["hourly"] * SAFETY_MARGIN)
        safe_daily = math.floor(available["daily"] * SAFETY_MARGIN)

        max_crawls_per_hour = safe_hourly // CALLS_PER_CRAWL
        max_seo_per_hour = safe_hourly // CALLS_PER_SEO

        crawler_interval = math.ceil(60 / max_crawls_per_hour) if max_crawls_per_hour > 0 else 240
        seo_interval = math.ceil(60 / max_seo_per_hour) if max_seo_per_hour > 0 else 360

        crawler_interval = max(crawler_interval, MIN_CRAWLER_INTERVAL)
        seo_interval = max(seo_interval, MIN_SEO_INTERVAL)

        if available["daily"] < LOW_QUOTA_DAILY:
            crawler_interval = max(crawler_interval, LOW_QUOTA_CRAWLER_INTERVAL)
            seo_interval = max(seo_interval, LOW_QUOTA_SEO_INTERVAL)

        # More fallbacks allow a tighter schedule
        if len(providers) > 2:
            crawler_interval = max(MIN_CRAWLER_INTERVAL, math.floor(crawler_interval * 0.7))
            seo_interval = max(MIN_SEO_INTERVAL, math.floor(seo_interval * 0.7))

        return ScheduleConfig(
            crawler_interval=crawler_interval,
            seo_generator_interval=seo_interval,
            seo_generator_count=min(3, safe_hourly // 10),
            max_article_count=min(10, safe_daily // 5),
            cleanup_interval=CLEANUP_INTERVAL,
            active_provider=limits.provider,
            backup_providers=[p for p in providers if p != limits.provider],
            last_optimized=timezone.now().isoformat(),
        )

    def calculate_optimal_schedule(self) -> ScheduleConfig:
        providers = self.get_available_providers()
        if not providers:
            logger.warning("No AI provider configured, using default schedule")
            return default_schedule()

        best = self.get_best_provider(providers)
        limits = PROVIDER_LIMITS[best]
        available = self.calculate_available_requests(limits, self.get_current_usage(best))
        config = self.calculate_intervals(limits, available, providers)

        logger.info(
            f"Smart schedule optimised with {limits.name}: "
            f"crawl every {config.crawler_interval}m, SEO every {config.seo_generator_interval}m"
        )
        self.save_schedule_config(config)
        return config

    def save_schedule_config(self, config: ScheduleConfig) -> None:
        self.store.set(self.CONFIG_KEY, config.to_dict())
        self.store.set("auto_crawl_interval", config.crawler_interval)

    def get_saved_schedule_config(self) -> ScheduleConfig:
        data = self.store.get_json(self.CONFIG_KEY)
        if not data:
            return default_schedule()
        try:
            return ScheduleConfig(**data)
        except TypeError:
            logger.warning("Stored smart schedule config is malformed, using defaults")
            return default_schedule()

    def reset_daily_counters(self) -> int:
        """Delete yesterday's usage rows; returns the number removed."""
        yesterday = timezone.localdate() - timedelta(days=1)
        removed = 0
        for provider in PROVIDER_LIMITS:
            removed += self.store.delete(self._usage_key(provider, yesterday))
        logger.info(f"Reset daily API counters ({removed} records removed)")
        return removed

    def get_usage_report(self) -> Dict[str, Any]:
        configured = set(self.get_available_providers())
        report = {}
        for name, limits in PROVIDER_LIMITS.items():
            usage = self.get_current_usage(name)
            available = self.calculate_available_requests(limits, usage)
            report[name] = {
                "name": limits.name,
                "configured": name in configured,
                "usage": usage,
                "limits": {
                    "daily": limits.requests_per_day,
                    "hourly": limits.requests_per_hour,
                    "minute": limits.requests_per_minute,
                },
                "available": available,
                "usage_percentage": round(
                    usage.get("request_count", 0) / limits.requests_per_day * 100, 2
                ),
            }
        return report


def get_smart_schedule_manager() -> SmartScheduleManager:
    return SmartScheduleManager()
