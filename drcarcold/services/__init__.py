"""
Services module for DrCarCold.

Contains:
- settings_store: cached typed access to Setting rows
- ai_providers: AI rewrite/generation providers with fallback
- news_crawler: news source crawling and article saving
- duplicate_checker / quality_checker: crawl filters
- smart_schedule: provider quota tracking and interval tuning
- scheduled_publisher: timed publishing and news cleanup
- seo_generator: AI written SEO articles
- telegram_bot: admin notifications and bot commands
- notifications, media, vehicle_import: contact mail, uploads, bulk import
"""

from drcarcold.services.settings_store import SettingsStore, get_settings_store
from drcarcold.services.ai_providers import AIProviderManager, RewriteResult
from drcarcold.services.news_crawler import CrawlResult, NewsCrawler
from drcarcold.services.smart_schedule import SmartScheduleManager, get_smart_schedule_manager
from drcarcold.services.scheduled_publisher import ScheduledPublisher, get_scheduled_publisher
from drcarcold.services.seo_generator import SEOContentGenerator
from drcarcold.services.telegram_bot import TelegramBot, notify

__all__ = [
    "SettingsStore",
    "get_settings_store",
    "AIProviderManager",
    "RewriteResult",
    "CrawlResult",
    "NewsCrawler",
    "SmartScheduleManager",
    "get_smart_schedule_manager",
    "ScheduledPublisher",
    "get_scheduled_publisher",
    "SEOContentGenerator",
    "TelegramBot",
    "notify",
]
