"""
Celery configuration for the DrCarCold site.

Celery Beat drives the automation: due-source crawling, scheduled
publishing, SEO article generation and API quota housekeeping. Crawls run
on their own queue so long fetches do not delay the minute-level jobs.
"""

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("drcarcold")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

# Configure task queues for different operations
app.conf.task_queues = {
    "crawl": {
        "exchange": "crawl",
        "routing_key": "crawl",
    },
    "default": {
        "exchange": "default",
        "routing_key": "default",
    },
}

# Default task routing
app.conf.task_default_queue = "default"
app.conf.task_default_exchange = "default"
app.conf.task_default_routing_key = "default"

# Route specific tasks to their queues
app.conf.task_routes = {
    "drcarcold.tasks.crawl_*": {"queue": "crawl"},
    "drcarcold.tasks.check_due_news_sources": {"queue": "default"},
    "drcarcold.tasks.publish_scheduled_news": {"queue": "default"},
    "drcarcold.tasks.generate_scheduled_seo_articles": {"queue": "default"},
}

# Configure Celery Beat schedule for periodic tasks
app.conf.beat_schedule = {
    "check-due-news-sources-every-5-minutes": {
        "task": "drcarcold.tasks.check_due_news_sources",
        "schedule": crontab(minute="*/5"),  # Every 5 minutes
    },
    # Both check the configured HH:MM times themselves
    "publish-scheduled-news-every-minute": {
        "task": "drcarcold.tasks.publish_scheduled_news",
        "schedule": crontab(),
    },
    "generate-seo-articles-every-minute": {
        "task": "drcarcold.tasks.generate_scheduled_seo_articles",
        "schedule": crontab(),
    },
    "optimize-smart-schedule-hourly": {
        "task": "drcarcold.tasks.optimize_smart_schedule",
        "schedule": crontab(minute=0),
    },
    "reset-daily-api-counters": {
        "task": "drcarcold.tasks.reset_daily_api_counters",
        "schedule": crontab(hour=0, minute=5),
    },
}
