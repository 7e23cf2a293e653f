"""
Management command to create the default Taiwanese automotive news sources.

Usage:
    python manage.py init_news_sources
    python manage.py init_news_sources --dry-run
"""

from django.core.management.base import BaseCommand

from drcarcold.models import NewsSource
from drcarcold.services.news_crawler import DEFAULT_NEWS_SOURCES


class Command(BaseCommand):
    help = "Create the default news sources (existing URLs are skipped)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be created without saving",
        )
        parser.add_argument(
            "--disabled",
            action="store_true",
            help="Create the sources disabled",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        created = 0
        skipped = 0

        for data in DEFAULT_NEWS_SOURCES:
            if NewsSource.objects.filter(url=data["url"]).exists():
                self.stdout.write(f"  SKIP (exists): {data['name']}")
                skipped += 1
                continue

            if dry_run:
                self.stdout.write(f"  WOULD CREATE: {data['name']} ({data['url']})")
            else:
                NewsSource.objects.create(enabled=not options["disabled"], **data)
                self.stdout.write(f"  CREATED: {data['name']}")
            created += 1

        self.stdout.write("")
        self.stdout.write(self.style.SUCCESS(f"Created: {created}, Skipped: {skipped}"))
