"""
Management command to trim published news down to the best scored articles.

Usage:
    python manage.py cleanup_news
    python manage.py cleanup_news --keep 30 --dry-run
"""

from django.core.management.base import BaseCommand

from drcarcold.services.scheduled_publisher import MAX_PUBLISHED_NEWS, ScheduledPublisher


class Command(BaseCommand):
    help = "Delete low scoring published news beyond the keep limit"

    def add_arguments(self, parser):
        parser.add_argument(
            "--keep",
            type=int,
            default=MAX_PUBLISHED_NEWS,
            help=f"Number of published articles to keep (default: {MAX_PUBLISHED_NEWS})",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without deleting",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN - No changes will be made"))

        result = ScheduledPublisher().smart_cleanup(keep=options["keep"], dry_run=dry_run)

        verb = "Would delete" if dry_run else "Deleted"
        self.stdout.write(f"Published articles: {result.total_news}")
        for title in result.deleted_titles:
            self.stdout.write(f"  - {title}")
        self.stdout.write(self.style.SUCCESS(f"{verb} {result.deleted_count} article(s)"))
