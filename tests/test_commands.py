"""
Tests for the management commands.
"""

import json
from datetime import timedelta
from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from drcarcold.models import Category, CompanyInfo, News, NewsSource, Product, Setting, VehicleModel
from drcarcold.services.news_crawler import DEFAULT_NEWS_SOURCES
from drcarcold.services.settings_store import DEFAULT_SETTINGS


def run(*args):
    out = StringIO()
    call_command(*args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestSeedSiteData:
    def test_seeds_everything(self, monkeypatch):
        monkeypatch.setenv("ADMIN_EMAIL", "owner@drcarcold.com")
        monkeypatch.setenv("ADMIN_PASSWORD", "s3cret-pass")

        output = run("seed_site_data")

        assert "Site data seeded" in output
        admin = get_user_model().objects.get(email="owner@drcarcold.com")
        assert admin.is_superuser and admin.check_password("s3cret-pass")
        assert Category.objects.count() == 7
        assert Product.objects.count() == 4
        assert CompanyInfo.objects.count() == 1
        assert Setting.objects.filter(key__in=DEFAULT_SETTINGS).count() == len(DEFAULT_SETTINGS)

    def test_is_idempotent_and_keeps_existing_settings(self):
        Setting.objects.create(key="auto_crawl_interval", value="15")

        run("seed_site_data")
        run("seed_site_data")

        assert Category.objects.count() == 7
        assert get_user_model().objects.count() == 1
        assert Setting.objects.get(key="auto_crawl_interval").value == "15"

    def test_dry_run_writes_nothing(self):
        output = run("seed_site_data", "--dry-run")

        assert "DRY RUN" in output
        assert not Category.objects.exists()
        assert not get_user_model().objects.exists()
        assert not Setting.objects.exists()


@pytest.mark.django_db
class TestInitNewsSources:
    def test_creates_default_sources(self):
        output = run("init_news_sources")

        assert NewsSource.objects.count() == len(DEFAULT_NEWS_SOURCES)
        assert f"Created: {len(DEFAULT_NEWS_SOURCES)}, Skipped: 0" in output

    def test_skips_existing_urls(self):
        NewsSource.objects.create(name="U-CAR", url=DEFAULT_NEWS_SOURCES[0]["url"])

        output = run("init_news_sources")

        assert NewsSource.objects.count() == len(DEFAULT_NEWS_SOURCES)
        assert "Skipped: 1" in output

    def test_disabled_flag(self):
        run("init_news_sources", "--disabled")

        assert not NewsSource.objects.filter(enabled=True).exists()

    def test_dry_run(self):
        run("init_news_sources", "--dry-run")

        assert not NewsSource.objects.exists()


@pytest.mark.django_db
class TestImportVehicles:
    ROWS = [
        {"brand": "Toyota", "model": "Altis", "year": "2019", "refrigerant": "R134a", "amount": "480g"},
        {"brand": "Nissan", "model": "Sentra", "year": "2020", "refrigerant": "R1234yf", "amount": "450g"},
    ]

    def test_imports_list(self, tmp_path):
        path = tmp_path / "vehicles.json"
        path.write_text(json.dumps(self.ROWS), encoding="utf-8")

        output = run("import_vehicles", str(path))

        assert VehicleModel.objects.count() == 2
        assert "imported: 2" in output

    def test_accepts_data_wrapper_and_clear(self, tmp_path, vehicle_model):
        path = tmp_path / "vehicles.json"
        path.write_text(json.dumps({"data": self.ROWS[:1]}), encoding="utf-8")

        run("import_vehicles", str(path), "--clear")

        assert list(VehicleModel.objects.values_list("model_name", flat=True)) == ["Altis"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(CommandError):
            run("import_vehicles", str(tmp_path / "missing.json"))

    def test_rejects_non_list(self, tmp_path):
        path = tmp_path / "vehicles.json"
        path.write_text(json.dumps({"rows": []}), encoding="utf-8")

        with pytest.raises(CommandError):
            run("import_vehicles", str(path))


@pytest.mark.django_db
class TestCleanupNews:
    @pytest.fixture
    def old_and_new_news(self):
        now = timezone.now()
        News.objects.create(
            title="Fresh", slug="fresh", content="x" * 200, is_published=True,
            published_at=now, view_count=30,
        )
        News.objects.create(
            title="Stale", slug="stale", content="y" * 200, is_published=True,
            published_at=now - timedelta(days=60), view_count=0,
        )

    def test_keeps_best_scored(self, old_and_new_news):
        output = run("cleanup_news", "--keep", "1")

        assert "Deleted 1 article(s)" in output
        assert list(News.objects.values_list("title", flat=True)) == ["Fresh"]

    def test_dry_run(self, old_and_new_news):
        output = run("cleanup_news", "--keep", "1", "--dry-run")

        assert "Would delete 1 article(s)" in output
        assert "  - Stale" in output
        assert News.objects.count() == 2
