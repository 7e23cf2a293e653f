"""
Tests for Django Admin functionality.

These tests verify the admin list helpers and actions for sources, news and
contact submissions.
"""

import pytest
from django.contrib.admin.sites import AdminSite
from django.contrib.auth import get_user_model
from django.contrib.messages.storage.fallback import FallbackStorage
from django.contrib.sessions.middleware import SessionMiddleware
from django.test import RequestFactory
from unittest.mock import patch


@pytest.fixture
def admin_user(db):
    """Create an admin user for testing."""
    User = get_user_model()
    return User.objects.create_superuser(
        username="admin",
        email="admin@test.com",
        password="testpass123",
    )


@pytest.fixture
def request_factory():
    """Create a request factory for admin tests."""
    return RequestFactory()


@pytest.fixture
def admin_request(request_factory, admin_user):
    """Create an admin request with user and messages support attached."""
    request = request_factory.get("/admin/")
    request.user = admin_user

    # Add session support
    middleware = SessionMiddleware(lambda x: None)
    middleware.process_request(request)
    request.session.save()

    # Add messages support
    setattr(request, "_messages", FallbackStorage(request))

    return request


@pytest.mark.django_db
class TestNewsSourceAdmin:
    """Tests for NewsSource admin interface."""

    def test_trigger_crawl_dispatches_enabled_sources_only(self, admin_request, news_source):
        """trigger_crawl sends enabled sources to the crawl queue."""
        from drcarcold.admin import NewsSourceAdmin
        from drcarcold.models import NewsSource

        NewsSource.objects.create(name="Off", url="https://off.example.com/", enabled=False)
        admin = NewsSourceAdmin(NewsSource, AdminSite())

        with patch("drcarcold.admin.crawl_news_source") as mock_task:
            admin.trigger_crawl(admin_request, NewsSource.objects.all())

        mock_task.apply_async.assert_called_once_with(args=[str(news_source.id)], queue="crawl")
        messages = [str(m) for m in admin_request._messages]
        assert "Triggered crawl for 1 source(s)." in messages

    def test_disable_sources(self, admin_request, news_source):
        from drcarcold.admin import NewsSourceAdmin
        from drcarcold.models import NewsSource

        admin = NewsSourceAdmin(NewsSource, AdminSite())
        admin.disable_sources(admin_request, NewsSource.objects.all())

        news_source.refresh_from_db()
        assert news_source.enabled is False

    def test_enabled_badge(self, news_source):
        from drcarcold.admin import NewsSourceAdmin
        from drcarcold.models import NewsSource

        admin = NewsSourceAdmin(NewsSource, AdminSite())

        badge = admin.enabled_badge(news_source)

        assert "Enabled" in badge
        assert "#28a745" in badge


@pytest.mark.django_db
class TestNewsAdmin:
    def test_publish_news_sets_published_at(self, admin_request, draft_news):
        from drcarcold.admin import NewsAdmin
        from drcarcold.models import News

        admin = NewsAdmin(News, AdminSite())
        admin.publish_news(admin_request, News.objects.all())

        draft_news.refresh_from_db()
        assert draft_news.is_published is True
        assert draft_news.published_at is not None

    def test_unpublish_news_clears_published_at(self, admin_request, published_news):
        from drcarcold.admin import NewsAdmin
        from drcarcold.models import News

        admin = NewsAdmin(News, AdminSite())
        admin.unpublish_news(admin_request, News.objects.all())

        published_news.refresh_from_db()
        assert published_news.is_published is False
        assert published_news.published_at is None


@pytest.mark.django_db
class TestContactAdmin:
    def test_mark_replied(self, admin_request, contact):
        from drcarcold.admin import ContactAdmin
        from drcarcold.models import Contact, ContactStatus

        admin = ContactAdmin(Contact, AdminSite())
        admin.mark_replied(admin_request, Contact.objects.all())

        contact.refresh_from_db()
        assert contact.status == ContactStatus.REPLIED
        assert contact.is_read is True


@pytest.mark.django_db
class TestSettingAdmin:
    def test_secret_values_are_masked(self):
        from drcarcold.admin import SettingAdmin
        from drcarcold.models import Setting

        admin = SettingAdmin(Setting, AdminSite())
        secret = Setting.objects.create(key="deepseek_api_key", value="sk-secret")
        plain = Setting.objects.create(key="auto_crawl_interval", value="60")

        assert admin.short_value(secret) == "********"
        assert admin.short_value(plain) == "60"


@pytest.mark.django_db
class TestCompanyInfoAdmin:
    def test_single_record(self, admin_request):
        from drcarcold.admin import CompanyInfoAdmin
        from drcarcold.models import CompanyInfo

        admin = CompanyInfoAdmin(CompanyInfo, AdminSite())
        assert admin.has_add_permission(admin_request) is True

        CompanyInfo.load()

        assert admin.has_add_permission(admin_request) is False


@pytest.mark.django_db
class TestAdminRegistration:
    def test_all_models_registered(self):
        from django.contrib import admin

        from drcarcold import models

        for model in (
            models.Category,
            models.Product,
            models.NewsSource,
            models.News,
            models.CrawlRun,
            models.VehicleBrand,
            models.VehicleModel,
            models.Banner,
            models.Setting,
            models.Contact,
            models.CompanyInfo,
        ):
            assert admin.site.is_registered(model), model.__name__
