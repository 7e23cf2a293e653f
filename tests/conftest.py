"""
Pytest configuration and fixtures for the DrCarCold test suite.
"""

import pytest


@pytest.fixture(scope="session")
def django_db_setup(django_db_blocker):
    """Configure the test database and run migrations."""
    from django.core.management import call_command

    with django_db_blocker.unblock():
        call_command("migrate", "--run-syncdb", verbosity=0)


@pytest.fixture(autouse=True)
def clear_cache():
    """Settings, throttles and provider failure counts live in the cache."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Create a test API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def staff_user(db):
    """Create an admin user that can sign in through /api/auth/login/."""
    from django.contrib.auth import get_user_model

    return get_user_model().objects.create_user(
        username="admin@drcarcold.com",
        email="admin@drcarcold.com",
        password="admin123",
        is_staff=True,
    )


@pytest.fixture
def staff_client(staff_user):
    """API client carrying a valid auth-token cookie for staff_user."""
    from rest_framework.test import APIClient

    from drcarcold.authentication import create_auth_token, get_cookie_name

    client = APIClient()
    client.cookies[get_cookie_name()] = create_auth_token(staff_user)
    return client


@pytest.fixture
def category(db):
    from drcarcold.models import Category

    return Category.objects.create(
        name="汽車冷媒",
        name_en="Refrigerants",
        slug="refrigerants",
        description="高品質環保汽車冷媒",
    )


@pytest.fixture
def product(category):
    from drcarcold.models import Product

    return Product.objects.create(
        category=category,
        name="R-134a 冷媒 13.6kg",
        slug="r134a-13kg",
        description="汽車專用環保冷媒",
        price="2800.00",
        stock=50,
        features=["純度99.9%"],
        specifications={"容量": "13.6kg"},
    )


@pytest.fixture
def news_source(db):
    from drcarcold.models import NewsSource

    return NewsSource.objects.create(
        name="Test Car News",
        url="https://carnews.example.com/",
        max_articles_per_crawl=3,
        crawl_interval=60,
        selectors={
            "title": "h1",
            "content": ".article-content",
            "author": ".author",
        },
    )


@pytest.fixture
def published_news(db):
    from drcarcold.models import News

    return News.objects.create(
        title="汽車冷氣保養指南",
        slug="ac-maintenance-guide",
        content="夏天來臨前，請記得檢查汽車冷氣系統與冷媒壓力。" * 5,
        tags=["冷氣保養", "冷媒"],
        is_published=True,
    )


@pytest.fixture
def draft_news(db):
    from drcarcold.models import News

    return News.objects.create(
        title="R1234yf 冷媒新規上路",
        slug="r1234yf-rules",
        content="新款車型逐步改用 R1234yf 冷媒，維修廠需要更新設備。" * 5,
        tags=["R1234yf"],
    )


@pytest.fixture
def vehicle_brand(db):
    from drcarcold.models import VehicleBrand, VehicleCategory

    return VehicleBrand.objects.create(name="豐田", name_en="Toyota", category=VehicleCategory.REGULAR)


@pytest.fixture
def vehicle_model(vehicle_brand):
    from drcarcold.models import VehicleModel

    return VehicleModel.objects.create(
        brand=vehicle_brand,
        model_name="Camry",
        model_name_en="Camry",
        year="2018-2023",
        engine_type="2.5L",
        refrigerant_type="R1234yf",
        fill_amount="450g",
        oil_type="PAG46",
        oil_amount="100ml",
    )


@pytest.fixture
def contact(db):
    from drcarcold.models import Contact

    return Contact.objects.create(
        name="王小明",
        email="ming@example.com",
        subject="詢問冷媒價格",
        message="請問 R134a 13.6kg 的批發價格？",
    )
