"""
Fixtures shared by the service unit tests.
"""

import pytest


@pytest.fixture(autouse=True)
def clear_cache():
    """Provider failure counts, schedule slots and settings are cached."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def news_source(db):
    from drcarcold.models import NewsSource

    return NewsSource.objects.create(
        name="Test Car News",
        url="https://carnews.example.com/",
        max_articles_per_crawl=3,
        selectors={"title": "h1", "content": ".article-content", "author": ".author"},
    )
