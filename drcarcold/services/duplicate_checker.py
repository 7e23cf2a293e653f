"""
Duplicate detection for crawled news articles.

Checks run cheapest first and stop at the first hit:

    URL:
        Exact or canonicalised source URL already stored on a News row.
        Canonicalisation drops www, trailing slashes, fragments and tracking
        parameters and sorts the query string.

    Title:
        rapidfuzz similarity against titles from the last 7 days
        (0.85, or 0.75 when the existing article came from the same source).

    Content hash:
        SHA-256 of whitespace-normalised content (News.content_hash).

    Content similarity:
        rapidfuzz token ratio of the first 500 characters against recent
        articles (0.8).

Session caching keeps URLs and hashes seen during one crawl run so that
the same article linked twice on a listing page is not processed twice.
"""

import logging
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Set
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from django.db.models import Q
from django.utils import timezone
from rapidfuzz import fuzz

from drcarcold.models import News

logger = logging.getLogger(__name__)

URL_TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "fbclid",
    "gclid",
    "ref",
    "from",
}

TITLE_SIMILARITY = 0.85
SAME_SOURCE_TITLE_SIMILARITY = 0.75
CONTENT_SIMILARITY = 0.8
RECENT_DAYS = 7
CONTENT_SAMPLE_LENGTH = 500


@dataclass
class DuplicateCheckResult:
    is_duplicate: bool
    confidence: float = 0.0
    duplicate_type: Optional[str] = None  # url | title | hash | content
    existing_article_id: Optional[str] = None
    existing_article_title: Optional[str] = None
    reason: str = ""


def canonicalize_url(url: Optional[str]) -> str:
    """
    >>> canonicalize_url("https://WWW.Example.com/news/1/?utm_source=x&b=2&a=1#top")
    'https://example.com/news/1?a=1&b=2'
    """
    if not url:
        return ""

    try:
        parsed = urlparse(url.strip())
        netloc = parsed.netloc.lower()
        if netloc.startswith("www."):
            netloc = netloc[4:]
        path = parsed.path.rstrip("/") if parsed.path else ""

        params = parse_qs(parsed.query, keep_blank_values=True)
        query_pairs = []
        for key, values in sorted(params.items()):
            if key.lower() in URL_TRACKING_PARAMS:
                continue
            for value in values:
                query_pairs.append((key, value))

        return urlunparse((parsed.scheme, netloc, path, "", urlencode(query_pairs), ""))
    except ValueError as e:
        logger.warning(f"Error canonicalizing URL '{url}': {e}")
        return url


def clean_text(text: str) -> str:
    """Lowercase and keep only letters, digits and CJK characters."""
    return re.sub(r"[^\w一-鿿]+", "", (text or "").lower())


def similarity(a: str, b: str) -> float:
    if not a or not b:
        return 0.0
    return fuzz.ratio(a, b) / 100.0


class DuplicateChecker:
    """Multi-level duplicate detection for News articles."""

    def __init__(self) -> None:
        self._session_urls: Set[str] = set()
        self._session_hashes: Set[str] = set()

    def _recent_articles(self):
        since = timezone.now() - timedelta(days=RECENT_DAYS)
        return News.objects.filter(created_at__gte=since)

    def check_by_url(self, url: str) -> DuplicateCheckResult:
        canonical = canonicalize_url(url)
        if canonical in self._session_urls:
            return DuplicateCheckResult(
                is_duplicate=True, confidence=1.0, duplicate_type="url",
                reason="URL already seen in this crawl",
            )

        existing = News.objects.filter(
            Q(source_url=url) | Q(source_url=canonical)
        ).only("id", "title").first()
        if existing:
            return DuplicateCheckResult(
                is_duplicate=True,
                confidence=1.0,
                duplicate_type="url",
                existing_article_id=str(existing.id),
                existing_article_title=existing.title,
                reason="Same source URL",
            )
        return DuplicateCheckResult(is_duplicate=False)

    def check_by_title(self, title: str, source_id=None) -> DuplicateCheckResult:
        cleaned = clean_text(title)
        if not cleaned:
            return DuplicateCheckResult(is_duplicate=False)

        for article in self._recent_articles().only("id", "title", "source_id"):
            score = similarity(cleaned, clean_text(article.title))
            same_source = source_id is not None and str(article.source_id) == str(source_id)
            threshold = SAME_SOURCE_TITLE_SIMILARITY if same_source else TITLE_SIMILARITY
            if score >= threshold:
                return DuplicateCheckResult(
                    is_duplicate=True,
                    confidence=score,
                    duplicate_type="title",
                    existing_article_id=str(article.id),
                    existing_article_title=article.title,
                    reason=f"Title similarity {round(score * 100)}%",
                )
        return DuplicateCheckResult(is_duplicate=False)

    def check_by_content_hash(self, content: str) -> DuplicateCheckResult:
        content_hash = News.compute_content_hash(content)
        if content_hash in self._session_hashes:
            return DuplicateCheckResult(
                is_duplicate=True, confidence=1.0, duplicate_type="hash",
                reason="Content already seen in this crawl",
            )

        existing = News.objects.filter(content_hash=content_hash).only("id", "title").first()
        if existing:
            return DuplicateCheckResult(
                is_duplicate=True,
                confidence=1.0,
                duplicate_type="hash",
                existing_article_id=str(existing.id),
                existing_article_title=existing.title,
                reason="Identical content",
            )
        return DuplicateCheckResult(is_duplicate=False)

    def check_by_content_similarity(self, content: str) -> DuplicateCheckResult:
        sample = clean_text(content)[:CONTENT_SAMPLE_LENGTH]
        if len(sample) < 50:
            return DuplicateCheckResult(is_duplicate=False)

        for article in self._recent_articles().only("id", "title", "content"):
            existing_sample = clean_text(article.content)[:CONTENT_SAMPLE_LENGTH]
            score = fuzz.token_set_ratio(sample, existing_sample) / 100.0
            if score >= CONTENT_SIMILARITY:
                return DuplicateCheckResult(
                    is_duplicate=True,
                    confidence=score,
                    duplicate_type="content",
                    existing_article_id=str(article.id),
                    existing_article_title=article.title,
                    reason=f"Content similarity {round(score * 100)}%",
                )
        return DuplicateCheckResult(is_duplicate=False)

    def check_duplicate(self, url: str, title: str, content: str, source_id=None) -> DuplicateCheckResult:
        """Run all checks, returning the first duplicate found."""
        checks = (
            lambda: self.check_by_url(url),
            lambda: self.check_by_title(title, source_id),
            lambda: self.check_by_content_hash(content),
            lambda: self.check_by_content_similarity(content),
        )
        for check in checks:
            result = check()
            if result.is_duplicate:
                logger.debug(f"Duplicate article {url}: {result.reason}")
                return result
        return DuplicateCheckResult(is_duplicate=False)

    def record(self, url: str, content: str) -> None:
        """Remember an article processed during this session."""
        self._session_urls.add(canonicalize_url(url))
        self._session_hashes.add(News.compute_content_hash(content))
