"""
News Crawler - pulls automotive articles from NewsSource listing pages.

Flow per source:
    1. Fetch the listing page (httpx, retries with exponential backoff)
    2. Extract article links (source selectors, generic selectors,
       article/exclude URL patterns, same domain, max per source)
    3. Scrape each article (title, content via trafilatura with a
       BeautifulSoup fallback, author, og:image)
    4. Duplicate check, optional AI rewrite, SEO tags, quality check
    5. Save News rows, record a CrawlRun and update `last_crawl`
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

import httpx
import trafilatura
from bs4 import BeautifulSoup
from django.conf import settings

from drcarcold.models import CrawlRun, News, NewsOrigin, NewsSource
from drcarcold.monitoring import add_breadcrumb
from drcarcold.services.ai_providers import AIProviderManager, run_async
from drcarcold.services.duplicate_checker import DuplicateChecker
from drcarcold.services.quality_checker import (
    PASS_THRESHOLD,
    REJECT_THRESHOLD,
    ArticleData,
    ContentQualityChecker,
)
from drcarcold.services.settings_store import SettingsStore, get_settings_store
from drcarcold.services.smart_schedule import SmartScheduleManager
from drcarcold.services.telegram_bot import notify
from drcarcold.utils.text import unique_slug

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 2000
MIN_CONTENT_LENGTH = 100
SLUG_MAX_LENGTH = 100

GENERIC_LINK_SELECTORS = [
    "article a[href]",
    ".article-list a[href]",
    ".news-list a[href]",
    ".post-list a[href]",
    ".entry-title a[href]",
    ".post-title a[href]",
    "h2 a[href]",
    "h3 a[href]",
    ".title a[href]",
    ".headline a[href]",
    "a[href]",
]

ARTICLE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"/article/",
        r"/news/",
        r"/post/",
        r"/story/",
        r"/content/",
        r"/\d{4}/\d{2}/",
        r"\d{6,}",
        r"\.html?$",
        r"/p/\d+",
        r"\?id=\d+",
    )
]

EXCLUDE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"/tag/",
        r"/category/",
        r"/author/",
        r"/page/",
        r"/search",
        r"/login",
        r"/register",
        r"\.(jpg|jpeg|png|gif|pdf|zip)$",
        r"#",
        r"^javascript:",
        r"^mailto:",
    )
]


def compile_patterns(patterns, source_name: str = "") -> List[re.Pattern]:
    """Compile user-supplied URL regexes, skipping any that do not compile."""
    if isinstance(patterns, str):
        patterns = [patterns]
    compiled = []
    for pattern in patterns or []:
        try:
            compiled.append(re.compile(str(pattern), re.IGNORECASE))
        except re.error as e:
            logger.warning(f"Skipping invalid URL pattern {pattern!r} for {source_name}: {e}")
    return compiled

CONTENT_SELECTORS = [
    "article",
    ".article-content",
    ".article-body",
    ".entry-content",
    ".post-content",
    ".content",
]

# Taiwanese automotive news sites seeded by `init_news_sources`
DEFAULT_NEWS_SOURCES: List[Dict[str, Any]] = [
    {
        "name": "U-CAR 汽車新聞",
        "url": "https://news.u-car.com.tw/",
        "max_articles_per_crawl": 3,
        "crawl_interval": 120,
        "selectors": {
            "article_links": ".news-list a.news-list-item",
            "title": "h1.article-title",
            "content": ".article-content",
            "author": ".article-author",
        },
    },
    {
        "name": "CarStuff 人車事",
        "url": "https://www.carstuff.com.tw/",
        "max_articles_per_crawl": 3,
        "crawl_interval": 120,
        "selectors": {
            "article_links": "article h2 a",
            "title": "h1.entry-title",
            "content": ".entry-content",
            "author": ".author-name",
        },
    },
    {
        "name": "癮車報",
        "url": "https://www.cool3c.com/tag/car",
        "max_articles_per_crawl": 3,
        "crawl_interval": 120,
        "selectors": {
            "article_links": ".postlist h3 a",
            "title": "h1.post-title",
            "content": ".post-content",
            "author": ".author",
        },
    },
    {
        "name": "車訊網",
        "url": "https://carnews.com/category/news",
        "max_articles_per_crawl": 3,
        "crawl_interval": 120,
        "selectors": {
            "article_links": ".item-title a",
            "title": "h1.entry-title",
            "content": ".entry-content",
            "author": ".author-name",
        },
    },
    {
        "name": "聯合新聞網 - 汽車",
        "url": "https://autos.udn.com/autos/index",
        "rss_url": "https://udn.com/rssfeed/news/2/7/1010",
        "max_articles_per_crawl": 5,
        "crawl_interval": 120,
        "selectors": {
            "article_links": ".story-list__item a",
            "title": "h1",
            "content": ".article-content__paragraph",
            "author": ".article-content__author",
        },
    },
    {
        "name": "自由時報 - 汽車",
        "url": "https://auto.ltn.com.tw/",
        "max_articles_per_crawl": 5,
        "crawl_interval": 120,
        "selectors": {
            "article_links": ".whitecon a",
            "title": "h1",
            "content": ".text",
        },
    },
]


@dataclass
class ScrapedArticle:
    """An article pulled from a source page, before it is saved."""

    url: str
    title: str
    content: str
    author: str = ""
    cover_image: str = ""
    tags: List[str] = field(default_factory=list)
    is_ai_rewritten: bool = False
    ai_provider: str = ""
    quality_score: Optional[int] = None


@dataclass
class CrawlResult:
    """Outcome of crawling one source."""

    source_id: str
    source_name: str
    success: bool = False
    articles_found: int = 0
    articles_processed: int = 0
    articles_published: int = 0
    errors: List[str] = field(default_factory=list)
    crawl_time: float = 0.0
    saved_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "source_name": self.source_name,
            "success": self.success,
            "articles_found": self.articles_found,
            "articles_processed": self.articles_processed,
            "articles_published": self.articles_published,
            "errors": self.errors,
            "crawl_time": self.crawl_time,
        }


class NewsCrawler:
    """
    Crawls NewsSource rows and stores the articles as News.

    Usage:
        with NewsCrawler() as crawler:
            result = crawler.crawl_source(source)
    """

    DEFAULT_USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    DEFAULT_HEADERS = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "zh-TW,zh;q=0.9,en-US;q=0.8,en;q=0.7",
        "Accept-Encoding": "gzip, deflate",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }

    def __init__(
        self,
        store: Optional[SettingsStore] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        article_delay: Optional[float] = None,
        ai_manager: Optional[AIProviderManager] = None,
    ):
        self.store = store or get_settings_store()
        self.timeout = timeout or getattr(settings, "CRAWLER_REQUEST_TIMEOUT", 30)
        self.max_retries = (
            max_retries if max_retries is not None
            else getattr(settings, "CRAWLER_MAX_RETRIES", 3)
        )
        self.article_delay = (
            article_delay if article_delay is not None
            else getattr(settings, "CRAWLER_ARTICLE_DELAY", 1.0)
        )
        self._ai_manager = ai_manager
        self.duplicate_checker = DuplicateChecker()
        self.quality_checker = ContentQualityChecker()
        self.schedule_manager = SmartScheduleManager(self.store)
        self._http_client: Optional[httpx.Client] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                headers={**self.DEFAULT_HEADERS, "User-Agent": self.DEFAULT_USER_AGENT},
                follow_redirects=True,
            )
        return self._http_client

    def close(self):
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    @property
    def ai_manager(self) -> AIProviderManager:
        if self._ai_manager is None:
            self._ai_manager = AIProviderManager.from_settings(self.store)
        return self._ai_manager

    # -- fetching ------------------------------------------------------

    def fetch(self, url: str) -> Optional[str]:
        """
        GET a page and return its HTML, or None on failure.

        4xx responses are not retried; timeouts, connection errors and 5xx
        responses are retried with a 2**attempt second delay.
        """
        attempts = max(1, self.max_retries)

        for attempt in range(attempts):
            try:
                response = self.http_client.get(url)
                if 400 <= response.status_code < 500:
                    logger.warning(f"HTTP {response.status_code} fetching {url}")
                    return None
                response.raise_for_status()
                return response.text
            except httpx.TimeoutException:
                logger.warning(f"Timeout fetching {url} (attempt {attempt + 1}/{attempts})")
            except httpx.HTTPStatusError as e:
                logger.warning(
                    f"HTTP {e.response.status_code} fetching {url} "
                    f"(attempt {attempt + 1}/{attempts})"
                )
            except httpx.HTTPError as e:
                logger.warning(f"Error fetching {url} (attempt {attempt + 1}/{attempts}): {e}")

            if attempt < attempts - 1:
                time.sleep(2 ** attempt)

        return None

    # -- link extraction -----------------------------------------------

    def extract_article_links(self, html: str, source: NewsSource) -> List[str]:
        """Pick article URLs out of a listing page."""
        soup = BeautifulSoup(html, "html.parser")
        selectors = source.selectors or {}

        ordered_selectors = [selectors.get("article_links")] + GENERIC_LINK_SELECTORS
        hrefs: Dict[str, str] = {}
        for selector in filter(None, ordered_selectors):
            for anchor in soup.select(selector):
                href = (anchor.get("href") or "").strip()
                if not href or href.startswith(("javascript:", "mailto:")):
                    continue
                absolute = urljoin(source.url, href)
                hrefs.setdefault(absolute, anchor.get_text(strip=True))

        article_patterns = ARTICLE_PATTERNS + compile_patterns(selectors.get("article_patterns"), source.name)
        exclude_patterns = EXCLUDE_PATTERNS + compile_patterns(selectors.get("exclude_patterns"), source.name)
        source_host = urlparse(source.url).hostname or ""
        if source_host.startswith("www."):
            source_host = source_host[4:]

        candidates = []
        for href in hrefs:
            if any(p.search(href) for p in exclude_patterns):
                continue
            if href.rstrip("/") == source.url.rstrip("/"):
                continue
            host = urlparse(href).hostname or ""
            if host.startswith("www."):
                host = host[4:]
            if not (host == source_host or host.endswith("." + source_host)):
                continue
            candidates.append(href)

        links = [href for href in candidates if any(p.search(href) for p in article_patterns)]

        if not links:
            # Fall back to links whose text reads like a Chinese headline
            links = [
                href for href in candidates
                if len(re.findall(r"[一-龥]", hrefs[href])) > 5
            ]

        limit = source.max_articles_per_crawl or 5
        return links[:limit]

    def get_article_urls(self, source: NewsSource) -> List[str]:
        html = self.fetch(source.url)
        if html is None:
            return []
        links = self.extract_article_links(html, source)
        logger.info(f"Found {len(links)} article links on {source.name}")
        return links

    # -- scraping ------------------------------------------------------

    def parse_article(self, html: str, url: str, source: Optional[NewsSource] = None) -> Optional[ScrapedArticle]:
        soup = BeautifulSoup(html, "html.parser")
        selectors = (source.selectors if source else None) or {}

        title = self._select_text(soup, selectors.get("title")) or self._select_text(soup, "h1")
        if not title:
            og_title = soup.find("meta", attrs={"property": "og:title"})
            title = (og_title.get("content") or "").strip() if og_title else ""
        if not title and soup.title:
            title = soup.title.get_text(strip=True)

        content = self._select_text(soup, selectors.get("content"), separator="\n")
        if len(content) < MIN_CONTENT_LENGTH:
            extracted = trafilatura.extract(
                html,
                include_comments=False,
                include_tables=False,
                include_formatting=False,
            )
            if extracted and len(extracted) > len(content):
                content = extracted
        if len(content) < MIN_CONTENT_LENGTH:
            for selector in CONTENT_SELECTORS:
                candidate = self._select_text(soup, selector, separator="\n")
                if len(candidate) > len(content):
                    content = candidate
                if len(content) >= MIN_CONTENT_LENGTH:
                    break

        content = self._normalize_content(content)[:MAX_CONTENT_LENGTH]
        if not title or len(content) < MIN_CONTENT_LENGTH:
            logger.info(f"Skipping {url}: missing title or content too short")
            return None

        author = self._select_text(soup, selectors.get("author"))
        if not author:
            meta_author = soup.find("meta", attrs={"name": "author"})
            author = (meta_author.get("content") or "").strip() if meta_author else ""
        if not author:
            author = self._select_text(soup, ".author")

        cover_image = ""
        og_image = soup.find("meta", attrs={"property": "og:image"})
        if og_image and og_image.get("content"):
            cover_image = urljoin(url, og_image["content"].strip())

        return ScrapedArticle(
            url=url,
            title=title[:300],
            content=content,
            author=author[:100],
            cover_image=cover_image[:500],
        )

    def scrape_article(self, url: str, source: Optional[NewsSource] = None) -> Optional[ScrapedArticle]:
        html = self.fetch(url)
        if html is None:
            return None
        return self.parse_article(html, url, source)

    @staticmethod
    def _select_text(soup: BeautifulSoup, selector: Optional[str], separator: str = " ") -> str:
        if not selector:
            return ""
        elements = soup.select(selector)
        if not elements:
            return ""
        return separator.join(
            el.get_text(separator=separator, strip=True) for el in elements
        ).strip()

    @staticmethod
    def _normalize_content(content: str) -> str:
        lines = [" ".join(line.split()) for line in (content or "").splitlines()]
        return "\n\n".join(line for line in lines if line)

    # -- processing ----------------------------------------------------

    def process_article(self, article: ScrapedArticle, source: NewsSource) -> Optional[ScrapedArticle]:
        """
        Duplicate check, AI rewrite and quality check.

        Returns None when the article should be skipped.
        """
        duplicate = self.duplicate_checker.check_duplicate(
            article.url, article.title, article.content, source_id=source.id
        )
        if duplicate.is_duplicate:
            logger.info(
                f"Skipping duplicate '{article.title}' "
                f"({duplicate.duplicate_type}, {round(duplicate.confidence * 100)}%)"
            )
            return None
        self.duplicate_checker.record(article.url, article.content)

        keywords = self.store.get_list("seo_keywords")

        if self.store.get_bool("ai_rewrite_enabled") and self.ai_manager.has_providers:
            self._rewrite(article, keywords)

        article.tags = list(dict.fromkeys(article.tags + keywords))

        score = self.quality_checker.check_quality(
            ArticleData(
                title=article.title,
                content=article.content,
                author=article.author,
                cover_image=article.cover_image,
                tags=article.tags,
            ),
            keywords,
        )
        article.quality_score = score.overall
        if score.overall < REJECT_THRESHOLD:
            logger.warning(
                f"Rejecting '{article.title}' with quality score {score.overall}: "
                f"{'; '.join(score.issues)}"
            )
            return None
        if score.overall < PASS_THRESHOLD:
            logger.info(f"Low quality score {score.overall} for '{article.title}', saving anyway")
        return article

    def _rewrite(self, article: ScrapedArticle, keywords: List[str]) -> None:
        add_breadcrumb("crawler", "AI rewrite", data={"url": article.url})
        result = run_async(
            self.ai_manager.rewrite_article(article.title, article.content, keywords)
        )
        for attempt in result.attempts:
            self.schedule_manager.record_api_usage(attempt["provider"], attempt["success"])

        if result.success:
            article.title = result.title[:300] or article.title
            article.content = result.content
            article.is_ai_rewritten = True
            article.ai_provider = result.provider
        else:
            logger.warning(f"AI rewrite failed for {article.url}, keeping original: {result.error}")

    def save_article(self, article: ScrapedArticle, source: NewsSource) -> News:
        excerpt = News.build_excerpt(article.content)
        news = News(
            title=article.title,
            slug=unique_slug(News, article.title, max_length=SLUG_MAX_LENGTH),
            content=article.content,
            excerpt=excerpt,
            cover_image=article.cover_image,
            author=article.author or source.name,
            tags=article.tags,
            origin=NewsOrigin.CRAWLED,
            source=source,
            source_url=article.url,
            source_name=source.name,
            content_hash=News.compute_content_hash(article.content),
            reading_time=News.compute_reading_time(article.content),
            is_ai_rewritten=article.is_ai_rewritten,
            ai_provider=article.ai_provider,
            seo_title=article.title[:200],
            seo_description=excerpt,
            seo_keywords=",".join(article.tags)[:500],
        )
        if self.store.get_bool("auto_publish_enabled"):
            news.publish()
        news.save()
        return news

    # -- orchestration -------------------------------------------------

    def crawl_source(self, source: NewsSource, save: bool = True) -> CrawlResult:
        """
        Crawl one source end to end.

        With save=False nothing is written (used to test a source's
        selectors); the processed articles are only counted.
        """
        start = time.monotonic()
        result = CrawlResult(source_id=str(source.id), source_name=source.name)
        add_breadcrumb("crawler", f"Crawling {source.name}", data={"url": source.url})

        html = self.fetch(source.url)
        if html is None:
            result.errors.append(f"Failed to fetch {source.url}")
        else:
            result.success = True
            urls = self.extract_article_links(html, source)
            result.articles_found = len(urls)

            for index, url in enumerate(urls):
                if index and self.article_delay:
                    time.sleep(self.article_delay)
                try:
                    article = self.scrape_article(url, source)
                    if article is None:
                        continue
                    article = self.process_article(article, source)
                    if article is None:
                        continue
                    result.articles_processed += 1
                    if save:
                        news = self.save_article(article, source)
                        result.saved_ids.append(str(news.id))
                        if news.is_published:
                            result.articles_published += 1
                except Exception as e:
                    logger.error(f"Error processing {url}: {e}")
                    result.errors.append(f"{url}: {e}")

        result.crawl_time = round(time.monotonic() - start, 2)

        if save:
            source.mark_crawled()
            CrawlRun.objects.create(
                source=source,
                success=result.success,
                articles_found=result.articles_found,
                articles_processed=result.articles_processed,
                articles_published=result.articles_published,
                errors=result.errors,
                crawl_time=result.crawl_time,
            )
            if result.articles_processed:
                notify(
                    "crawl",
                    f"📰 {source.name}: {result.articles_processed} new articles "
                    f"({result.articles_published} published)",
                    store=self.store,
                )
            elif not result.success:
                notify("error", f"⚠️ Crawl failed for {source.name}", store=self.store)

        logger.info(
            f"Crawled {source.name}: found={result.articles_found} "
            f"processed={result.articles_processed} published={result.articles_published} "
            f"errors={len(result.errors)} in {result.crawl_time}s"
        )
        return result

    def test_source(self, source: NewsSource) -> Dict[str, Any]:
        """Fetch a source's listing and first article without saving."""
        html = self.fetch(source.url)
        if html is None:
            return {"success": False, "error": f"Failed to fetch {source.url}", "article_urls": []}

        urls = self.extract_article_links(html, source)
        sample = None
        if urls:
            article = self.scrape_article(urls[0], source)
            if article is not None:
                sample = {
                    "url": article.url,
                    "title": article.title,
                    "author": article.author,
                    "content_preview": article.content[:200],
                    "content_length": len(article.content),
                }
        return {"success": True, "article_urls": urls, "sample": sample}
