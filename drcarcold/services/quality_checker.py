"""
Content quality scoring for crawled and generated news articles.

Score (0-100) is the sum of four parts:

    Basics (40):      title present and 10-60 chars, content length
                      (min 200, ideal 800), author, cover image
    Language (20):    share of Chinese characters
    Readability (20): paragraph count and average sentence length
    SEO (20):         tags, keyword density between 1% and 3%

Articles below PASS_THRESHOLD are flagged; the crawler drops articles below
REJECT_THRESHOLD.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from drcarcold.utils.text import chinese_ratio, contains_chinese

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 200
IDEAL_CONTENT_LENGTH = 800
KEYWORD_DENSITY_MIN = 0.01
KEYWORD_DENSITY_MAX = 0.03
PASS_THRESHOLD = 60
REJECT_THRESHOLD = 40

_SENTENCE_SPLIT_RE = re.compile(r"[。！？!?.]+")


@dataclass
class ArticleData:
    title: str
    content: str
    author: str = ""
    cover_image: str = ""
    tags: List[str] = field(default_factory=list)


@dataclass
class QualityScore:
    overall: int = 0
    content_length: int = 0
    has_title: bool = False
    has_author: bool = False
    has_images: bool = False
    has_tags: bool = False
    is_chinese: bool = False
    readability: int = 0
    seo_optimization: int = 0
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.overall >= PASS_THRESHOLD


class ContentQualityChecker:
    """Scores an article and lists issues/suggestions."""

    def __init__(self, pass_threshold: int = PASS_THRESHOLD):
        self.pass_threshold = pass_threshold

    def check_quality(self, article: ArticleData, seo_keywords: Optional[List[str]] = None) -> QualityScore:
        score = QualityScore(content_length=len(article.content or ""))

        basics = self._score_basics(article, score)
        language = self._score_language(article, score)
        score.readability = self._score_readability(article, score)
        score.seo_optimization = self._score_seo(article, score, seo_keywords or [])

        score.overall = min(100, basics + language + score.readability + score.seo_optimization)
        self._add_suggestions(score)
        return score

    def passes(self, score: QualityScore) -> bool:
        return score.overall >= self.pass_threshold

    def _score_basics(self, article: ArticleData, score: QualityScore) -> int:
        points = 0
        title = (article.title or "").strip()
        if title:
            score.has_title = True
            if len(title) < 10:
                score.issues.append("Title shorter than 10 characters")
                points += 5
            elif len(title) > 60:
                score.issues.append("Title longer than 60 characters")
                points += 5
            else:
                points += 10
        else:
            score.issues.append("Missing title")

        length = score.content_length
        if length >= IDEAL_CONTENT_LENGTH:
            points += 20
        elif length >= MIN_CONTENT_LENGTH:
            points += 10 + int(10 * (length - MIN_CONTENT_LENGTH) / (IDEAL_CONTENT_LENGTH - MIN_CONTENT_LENGTH))
        else:
            score.issues.append(f"Content shorter than {MIN_CONTENT_LENGTH} characters")

        if (article.author or "").strip():
            score.has_author = True
            points += 5
        if (article.cover_image or "").strip():
            score.has_images = True
            points += 5
        return points

    def _score_language(self, article: ArticleData, score: QualityScore) -> int:
        ratio = chinese_ratio(f"{article.title}{article.content}")
        if ratio >= 0.3:
            score.is_chinese = True
            return 20
        if contains_chinese(article.content):
            score.is_chinese = True
            score.issues.append("Content is mostly non-Chinese")
            return 10
        score.issues.append("Content is not written in Chinese")
        return 0

    def _score_readability(self, article: ArticleData, score: QualityScore) -> int:
        content = article.content or ""
        points = 0
        paragraphs = [p for p in re.split(r"\n\s*\n|\n", content) if p.strip()]
        if len(paragraphs) >= 3:
            points += 10
        elif len(paragraphs) == 2:
            points += 5
        else:
            score.issues.append("Content is a single block of text")

        sentences = [s for s in _SENTENCE_SPLIT_RE.split(content) if s.strip()]
        if sentences:
            average = sum(len(s) for s in sentences) / len(sentences)
            if average <= 80:
                points += 10
            elif average <= 150:
                points += 5
            else:
                score.issues.append("Sentences are very long")
        return points

    def _score_seo(self, article: ArticleData, score: QualityScore, keywords: List[str]) -> int:
        points = 0
        if article.tags:
            score.has_tags = True
            points += 5

        content = (article.content or "").lower()
        if not keywords or not content:
            return points

        best = 0
        for keyword in keywords:
            occurrences = content.count(keyword.lower())
            if not occurrences:
                continue
            density = occurrences * len(keyword) / len(content)
            if KEYWORD_DENSITY_MIN <= density <= KEYWORD_DENSITY_MAX:
                best = max(best, 15)
            else:
                best = max(best, 8)
        if not best:
            score.issues.append("No SEO keyword found in content")
        return points + best

    def _add_suggestions(self, score: QualityScore) -> None:
        if score.content_length < IDEAL_CONTENT_LENGTH:
            score.suggestions.append(f"Expand content to about {IDEAL_CONTENT_LENGTH} characters")
        if not score.has_images:
            score.suggestions.append("Add a cover image")
        if not score.has_tags:
            score.suggestions.append("Add tags")
        if score.seo_optimization < 15:
            score.suggestions.append("Use SEO keywords at 1-3% density")
