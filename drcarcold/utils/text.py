"""
Text helpers shared by the API and the news pipeline.
"""

import re
import uuid
from typing import Iterable, List

# Keep ASCII letters/digits and CJK unified ideographs, collapse the rest to "-"
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9一-龥]+")
_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
_CJK_RE = re.compile(r"[一-鿿]")


def slugify_title(text: str, max_length: int = 100) -> str:
    """
    Build a URL slug that keeps Chinese characters.

    >>> slugify_title("R-134a 冷媒 Guide!")
    'r-134a-冷媒-guide'
    """
    slug = _SLUG_STRIP_RE.sub("-", (text or "").lower()).strip("-")
    if max_length and len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")
    return slug


def unique_slug(model, text: str, max_length: int = 100, field: str = "slug") -> str:
    """Slugify `text` and append a counter until no `model` row uses it."""
    base = slugify_title(text, max_length=max_length) or uuid.uuid4().hex[:8]
    slug = base
    counter = 2
    while model.objects.filter(**{field: slug}).exists():
        suffix = f"-{counter}"
        slug = f"{base[: max_length - len(suffix)]}{suffix}"
        counter += 1
    return slug


def is_valid_time(value: str) -> bool:
    """Check an `HH:MM` 24h time string."""
    return bool(_TIME_RE.match((value or "").strip()))


def parse_times(value: str) -> List[str]:
    """Split a comma separated `HH:MM` list, dropping invalid entries."""
    times = []
    for item in (value or "").split(","):
        item = item.strip()
        if is_valid_time(item):
            hour, minute = item.split(":")
            times.append(f"{int(hour):02d}:{minute}")
    return times


def split_keywords(value: str) -> List[str]:
    return [k.strip() for k in re.split(r"[,，]", value or "") if k.strip()]


def contains_chinese(text: str) -> bool:
    return bool(_CJK_RE.search(text or ""))


def chinese_ratio(text: str) -> float:
    """Share of non-whitespace characters that are CJK ideographs."""
    chars = [c for c in (text or "") if not c.isspace()]
    if not chars:
        return 0.0
    return sum(1 for c in chars if _CJK_RE.match(c)) / len(chars)


def find_keywords(text: str, keywords: Iterable[str], limit: int = 5) -> List[str]:
    """Keywords that occur in `text`, in the given order."""
    lowered = (text or "").lower()
    found = [k for k in keywords if k and k.lower() in lowered]
    return found[:limit]
